"""
pedigree_surfaces.py

Drawing surfaces for pedigree_maker_lib.

A surface is the small canvas-like API the renderer draws against:
begin_path / move_to / line_to / arc / rect / close_path build a path,
fill / stroke paint it, fill_text draws a label and clear wipes everything.

- RecordingSurface: keeps every call as a tuple (replay on a host canvas, tests).
- SvgSurface: turns paths into flat <path>/<text> elements (ElementTree, no groups,
  inline styles) so the output stays editable in PowerPoint / draw.io.
"""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple
from xml.etree import ElementTree as ET

logger = logging.getLogger(__name__)

# Primitives the renderer relies on. A surface missing any of these is unusable.
REQUIRED_PRIMITIVES = (
    "begin_path",
    "move_to",
    "line_to",
    "arc",
    "rect",
    "close_path",
    "fill",
    "stroke",
    "fill_text",
    "clear",
)

_FONT_RE = re.compile(r"^\s*(?:(bold|italic|normal)\s+)?(\d+(?:\.\d+)?)px\s+(.+?)\s*$", re.IGNORECASE)


def parse_font(font: str) -> Tuple[Optional[str], float, str]:
    """Split a CSS shorthand like "bold 12px Arial" into (weight, size, family)."""
    m = _FONT_RE.match(font or "")
    if not m:
        return (None, 12.0, font or "Arial")
    weight = m.group(1).lower() if m.group(1) else None
    return (weight, float(m.group(2)), m.group(3))


class Surface(ABC):
    """Abstract base. Subclasses implement every primitive; export is optional."""

    @abstractmethod
    def begin_path(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def move_to(self, x: float, y: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def line_to(self, x: float, y: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def arc(self, x: float, y: float, radius: float, start_angle: float, end_angle: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def rect(self, x: float, y: float, width: float, height: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def close_path(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def fill(self, color: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def stroke(self, color: str, width: float, shadow: Optional[Tuple[str, float]] = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def fill_text(self, text: str, x: float, y: float, font: str, color: str, align: str = "center") -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    def export(self, filename: str) -> str:
        raise NotImplementedError(f"{type(self).__name__} cannot export images")


class RecordingSurface(Surface):
    def __init__(self):
        self.commands: List[tuple] = []

    def begin_path(self) -> None:
        self.commands.append(("begin_path",))

    def move_to(self, x: float, y: float) -> None:
        self.commands.append(("move_to", x, y))

    def line_to(self, x: float, y: float) -> None:
        self.commands.append(("line_to", x, y))

    def arc(self, x: float, y: float, radius: float, start_angle: float, end_angle: float) -> None:
        self.commands.append(("arc", x, y, radius, start_angle, end_angle))

    def rect(self, x: float, y: float, width: float, height: float) -> None:
        self.commands.append(("rect", x, y, width, height))

    def close_path(self) -> None:
        self.commands.append(("close_path",))

    def fill(self, color: str) -> None:
        self.commands.append(("fill", color))

    def stroke(self, color: str, width: float, shadow: Optional[Tuple[str, float]] = None) -> None:
        self.commands.append(("stroke", color, width, shadow))

    def fill_text(self, text: str, x: float, y: float, font: str, color: str, align: str = "center") -> None:
        self.commands.append(("fill_text", text, x, y, font, color, align))

    def clear(self) -> None:
        self.commands.clear()
        self.commands.append(("clear",))

    def named(self, name: str) -> List[tuple]:
        return [c for c in self.commands if c[0] == name]


class SvgSurface(Surface):
    def __init__(self, width: int = 800, height: int = 600, *, background: Optional[str] = None):
        self.width = int(width)
        self.height = int(height)
        self.background = background
        self._svg = self._new_root()
        self._d: List[str] = []
        self._current: Optional[Tuple[float, float]] = None
        self._subpath_start: Optional[Tuple[float, float]] = None
        self._count = 0

    def _new_root(self) -> ET.Element:
        svg = ET.Element(
            "svg",
            {
                "xmlns": "http://www.w3.org/2000/svg",
                "version": "1.1",
                "width": str(self.width),
                "height": str(self.height),
                "viewBox": f"0 0 {self.width} {self.height}",
            },
        )
        if self.background:
            ET.SubElement(
                svg,
                "rect",
                {"id": "background", "x": "0", "y": "0", "width": str(self.width), "height": str(self.height), "fill": self.background},
            )
        return svg

    # ---------- Path building ----------
    def begin_path(self) -> None:
        self._d = []
        self._current = None
        self._subpath_start = None

    def move_to(self, x: float, y: float) -> None:
        self._d.append(f"M {_num(x)} {_num(y)}")
        self._current = (x, y)
        self._subpath_start = (x, y)

    def line_to(self, x: float, y: float) -> None:
        if self._current is None:
            # Canvas semantics: lineTo on an empty path behaves like moveTo.
            self.move_to(x, y)
            return
        self._d.append(f"L {_num(x)} {_num(y)}")
        self._current = (x, y)

    def arc(self, x: float, y: float, radius: float, start_angle: float, end_angle: float) -> None:
        sx = x + radius * math.cos(start_angle)
        sy = y + radius * math.sin(start_angle)
        if self._current is None:
            self.move_to(sx, sy)
        else:
            self.line_to(sx, sy)
        sweep = end_angle - start_angle
        if abs(sweep) >= 2 * math.pi - 1e-9:
            # A single SVG arc cannot describe a full turn; split it in two halves.
            mid = start_angle + math.copysign(math.pi, sweep)
            self._arc_segment(x, y, radius, mid, math.pi, clockwise=sweep >= 0)
            self._arc_segment(x, y, radius, start_angle, math.pi, clockwise=sweep >= 0)
            return
        self._arc_segment(x, y, radius, end_angle, abs(sweep), clockwise=sweep >= 0)

    def _arc_segment(self, cx: float, cy: float, r: float, end_angle: float, extent: float, clockwise: bool = True) -> None:
        ex = cx + r * math.cos(end_angle)
        ey = cy + r * math.sin(end_angle)
        large = 1 if extent > math.pi else 0
        sweep_flag = 1 if clockwise else 0
        self._d.append(f"A {_num(r)} {_num(r)} 0 {large} {sweep_flag} {_num(ex)} {_num(ey)}")
        self._current = (ex, ey)

    def rect(self, x: float, y: float, width: float, height: float) -> None:
        self.move_to(x, y)
        self._d.append(f"H {_num(x + width)} V {_num(y + height)} H {_num(x)} Z")
        self._current = (x, y)

    def close_path(self) -> None:
        if self._d:
            self._d.append("Z")
            self._current = self._subpath_start

    # ---------- Painting ----------
    def fill(self, color: str) -> None:
        if not self._d:
            return
        self._emit_path({"fill": color, "stroke": "none"})

    def stroke(self, color: str, width: float, shadow: Optional[Tuple[str, float]] = None) -> None:
        if not self._d:
            return
        attrs = {"fill": "none", "stroke": color, "stroke-width": _num(width)}
        if shadow:
            shadow_color, blur = shadow
            attrs["style"] = f"filter: drop-shadow(0 0 {_num(blur / 2)}px {shadow_color})"
        self._emit_path(attrs)

    def _emit_path(self, attrs: dict) -> None:
        self._count += 1
        ET.SubElement(self._svg, "path", {"id": f"p{self._count}", "d": " ".join(self._d), **attrs})

    def fill_text(self, text: str, x: float, y: float, font: str, color: str, align: str = "center") -> None:
        weight, size, family = parse_font(font)
        anchor = {"center": "middle", "left": "start", "start": "start", "right": "end", "end": "end"}.get(align, "middle")
        attrs = {
            "x": _num(x),
            "y": _num(y),
            "font-size": _num(size),
            "font-family": family,
            "text-anchor": anchor,
            "fill": color,
        }
        if weight and weight != "normal":
            attrs["font-weight"] = weight
        self._count += 1
        t = ET.SubElement(self._svg, "text", {"id": f"t{self._count}", **attrs})
        t.text = text

    def clear(self) -> None:
        self._svg = self._new_root()
        self.begin_path()
        self._count = 0

    # ---------- Output ----------
    def to_string(self) -> str:
        return ET.tostring(self._svg, encoding="unicode")

    def export(self, filename: str) -> str:
        Path(filename).write_text(self.to_string(), encoding="utf-8")
        logger.info("Wrote SVG to %s", filename)
        return filename


def _num(v: float) -> str:
    # Compact, stable number formatting ("50" instead of "50.0", 2 decimals max).
    out = f"{float(v):.2f}".rstrip("0").rstrip(".")
    return "0" if out in ("-0", "") else out
