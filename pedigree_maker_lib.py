"""
pedigree_maker_lib.py (v2.0)

Grid-based pedigree renderer: Person records -> drawing commands on a Surface,
with drag-and-drop repositioning of individuals.

Version History:
- v2.0: Interactive drag-and-drop (pointer + touch), reset to original positions
  - Partnerships normalized to a symmetric set at load time
  - Unknown sex drawn with an explicit policy (diamond | omit) instead of silently skipped
  - Sibship bus extent is a named option (include parent midpoint | children only)
  - Layout optimizer is pluggable (single forward pass by default)
- v1.4: Single-child connection fix (sibship bus reaches the parents' drop line)
- v1.0: Grid layout, sibling-swap optimizer, phenotype pie/bar fills, proband arrow

Core principles:
- Layout is controlled by grid coordinates in the data (pos.x / pos.y).
- An optional optimizer swaps siblings so they do not sit under a partnership line.
- Appearance is controlled by PedigreeConfig; family data stays separate from drawing.
- Drawing goes through a Surface (pedigree_surfaces.py), never a concrete backend.

Input schema (one dict per individual):
- id, name ("\\n" separates label lines), sex: "M" (□) | "F" (○) | "U" (◇)
- pos: {x, y} grid coordinate
- mate: id of the partner, parents: [id, id]
- phenotypes: [phenotype id, ...] (order = fill segment order), isProband: bool
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from pedigree_surfaces import REQUIRED_PRIMITIVES, Surface

logger = logging.getLogger(__name__)

DEFAULT_PHENOTYPE = "default_affected"

# First pie wedge starts at the top of the circle (a quarter turn before angle 0).
PIE_START_ANGLE = -math.pi / 2
PROBAND_ARROW_GAP = 5.0
PROBAND_ARROW_BARB = 5.0
LABEL_BASELINE = 10.0


class PedigreeError(Exception):
    pass


class SurfaceUnavailableError(PedigreeError):
    pass


class ConfigError(PedigreeError):
    pass


# ---------- Model ----------
class Sex(str, Enum):
    MALE = "M"
    FEMALE = "F"
    UNKNOWN = "U"

    @classmethod
    def parse(cls, value: object, *, person_id: str = "?") -> "Sex":
        s = str(value or "").strip().upper()
        for member in cls:
            if s == member.value:
                return member
        logger.warning("Person %s: unrecognized sex %r, treating as unknown", person_id, value)
        return cls.UNKNOWN


class SibshipBusPolicy(str, Enum):
    INCLUDE_PARENT_MIDPOINT = "include-parent-midpoint"
    CHILDREN_ONLY = "children-only"


class UnknownSexPolicy(str, Enum):
    DIAMOND = "diamond"
    OMIT = "omit"


@dataclass
class Point:
    x: float = 0.0
    y: float = 0.0


def _coordinate(pid: str, axis: str, value: object) -> float:
    """Grid coordinate from JSON. Numeric strings are accepted; anything else is an error."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            raise PedigreeError(f"Person {pid}: pos.{axis} must be a number, got {value!r}") from None
    else:
        raise PedigreeError(f"Person {pid}: pos.{axis} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise PedigreeError(f"Person {pid}: pos.{axis} must be finite, got {value!r}")
    return number


@dataclass
class Person:
    id: str
    name: str = ""
    sex: Sex = Sex.UNKNOWN
    pos: Point = field(default_factory=Point)
    mate: Optional[str] = None
    parents: Optional[Tuple[str, str]] = None
    phenotypes: List[str] = field(default_factory=list)
    is_proband: bool = False

    @property
    def parent_key(self) -> Optional[Tuple[str, str]]:
        if self.parents is None:
            return None
        a, b = sorted(self.parents)
        return (a, b)

    @classmethod
    def from_dict(cls, data: Mapping) -> "Person":
        if data.get("id") is None:
            raise PedigreeError(f"individual without id: {dict(data)!r}")
        pid = str(data["id"])

        pos = data.get("pos") or {}
        if not isinstance(pos, Mapping):
            raise PedigreeError(f"Person {pid}: pos must be an object with x/y, got {pos!r}")
        parents = data.get("parents")
        if parents is not None:
            parents = list(parents)
            if len(parents) != 2:
                logger.warning("Person %s: parents must list exactly two ids, got %r; ignoring", pid, parents)
                parents = None
            else:
                parents = (str(parents[0]), str(parents[1]))

        mate = data.get("mate")
        is_proband = data.get("isProband", data.get("is_proband", False))
        return cls(
            id=pid,
            name=str(data.get("name") or ""),
            sex=Sex.parse(data.get("sex"), person_id=pid),
            pos=Point(x=_coordinate(pid, "x", pos.get("x", 0)), y=_coordinate(pid, "y", pos.get("y", 0))),
            mate=str(mate) if mate else None,
            parents=parents,
            phenotypes=[str(p) for p in (data.get("phenotypes") or [])],
            is_proband=bool(is_proband),
        )

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "name": self.name,
            "sex": self.sex.value,
            "pos": {"x": self.pos.x, "y": self.pos.y},
        }
        if self.mate is not None:
            out["mate"] = self.mate
        if self.parents is not None:
            out["parents"] = list(self.parents)
        out["phenotypes"] = list(self.phenotypes)
        out["isProband"] = self.is_proband
        return out


@dataclass
class PhenotypeStyle:
    facecolor: Optional[str] = None
    description: str = ""

    @classmethod
    def from_value(cls, value: object) -> "PhenotypeStyle":
        if isinstance(value, PhenotypeStyle):
            return replace(value)
        if isinstance(value, Mapping):
            return cls(facecolor=value.get("facecolor"), description=str(value.get("description") or ""))
        raise ConfigError(f"phenotype style must be a mapping, got {type(value).__name__}")


@dataclass
class Padding:
    top: float = 50.0
    left: float = 50.0


def _default_phenotypes() -> Dict[str, PhenotypeStyle]:
    return {DEFAULT_PHENOTYPE: PhenotypeStyle(facecolor="#a9a9a9", description="Affected")}


@dataclass
class PedigreeConfig:
    node_width: float = 50.0
    node_height: float = 50.0
    h_spacing: float = 100.0
    v_spacing: float = 120.0
    line_width: float = 2.0
    line_color: str = "#333"
    font: str = "12px Arial"
    proband_arrow_size: float = 15.0
    padding: Padding = field(default_factory=Padding)
    auto_layout_optimize: bool = True
    interactive: bool = True
    phenotypes: Dict[str, PhenotypeStyle] = field(default_factory=_default_phenotypes)
    on_node_moved: Optional[Callable[[List[dict]], None]] = None
    sibship_bus: SibshipBusPolicy = SibshipBusPolicy.INCLUDE_PARENT_MIDPOINT
    unknown_sex_policy: UnknownSexPolicy = UnknownSexPolicy.DIAMOND
    label_line_height: float = 14.0
    label_offset: float = 5.0
    drag_highlight_color: str = "rgba(0, 123, 255, 0.5)"
    drag_highlight_blur: float = 10.0

    def style_for(self, phenotype_id: str) -> PhenotypeStyle:
        style = self.phenotypes.get(phenotype_id)
        if style is None:
            logger.debug("Unknown phenotype %r, using %s", phenotype_id, DEFAULT_PHENOTYPE)
            style = self.phenotypes[DEFAULT_PHENOTYPE]
        return style

    @classmethod
    def from_options(cls, options: Union[None, "PedigreeConfig", Mapping] = None) -> "PedigreeConfig":
        """Build a config from host options (camelCase or snake_case keys), merged over defaults.

        padding and phenotypes are merged key by key, so passing a partial padding or an
        extra phenotype keeps the remaining defaults (including default_affected).
        """
        if isinstance(options, PedigreeConfig):
            for key in sorted(_POSITIVE_OPTIONS):
                if getattr(options, key) <= 0:
                    raise ConfigError(f"{key} must be greater than 0, got {getattr(options, key)!r}")
            return replace(
                options,
                padding=replace(options.padding),
                phenotypes={k: replace(v) for k, v in options.phenotypes.items()},
            )
        config = cls()
        for raw_key, value in (options or {}).items():
            key = _OPTION_ALIASES.get(raw_key, raw_key)
            if key == "padding":
                config.padding = _merge_padding(config.padding, value)
            elif key == "phenotypes":
                if not isinstance(value, Mapping):
                    raise ConfigError("phenotypes must be a mapping of id -> {facecolor, description}")
                for pid, style in value.items():
                    config.phenotypes[str(pid)] = PhenotypeStyle.from_value(style)
            elif key == "sibship_bus":
                config.sibship_bus = _parse_enum(SibshipBusPolicy, key, value)
            elif key == "unknown_sex_policy":
                config.unknown_sex_policy = _parse_enum(UnknownSexPolicy, key, value)
            elif key == "on_node_moved":
                if value is not None and not callable(value):
                    raise ConfigError("onNodeMoved must be callable")
                config.on_node_moved = value
            elif key in _POSITIVE_OPTIONS:
                number = _parse_number(key, value)
                if number <= 0:
                    raise ConfigError(f"{raw_key} must be greater than 0, got {value!r}")
                setattr(config, key, number)
            elif key in _NUMBER_OPTIONS:
                setattr(config, key, _parse_number(key, value))
            elif key in _BOOL_OPTIONS:
                if not isinstance(value, bool):
                    raise ConfigError(f"{raw_key} must be a boolean, got {value!r}")
                setattr(config, key, value)
            elif key in _STR_OPTIONS:
                if not isinstance(value, str):
                    raise ConfigError(f"{raw_key} must be a string, got {value!r}")
                setattr(config, key, value)
            else:
                logger.warning("Ignoring unknown option %r", raw_key)
        return config


_OPTION_ALIASES = {
    "nodeWidth": "node_width",
    "nodeHeight": "node_height",
    "hSpacing": "h_spacing",
    "vSpacing": "v_spacing",
    "lineWidth": "line_width",
    "lineColor": "line_color",
    "probandArrowSize": "proband_arrow_size",
    "autoLayoutOptimize": "auto_layout_optimize",
    "onNodeMoved": "on_node_moved",
    "sibshipBus": "sibship_bus",
    "unknownSexPolicy": "unknown_sex_policy",
    "labelLineHeight": "label_line_height",
    "labelOffset": "label_offset",
    "dragHighlightColor": "drag_highlight_color",
    "dragHighlightBlur": "drag_highlight_blur",
}
_NUMBER_OPTIONS = {
    "node_width",
    "node_height",
    "h_spacing",
    "v_spacing",
    "line_width",
    "proband_arrow_size",
    "label_line_height",
    "label_offset",
    "drag_highlight_blur",
}
# Must be > 0: pixel_to_grid divides by the spacings.
_POSITIVE_OPTIONS = {"node_width", "node_height", "h_spacing", "v_spacing"}
_BOOL_OPTIONS = {"auto_layout_optimize", "interactive"}
_STR_OPTIONS = {"line_color", "font", "drag_highlight_color"}


def _parse_number(key: str, value: object) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number, got {value!r}") from exc


def _parse_enum(enum_cls, key: str, value: object):
    try:
        return enum_cls(value)
    except ValueError as exc:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"{key} must be one of: {choices} (got {value!r})") from exc


def _merge_padding(base: Padding, value: object) -> Padding:
    if isinstance(value, Padding):
        return replace(value)
    if not isinstance(value, Mapping):
        raise ConfigError("padding must be a mapping with top/left")
    return Padding(
        top=_parse_number("padding.top", value.get("top", base.top)),
        left=_parse_number("padding.left", value.get("left", base.left)),
    )


# ---------- Layout ----------
def grid_to_pixel(config: PedigreeConfig, gx: float, gy: float) -> Tuple[float, float]:
    return (gx * config.h_spacing + config.padding.left, gy * config.v_spacing + config.padding.top)


def _round_half_up(v: float) -> int:
    # Same tie-breaking as the browser's Math.round (0.5 -> 1, -0.5 -> 0).
    return int(math.floor(v + 0.5))


def pixel_to_grid(config: PedigreeConfig, px: float, py: float) -> Tuple[int, int]:
    gx = _round_half_up((px - config.padding.left) / config.h_spacing)
    gy = _round_half_up((py - config.padding.top) / config.v_spacing)
    return (max(0, gx), max(0, gy))


def are_siblings(a: Person, b: Person) -> bool:
    return a.parent_key is not None and a.parent_key == b.parent_key


LayoutStrategy = Callable[[List[Person]], int]


def optimize_sibling_swaps(people: List[Person]) -> int:
    """Single forward pass: move siblings out from under a partnership line.

    For each person with a known mate, any sibling of that person standing on the same row
    strictly between the two partners trades x with the person. The partnership span is fixed
    before scanning, and the pass is not repeated, so later swaps may reintroduce crossings.
    Comparing grid x is equivalent to comparing pixel x (the transform is monotonic).
    Returns the number of swaps.
    """
    by_id: Dict[str, Person] = {}
    for p in people:
        by_id.setdefault(p.id, p)

    swaps = 0
    for person in people:
        if not person.mate:
            continue
        partner = by_id.get(person.mate)
        if partner is None:
            continue
        line_start = min(person.pos.x, partner.pos.x)
        line_end = max(person.pos.x, partner.pos.x)
        for obstacle in people:
            if obstacle.id in (person.id, partner.id) or obstacle.pos.y != person.pos.y:
                continue
            if not (line_start < obstacle.pos.x < line_end):
                continue
            if are_siblings(person, obstacle):
                person.pos.x, obstacle.pos.x = obstacle.pos.x, person.pos.x
                swaps += 1
    return swaps


def estimate_canvas(people: Sequence[Person], config: PedigreeConfig) -> Tuple[int, int]:
    """Surface size that fits every node, its label and the padding on all sides."""
    if not people:
        return (int(2 * config.padding.left), int(2 * config.padding.top))
    pixels = [grid_to_pixel(config, p.pos.x, p.pos.y) for p in people]
    max_lines = max(len(p.name.split("\n")) if p.name else 0 for p in people)
    max_x = max(x for x, _ in pixels) + config.node_width / 2 + config.padding.left
    max_y = (
        max(y for _, y in pixels)
        + config.node_height / 2
        + config.label_offset
        + LABEL_BASELINE
        + max_lines * config.label_line_height
        + config.padding.top
    )
    return (int(math.ceil(max_x)), int(math.ceil(max_y)))


# ---------- Coordinate index ----------
class CoordinateIndex:
    """Person id -> resolved pixel centre for the most recent render."""

    def __init__(self):
        self._coords: Dict[str, Tuple[float, float]] = {}

    def clear(self) -> None:
        self._coords.clear()

    def record(self, person_id: str, x: float, y: float) -> None:
        self._coords[person_id] = (x, y)

    def get(self, person_id: Optional[str]) -> Optional[Tuple[float, float]]:
        if person_id is None:
            return None
        return self._coords.get(person_id)

    def items(self) -> Iterator[Tuple[str, Tuple[float, float]]]:
        return iter(list(self._coords.items()))

    def __contains__(self, person_id: object) -> bool:
        return person_id in self._coords

    def __len__(self) -> int:
        return len(self._coords)


# ---------- Connections ----------
@dataclass(frozen=True)
class Segment:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass
class Route:
    partnerships: List[Segment] = field(default_factory=list)
    drops: List[Segment] = field(default_factory=list)
    buses: List[Segment] = field(default_factory=list)
    children: List[Segment] = field(default_factory=list)

    def segments(self) -> List[Segment]:
        return self.partnerships + self.drops + self.buses + self.children


def normalize_partnerships(people: List[Person]) -> None:
    """Make mate links symmetric and report references that cannot be resolved."""
    by_id: Dict[str, Person] = {}
    for p in people:
        if p.id in by_id:
            logger.warning("Duplicate person id %s; the first record wins for lookups", p.id)
            continue
        by_id[p.id] = p

    for p in people:
        if p.parents is not None:
            for parent_id in p.parents:
                if parent_id not in by_id:
                    logger.warning("Person %s: parent %s not found; family lines will be skipped", p.id, parent_id)
        if not p.mate:
            continue
        if p.mate == p.id:
            logger.warning("Person %s lists itself as mate; ignoring", p.id)
            p.mate = None
            continue
        partner = by_id.get(p.mate)
        if partner is None:
            logger.warning("Person %s: mate %s not found; partnership line will be skipped", p.id, p.mate)
            continue
        if partner.mate is None:
            partner.mate = p.id
        elif partner.mate != p.id:
            logger.warning(
                "Inconsistent partnership: %s -> %s but %s -> %s; drawing both",
                p.id,
                p.mate,
                partner.id,
                partner.mate,
            )


def partnership_pairs(people: Sequence[Person]) -> Dict[Tuple[str, str], Tuple[str, str]]:
    """Unique unordered mate pairs, keyed by the sorted ids, in first-seen order."""
    pairs: Dict[Tuple[str, str], Tuple[str, str]] = {}
    for p in people:
        if not p.mate:
            continue
        a, b = sorted((p.id, p.mate))
        pairs.setdefault((a, b), (a, b))
    return pairs


def sibling_groups(people: Sequence[Person]) -> Dict[Tuple[str, str], List[str]]:
    groups: Dict[Tuple[str, str], List[str]] = {}
    for p in people:
        key = p.parent_key
        if key is not None:
            groups.setdefault(key, []).append(p.id)
    return groups


def route_connections(people: Sequence[Person], coords: CoordinateIndex, config: PedigreeConfig) -> Route:
    """Derive partnership and sibship lines from the relationship fields.

    Anything whose endpoints have no coordinate in `coords` is left out. Sibship lines only
    depend on the shared parent pair, never on a declared partnership.
    """
    route = Route()
    half_w = config.node_width / 2
    half_h = config.node_height / 2

    for a, b in partnership_pairs(people).values():
        p1 = coords.get(a)
        p2 = coords.get(b)
        if p1 is None or p2 is None:
            continue
        left, right = (p1, p2) if p1[0] < p2[0] else (p2, p1)
        route.partnerships.append(Segment(left[0] + half_w, left[1], right[0] - half_w, right[1]))

    for (a, b), child_ids in sibling_groups(people).items():
        p1 = coords.get(a)
        p2 = coords.get(b)
        if p1 is None or p2 is None:
            continue
        kids = [c for c in (coords.get(cid) for cid in child_ids) if c is not None]
        if not kids:
            continue

        mid_x = (p1[0] + p2[0]) / 2
        sibship_y = p1[1] + config.v_spacing / 2
        route.drops.append(Segment(mid_x, p1[1], mid_x, sibship_y))

        xs = [kx for kx, _ in kids]
        bus_start, bus_end = min(xs), max(xs)
        if config.sibship_bus is SibshipBusPolicy.INCLUDE_PARENT_MIDPOINT:
            bus_start = min(bus_start, mid_x)
            bus_end = max(bus_end, mid_x)
        route.buses.append(Segment(bus_start, sibship_y, bus_end, sibship_y))

        for kx, ky in kids:
            route.children.append(Segment(kx, sibship_y, kx, ky - half_h))
    return route


# ---------- Legend ----------
@dataclass(frozen=True)
class LegendEntry:
    swatch: str  # "square" | "circle"
    color: str
    label: str


# ---------- Interaction ----------
@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Hovering:
    node_id: str


@dataclass(frozen=True)
class Dragging:
    node_id: str
    offset: Point


InteractionState = Union[Idle, Hovering, Dragging]


class InteractionController:
    """Pointer / touch state machine: Idle -> Hovering(id) -> Dragging(id, offset) -> Idle.

    Positions are surface-relative pixels; the host converts client coordinates before
    calling in. Handlers run to completion (a drag move re-renders synchronously).
    """

    def __init__(self, maker: "PedigreeMaker"):
        self.maker = maker
        self.state: InteractionState = Idle()
        self.cursor = "default"
        self.last_pointer = Point()

    @property
    def dragging_id(self) -> Optional[str]:
        return self.state.node_id if isinstance(self.state, Dragging) else None

    def hit_test(self, x: float, y: float) -> Optional[Person]:
        cfg = self.maker.config
        for pid, (nx, ny) in self.maker.coords.items():
            person = self.maker.person(pid)
            if person is None:
                continue
            dx = x - nx
            dy = y - ny
            if person.sex is Sex.FEMALE:
                inside = math.hypot(dx, dy) <= cfg.node_width / 2
            else:
                inside = abs(dx) <= cfg.node_width / 2 and abs(dy) <= cfg.node_height / 2
            if inside:
                return person
        return None

    def pointer_down(self, x: float, y: float) -> bool:
        """Start dragging the node under (x, y). Returns True when a drag started."""
        if isinstance(self.state, Dragging):
            return False
        person = self.hit_test(x, y)
        if person is None:
            return False
        nx, ny = self.maker.coords.get(person.id)
        self.state = Dragging(node_id=person.id, offset=Point(x - nx, y - ny))
        self.cursor = "grabbing"
        logger.info("Drag start: %s", person.id)
        return True

    def pointer_move(self, x: float, y: float) -> None:
        self.last_pointer = Point(x, y)
        state = self.state
        if isinstance(state, Dragging):
            person = self.maker.person(state.node_id)
            if person is None:
                # Dataset replaced mid-drag and the node is gone.
                self.cancel()
                return
            gx, gy = pixel_to_grid(self.maker.config, x - state.offset.x, y - state.offset.y)
            person.pos.x = gx
            person.pos.y = gy
            self.maker.render()
            return

        hovered = self.hit_test(x, y)
        if hovered is None:
            self.state = Idle()
            self.cursor = "default"
        else:
            self.state = Hovering(node_id=hovered.id)
            self.cursor = "grab"

    def pointer_up(self) -> None:
        state = self.state
        if not isinstance(state, Dragging):
            return
        self.state = Idle()
        self.cursor = "default"
        logger.info("Drag end: %s", state.node_id)
        callback = self.maker.config.on_node_moved
        if callback is not None:
            callback(self.maker.get_data())

    def pointer_leave(self) -> None:
        if isinstance(self.state, Dragging):
            self.pointer_up()
        else:
            self.state = Idle()
            self.cursor = "default"

    # Touch events use the primary touch point.
    def touch_start(self, touches: Sequence[Tuple[float, float]]) -> bool:
        if not touches:
            return False
        x, y = touches[0]
        return self.pointer_down(x, y)

    def touch_move(self, touches: Sequence[Tuple[float, float]]) -> None:
        if not touches:
            return
        x, y = touches[0]
        self.pointer_move(x, y)

    def touch_end(self, touches: Sequence[Tuple[float, float]] = ()) -> None:
        self.pointer_up()

    def cancel(self) -> None:
        self.state = Idle()
        self.cursor = "default"


# ---------- Engine ----------
def load_people(records: Sequence[Union[Person, Mapping]]) -> List[Person]:
    people: List[Person] = []
    for record in records or []:
        if isinstance(record, Person):
            people.append(copy.deepcopy(record))
        elif isinstance(record, Mapping):
            people.append(Person.from_dict(record))
        else:
            raise PedigreeError(f"unsupported person record: {type(record).__name__}")
    normalize_partnerships(people)
    return people


class PedigreeMaker:
    def __init__(
        self,
        surface: Surface,
        people: Sequence[Union[Person, Mapping]],
        options: Union[None, PedigreeConfig, Mapping] = None,
        *,
        layout_strategy: Optional[LayoutStrategy] = None,
    ):
        if surface is None:
            raise SurfaceUnavailableError("drawing surface is not available")
        missing = [name for name in REQUIRED_PRIMITIVES if not callable(getattr(surface, name, None))]
        if missing:
            raise SurfaceUnavailableError(f"drawing surface lacks primitives: {', '.join(missing)}")

        self.surface = surface
        self.config = PedigreeConfig.from_options(options)
        self.layout_strategy: LayoutStrategy = layout_strategy or optimize_sibling_swaps
        self.coords = CoordinateIndex()

        # Working copy (mutated by the optimizer and by dragging) and the untouched snapshot for reset().
        self.data: List[Person] = load_people(people)
        self._original: List[Person] = copy.deepcopy(self.data)
        self._by_id: Dict[str, Person] = {}
        self._reindex()

        self.controller: Optional[InteractionController] = InteractionController(self) if self.config.interactive else None

    def _reindex(self) -> None:
        self._by_id = {}
        for p in self.data:
            self._by_id.setdefault(p.id, p)

    def person(self, person_id: str) -> Optional[Person]:
        return self._by_id.get(person_id)

    # ---------- Layout ----------
    def grid_to_pixel(self, gx: float, gy: float) -> Tuple[float, float]:
        return grid_to_pixel(self.config, gx, gy)

    def pixel_to_grid(self, px: float, py: float) -> Tuple[int, int]:
        return pixel_to_grid(self.config, px, py)

    def optimize_layout(self) -> int:
        if not self.config.auto_layout_optimize:
            return 0
        swaps = self.layout_strategy(self.data)
        if swaps:
            logger.debug("Layout optimizer swapped %d sibling position(s)", swaps)
        return swaps

    def toggle_auto_layout_optimize(self) -> bool:
        self.config.auto_layout_optimize = not self.config.auto_layout_optimize
        self.render()
        return self.config.auto_layout_optimize

    # ---------- Rendering ----------
    def render(self) -> Route:
        self.optimize_layout()
        self.surface.clear()
        self.coords.clear()
        for person in self.data:
            self._draw_node(person)
        route = route_connections(self.data, self.coords, self.config)
        self._draw_connections(route)
        logger.debug("Rendered %d individuals, %d connection segments", len(self.data), len(route.segments()))
        return route

    def _draw_node(self, person: Person) -> None:
        cfg = self.config
        x, y = self.grid_to_pixel(person.pos.x, person.pos.y)
        self.coords.record(person.id, x, y)

        if person.phenotypes:
            self._draw_phenotype_fill(person, x, y)

        shadow = None
        if self.controller is not None and self.controller.dragging_id == person.id:
            shadow = (cfg.drag_highlight_color, cfg.drag_highlight_blur)
        if self._trace_outline(person.sex, x, y):
            self.surface.stroke(cfg.line_color, cfg.line_width, shadow)

        if person.is_proband:
            self._draw_proband_arrow(x, y)

        self._draw_label(person.name, x, y + cfg.node_height / 2 + cfg.label_offset)

    def _trace_outline(self, sex: Sex, x: float, y: float) -> bool:
        """Build the outline path for `sex`. Returns False when nothing should be stroked."""
        cfg = self.config
        s = self.surface
        half_w = cfg.node_width / 2
        half_h = cfg.node_height / 2
        if sex is Sex.MALE:
            s.begin_path()
            s.rect(x - half_w, y - half_h, cfg.node_width, cfg.node_height)
            return True
        if sex is Sex.FEMALE:
            s.begin_path()
            s.arc(x, y, half_w, 0.0, 2 * math.pi)
            return True
        if sex is Sex.UNKNOWN:
            if cfg.unknown_sex_policy is UnknownSexPolicy.OMIT:
                return False
            s.begin_path()
            s.move_to(x, y - half_h)
            s.line_to(x + half_w, y)
            s.line_to(x, y + half_h)
            s.line_to(x - half_w, y)
            s.close_path()
            return True
        raise ValueError(f"unhandled sex category: {sex!r}")

    def _draw_phenotype_fill(self, person: Person, x: float, y: float) -> None:
        cfg = self.config
        s = self.surface
        n = len(person.phenotypes)
        if n == 0:
            return

        if person.sex is Sex.FEMALE:
            # Pie chart: equal wedges, clockwise from the top.
            radius = cfg.node_width / 2
            step = 2 * math.pi / n
            for i, phenotype_id in enumerate(person.phenotypes):
                style = cfg.style_for(phenotype_id)
                if not style.facecolor:
                    continue
                start = PIE_START_ANGLE + step * i
                s.begin_path()
                s.move_to(x, y)
                s.arc(x, y, radius, start, start + step)
                s.close_path()
                s.fill(style.facecolor)
            return

        if person.sex is Sex.UNKNOWN and cfg.unknown_sex_policy is UnknownSexPolicy.OMIT:
            return

        # Vertical bars, left to right in phenotype order (clipped to the diamond for unknown sex).
        bar_w = cfg.node_width / n
        left = x - cfg.node_width / 2
        top = y - cfg.node_height / 2
        for i, phenotype_id in enumerate(person.phenotypes):
            style = cfg.style_for(phenotype_id)
            if not style.facecolor:
                continue
            x0 = left + i * bar_w
            s.begin_path()
            if person.sex is Sex.MALE:
                s.rect(x0, top, bar_w, cfg.node_height)
            else:
                self._trace_diamond_strip(x, y, x0, x0 + bar_w)
            s.fill(style.facecolor)

    def _trace_diamond_strip(self, cx: float, cy: float, x0: float, x1: float) -> None:
        half_w = self.config.node_width / 2
        half_h = self.config.node_height / 2

        def reach(u: float) -> float:
            return half_h * (1 - abs(u - cx) / half_w)

        xs = [x0, cx, x1] if x0 < cx < x1 else [x0, x1]
        s = self.surface
        s.move_to(xs[0], cy - reach(xs[0]))
        for u in xs[1:]:
            s.line_to(u, cy - reach(u))
        for u in reversed(xs):
            s.line_to(u, cy + reach(u))
        s.close_path()

    def _draw_proband_arrow(self, x: float, y: float) -> None:
        # Horizontal arrow left of the node, tip pointing at it.
        cfg = self.config
        s = self.surface
        tip_x = x - cfg.node_width / 2 - PROBAND_ARROW_GAP
        s.begin_path()
        s.move_to(tip_x - cfg.proband_arrow_size, y)
        s.line_to(tip_x, y)
        s.move_to(tip_x, y)
        s.line_to(tip_x - PROBAND_ARROW_BARB, y - PROBAND_ARROW_BARB)
        s.move_to(tip_x, y)
        s.line_to(tip_x - PROBAND_ARROW_BARB, y + PROBAND_ARROW_BARB)
        s.stroke(cfg.line_color, cfg.line_width)

    def _draw_label(self, text: str, x: float, y: float) -> None:
        if not text:
            return
        cfg = self.config
        for i, line in enumerate(text.split("\n")):
            self.surface.fill_text(line, x, y + LABEL_BASELINE + i * cfg.label_line_height, cfg.font, cfg.line_color, "center")

    def _draw_connections(self, route: Route) -> None:
        cfg = self.config
        for seg in route.segments():
            self.surface.begin_path()
            self.surface.move_to(seg.x1, seg.y1)
            self.surface.line_to(seg.x2, seg.y2)
            self.surface.stroke(cfg.line_color, cfg.line_width)

    def legend(self) -> List[LegendEntry]:
        entries = [
            LegendEntry(swatch="square", color="#fff", label="Male"),
            LegendEntry(swatch="circle", color="#fff", label="Female"),
        ]
        for style in self.config.phenotypes.values():
            entries.append(LegendEntry(swatch="square", color=style.facecolor or "#fff", label=style.description))
        return entries

    def export_image(self, filename: str = "pedigree.svg") -> str:
        return self.surface.export(filename)

    # ---------- Data ----------
    def reset(self) -> None:
        """Throw away interactive edits and redraw from the original positions."""
        if self.controller is not None:
            self.controller.cancel()
        self.data = copy.deepcopy(self._original)
        self._reindex()
        self.render()

    def get_data(self) -> List[dict]:
        return [p.to_dict() for p in self.data]

    def set_data(self, records: Sequence[Union[Person, Mapping]]) -> None:
        self.data = load_people(records)
        self._reindex()
        self.render()
