"""SVG output, recording surface and the command-line renderer."""

import json
import math
from xml.etree import ElementTree as ET

import pytest

from pedigree_maker_lib import PedigreeMaker
from pedigree_surfaces import RecordingSurface, SvgSurface, parse_font
from render_pedigree import main

SVG_NS = "{http://www.w3.org/2000/svg}"


def _paths(svg_text):
    root = ET.fromstring(svg_text)
    return root.findall(f"{SVG_NS}path"), root.findall(f"{SVG_NS}text")


class TestSvgSurface:
    def test_stroked_line(self):
        s = SvgSurface(100, 100)
        s.begin_path()
        s.move_to(10, 20)
        s.line_to(30.5, 20)
        s.stroke("#333", 2)
        (path,), _ = _paths(s.to_string())
        assert path.get("d") == "M 10 20 L 30.5 20"
        assert path.get("stroke") == "#333"
        assert path.get("fill") == "none"

    def test_full_circle_is_two_arcs(self):
        s = SvgSurface(100, 100)
        s.begin_path()
        s.arc(50, 50, 25, 0, 2 * math.pi)
        s.stroke("#000", 1)
        (path,), _ = _paths(s.to_string())
        assert path.get("d").count("A 25 25") == 2
        assert path.get("d").startswith("M 75 50")

    def test_wedge_fill(self):
        s = SvgSurface(100, 100)
        s.begin_path()
        s.move_to(50, 50)
        s.arc(50, 50, 25, -math.pi / 2, 0)
        s.close_path()
        s.fill("#f00")
        (path,), _ = _paths(s.to_string())
        assert path.get("d") == "M 50 50 L 50 25 A 25 25 0 0 1 75 50 Z"
        assert path.get("fill") == "#f00"

    def test_rect_and_text(self):
        s = SvgSurface(100, 100)
        s.begin_path()
        s.rect(10, 10, 20, 30)
        s.fill("#abc")
        s.fill_text("Hi", 20, 60, "bold 14px Helvetica", "#333", "center")
        (path,), (text,) = _paths(s.to_string())
        assert path.get("d") == "M 10 10 H 30 V 40 H 10 Z"
        assert text.text == "Hi"
        assert text.get("font-size") == "14"
        assert text.get("font-weight") == "bold"
        assert text.get("text-anchor") == "middle"

    def test_stroke_without_path_emits_nothing(self):
        s = SvgSurface(10, 10)
        s.begin_path()
        s.stroke("#000", 1)
        assert _paths(s.to_string()) == ([], [])

    def test_clear_drops_previous_drawing(self):
        s = SvgSurface(10, 10, background="#fff")
        s.begin_path()
        s.rect(0, 0, 5, 5)
        s.fill("#000")
        s.clear()
        root = ET.fromstring(s.to_string())
        assert [el.tag for el in root] == [f"{SVG_NS}rect"]

    def test_export_writes_file(self, tmp_path, trio):
        surface = SvgSurface(400, 300)
        maker = PedigreeMaker(surface, trio, {"interactive": False})
        maker.render()
        out = maker.export_image(str(tmp_path / "trio.svg"))
        paths, texts = _paths((tmp_path / "trio.svg").read_text(encoding="utf-8"))
        assert out.endswith("trio.svg")
        assert [t.text for t in texts] == ["Father", "Mother", "Child"]
        # 3 outlines + 4 connection lines.
        assert len(paths) == 7


def test_parse_font():
    assert parse_font("12px Arial") == (None, 12.0, "Arial")
    assert parse_font("bold 10.5px Noto Sans") == ("bold", 10.5, "Noto Sans")
    assert parse_font("serif") == (None, 12.0, "serif")


def test_recording_surface_clear_starts_fresh():
    s = RecordingSurface()
    s.begin_path()
    s.clear()
    assert s.commands == [("clear",)]


class TestCli:
    def test_renders_list_input(self, tmp_path, trio):
        src = tmp_path / "family.json"
        src.write_text(json.dumps(trio), encoding="utf-8")
        out = tmp_path / "family.svg"

        assert main([str(src), "-o", str(out)]) == 0
        root = ET.fromstring(out.read_text(encoding="utf-8"))
        assert int(root.get("width")) >= 200
        assert len(root.findall(f"{SVG_NS}text")) == 3

    def test_renders_object_input_with_options(self, tmp_path, trio):
        src = tmp_path / "family.json"
        payload = {"options": {"nodeWidth": 30, "phenotypes": {"x": {"facecolor": "#0f0", "description": "X"}}}, "individuals": trio}
        payload["individuals"][0]["phenotypes"] = ["x"]
        src.write_text(json.dumps(payload), encoding="utf-8")
        out = tmp_path / "family.svg"

        assert main([str(src), "-o", str(out), "--width", "640", "--sibship-bus", "children-only"]) == 0
        root = ET.fromstring(out.read_text(encoding="utf-8"))
        assert root.get("width") == "640"
        assert any(p.get("fill") == "#0f0" for p in root.findall(f"{SVG_NS}path"))

    def test_bad_input_returns_error(self, tmp_path):
        src = tmp_path / "broken.json"
        src.write_text("{not json", encoding="utf-8")
        assert main([str(src), "-o", str(tmp_path / "x.svg")]) == 1

    @pytest.mark.parametrize("payload", ['"just a string"', '{"options": {"nodeWidth": "huge"}, "individuals": []}'])
    def test_invalid_structure_returns_error(self, tmp_path, payload):
        src = tmp_path / "bad.json"
        src.write_text(payload, encoding="utf-8")
        assert main([str(src), "-o", str(tmp_path / "x.svg")]) == 1

    @pytest.mark.parametrize("pos", [[1, 2], {"x": "a", "y": 0}])
    def test_malformed_position_returns_error(self, tmp_path, pos):
        src = tmp_path / "bad.json"
        src.write_text(json.dumps([{"id": "A", "sex": "M", "pos": pos}]), encoding="utf-8")
        out = tmp_path / "x.svg"
        assert main([str(src), "-o", str(out)]) == 1
        assert not out.exists()
