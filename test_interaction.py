"""Pointer / touch state machine, reset and per-instance state."""

from pedigree_maker_lib import Dragging, Hovering, Idle, PedigreeMaker, Point
from pedigree_surfaces import RecordingSurface


def _lone(sex="M"):
    return [{"id": "A", "name": "A", "sex": sex, "pos": {"x": 0, "y": 0}}]


def test_non_interactive_has_no_controller(make_maker):
    assert make_maker(_lone(), {"interactive": False}).controller is None


class TestHitTest:
    def test_box_for_male(self, make_maker):
        maker = make_maker(_lone("M"))
        maker.render()
        assert maker.controller.hit_test(70, 70).id == "A"
        assert maker.controller.hit_test(76, 50) is None

    def test_circle_for_female(self, make_maker):
        maker = make_maker(_lone("F"))
        maker.render()
        assert maker.controller.hit_test(70, 50).id == "A"
        # Inside the bounding box but outside the circle.
        assert maker.controller.hit_test(70, 70) is None

    def test_nothing_before_first_render(self, make_maker):
        maker = make_maker(_lone())
        assert maker.controller.hit_test(50, 50) is None


class TestDrag:
    def test_full_drag_cycle(self, make_maker):
        moved = []
        maker = make_maker(_lone(), {"onNodeMoved": moved.append})
        maker.render()
        ctl = maker.controller

        assert ctl.pointer_down(55, 52) is True
        assert ctl.state == Dragging(node_id="A", offset=Point(5, 2))
        assert ctl.cursor == "grabbing"

        ctl.pointer_move(255, 172)
        assert (maker.person("A").pos.x, maker.person("A").pos.y) == (2, 1)
        assert maker.coords.get("A") == (250.0, 170.0)

        ctl.pointer_up()
        assert ctl.state == Idle()
        assert ctl.cursor == "default"
        assert len(moved) == 1
        assert moved[0][0]["pos"] == {"x": 2, "y": 1}

    def test_every_move_rerenders(self, make_maker, surface):
        maker = make_maker(_lone())
        maker.render()
        ctl = maker.controller
        ctl.pointer_down(50, 50)
        seen = []
        for x in (150, 250, 350):
            ctl.pointer_move(x, 50)
            seen.append((maker.coords.get("A"), surface.named("rect")))
        assert seen == [
            ((150.0, 50.0), [("rect", 125.0, 25.0, 50.0, 50.0)]),
            ((250.0, 50.0), [("rect", 225.0, 25.0, 50.0, 50.0)]),
            ((350.0, 50.0), [("rect", 325.0, 25.0, 50.0, 50.0)]),
        ]

    def test_drag_to_negative_clamps_to_zero(self, make_maker):
        maker = make_maker([{"id": "A", "sex": "M", "pos": {"x": 3, "y": 2}}])
        maker.render()
        ctl = maker.controller
        ctl.pointer_down(350, 290)
        ctl.pointer_move(-500, -900)
        assert (maker.person("A").pos.x, maker.person("A").pos.y) == (0, 0)

    def test_dragged_node_is_highlighted(self, make_maker, surface):
        maker = make_maker(_lone())
        maker.render()
        maker.controller.pointer_down(50, 50)
        maker.controller.pointer_move(60, 50)
        (outline,) = surface.named("stroke")
        assert outline[3] == ("rgba(0, 123, 255, 0.5)", 10.0)

    def test_pointer_down_on_empty_space_stays_idle(self, make_maker):
        maker = make_maker(_lone())
        maker.render()
        assert maker.controller.pointer_down(400, 400) is False
        assert maker.controller.state == Idle()

    def test_pointer_leave_ends_drag(self, make_maker):
        moved = []
        maker = make_maker(_lone(), {"onNodeMoved": moved.append})
        maker.render()
        maker.controller.pointer_down(50, 50)
        maker.controller.pointer_leave()
        assert maker.controller.state == Idle()
        assert len(moved) == 1

    def test_pointer_up_without_drag_does_not_notify(self, make_maker):
        moved = []
        maker = make_maker(_lone(), {"onNodeMoved": moved.append})
        maker.render()
        maker.controller.pointer_up()
        assert moved == []


class TestHover:
    def test_hover_updates_cursor_only(self, make_maker):
        maker = make_maker(_lone())
        maker.render()
        ctl = maker.controller

        ctl.pointer_move(50, 50)
        assert ctl.state == Hovering(node_id="A")
        assert ctl.cursor == "grab"
        assert maker.person("A").pos == Point(0, 0)

        ctl.pointer_move(300, 300)
        assert ctl.state == Idle()
        assert ctl.cursor == "default"


class TestTouch:
    def test_touch_maps_to_pointer(self, make_maker):
        moved = []
        maker = make_maker(_lone(), {"onNodeMoved": moved.append})
        maker.render()
        ctl = maker.controller

        assert ctl.touch_start([(50, 50), (400, 400)]) is True
        ctl.touch_move([(150, 50)])
        ctl.touch_end([])
        assert maker.person("A").pos.x == 1
        assert len(moved) == 1

    def test_empty_touch_list_is_ignored(self, make_maker):
        maker = make_maker(_lone())
        maker.render()
        assert maker.controller.touch_start([]) is False
        maker.controller.touch_move([])
        assert maker.controller.state == Idle()


class TestReset:
    def test_reset_restores_original_positions(self, make_maker, trio):
        maker = make_maker(trio)
        maker.render()
        ctl = maker.controller
        ctl.pointer_down(50, 50)
        ctl.pointer_move(450, 290)
        assert maker.person("A").pos.x == 4

        maker.reset()
        assert ctl.state == Idle()
        assert (maker.person("A").pos.x, maker.person("A").pos.y) == (0, 0)
        assert maker.coords.get("A") == (50.0, 50.0)

    def test_reset_survives_repeated_edits(self, make_maker):
        maker = make_maker(_lone())
        maker.render()
        for _ in range(2):
            maker.controller.pointer_down(50, 50)
            maker.controller.pointer_move(250, 50)
            maker.controller.pointer_up()
            maker.reset()
            assert maker.person("A").pos.x == 0

    def test_set_data_does_not_replace_reset_snapshot(self, make_maker):
        maker = make_maker(_lone())
        maker.set_data([{"id": "B", "sex": "F", "pos": {"x": 1, "y": 1}}])
        maker.reset()
        assert [p.id for p in maker.data] == ["A"]

    def test_drag_target_removed_by_set_data_cancels(self, make_maker):
        maker = make_maker(_lone())
        maker.render()
        maker.controller.pointer_down(50, 50)
        maker.set_data([{"id": "B", "sex": "F", "pos": {"x": 1, "y": 1}}])
        maker.controller.pointer_move(60, 60)
        assert maker.controller.state == Idle()


def test_instances_do_not_share_state():
    first = PedigreeMaker(RecordingSurface(), _lone())
    second = PedigreeMaker(RecordingSurface(), _lone())
    first.render()
    second.render()

    first.controller.pointer_down(50, 50)
    first.controller.pointer_move(250, 50)

    assert first.person("A").pos.x == 2
    assert second.person("A").pos.x == 0
    assert second.controller.state == Idle()
