"""
AffiDraft Backend: Canvas Controller Unit Tests
================================================

What we test:
    ✅ add_object: z-order, placement band, kind defaults, selection
    ✅ remove/duplicate/reorder: no-op on unknown ids, exact duplicate offset
    ✅ update_property: camelCase + snake_case names, equal-value skip, unknown names
    ✅ Lifecycle: listeners, revision counting, load(), closed canvas
"""

import logging
import random

import pytest

from affidraft.editor.canvas import CanvasController, ReorderDirection
from affidraft.editor.objects import (
    BoxGeometry,
    ObjectKind,
    PlaceholderInfo,
    RectangleObject,
    TextObject,
)
from affidraft.exceptions import CanvasUnavailableError, ValidationError


def _ids(canvas):
    return [obj.id for obj in canvas.get_objects()]


class TestAddObject:

    def test_objects_keep_insertion_order(self, canvas):
        added = [canvas.add_object(kind) for kind in ("rectangle", "circle", "text", "line", "rectangle")]
        assert _ids(canvas) == [obj.id for obj in added]

    def test_ids_are_unique(self, canvas):
        ids = {canvas.add_object("rectangle").id for _ in range(50)}
        assert len(ids) == 50

    def test_non_finite_geometry_is_rejected(self, canvas):
        with pytest.raises(ValidationError):
            canvas.add_object("rectangle", {"x": float("inf"), "y": 0})
        assert len(canvas) == 0

    def test_missing_position_lands_in_spawn_band(self):
        canvas = CanvasController(spawn_origin=50, spawn_spread=200, rng=random.Random(3))
        for _ in range(100):
            obj = canvas.add_object("rectangle")
            assert 50 <= obj.geometry.x < 250
            assert 50 <= obj.geometry.y < 250

    def test_explicit_geometry_is_kept(self, canvas):
        obj = canvas.add_object("rectangle", {"x": 50, "y": 60, "width": 100, "height": 80})
        assert obj.geometry == BoxGeometry(x=50, y=60, width=100, height=80)

    def test_partial_geometry_fills_kind_defaults(self, canvas):
        rect = canvas.add_object("rectangle", {"x": 5, "y": 5})
        circle = canvas.add_object("circle", {"x": 5, "y": 5})
        text = canvas.add_object("text", {"x": 5, "y": 5})
        assert (rect.geometry.width, rect.geometry.height) == (100, 100)
        assert circle.geometry.radius == 40
        assert text.geometry.width == 200

    def test_line_accepts_camel_case_end_points(self, canvas):
        line = canvas.add_object("line", {"x": 0, "y": 0, "endX": 300, "endY": 10})
        assert (line.geometry.end_x, line.geometry.end_y) == (300, 10)

    def test_randomized_line_keeps_its_length(self, canvas):
        line = canvas.add_object("line")
        assert line.geometry.end_x - line.geometry.x == pytest.approx(150)
        assert line.geometry.end_y == pytest.approx(line.geometry.y)

    def test_default_style_is_merged_under_given_style(self, canvas):
        rect = canvas.add_object("rectangle", style={"fill": "#ff0000"})
        assert rect.style.fill == "#ff0000"
        assert rect.style.stroke == "rgba(0,0,0,0.3)"
        assert rect.style.opacity == pytest.approx(0.8)

    def test_kind_specific_fields(self, canvas):
        text = canvas.add_object("text", text="Sworn statement")
        image = canvas.add_object("image", src="https://example.com/seal.png")
        assert isinstance(text, TextObject)
        assert text.text == "Sworn statement"
        assert image.src == "https://example.com/seal.png"

    def test_new_object_becomes_selection(self, canvas):
        first = canvas.add_object("rectangle")
        second = canvas.add_object("circle")
        assert canvas.selected_id == second.id
        assert canvas.selected_id != first.id

    def test_metadata_mapping_is_accepted(self, canvas):
        obj = canvas.add_object(
            ObjectKind.PLACEHOLDER_TEXT,
            metadata={"isPlaceholder": True, "placeholderId": "email", "placeholderType": "text"},
            text="{{Email}}",
        )
        assert obj.metadata == PlaceholderInfo(placeholder_id="email")
        assert obj.is_placeholder

    def test_placeholder_text_requires_metadata(self, canvas):
        with pytest.raises(ValidationError):
            canvas.add_object("placeholder-text", text="{{Nothing}}")
        assert len(canvas) == 0

    def test_invalid_geometry_raises_validation_error(self, canvas):
        with pytest.raises(ValidationError) as exc_info:
            canvas.add_object("rectangle", {"width": -5})
        assert "width" in exc_info.value.field

    def test_unknown_kind_raises_value_error(self, canvas):
        with pytest.raises(ValueError):
            canvas.add_object("hexagon")


class TestRemoveObject:

    def test_removed_object_is_gone(self, canvas):
        keep = canvas.add_object("rectangle")
        drop = canvas.add_object("circle")
        assert canvas.remove_object(drop.id) is True
        assert _ids(canvas) == [keep.id]

    def test_second_remove_is_a_no_op(self, canvas):
        obj = canvas.add_object("rectangle")
        canvas.remove_object(obj.id)
        revision = canvas.revision
        assert canvas.remove_object(obj.id) is False
        assert canvas.revision == revision

    def test_removing_selected_object_clears_selection(self, canvas):
        obj = canvas.add_object("rectangle")
        canvas.remove_object(obj.id)
        assert canvas.selected_id is None

    def test_removing_other_object_keeps_selection(self, canvas):
        other = canvas.add_object("rectangle")
        selected = canvas.add_object("circle")
        canvas.remove_object(other.id)
        assert canvas.selected_id == selected.id


class TestDuplicateObject:

    def test_duplicate_is_offset_by_fixed_delta(self):
        canvas = CanvasController(duplicate_offset=20, rng=random.Random(0))
        source = canvas.add_object("rectangle", {"x": 50, "y": 70, "width": 30, "height": 40})
        copy = canvas.duplicate_object(source.id)
        assert copy.geometry.x - source.geometry.x == 20
        assert copy.geometry.y - source.geometry.y == 20
        assert (copy.geometry.width, copy.geometry.height) == (30, 40)

    def test_duplicate_has_new_id_and_goes_on_top(self, canvas):
        canvas.add_object("circle")
        source = canvas.add_object("rectangle")
        copy = canvas.duplicate_object(source.id)
        assert copy.id not in [obj.id for obj in canvas.get_objects()[:-1]]
        assert canvas.get_objects()[-1] is copy
        assert canvas.selected_id == copy.id

    def test_duplicate_line_moves_both_end_points(self, canvas):
        line = canvas.add_object("line", {"x": 0, "y": 0, "endX": 100, "endY": 0})
        copy = canvas.duplicate_object(line.id)
        assert (copy.geometry.x, copy.geometry.y) == (20, 20)
        assert (copy.geometry.end_x, copy.geometry.end_y) == (120, 20)

    def test_duplicate_is_a_deep_copy(self, canvas):
        source = canvas.add_object("rectangle", style={"fill": "#111111"})
        copy = canvas.duplicate_object(source.id)
        canvas.update_property(copy.id, "fill", "#222222")
        assert source.style.fill == "#111111"

    def test_duplicate_keeps_placeholder_metadata(self, canvas, registry):
        source = registry.instantiate(registry.resolve("name"), canvas)
        copy = canvas.duplicate_object(source.id)
        assert copy.metadata == source.metadata

    def test_duplicate_unknown_id_returns_none(self, canvas):
        canvas.add_object("rectangle")
        assert canvas.duplicate_object("missing") is None
        assert len(canvas) == 1


class TestReorder:

    def setup_method(self):
        self.canvas = CanvasController(rng=random.Random(0))
        self.a = self.canvas.add_object("rectangle")
        self.b = self.canvas.add_object("circle")
        self.c = self.canvas.add_object("text")

    def test_forward_moves_one_step_up(self):
        assert self.canvas.reorder(self.a.id, "forward") is True
        assert _ids(self.canvas) == [self.b.id, self.a.id, self.c.id]

    def test_backward_moves_one_step_down(self):
        assert self.canvas.reorder(self.c.id, ReorderDirection.BACKWARD) is True
        assert _ids(self.canvas) == [self.a.id, self.c.id, self.b.id]

    def test_boundaries_are_no_ops(self):
        assert self.canvas.reorder(self.c.id, "forward") is False
        assert self.canvas.reorder(self.a.id, "backward") is False
        assert _ids(self.canvas) == [self.a.id, self.b.id, self.c.id]

    def test_unknown_id_is_a_no_op(self):
        assert self.canvas.reorder("missing", "forward") is False


class TestUpdateProperty:

    def test_camel_case_style_name(self, canvas):
        obj = canvas.add_object("rectangle")
        assert canvas.update_property(obj.id, "strokeWidth", 4) is True
        assert obj.style.stroke_width == 4

    def test_snake_case_geometry_name(self, canvas):
        obj = canvas.add_object("line")
        assert canvas.update_property(obj.id, "end_x", 400) is True
        assert obj.geometry.end_x == 400

    def test_line_position_moves_whole_segment(self, canvas):
        obj = canvas.add_object("line", {"x": 0, "y": 0, "endX": 150, "endY": 0})
        assert canvas.update_property(obj.id, "x", 100) is True
        assert canvas.update_property(obj.id, "y", 30) is True
        line = canvas.get_object(obj.id)
        assert (line.geometry.x, line.geometry.y) == (100, 30)
        assert (line.geometry.end_x, line.geometry.end_y) == (250, 30)

    def test_line_end_point_moves_alone(self, canvas):
        obj = canvas.add_object("line", {"x": 0, "y": 0, "endX": 150, "endY": 0})
        canvas.update_property(obj.id, "endY", 40)
        line = canvas.get_object(obj.id)
        assert (line.geometry.x, line.geometry.y, line.geometry.end_x) == (0, 0, 150)

    def test_non_finite_coordinate_rejected(self, canvas):
        obj = canvas.add_object("rectangle", {"x": 10, "y": 10})
        with pytest.raises(ValidationError):
            canvas.update_property(obj.id, "x", float("inf"))
        assert obj.geometry.x == 10

    def test_content_field(self, canvas):
        obj = canvas.add_object("text")
        canvas.update_property(obj.id, "text", "Hello")
        assert obj.text == "Hello"

    def test_equal_value_is_skipped(self, canvas):
        obj = canvas.add_object("rectangle", {"x": 10, "y": 10})
        revision = canvas.revision
        assert canvas.update_property(obj.id, "x", 10) is False
        assert canvas.revision == revision

    def test_unknown_property_is_ignored_with_warning(self, canvas, caplog):
        obj = canvas.add_object("rectangle")
        with caplog.at_level(logging.WARNING, logger="affidraft.editor.canvas"):
            assert canvas.update_property(obj.id, "blur", 3) is False
        assert "blur" in caplog.text

    def test_identity_fields_are_not_updatable(self, canvas):
        obj = canvas.add_object("rectangle")
        original_id = obj.id
        assert canvas.update_property(obj.id, "id", "hijacked") is False
        assert obj.id == original_id

    def test_unknown_id_is_ignored(self, canvas):
        assert canvas.update_property("missing", "x", 1) is False

    def test_invalid_value_raises_validation_error(self, canvas):
        obj = canvas.add_object("rectangle")
        with pytest.raises(ValidationError):
            canvas.update_property(obj.id, "opacity", 3)


class TestLifecycle:

    def test_listeners_run_after_each_mutation(self, canvas):
        seen = []
        canvas.subscribe(lambda c: seen.append(c.revision))
        obj = canvas.add_object("rectangle")
        canvas.update_property(obj.id, "fill", "#000000")
        canvas.remove_object(obj.id)
        assert seen == [1, 2, 3]

    def test_unsubscribe(self, canvas):
        seen = []
        unsubscribe = canvas.subscribe(lambda c: seen.append(c.revision))
        canvas.add_object("rectangle")
        unsubscribe()
        canvas.add_object("rectangle")
        assert seen == [1]

    def test_no_op_does_not_notify(self, canvas):
        seen = []
        canvas.subscribe(lambda c: seen.append(c.revision))
        canvas.remove_object("missing")
        canvas.reorder("missing", "forward")
        assert seen == []

    def test_select(self, canvas):
        obj = canvas.add_object("rectangle")
        canvas.select(None)
        assert canvas.selected_id is None
        assert canvas.select("missing") is False
        assert canvas.select(obj.id) is True
        assert canvas.selected_id == obj.id

    def test_load_replaces_contents_in_order(self, canvas):
        canvas.add_object("circle")
        objects = [
            RectangleObject(id="b", geometry=BoxGeometry(x=1, y=1)),
            TextObject(id="a", text="second"),
        ]
        canvas.load(objects)
        assert _ids(canvas) == ["b", "a"]
        assert canvas.selected_id is None

    def test_load_rejects_duplicate_ids(self, canvas):
        with pytest.raises(ValidationError):
            canvas.load([RectangleObject(id="x"), RectangleObject(id="x")])

    def test_closed_canvas_rejects_mutations(self, canvas):
        obj = canvas.add_object("rectangle")
        canvas.close()
        assert canvas.is_closed
        with pytest.raises(CanvasUnavailableError):
            canvas.add_object("rectangle")
        with pytest.raises(CanvasUnavailableError):
            canvas.remove_object(obj.id)
        with pytest.raises(CanvasUnavailableError):
            canvas.update_property(obj.id, "x", 1)
        with pytest.raises(CanvasUnavailableError):
            canvas.duplicate_object(obj.id)
        with pytest.raises(CanvasUnavailableError):
            canvas.reorder(obj.id, "backward")

    def test_closed_canvas_is_still_readable(self, canvas):
        obj = canvas.add_object("rectangle")
        canvas.close()
        assert _ids(canvas) == [obj.id]
        assert canvas.get_object(obj.id) is obj
