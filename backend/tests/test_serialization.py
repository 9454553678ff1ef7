"""
AffiDraft Backend: Serialization & Extraction Unit Tests
=========================================================

What we test:
    ✅ serialize(): camelCase records in z-order, empty metadata as {}
    ✅ deserialize(): kind-tagged rebuild, malformed input rejected
    ✅ extract_placeholders(): de-duplication, first-seen order, policies
    ✅ build_document(): the save payload in one step
"""

import logging

import pytest

from affidraft.editor.objects import ObjectKind, PlaceholderTextObject, TextObject
from affidraft.editor.serialization import (
    MissingPlaceholderPolicy,
    build_document,
    deserialize,
    deserialize_placeholders,
    extract_placeholders,
    serialize,
    serialize_placeholders,
)
from affidraft.exceptions import UnresolvedPlaceholderError, ValidationError

from conftest import placeholder_element


class TestSerialize:

    def test_rectangle_and_name_placeholder(self, canvas, registry):
        canvas.add_object("rectangle", {"x": 50, "y": 50, "width": 100, "height": 100})
        registry.instantiate(registry.resolve("name"), canvas)

        records = serialize(canvas.get_objects())

        assert len(records) == 2
        assert records[0]["kind"] == "rectangle"
        assert records[0]["geometry"] == {"x": 50.0, "y": 50.0, "width": 100.0, "height": 100.0}
        assert records[1]["kind"] == "placeholder-text"
        assert records[1]["metadata"]["placeholderId"] == "name"
        assert records[1]["metadata"]["isPlaceholder"] is True
        assert records[1]["text"] == "{{Full Name}}"

        used = extract_placeholders(canvas.get_objects(), registry.snapshot())
        assert [d.id for d in used] == ["name"]

    def test_empty_canvas(self, canvas, registry):
        assert serialize(canvas.get_objects()) == []
        assert extract_placeholders(canvas.get_objects(), registry.snapshot()) == []

    def test_records_use_camel_case_keys(self, canvas):
        canvas.add_object("line", {"x": 0, "y": 0, "endX": 30, "endY": 40})
        canvas.add_object("text", style={"fontSize": 12})
        line, text = serialize(canvas.get_objects())
        assert line["geometry"] == {"x": 0.0, "y": 0.0, "endX": 30.0, "endY": 40.0}
        assert "strokeWidth" in line["style"]
        assert text["style"]["fontSize"] == 12
        assert "font_size" not in text["style"]

    def test_plain_objects_have_empty_metadata(self, canvas):
        canvas.add_object("circle")
        assert serialize(canvas.get_objects())[0]["metadata"] == {}

    def test_serialize_does_not_touch_canvas(self, canvas):
        canvas.add_object("rectangle")
        revision = canvas.revision
        records = serialize(canvas.get_objects())
        records[0]["geometry"]["x"] = -1
        assert canvas.revision == revision
        assert canvas.get_objects()[0].geometry.x != -1


class TestDeserialize:

    def test_round_trip_keeps_order_and_kinds(self, canvas, registry):
        for kind in ("text", "rectangle", "circle", "line", "image"):
            canvas.add_object(kind)
        registry.instantiate(registry.resolve("date"), canvas)
        original = canvas.get_objects()

        rebuilt = deserialize(serialize(original))

        assert [obj.kind for obj in rebuilt] == [obj.kind for obj in original]
        assert serialize(rebuilt) == serialize(original)

    def test_placeholder_record_rebuilds_metadata(self, sample_elements):
        objects = deserialize(sample_elements)
        assert isinstance(objects[1], PlaceholderTextObject)
        assert objects[1].metadata.placeholder_id == "name"
        assert objects[0].metadata is None
        assert isinstance(objects[3], TextObject)

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            deserialize([{"id": "a", "kind": "hexagon", "geometry": {}}])
        assert exc_info.value.field.startswith("0")

    def test_non_list_is_rejected(self):
        with pytest.raises(ValidationError):
            deserialize({"id": "a", "kind": "rectangle"})

    def test_placeholder_without_metadata_is_rejected(self):
        record = placeholder_element("p", "name", "{{Full Name}}")
        record["metadata"] = {}
        with pytest.raises(ValidationError):
            deserialize([record])

    def test_negative_size_names_the_field(self):
        record = {"id": "r", "kind": "rectangle", "geometry": {"x": 0, "y": 0, "width": -1, "height": 5}}
        with pytest.raises(ValidationError) as exc_info:
            deserialize([record])
        assert "width" in exc_info.value.field

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_coordinates_are_rejected(self, value):
        record = {"id": "r", "kind": "rectangle", "geometry": {"x": value, "y": 0, "width": 10, "height": 5}}
        with pytest.raises(ValidationError) as exc_info:
            deserialize([record])
        assert exc_info.value.field.endswith("geometry.x")


class TestExtractPlaceholders:

    def test_duplicates_are_collapsed(self, registry):
        objects = deserialize([
            placeholder_element("a", "email", "{{Email}}"),
            placeholder_element("b", "email", "{{Email}}"),
            placeholder_element("c", "city", "{{City}}"),
        ])
        used = extract_placeholders(objects, registry.snapshot())
        assert [d.id for d in used] == ["email", "city"]

    def test_first_seen_z_order(self, registry):
        objects = deserialize([
            placeholder_element("a", "state", "{{State}}"),
            placeholder_element("b", "name", "{{Full Name}}"),
        ])
        used = extract_placeholders(objects, registry.snapshot())
        assert [d.id for d in used] == ["state", "name"]

    def test_non_placeholders_do_not_affect_result(self, registry, sample_elements):
        objects = deserialize(sample_elements)
        shuffled = [objects[3], objects[1], objects[0], objects[2]]
        assert extract_placeholders(objects, registry.snapshot()) == \
            extract_placeholders(shuffled, registry.snapshot())

    def test_custom_definitions_resolve(self, registry, canvas):
        custom = registry.create_custom("Case Reference")
        registry.instantiate(custom, canvas)
        used = extract_placeholders(canvas.get_objects(), registry.snapshot())
        assert used == [custom]

    def test_skip_policy_logs_and_drops(self, registry, caplog):
        objects = deserialize([
            placeholder_element("a", "custom_gone", "{{Gone}}"),
            placeholder_element("b", "name", "{{Full Name}}"),
        ])
        with caplog.at_level(logging.WARNING, logger="affidraft.editor.serialization"):
            used = extract_placeholders(objects, registry.snapshot(), MissingPlaceholderPolicy.SKIP)
        assert [d.id for d in used] == ["name"]
        assert "custom_gone" in caplog.text

    def test_reconstruct_policy_rebuilds_from_object(self, registry):
        objects = deserialize([placeholder_element("a", "custom_gone", "{{ Witness }}", placeholder_type="date")])
        used = extract_placeholders(objects, registry.snapshot(), "reconstruct")
        assert len(used) == 1
        assert used[0].id == "custom_gone"
        assert used[0].name == "Witness"
        assert used[0].type.value == "date"

    def test_reconstruct_falls_back_to_id(self, registry):
        objects = deserialize([placeholder_element("a", "custom_gone", "plain text")])
        used = extract_placeholders(objects, registry.snapshot(), "reconstruct")
        assert used[0].name == "custom_gone"

    def test_strict_policy_raises(self, registry):
        objects = deserialize([placeholder_element("a", "custom_gone", "{{Gone}}")])
        with pytest.raises(UnresolvedPlaceholderError) as exc_info:
            extract_placeholders(objects, registry.snapshot(), "strict")
        assert exc_info.value.placeholder_id == "custom_gone"


class TestPlaceholderRecords:

    def test_definitions_omit_unset_fields(self, registry):
        records = serialize_placeholders([registry.resolve("city")])
        assert records == [{"id": "city", "name": "City", "type": "text"}]

    def test_default_value_is_camel_case(self):
        definitions = deserialize_placeholders([{"id": "custom_a", "name": "A", "defaultValue": "x"}])
        assert serialize_placeholders(definitions)[0]["defaultValue"] == "x"

    def test_non_list_is_rejected(self):
        with pytest.raises(ValidationError):
            deserialize_placeholders({"id": "a"})

    def test_invalid_record_is_rejected(self):
        with pytest.raises(ValidationError):
            deserialize_placeholders([{"id": "a", "name": "A", "type": "colour"}])


class TestBuildDocument:

    def test_document_payload(self, canvas, registry):
        canvas.add_object("rectangle")
        registry.instantiate(registry.resolve("signature"), canvas)

        document = build_document("Name Change", canvas.get_objects(), registry)
        payload = document.to_payload()

        assert payload["name"] == "Name Change"
        assert [e["kind"] for e in payload["elements"]] == [
            ObjectKind.RECTANGLE.value, ObjectKind.PLACEHOLDER_TEXT.value,
        ]
        assert payload["placeholders"][0]["id"] == "signature"

    def test_document_is_a_snapshot(self, canvas, registry):
        obj = canvas.add_object("text")
        document = build_document("Draft", canvas.get_objects(), registry)
        canvas.update_property(obj.id, "text", "changed later")
        assert document.elements[0]["text"] == "New Text"
