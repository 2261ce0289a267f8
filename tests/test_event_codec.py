# ==============================================
# Tests for EventCodec
# ==============================================

import json

import pytest

from audit_store.errors import EventCodecError, PersistenceError
from audit_store.events import Field
from audit_store.serialization.event_codec import EventCodec


@pytest.fixture
def codec():
    return EventCodec()


class TestEncode:
    """Field list -> JSON text."""

    def test_encodes_json_array_of_objects(self, codec):
        """Each field becomes {name, type, value}."""
        text = codec.encode([Field("ip", "string", "10.0.0.1")])
        assert json.loads(text) == [{"name": "ip", "type": "string", "value": "10.0.0.1"}]

    def test_preserves_order(self, codec):
        """Fields keep the order of the event."""
        fields = [Field("b", "string", "2"), Field("a", "string", "1"), Field("c", "int", "3")]
        names = [item["name"] for item in json.loads(codec.encode(fields))]
        assert names == ["b", "a", "c"]

    def test_empty_list(self, codec):
        """No fields encode to an empty array."""
        assert codec.encode([]) == "[]"

    def test_non_ascii_kept_readable(self, codec):
        """Unicode values are stored as-is."""
        assert "Zoë" in codec.encode([Field("name", "string", "Zoë")])


class TestDecode:
    """JSON text -> field list."""

    def test_reverses_encode(self, codec):
        """decode(encode(fields)) returns the same ordered fields."""
        fields = [
            Field("ip", "string", "10.0.0.1"),
            Field("attempts", "integer", "3"),
            Field("note", "custom/tag", None),
        ]
        assert codec.decode(codec.encode(fields)) == fields

    def test_none_and_blank_decode_to_no_fields(self, codec):
        """A NULL or empty column means no fields."""
        assert codec.decode(None) == []
        assert codec.decode("   ") == []

    def test_missing_type_and_value_become_none(self, codec):
        """Only the name is mandatory."""
        assert codec.decode('[{"name": "x"}]') == [Field("x", None, None)]

    def test_invalid_json(self, codec):
        """Garbage raises EventCodecError, which is a PersistenceError."""
        with pytest.raises(EventCodecError):
            codec.decode("not json")
        assert issubclass(EventCodecError, PersistenceError)

    def test_not_an_array(self, codec):
        """A JSON object is not a field list."""
        with pytest.raises(EventCodecError, match="array"):
            codec.decode('{"name": "ip"}')

    def test_item_without_name(self, codec):
        """Every item needs a name."""
        with pytest.raises(EventCodecError, match="Malformed"):
            codec.decode('[{"type": "string", "value": "1"}]')
