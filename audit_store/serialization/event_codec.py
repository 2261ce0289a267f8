# ==============================================
# EventCodec
# ==============================================
#
# PURPOSE:
#   Converts the ordered field list of an audit event to the text
#   stored in the `elements` column, and back.
#
# FORMAT:
#   A JSON array of objects, one per field, in event order:
#     [{"name": "ip", "type": "string", "value": "10.0.0.1"}, ...]
#
#   decode(encode(fields)) == fields for every field list.
#
# ==============================================

import json
from typing import Iterable, List, Optional

from audit_store.errors import EventCodecError
from audit_store.events import Field


class EventCodec:
    """Symmetric JSON codec for audit event fields."""

    def encode(self, fields: Iterable[Field]) -> str:
        payload = [
            {"name": f.name, "type": f.type, "value": f.value}
            for f in fields
        ]
        try:
            return json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise EventCodecError(f"Unable to encode event fields: {e}") from e

    def decode(self, text: Optional[str]) -> List[Field]:
        """
        Rebuild the field list stored by encode().

        Args:
            text: Contents of the `elements` column (None/empty → no fields)

        Returns:
            Fields in their original order
        """
        if text is None or not text.strip():
            return []
        try:
            payload = json.loads(text)
        except ValueError as e:
            raise EventCodecError(f"Stored elements are not valid JSON: {e}") from e
        if not isinstance(payload, list):
            raise EventCodecError("Stored elements must be a JSON array")

        fields = []
        for item in payload:
            if not isinstance(item, dict) or "name" not in item:
                raise EventCodecError(f"Malformed stored field: {item!r}")
            fields.append(Field(name=item["name"], type=item.get("type"), value=item.get("value")))
        return fields
