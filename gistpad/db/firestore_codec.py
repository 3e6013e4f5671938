"""Firestore REST typed-value encoding."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from gistpad.db.store import Query, format_timestamp

_FRACTION = re.compile(r"\.(\d+)")


def encode_value(value: Any) -> dict:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: dict) -> dict:
    return {k: encode_value(v) for k, v in data.items() if k != "id"}


def decode_value(value: dict) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def decode_fields(fields: dict) -> dict:
    return {k: decode_value(v) for k, v in fields.items()}


def decode_document(doc: dict) -> dict:
    """Flatten a REST document into ``{"id": ..., **fields}``."""
    data = decode_fields(doc.get("fields", {}))
    data["id"] = doc["name"].rsplit("/", 1)[-1]
    return data


def parse_timestamp(value: str) -> datetime:
    # Firestore returns up to nanosecond precision; datetime holds microseconds
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_structured_query(query: Query) -> dict:
    structured: dict = {"from": [{"collectionId": query.collection}]}

    filters = [
        {
            "fieldFilter": {
                "field": {"fieldPath": f.field},
                "op": "EQUAL",
                "value": encode_value(f.value),
            }
        }
        for f in query.filters
    ]
    if len(filters) == 1:
        structured["where"] = filters[0]
    elif filters:
        structured["where"] = {
            "compositeFilter": {"op": "OR" if query.match_any else "AND", "filters": filters}
        }

    if query.order_by:
        structured["orderBy"] = [
            {
                "field": {"fieldPath": o.field},
                "direction": "DESCENDING" if o.descending else "ASCENDING",
            }
            for o in query.order_by
        ]
    if query.limit is not None:
        structured["limit"] = query.limit
    return structured
