"""Remote record types and their JSON wire encoding.

Records follow the CloudKit Web Services shape: each field is sent as
``{"value": ..., "type": ...}``. Assigning ``None`` to a field removes it,
so optional values are simply omitted from the request.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

CURRENT_USER = "_defaultOwner"


@dataclass(frozen=True)
class ZoneID:
    zone_name: str
    owner_name: str = CURRENT_USER

    def to_dict(self) -> dict:
        data = {"zoneName": self.zone_name}
        if self.owner_name != CURRENT_USER:
            data["ownerRecordName"] = self.owner_name
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ZoneID":
        return cls(
            zone_name=data["zoneName"],
            owner_name=data.get("ownerRecordName", CURRENT_USER),
        )


@dataclass(frozen=True)
class RecordID:
    record_name: str
    zone_id: ZoneID


class ReferenceAction(str, Enum):
    NONE = "NONE"
    DELETE_SELF = "DELETE_SELF"


@dataclass(frozen=True)
class Reference:
    """A link to another record. With DELETE_SELF the owning record is
    deleted when the target record is deleted."""

    record_id: RecordID
    action: ReferenceAction = ReferenceAction.NONE

    def to_dict(self) -> dict:
        return {
            "recordName": self.record_id.record_name,
            "zoneID": self.record_id.zone_id.to_dict(),
            "action": self.action.value,
        }


def _encode_timestamp(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def _decode_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def encode_field(value: Any) -> dict:
    """Encode one field value with its wire type."""
    if isinstance(value, Reference):
        return {"value": value.to_dict(), "type": "REFERENCE"}
    if isinstance(value, datetime):
        return {"value": _encode_timestamp(value), "type": "TIMESTAMP"}
    if isinstance(value, bool):
        raise TypeError("Boolean fields are not supported; encode them as strings")
    if isinstance(value, int):
        return {"value": value, "type": "INT64"}
    if isinstance(value, str):
        return {"value": value, "type": "STRING"}
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return {"value": list(value), "type": "STRING_LIST"}
    raise TypeError(f"Unsupported field value: {value!r}")


def decode_field(data: dict, zone_id: ZoneID) -> Any:
    """Decode one wire field back into a Python value."""
    value = data.get("value")
    field_type = data.get("type")
    if field_type == "TIMESTAMP":
        return _decode_timestamp(value)
    if field_type == "REFERENCE":
        target_zone = ZoneID.from_dict(value["zoneID"]) if "zoneID" in value else zone_id
        return Reference(
            RecordID(value["recordName"], target_zone),
            ReferenceAction(value.get("action", ReferenceAction.NONE.value)),
        )
    if field_type == "STRING_LIST":
        return list(value)
    return value


@dataclass
class Record:
    """A typed remote record."""

    record_type: str
    record_id: RecordID
    fields: dict[str, Any] = field(default_factory=dict)

    def __setitem__(self, key: str, value: Any) -> None:
        if value is None:
            self.fields.pop(key, None)
        else:
            self.fields[key] = value

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def __contains__(self, key: str) -> bool:
        return key in self.fields

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    @property
    def record_name(self) -> str:
        return self.record_id.record_name

    def to_dict(self) -> dict:
        return {
            "recordName": self.record_id.record_name,
            "recordType": self.record_type,
            "fields": {key: encode_field(value) for key, value in self.fields.items()},
        }

    @classmethod
    def from_dict(cls, data: dict, zone_id: ZoneID) -> "Record":
        if "zoneID" in data:
            zone_id = ZoneID.from_dict(data["zoneID"])
        fields = {
            key: decode_field(value, zone_id) for key, value in data.get("fields", {}).items()
        }
        return cls(
            record_type=data["recordType"],
            record_id=RecordID(data["recordName"], zone_id),
            fields=fields,
        )


@dataclass(frozen=True)
class Query:
    """A record query matching every record whose fields equal the given values."""

    record_type: str
    equals: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "recordType": self.record_type,
            "filterBy": [
                {"fieldName": name, "comparator": "EQUALS", "fieldValue": encode_field(value)}
                for name, value in self.equals.items()
            ],
        }
