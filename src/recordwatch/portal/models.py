"""Wire models for the Biotechware records portal.

The portal mixes naming styles: most record keys are camelCase while
``timezone_indication`` and ``record_type_name`` are sent in snake_case.
Attribute names are always snake_case; ``populate_by_name`` lets callers build
records either way.

Two vocabularies are strict (``ListType``, ``RecordType``) and raise
``UnrecognizedValueError`` on unknown wire values. ``ServiceLevel`` is a
descriptive label and degrades to ``ServiceLevel.UNKNOWN`` instead.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)

from recordwatch.portal.errors import MalformedResponseError, UnrecognizedValueError

REPORT_DATE_FORMAT = "%d/%m/%Y %H:%M"
MISSING_REPORT_DATE = "NA"


class ListType(str, Enum):
    REPORTED = "reportedRecords"
    UNREPORTED = "unreportedRecords"

    @classmethod
    def from_wire(cls, value: Any) -> ListType:
        try:
            return cls(value)
        except ValueError:
            raise UnrecognizedValueError("list type", value) from None

    def to_wire(self) -> str:
        return self.value


class RecordType(int, Enum):
    ECG = 1
    HOLTER_ECG = 3
    ABPM = 5

    @classmethod
    def from_wire(cls, value: Any) -> RecordType:
        # bool is an int subclass; True must not decode as ECG
        if isinstance(value, bool) or not isinstance(value, int):
            raise UnrecognizedValueError("record type", value)
        try:
            return cls(value)
        except ValueError:
            raise UnrecognizedValueError("record type", value) from None

    def to_wire(self) -> int:
        return int(self.value)

    @property
    def label(self) -> str:
        return _RECORD_TYPE_LABELS[self]

    @property
    def price(self) -> float:
        """Unit price in euro billed for one reported record of this type."""
        return _RECORD_TYPE_PRICES[self]


_RECORD_TYPE_LABELS = {
    RecordType.ECG: "ECG a riposo",
    RecordType.HOLTER_ECG: "Holter ECG",
    RecordType.ABPM: "ABPM",
}

_RECORD_TYPE_PRICES = {
    RecordType.ECG: 4.0,
    RecordType.HOLTER_ECG: 15.0,
    RecordType.ABPM: 8.0,
}


class ServiceLevel(str, Enum):
    ECG90 = "TR-ECG-90"
    ECGDAY = "TR-ECG-DAY"
    HC24 = "TR-HC-24"
    HC48 = "TR-HC-48"
    HP24 = "TR-HP-24"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, value: Any) -> ServiceLevel:
        # unknown tokens degrade, non-string values are a broken body
        if not isinstance(value, str):
            raise ValueError(f"service level must be a string, got {type(value).__name__}")
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    def to_wire(self) -> str:
        return self.value


def parse_report_date(value: str) -> datetime | None:
    if value == MISSING_REPORT_DATE:
        return None
    return datetime.strptime(value, REPORT_DATE_FORMAT).replace(tzinfo=UTC)


def format_report_date(value: datetime | None) -> str:
    if value is None:
        return MISSING_REPORT_DATE
    return value.strftime(REPORT_DATE_FORMAT)


class Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    status: str
    id: str
    timezone_indication: str
    last_report_revision: str = Field(alias="lastReportRevision")
    last_report_date: datetime | None = Field(alias="lastReportDate")
    record_type_id: RecordType = Field(alias="recordTypeId")
    record_type_name: str
    firstname: str
    lastname: str
    url: str
    health_code: str | None = Field(default=None, alias="healthCode")
    reception_date: str = Field(alias="receptionDate")
    date: str
    requester: str
    effective_service_level: ServiceLevel | None = Field(
        default=None, alias="effectiveServiceLevel"
    )

    @field_validator("last_report_date", mode="before")
    @classmethod
    def _parse_last_report_date(cls, value: Any) -> datetime | None:
        # an absent date is spelled "NA" on the wire, never null
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise ValueError(f"report date must be a string, got {type(value).__name__}")
        return parse_report_date(value)

    @field_validator("record_type_id", mode="before")
    @classmethod
    def _parse_record_type(cls, value: Any) -> RecordType:
        if isinstance(value, RecordType):
            return value
        return RecordType.from_wire(value)

    @field_validator("effective_service_level", mode="before")
    @classmethod
    def _parse_service_level(cls, value: Any) -> ServiceLevel | None:
        if value is None or isinstance(value, ServiceLevel):
            return value
        return ServiceLevel.from_wire(value)

    @field_serializer("last_report_date")
    def _serialize_last_report_date(self, value: datetime | None) -> str:
        return format_report_date(value)

    @field_serializer("record_type_id")
    def _serialize_record_type(self, value: RecordType) -> int:
        return value.to_wire()

    @field_serializer("effective_service_level")
    def _serialize_service_level(self, value: ServiceLevel | None) -> str | None:
        return value.to_wire() if value is not None else None

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()

    @classmethod
    def from_wire(cls, payload: Any) -> Record:
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            for error in exc.errors():
                cause = (error.get("ctx") or {}).get("error")
                if isinstance(cause, UnrecognizedValueError):
                    raise cause from exc
            raise MalformedResponseError(
                f"invalid record payload ({exc.error_count()} error(s))"
            ) from exc

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def parse_listing(payload: Any) -> list[Record]:
    """Decode a listing body ``{count, counter, list}``; only ``list`` is consumed."""
    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"listing body must be a JSON object, got {type(payload).__name__}"
        )
    entries = payload.get("list")
    if not isinstance(entries, list):
        raise MalformedResponseError("listing body has no 'list' array")
    return [Record.from_wire(entry) for entry in entries]


__all__ = [
    "ListType",
    "MISSING_REPORT_DATE",
    "REPORT_DATE_FORMAT",
    "Record",
    "RecordType",
    "ServiceLevel",
    "format_report_date",
    "parse_listing",
    "parse_report_date",
]
