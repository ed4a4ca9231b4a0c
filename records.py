from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class OfferStatus(str, Enum):
    NONE = "None"
    OFFER = "Offer"
    REJECT = "Reject"
    WAITLIST = "Waitlist"


class OfferType(str, Enum):
    CONDITIONAL = "Conditional"
    UNCONDITIONAL = "Unconditional"
    UNKNOWN = "Unknown"


class TaskStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_list(value: Any) -> Optional[list[str]]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    text = str(value).strip()
    return [text] if text else []


def _require(data: Mapping[str, Any], name: str) -> str:
    value = data[name]
    if not isinstance(value, str) or not value:
        raise ValueError(f"field '{name}' must be a non-empty string")
    return value


def _optional_text(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field '{name}' must be a string")
    return value


def _string_list(data: Mapping[str, Any], name: str) -> list[str]:
    value = data.get(name)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"field '{name}' must be a list of strings")
    return list(value)


@dataclass
class Student:
    student_id: str
    name: str
    contact: Optional[str] = None
    consultant_name: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Student":
        return cls(
            student_id=_require(data, "student_id"),
            name=_require(data, "name"),
            contact=data.get("contact"),
            consultant_name=data.get("consultant_name"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Application:
    application_id: str
    student_id: str
    university: str
    program: str
    offer_status: OfferStatus = OfferStatus.NONE
    offer_type: OfferType = OfferType.UNKNOWN
    offer_date: Optional[str] = None
    deposit_amount: Optional[str] = None
    deposit_deadline: Optional[str] = None
    tasks_to_do: list[str] = field(default_factory=list)
    raw_pdf_text: Optional[str] = None
    last_updated_timestamp: int = 0
    school_id_ref: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Application":
        return cls(
            application_id=_require(data, "application_id"),
            student_id=_require(data, "student_id"),
            university=_require(data, "university"),
            program=_optional_text(data, "program"),
            offer_status=OfferStatus(data.get("offer_status", OfferStatus.NONE.value)),
            offer_type=OfferType(data.get("offer_type", OfferType.UNKNOWN.value)),
            offer_date=data.get("offer_date"),
            deposit_amount=data.get("deposit_amount"),
            deposit_deadline=data.get("deposit_deadline"),
            tasks_to_do=_string_list(data, "tasks_to_do"),
            raw_pdf_text=data.get("raw_pdf_text"),
            last_updated_timestamp=int(data.get("last_updated_timestamp") or 0),
            school_id_ref=data.get("school_id_ref"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["offer_status"] = self.offer_status.value
        payload["offer_type"] = self.offer_type.value
        return payload


@dataclass
class Task:
    task_id: str
    application_id: str
    task_description: str
    deadline: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        return cls(
            task_id=_require(data, "task_id"),
            application_id=_require(data, "application_id"),
            task_description=_require(data, "task_description"),
            deadline=data.get("deadline"),
            status=TaskStatus(data.get("status", TaskStatus.PENDING.value)),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload


# camelCase is what the extractor returns; snake_case is accepted for CSV/JSON imports.
_PARSED_FIELD_ALIASES = {
    "student_name": "studentName",
    "university": "university",
    "program": "program",
    "offer_type": "offerType",
    "conditions": "conditions",
    "deposit_amount": "depositAmount",
    "deposit_deadline": "depositDeadline",
    "start_term": "startTerm",
    "offer_date": "offerDate",
    "school_id": "schoolId",
    "next_steps": "nextSteps",
    "key_sentences": "keySentences",
}

_PARSED_LIST_FIELDS = {"conditions", "next_steps"}


@dataclass
class ParsedOfferRecord:
    student_name: Optional[str] = None
    university: Optional[str] = None
    program: Optional[str] = None
    offer_type: Optional[str] = None
    conditions: Optional[list[str]] = None
    deposit_amount: Optional[str] = None
    deposit_deadline: Optional[str] = None
    start_term: Optional[str] = None
    offer_date: Optional[str] = None
    school_id: Optional[str] = None
    next_steps: Optional[list[str]] = None
    key_sentences: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParsedOfferRecord":
        values: dict[str, Any] = {}
        for name, camel in _PARSED_FIELD_ALIASES.items():
            raw = data.get(camel, data.get(name))
            values[name] = _as_list(raw) if name in _PARSED_LIST_FIELDS else _clean_text(raw)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {camel: getattr(self, name) for name, camel in _PARSED_FIELD_ALIASES.items()}


@dataclass
class ReconciliationOutcome:
    success: bool
    message: str
    student_id: str = ""
    application_id: str = ""
    created_student: bool = False
    created_application: bool = False
    tasks_created: int = 0
