from __future__ import annotations

import csv
import json
import logging
from typing import Any

from logic import reconcile
from records import ParsedOfferRecord, ReconciliationOutcome
from storage import EntityStore

logger = logging.getLogger(__name__)

REQUIRED_OFFER_COLUMNS = {"student_name", "university"}

OPTIONAL_OFFER_COLUMNS = {
    "program",
    "offer_type",
    "conditions",
    "deposit_amount",
    "deposit_deadline",
    "start_term",
    "offer_date",
    "school_id",
    "next_steps",
    "key_sentences",
}

DEMO_OFFERS: list[dict[str, Any]] = [
    {
        "studentName": "Alice Tan",
        "university": "University of Edinburgh",
        "program": "MSc Data Science",
        "offerType": "Conditional",
        "conditions": ["IELTS 7.0", "Final average of 80%"],
        "depositAmount": "£2000",
        "depositDeadline": "2025-06-01",
        "startTerm": "September 2025",
        "offerDate": "2025-03-14",
        "schoolId": "S2025-00123",
        "nextSteps": ["Accept the offer in the applicant portal", "Upload final transcript"],
        "keySentences": "We are pleased to make you a conditional offer of admission.",
    },
    {
        "studentName": "Alice Tan",
        "university": "King's College London",
        "program": "MSc Artificial Intelligence",
        "offerType": "Reject",
        "offerDate": "2025-03-20",
        "keySentences": "We regret to inform you that we are unable to offer you a place.",
    },
    {
        "studentName": "Wang Lei",
        "university": "University of Manchester",
        "program": "MSc Finance",
        "offerType": "Unconditional",
        "depositAmount": "£1500",
        "depositDeadline": "2025-05-15",
        "startTerm": "September 2025",
        "offerDate": "2025-02-28",
        "nextSteps": ["Pay the tuition deposit", "Apply for CAS"],
        "keySentences": "我们很高兴地通知您，您已获得无条件录取。",
    },
    {
        "studentName": "Wang Lei",
        "university": "University College London",
        "program": "MSc Business Analytics",
        "offerType": "Waitlist",
        "offerDate": "2025-04-02",
    },
]


def _parse_list(value: str) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split("|") if item.strip()]


def validate_csv_columns(columns: list[str]) -> tuple[bool, list[str]]:
    missing = sorted(REQUIRED_OFFER_COLUMNS - set(columns))
    return len(missing) == 0, missing


def load_offers_from_csv(csv_text: str) -> list[ParsedOfferRecord]:
    """Read one parsed offer per row; list columns use ``|`` as separator."""
    reader = csv.DictReader(csv_text.lstrip("\ufeff").splitlines())
    valid, missing = validate_csv_columns(reader.fieldnames or [])
    if not valid:
        raise ValueError(f"Missing required columns: {missing}")

    records: list[ParsedOfferRecord] = []
    for row in reader:
        values: dict[str, Any] = {}
        for column in REQUIRED_OFFER_COLUMNS | OPTIONAL_OFFER_COLUMNS:
            raw = row.get(column) or ""
            values[column] = _parse_list(raw) if column in {"conditions", "next_steps"} else raw
        records.append(ParsedOfferRecord.from_dict(values))
    return records


def load_offers_from_json(json_text: str) -> list[ParsedOfferRecord]:
    payload = json.loads(json_text)
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ValueError("Expected a JSON object or an array of objects.")
    return [ParsedOfferRecord.from_dict(item) for item in payload]


def preview_import(store: EntityStore, records: list[ParsedOfferRecord]) -> dict[str, int]:
    known_students = {student.name.strip().casefold(): student.student_id for student in store.load_students()}
    known_apps = {
        (app.student_id, app.university.strip().casefold()) for app in store.load_applications()
    }
    pending_students: set[str] = set()
    pending_apps: set[tuple[str, str]] = set()
    counts = {"new_students": 0, "new_applications": 0, "updates": 0, "incomplete": 0}
    for record in records:
        name = (record.student_name or "").strip().casefold()
        university = (record.university or "").strip().casefold()
        if not name or not university:
            counts["incomplete"] += 1
            continue
        student_key = known_students.get(name, name)
        if name not in known_students and name not in pending_students:
            pending_students.add(name)
            counts["new_students"] += 1
        app_key = (student_key, university)
        if app_key in known_apps or app_key in pending_apps:
            counts["updates"] += 1
        else:
            pending_apps.add(app_key)
            counts["new_applications"] += 1
    return counts


def import_offers(store: EntityStore, records: list[ParsedOfferRecord]) -> list[ReconciliationOutcome]:
    outcomes = [reconcile(store, record) for record in records]
    failed = sum(1 for outcome in outcomes if not outcome.success)
    logger.info("Imported %d offers (%d incomplete)", len(outcomes) - failed, failed)
    return outcomes


def seed_demo_offers(store: EntityStore) -> list[ReconciliationOutcome]:
    if store.load_students():
        return []
    return import_offers(store, [ParsedOfferRecord.from_dict(offer) for offer in DEMO_OFFERS])
