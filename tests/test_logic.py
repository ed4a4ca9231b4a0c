from datetime import datetime

import pytest

from errors import StoreIntegrityError
from logic import (
    applications_for_student,
    classify_offer_status,
    classify_offer_type,
    dashboard_summary,
    generate_id,
    get_applications,
    get_students,
    get_tasks,
    parse_deposit_amount,
    reconcile,
    task_board,
    tasks_for_application,
    update_task_status,
)
from records import OfferStatus, OfferType, ParsedOfferRecord, TaskStatus
from storage import EntityStore, MemoryBlobStore

NOW = datetime(2025, 3, 1, 12, 0, 0)


def make_store() -> EntityStore:
    return EntityStore(MemoryBlobStore())


def base_offer(**overrides) -> dict:
    offer = {
        "studentName": "Alice Tan",
        "university": "University of Edinburgh",
        "program": "MSc Data Science",
        "offerType": "Conditional",
        "conditions": ["IELTS 7.0"],
        "depositAmount": "£2000",
        "depositDeadline": "2025-06-01",
        "startTerm": "September 2025",
        "offerDate": "2025-02-20",
        "schoolId": "S-001",
        "nextSteps": ["Accept the offer"],
        "keySentences": "We are pleased to offer you a conditional place.",
    }
    offer.update(overrides)
    return offer


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Unconditional Offer", OfferType.UNCONDITIONAL),
        ("Conditional", OfferType.CONDITIONAL),
        ("  conditional offer of admission ", OfferType.CONDITIONAL),
        ("无条件录取", OfferType.UNCONDITIONAL),
        ("有条件录取", OfferType.CONDITIONAL),
        ("Reject", OfferType.UNKNOWN),
        ("", OfferType.UNKNOWN),
        (None, OfferType.UNKNOWN),
    ],
)
def test_classify_offer_type(raw, expected) -> None:
    assert classify_offer_type(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Reject - insufficient grades", OfferStatus.REJECT),
        ("Conditional", OfferStatus.OFFER),
        ("Unconditional", OfferStatus.OFFER),
        ("WAITLIST", OfferStatus.WAITLIST),
        ("候补名单", OfferStatus.WAITLIST),
        ("something unexpected", OfferStatus.OFFER),
        (None, OfferStatus.NONE),
    ],
)
def test_classify_offer_status(raw, expected) -> None:
    assert classify_offer_status(raw) == expected


def test_generate_id_returns_fresh_tokens() -> None:
    ids = {generate_id() for _ in range(500)}

    assert len(ids) == 500
    assert all(len(token) == 12 for token in ids)


def test_reconcile_creates_student_application_and_tasks() -> None:
    store = make_store()

    outcome = reconcile(store, base_offer(), now=NOW)

    assert outcome.success is True
    assert outcome.created_student is True
    assert outcome.created_application is True
    assert outcome.message == "New student profile created and offer recorded."

    students = get_students(store)
    assert len(students) == 1
    assert students[0].student_id == outcome.student_id
    assert students[0].consultant_name == "unassigned"
    assert students[0].notes

    apps = get_applications(store)
    assert len(apps) == 1
    app = apps[0]
    assert app.application_id == outcome.application_id
    assert app.offer_status == OfferStatus.OFFER
    assert app.offer_type == OfferType.CONDITIONAL
    assert app.offer_date == "2025-02-20"
    assert app.tasks_to_do == ["Accept the offer"]
    assert app.school_id_ref == "S-001"
    assert app.last_updated_timestamp == int(NOW.timestamp() * 1000)

    descriptions = [task.task_description for task in tasks_for_application(store, app.application_id)]
    assert descriptions == ["Meet offer condition: IELTS 7.0", "Pay deposit (£2000)"]
    assert all(task.status == TaskStatus.PENDING for task in get_tasks(store))
    assert outcome.tasks_created == 2


def test_reconcile_same_offer_twice_is_idempotent() -> None:
    store = make_store()

    first = reconcile(store, base_offer(), now=NOW)
    second = reconcile(store, base_offer(), now=NOW)

    assert second.success is True
    assert second.student_id == first.student_id
    assert second.created_student is False
    assert second.created_application is False
    assert second.message == "Existing application updated."
    assert second.tasks_created == 0
    assert len(get_students(store)) == 1
    assert len(get_applications(store)) == 1

    descriptions = [task.task_description for task in get_tasks(store)]
    assert sum("IELTS 7.0" in d for d in descriptions) == 1
    assert sum("Pay deposit" in d for d in descriptions) == 1


def test_reconcile_matches_student_and_university_case_insensitively() -> None:
    store = make_store()

    first = reconcile(store, base_offer(studentName="Alice Tan"), now=NOW)
    second = reconcile(store, base_offer(studentName="ALICE TAN", university="UNIVERSITY OF EDINBURGH"), now=NOW)

    assert second.student_id == first.student_id
    assert second.application_id == first.application_id
    assert len(get_students(store)) == 1


def test_reconcile_new_university_for_existing_student() -> None:
    store = make_store()

    first = reconcile(store, base_offer(), now=NOW)
    second = reconcile(store, base_offer(university="King's College London"), now=NOW)

    assert second.student_id == first.student_id
    assert second.created_student is False
    assert second.created_application is True
    assert second.message == "Existing student found; new application recorded."
    assert len(applications_for_student(store, first.student_id)) == 2


def test_reconcile_keeps_program_when_reparse_is_blank() -> None:
    store = make_store()
    reconcile(store, base_offer(program="MSc Data Science"), now=NOW)

    reconcile(store, base_offer(program=None), now=NOW)
    assert get_applications(store)[0].program == "MSc Data Science"

    reconcile(store, base_offer(program="MSc Statistics"), now=NOW)
    assert get_applications(store)[0].program == "MSc Statistics"


def test_reconcile_overwrites_offer_fields_on_update() -> None:
    store = make_store()
    reconcile(store, base_offer(), now=NOW)

    later = datetime(2025, 4, 1, 9, 30, 0)
    reconcile(
        store,
        base_offer(
            offerType="Unconditional",
            offerDate=None,
            depositAmount=None,
            depositDeadline=None,
            nextSteps=None,
            keySentences=None,
            schoolId=None,
        ),
        now=later,
    )

    app = get_applications(store)[0]
    assert app.offer_status == OfferStatus.OFFER
    assert app.offer_type == OfferType.UNCONDITIONAL
    assert app.offer_date == "2025-04-01"
    assert app.deposit_amount is None
    assert app.deposit_deadline is None
    assert app.tasks_to_do == []
    assert app.raw_pdf_text == ""
    assert app.school_id_ref is None
    assert app.last_updated_timestamp == int(later.timestamp() * 1000)


def test_reconcile_defaults_for_new_application() -> None:
    store = make_store()

    reconcile(store, {"studentName": "Bo Chen", "university": "MIT"}, now=NOW)

    app = get_applications(store)[0]
    assert app.program == "General Application"
    assert app.offer_date == "2025-03-01"
    assert app.offer_status == OfferStatus.NONE
    assert app.offer_type == OfferType.UNKNOWN
    assert get_tasks(store) == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"studentName": None, "university": "MIT"},
        {"studentName": "   ", "university": "MIT"},
        {"studentName": "Alice Tan", "university": ""},
    ],
)
def test_reconcile_incomplete_data_returns_failure_without_writes(overrides) -> None:
    substrate = MemoryBlobStore()
    store = EntityStore(substrate)

    outcome = reconcile(store, base_offer(**overrides), now=NOW)

    assert outcome.success is False
    assert outcome.student_id == ""
    assert "missing" in outcome.message.lower()
    assert substrate.blobs == {}


def test_reconcile_incomplete_data_does_not_touch_existing_collections() -> None:
    substrate = MemoryBlobStore()
    store = EntityStore(substrate)
    reconcile(store, base_offer(), now=NOW)
    before = dict(substrate.blobs)

    outcome = reconcile(store, base_offer(studentName=None, university="MIT"), now=NOW)

    assert outcome.success is False
    assert substrate.blobs == before


def test_deposit_task_created_for_rejection() -> None:
    store = make_store()

    reconcile(store, base_offer(offerType="Reject", conditions=None, depositAmount=None), now=NOW)

    tasks = get_tasks(store)
    assert len(tasks) == 1
    assert tasks[0].task_description == "Pay deposit (amount TBD)"
    assert tasks[0].deadline == "2025-06-01"
    assert get_applications(store)[0].offer_status == OfferStatus.REJECT


def test_condition_tasks_require_exact_conditional_tag() -> None:
    store = make_store()

    reconcile(store, base_offer(offerType="Unconditional", conditions=["IELTS 7.0"], depositDeadline=None), now=NOW)
    assert get_tasks(store) == []

    reconcile(store, base_offer(offerType="conditional offer", conditions=["IELTS 7.0"], depositDeadline=None), now=NOW)
    assert get_tasks(store) == []
    assert get_applications(store)[0].offer_type == OfferType.CONDITIONAL


def test_new_conditions_on_reupload_are_added() -> None:
    store = make_store()
    reconcile(store, base_offer(conditions=["IELTS 7.0"]), now=NOW)

    reconcile(store, base_offer(conditions=["IELTS 7.0", "Final average 80%", "Final average 80%", " "]), now=NOW)

    descriptions = [task.task_description for task in get_tasks(store)]
    assert descriptions == [
        "Meet offer condition: IELTS 7.0",
        "Pay deposit (£2000)",
        "Meet offer condition: Final average 80%",
    ]


def test_deposit_task_deadline_is_not_refreshed_on_reupload() -> None:
    store = make_store()
    reconcile(store, base_offer(depositDeadline="2025-06-01"), now=NOW)

    reconcile(store, base_offer(depositDeadline="2025-07-15", depositAmount="£2500"), now=NOW)

    deposit_tasks = [task for task in get_tasks(store) if "Pay deposit" in task.task_description]
    assert len(deposit_tasks) == 1
    assert deposit_tasks[0].deadline == "2025-06-01"
    assert get_applications(store)[0].deposit_deadline == "2025-07-15"


def test_tasks_are_scoped_per_application() -> None:
    store = make_store()
    first = reconcile(store, base_offer(), now=NOW)
    second = reconcile(store, base_offer(university="University of Glasgow"), now=NOW)

    assert len(tasks_for_application(store, first.application_id)) == 2
    assert len(tasks_for_application(store, second.application_id)) == 2


def test_reconcile_accepts_parsed_record_instance() -> None:
    store = make_store()
    parsed = ParsedOfferRecord(student_name=" Alice Tan ", university="MIT", offer_type="Waitlist")

    outcome = reconcile(store, parsed, now=NOW)

    assert outcome.success is True
    assert get_students(store)[0].name == "Alice Tan"
    assert get_applications(store)[0].offer_status == OfferStatus.WAITLIST


def test_reconcile_propagates_store_integrity_error() -> None:
    store = EntityStore(MemoryBlobStore({"offerflow_students": "{not json"}))

    with pytest.raises(StoreIntegrityError):
        reconcile(store, base_offer(), now=NOW)


def test_update_task_status_marks_done_and_ignores_unknown_ids() -> None:
    substrate = MemoryBlobStore()
    store = EntityStore(substrate)
    reconcile(store, base_offer(), now=NOW)
    task_id = get_tasks(store)[0].task_id

    update_task_status(store, task_id, TaskStatus.DONE)
    assert get_tasks(store)[0].status == TaskStatus.DONE

    update_task_status(store, task_id, "pending")
    assert get_tasks(store)[0].status == TaskStatus.PENDING

    before = dict(substrate.blobs)
    update_task_status(store, "does-not-exist", TaskStatus.DONE)
    assert substrate.blobs == before


def test_update_task_status_rejects_unknown_status() -> None:
    store = make_store()
    reconcile(store, base_offer(), now=NOW)

    with pytest.raises(ValueError):
        update_task_status(store, get_tasks(store)[0].task_id, "archived")


def test_query_helpers_preserve_insertion_order() -> None:
    store = make_store()
    first = reconcile(store, base_offer(university="B University"), now=NOW)
    reconcile(store, base_offer(university="A University"), now=NOW)
    reconcile(store, base_offer(studentName="Other Student", university="C University"), now=NOW)

    universities = [app.university for app in applications_for_student(store, first.student_id)]
    assert universities == ["B University", "A University"]
    assert applications_for_student(store, "unknown") == []
    assert tasks_for_application(store, "unknown") == []


def test_task_board_joins_application_and_student() -> None:
    store = make_store()
    outcome = reconcile(store, base_offer(), now=NOW)

    board = task_board(store)

    assert len(board) == 2
    assert board[0]["application"].application_id == outcome.application_id
    assert board[0]["student"].name == "Alice Tan"


@pytest.mark.parametrize(
    "raw, expected",
    [("£2000", 2000.0), ("USD 1,500.50", 1500.5), ("TBD", None), (None, None), ("1.2.3", None)],
)
def test_parse_deposit_amount(raw, expected) -> None:
    assert parse_deposit_amount(raw) == expected


def test_dashboard_summary_counts() -> None:
    store = make_store()
    reconcile(store, base_offer(), now=NOW)
    reconcile(store, base_offer(university="King's College London", offerType="Reject", depositDeadline=None), now=NOW)
    reconcile(
        store,
        base_offer(studentName="Wang Lei", offerType="Unconditional", depositAmount="£1500", depositDeadline=None),
        now=NOW,
    )
    reconcile(store, {"studentName": "Bo Chen", "university": "MIT", "offerType": "Waitlist"}, now=NOW)

    summary = dashboard_summary(store)

    assert summary["total_students"] == 3
    assert summary["total_applications"] == 4
    assert summary["total_offers"] == 2
    assert summary["unconditional_offers"] == 1
    assert summary["pending_tasks"] == 2
    assert summary["total_deposit_amount"] == 5500.0
    assert summary["status_breakdown"] == {"offer": 2, "pending_or_waitlist": 1, "reject": 1}
    assert summary["top_universities"][0] == ("University of Edinburgh", 2)
