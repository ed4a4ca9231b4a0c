from __future__ import annotations

import logging
import re
import uuid
from collections import Counter
from datetime import datetime
from typing import Any, Mapping

from errors import IncompleteDataError
from records import (
    Application,
    OfferStatus,
    OfferType,
    ParsedOfferRecord,
    ReconciliationOutcome,
    Student,
    Task,
    TaskStatus,
)
from storage import EntityStore

logger = logging.getLogger(__name__)

UNASSIGNED_CONSULTANT = "unassigned"
AUTO_CREATED_NOTE = "Created automatically from a parsed offer letter."
DEFAULT_PROGRAM = "General Application"
CONDITIONAL_TAG = "Conditional"
CONDITION_TASK_TEMPLATE = "Meet offer condition: {condition}"
DEPOSIT_TASK_TEMPLATE = "Pay deposit ({amount})"
DEPOSIT_MARKER = "pay deposit"
DEPOSIT_AMOUNT_PLACEHOLDER = "amount TBD"

MESSAGE_NEW_STUDENT = "New student profile created and offer recorded."
MESSAGE_NEW_APPLICATION = "Existing student found; new application recorded."
MESSAGE_UPDATED = "Existing application updated."

# The extractor is asked to map Chinese labels itself; these catch the ones that slip through.
_REJECT_MARKERS = ("reject", "拒")
_WAITLIST_MARKERS = ("waitlist", "候补")
_UNCONDITIONAL_MARKERS = ("unconditional", "无条件")
_CONDITIONAL_MARKERS = ("conditional", "有条件")

_AMOUNT_CHARS = re.compile(r"[^0-9.]")


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def _norm(value: Any) -> str:
    return str(value or "").strip().casefold()


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def classify_offer_status(raw_type: Any) -> OfferStatus:
    text = _norm(raw_type)
    if not text:
        return OfferStatus.NONE
    if _contains_any(text, _REJECT_MARKERS):
        return OfferStatus.REJECT
    if _contains_any(text, _WAITLIST_MARKERS):
        return OfferStatus.WAITLIST
    return OfferStatus.OFFER


def classify_offer_type(raw_type: Any) -> OfferType:
    text = _norm(raw_type)
    if not text:
        return OfferType.UNKNOWN
    # "unconditional" contains "conditional", so it must be checked first.
    if _contains_any(text, _UNCONDITIONAL_MARKERS):
        return OfferType.UNCONDITIONAL
    if _contains_any(text, _CONDITIONAL_MARKERS):
        return OfferType.CONDITIONAL
    return OfferType.UNKNOWN


def _as_parsed(parsed: ParsedOfferRecord | Mapping[str, Any]) -> ParsedOfferRecord:
    if isinstance(parsed, ParsedOfferRecord):
        return parsed
    return ParsedOfferRecord.from_dict(parsed)


def _require_identity(parsed: ParsedOfferRecord) -> tuple[str, str]:
    student_name = (parsed.student_name or "").strip()
    university = (parsed.university or "").strip()
    missing = []
    if not student_name:
        missing.append("student name")
    if not university:
        missing.append("university")
    if missing:
        raise IncompleteDataError(missing)
    return student_name, university


def _resolve_student(students: list[Student], student_name: str) -> tuple[Student, bool]:
    key = _norm(student_name)
    for student in students:
        if _norm(student.name) == key:
            return student, False
    student = Student(
        student_id=generate_id(),
        name=student_name,
        consultant_name=UNASSIGNED_CONSULTANT,
        notes=AUTO_CREATED_NOTE,
    )
    students.append(student)
    return student, True


def _resolve_application(
    applications: list[Application],
    student_id: str,
    university: str,
    program: str | None,
    timestamp_ms: int,
) -> tuple[Application, bool]:
    key = _norm(university)
    for application in applications:
        if application.student_id == student_id and _norm(application.university) == key:
            return application, False
    application = Application(
        application_id=generate_id(),
        student_id=student_id,
        university=university,
        program=program or DEFAULT_PROGRAM,
        offer_status=OfferStatus.NONE,
        offer_type=OfferType.UNKNOWN,
        last_updated_timestamp=timestamp_ms,
    )
    applications.append(application)
    return application, True


def _merge_offer_fields(application: Application, parsed: ParsedOfferRecord, now: datetime) -> None:
    """Overwrite the offer fields with the latest parse (last write wins)."""
    application.offer_status = classify_offer_status(parsed.offer_type)
    application.offer_type = classify_offer_type(parsed.offer_type)
    application.offer_date = parsed.offer_date or now.date().isoformat()
    application.deposit_amount = parsed.deposit_amount or None
    application.deposit_deadline = parsed.deposit_deadline or None
    application.tasks_to_do = list(parsed.next_steps or [])
    application.raw_pdf_text = parsed.key_sentences or ""
    application.school_id_ref = parsed.school_id or None
    application.last_updated_timestamp = int(now.timestamp() * 1000)
    program = (parsed.program or "").strip()
    if program:
        application.program = program


def _has_task_containing(tasks: list[Task], application_id: str, text: str, *, ignore_case: bool = False) -> bool:
    for task in tasks:
        if task.application_id != application_id:
            continue
        description = task.task_description
        if ignore_case:
            if text.casefold() in description.casefold():
                return True
        elif text in description:
            return True
    return False


def generate_tasks(application: Application, parsed: ParsedOfferRecord, tasks: list[Task]) -> list[Task]:
    """Append follow-up tasks for conditions and the deposit deadline.

    Rule A only fires for the exact "Conditional" tag from the extractor, not the
    classified enum. Rule B fires for any offer type. Both skip tasks that an
    earlier upload already created, so re-uploading the same letter is a no-op.
    An existing deposit task keeps its original deadline even if the new parse
    carries a different one.
    """
    created: list[Task] = []
    application_id = application.application_id

    if parsed.offer_type == CONDITIONAL_TAG and parsed.conditions:
        for condition in parsed.conditions:
            condition = (condition or "").strip()
            if not condition or _has_task_containing(tasks, application_id, condition):
                continue
            task = Task(
                task_id=generate_id(),
                application_id=application_id,
                task_description=CONDITION_TASK_TEMPLATE.format(condition=condition),
                deadline=None,
                status=TaskStatus.PENDING,
            )
            tasks.append(task)
            created.append(task)

    deadline = (parsed.deposit_deadline or "").strip()
    if deadline and not _has_task_containing(tasks, application_id, DEPOSIT_MARKER, ignore_case=True):
        task = Task(
            task_id=generate_id(),
            application_id=application_id,
            task_description=DEPOSIT_TASK_TEMPLATE.format(amount=parsed.deposit_amount or DEPOSIT_AMOUNT_PLACEHOLDER),
            deadline=deadline,
            status=TaskStatus.PENDING,
        )
        tasks.append(task)
        created.append(task)

    return created


def reconcile(
    store: EntityStore,
    parsed: ParsedOfferRecord | Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> ReconciliationOutcome:
    parsed = _as_parsed(parsed)
    try:
        student_name, university = _require_identity(parsed)
    except IncompleteDataError as exc:
        logger.warning("Offer not recorded: %s", exc)
        return ReconciliationOutcome(success=False, message=str(exc), student_id="")

    now = now or datetime.now()
    students = store.load_students()
    applications = store.load_applications()
    tasks = store.load_tasks()

    student, created_student = _resolve_student(students, student_name)
    application, created_application = _resolve_application(
        applications,
        student.student_id,
        university,
        (parsed.program or "").strip() or None,
        int(now.timestamp() * 1000),
    )
    _merge_offer_fields(application, parsed, now)
    new_tasks = generate_tasks(application, parsed, tasks)

    store.save_students(students)
    store.save_applications(applications)
    store.save_tasks(tasks)

    if created_student:
        message = MESSAGE_NEW_STUDENT
    elif created_application:
        message = MESSAGE_NEW_APPLICATION
    else:
        message = MESSAGE_UPDATED
    logger.info(
        "Reconciled offer student=%s application=%s university=%s status=%s new_tasks=%d",
        student.student_id,
        application.application_id,
        application.university,
        application.offer_status.value,
        len(new_tasks),
    )
    return ReconciliationOutcome(
        success=True,
        message=message,
        student_id=student.student_id,
        application_id=application.application_id,
        created_student=created_student,
        created_application=created_application,
        tasks_created=len(new_tasks),
    )


def update_task_status(store: EntityStore, task_id: str, status: TaskStatus | str) -> None:
    new_status = TaskStatus(status)
    tasks = store.load_tasks()
    for task in tasks:
        if task.task_id == task_id:
            task.status = new_status
            store.save_tasks(tasks)
            return


def get_students(store: EntityStore) -> list[Student]:
    return store.load_students()


def get_applications(store: EntityStore) -> list[Application]:
    return store.load_applications()


def get_tasks(store: EntityStore) -> list[Task]:
    return store.load_tasks()


def applications_for_student(store: EntityStore, student_id: str) -> list[Application]:
    return [app for app in store.load_applications() if app.student_id == student_id]


def tasks_for_application(store: EntityStore, application_id: str) -> list[Task]:
    return [task for task in store.load_tasks() if task.application_id == application_id]


def task_board(store: EntityStore) -> list[dict[str, Any]]:
    applications = {app.application_id: app for app in store.load_applications()}
    students = {student.student_id: student for student in store.load_students()}
    board = []
    for task in store.load_tasks():
        application = applications.get(task.application_id)
        student = students.get(application.student_id) if application else None
        board.append({"task": task, "application": application, "student": student})
    return board


def parse_deposit_amount(value: str | None) -> float | None:
    """Rough numeric value of a free-form deposit string; currency is ignored."""
    if not value:
        return None
    digits = _AMOUNT_CHARS.sub("", value)
    try:
        return float(digits)
    except ValueError:
        return None


def dashboard_summary(store: EntityStore) -> dict[str, Any]:
    students = store.load_students()
    applications = store.load_applications()
    tasks = store.load_tasks()

    status_counts = Counter(app.offer_status for app in applications)
    university_counts = Counter(app.university for app in applications)
    deposit_total = 0.0
    for app in applications:
        amount = parse_deposit_amount(app.deposit_amount)
        if amount is not None:
            deposit_total += amount

    return {
        "total_students": len(students),
        "total_applications": len(applications),
        "total_offers": status_counts[OfferStatus.OFFER],
        "unconditional_offers": sum(1 for app in applications if app.offer_type == OfferType.UNCONDITIONAL),
        "pending_tasks": sum(1 for task in tasks if task.status == TaskStatus.PENDING),
        "total_deposit_amount": round(deposit_total, 2),
        "status_breakdown": {
            "offer": status_counts[OfferStatus.OFFER],
            "pending_or_waitlist": status_counts[OfferStatus.NONE] + status_counts[OfferStatus.WAITLIST],
            "reject": status_counts[OfferStatus.REJECT],
        },
        "top_universities": university_counts.most_common(5),
    }
