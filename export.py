from __future__ import annotations

import io
import json
from datetime import datetime
from html import escape
from typing import Any

from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from records import Application, Student, Task, TaskStatus


def _safe_text(value: Any) -> str:
    if value is None or value == "":
        return "-"
    # Paragraph parses inline markup, so raw letter text must be escaped.
    return escape(str(value))


def build_student_report_pdf(
    student: Student,
    applications: list[Application],
    tasks_by_application: dict[str, list[Task]],
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"OfferFlow - {student.name}")
    styles = getSampleStyleSheet()
    normal = styles["BodyText"]
    heading = styles["Heading2"]

    story = []
    story.append(Paragraph("OfferFlow Student Report", styles["Title"]))
    story.append(Paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}", normal))
    story.append(Spacer(1, 12))

    story.append(Paragraph("Student", heading))
    story.append(Paragraph(f"Name: {_safe_text(student.name)}", normal))
    story.append(Paragraph(f"Contact: {_safe_text(student.contact)}", normal))
    story.append(Paragraph(f"Consultant: {_safe_text(student.consultant_name)}", normal))
    story.append(Paragraph(f"Notes: {_safe_text(student.notes)}", normal))
    story.append(Spacer(1, 8))

    if not applications:
        story.append(Paragraph("No applications recorded yet.", normal))

    for idx, app in enumerate(applications, start=1):
        story.append(Paragraph(f"{idx}. {_safe_text(app.program)} @ {_safe_text(app.university)}", heading))
        story.append(Paragraph(f"Status: {app.offer_status.value} ({app.offer_type.value})", normal))
        story.append(Paragraph(f"Offer date: {_safe_text(app.offer_date)}", normal))
        story.append(Paragraph(f"Deposit: {_safe_text(app.deposit_amount)} due {_safe_text(app.deposit_deadline)}", normal))
        story.append(Paragraph(f"School reference: {_safe_text(app.school_id_ref)}", normal))
        if app.tasks_to_do:
            story.append(Paragraph("Next steps from the letter:", styles["Heading3"]))
            for step in app.tasks_to_do:
                story.append(Paragraph(f"- {_safe_text(step)}", normal))

        app_tasks = tasks_by_application.get(app.application_id, [])
        if app_tasks:
            story.append(Paragraph("Tasks:", styles["Heading3"]))
            for task in app_tasks:
                mark = "[x]" if task.status == TaskStatus.DONE else "[ ]"
                due = f" (due {_safe_text(task.deadline)})" if task.deadline else ""
                story.append(Paragraph(f"{mark} {_safe_text(task.task_description)}{due}", normal))
        if app.raw_pdf_text:
            story.append(Paragraph(f"Excerpt: \"{_safe_text(app.raw_pdf_text)}\"", normal))
        story.append(Spacer(1, 8))

    doc.build(story)
    buffer.seek(0)
    return buffer.read()


def build_json_summary(
    student: Student,
    applications: list[Application],
    tasks_by_application: dict[str, list[Task]],
) -> bytes:
    payload = {
        "student": student.to_dict(),
        "applications": [
            {
                **app.to_dict(),
                "tasks": [task.to_dict() for task in tasks_by_application.get(app.application_id, [])],
            }
            for app in applications
        ],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
