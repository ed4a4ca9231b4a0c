import json

from export import build_json_summary, build_student_report_pdf
from records import Application, OfferStatus, OfferType, Student, Task, TaskStatus


def sample_student() -> Student:
    return Student(student_id="stu1", name="Alice Tan", consultant_name="unassigned")


def sample_applications() -> list[Application]:
    return [
        Application(
            application_id="app1",
            student_id="stu1",
            university="University of Edinburgh",
            program="MSc Data Science",
            offer_status=OfferStatus.OFFER,
            offer_type=OfferType.CONDITIONAL,
            deposit_amount="£2000",
            deposit_deadline="2025-06-01",
            tasks_to_do=["Accept the offer"],
            raw_pdf_text="Offer subject to IELTS <7.0> & transcript",
        )
    ]


def sample_tasks() -> dict[str, list[Task]]:
    return {
        "app1": [
            Task(task_id="t1", application_id="app1", task_description="Meet offer condition: IELTS 7.0"),
            Task(
                task_id="t2",
                application_id="app1",
                task_description="Pay deposit (£2000)",
                deadline="2025-06-01",
                status=TaskStatus.DONE,
            ),
        ]
    }


def test_build_student_report_pdf_returns_pdf_bytes() -> None:
    pdf = build_student_report_pdf(sample_student(), sample_applications(), sample_tasks())

    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 500


def test_build_student_report_pdf_handles_student_without_applications() -> None:
    pdf = build_student_report_pdf(sample_student(), [], {})

    assert pdf.startswith(b"%PDF")


def test_build_json_summary_nests_tasks_under_applications() -> None:
    payload = json.loads(build_json_summary(sample_student(), sample_applications(), sample_tasks()).decode("utf-8"))

    assert payload["student"]["name"] == "Alice Tan"
    app = payload["applications"][0]
    assert app["offer_status"] == "Offer"
    assert [task["status"] for task in app["tasks"]] == ["pending", "done"]
