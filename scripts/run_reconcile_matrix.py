from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from logic import dashboard_summary, reconcile, tasks_for_application
from records import ParsedOfferRecord
from storage import EntityStore, MemoryBlobStore


def scenario_offers() -> list[dict[str, Any]]:
    return [
        {
            "name": "Conditional offer, first upload",
            "studentName": "Alice Tan",
            "university": "University of Edinburgh",
            "program": "MSc Data Science",
            "offerType": "Conditional",
            "conditions": ["IELTS 7.0"],
            "depositAmount": "£2000",
            "depositDeadline": "2025-06-01",
        },
        {
            "name": "Same letter re-uploaded in capitals, no program",
            "studentName": "ALICE TAN",
            "university": "university of edinburgh",
            "program": None,
            "offerType": "Conditional",
            "conditions": ["IELTS 7.0"],
            "depositAmount": "£2000",
            "depositDeadline": "2025-07-01",
        },
        {
            "name": "Rejection that still carries a deposit deadline",
            "studentName": "Alice Tan",
            "university": "King's College London",
            "offerType": "Reject - insufficient grades",
            "depositDeadline": "2025-05-01",
        },
        {
            "name": "Bilingual unconditional offer",
            "studentName": "Wang Lei",
            "university": "University of Manchester",
            "offerType": "无条件录取 Unconditional",
        },
        {
            "name": "Missing student name",
            "studentName": None,
            "university": "MIT",
            "offerType": "Waitlist",
        },
    ]


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = EntityStore(MemoryBlobStore())
    for scenario in scenario_offers():
        outcome = reconcile(store, ParsedOfferRecord.from_dict(scenario))

        print(f"\n=== {scenario['name']} ===")
        if not outcome.success:
            print("Outcome: NOT RECORDED ->", outcome.message)
            continue
        print("Outcome:", outcome.message)
        for task in tasks_for_application(store, outcome.application_id):
            due = f" (due {task.deadline})" if task.deadline else ""
            print(f"- [{task.status.value}] {task.task_description}{due}")

    summary = dashboard_summary(store)
    print("\n=== Dashboard ===")
    for key, value in summary.items():
        print(f"{key}: {value}")


if __name__ == "__main__":
    main()
