from __future__ import annotations

import logging

import pandas as pd
import streamlit as st

from db import get_store
from errors import UpstreamExtractionError
from export import build_json_summary, build_student_report_pdf
from extraction import extract_offer
from logic import (
    applications_for_student,
    dashboard_summary,
    get_students,
    reconcile,
    task_board,
    tasks_for_application,
    update_task_status,
)
from records import ParsedOfferRecord, TaskStatus
from seed import import_offers, load_offers_from_csv, load_offers_from_json, preview_import, seed_demo_offers
from ui import (
    inject_css,
    offer_type_label,
    render_bullets,
    render_field,
    render_kpi,
    render_status_badge,
    t,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title="OfferFlow", layout="wide")
inject_css()

PAGES = ["nav_dashboard", "nav_students", "nav_tasks", "nav_upload"]


def render_dashboard(language: str) -> None:
    summary = dashboard_summary(get_store())
    cols = st.columns(4)
    with cols[0]:
        render_kpi(t(language, "kpi_students"), str(summary["total_students"]))
    with cols[1]:
        render_kpi(
            t(language, "kpi_offers"),
            str(summary["total_offers"]),
            f"{summary['unconditional_offers']} {t(language, 'kpi_unconditional')}",
        )
    with cols[2]:
        render_kpi(t(language, "kpi_pending_tasks"), str(summary["pending_tasks"]))
    with cols[3]:
        render_kpi(t(language, "kpi_deposits"), f"{summary['total_deposit_amount']:,.0f}")

    left, right = st.columns(2)
    with left:
        st.subheader(t(language, "chart_status"))
        breakdown = summary["status_breakdown"]
        st.bar_chart(pd.DataFrame({"count": list(breakdown.values())}, index=list(breakdown.keys())))
    with right:
        st.subheader(t(language, "chart_universities"))
        top = summary["top_universities"]
        if top:
            st.bar_chart(pd.DataFrame(top, columns=["university", "count"]).set_index("university"))


def render_students(language: str) -> None:
    store = get_store()
    students = get_students(store)
    if not students:
        st.info(t(language, "no_students"))
        return

    query = st.text_input(t(language, "search")).strip().casefold()
    if query:
        students = [s for s in students if query in s.name.casefold()]
        if not students:
            st.info(t(language, "no_matches"))
            return
    st.dataframe(
        pd.DataFrame(
            [
                {
                    "name": s.name,
                    "consultant": s.consultant_name,
                    "applications": len(applications_for_student(store, s.student_id)),
                }
                for s in students
            ]
        ),
        use_container_width=True,
    )

    names = {s.student_id: s.name for s in students}
    selected_id = st.selectbox("Student", list(names.keys()), format_func=lambda sid: names[sid])
    student = next(s for s in students if s.student_id == selected_id)
    applications = applications_for_student(store, student.student_id)
    tasks_by_app = {app.application_id: tasks_for_application(store, app.application_id) for app in applications}

    for app in applications:
        with st.container(border=True):
            st.markdown(f"**{app.university}** - {app.program}")
            render_status_badge(language, app.offer_status, app.offer_type)
            cols = st.columns(3)
            cols[0].caption(f"Offer date: {app.offer_date or '-'}")
            cols[1].caption(f"Deposit: {app.deposit_amount or '-'}")
            cols[2].caption(f"Deadline: {app.deposit_deadline or 'N/A'}")
            for task in tasks_by_app[app.application_id]:
                done = task.status == TaskStatus.DONE
                text = f"~~{task.task_description}~~" if done else task.task_description
                st.markdown(f"- {text}" + (f" (due {task.deadline})" if task.deadline else ""))

    dl_left, dl_right = st.columns(2)
    dl_left.download_button(
        t(language, "download_pdf"),
        data=build_student_report_pdf(student, applications, tasks_by_app),
        file_name=f"offerflow_{student.student_id}.pdf",
        mime="application/pdf",
    )
    dl_right.download_button(
        t(language, "download_json"),
        data=build_json_summary(student, applications, tasks_by_app),
        file_name=f"offerflow_{student.student_id}.json",
        mime="application/json",
    )


def render_tasks(language: str) -> None:
    store = get_store()
    board = task_board(store)
    if not board:
        st.info(t(language, "no_tasks"))
        return
    for row in board:
        task = row["task"]
        app = row["application"]
        student = row["student"]
        cols = st.columns([6, 2, 2])
        label = task.task_description
        if student and app:
            label += f"  \n{student.name} - {app.university}"
        cols[0].markdown(label)
        if task.deadline:
            cols[1].markdown(f"<span class='of-deadline'>{task.deadline}</span>", unsafe_allow_html=True)
        if task.status == TaskStatus.PENDING:
            if cols[2].button(t(language, "mark_done"), key=f"done_{task.task_id}"):
                update_task_status(store, task.task_id, TaskStatus.DONE)
                st.rerun()
        elif cols[2].button(t(language, "mark_pending"), key=f"reopen_{task.task_id}"):
            update_task_status(store, task.task_id, TaskStatus.PENDING)
            st.rerun()


def render_review(language: str, parsed: ParsedOfferRecord) -> None:
    st.subheader(t(language, "review_title"))
    st.caption(t(language, "review_help"))
    left, right = st.columns(2)
    with left:
        render_field("Student", parsed.student_name)
        render_field("University", parsed.university)
        render_field("Program", parsed.program)
        render_field("Offer date", parsed.offer_date)
        render_field("School ID", parsed.school_id)
    with right:
        render_field("Offer type", offer_type_label(language, parsed.offer_type))
        render_field("Deposit", parsed.deposit_amount)
        render_field("Deposit deadline", parsed.deposit_deadline)
        render_field("Start term", parsed.start_term)
    st.caption(t(language, "conditions"))
    render_bullets(parsed.conditions, t(language, "no_conditions"))
    st.caption(t(language, "next_steps"))
    render_bullets(parsed.next_steps, t(language, "none"))
    if parsed.key_sentences:
        st.caption(f"{t(language, 'excerpt')}: \"{parsed.key_sentences}\"")

    save_col, discard_col = st.columns(2)
    if save_col.button(t(language, "save"), type="primary"):
        outcome = reconcile(get_store(), parsed)
        if outcome.success:
            st.session_state.pop("parsed_offer", None)
            st.success(outcome.message)
        else:
            st.error(outcome.message)
    if discard_col.button(t(language, "discard")):
        st.session_state.pop("parsed_offer", None)
        st.rerun()


def render_upload(language: str) -> None:
    st.subheader(t(language, "upload_title"))
    st.caption(t(language, "upload_help"))
    uploaded = st.file_uploader("Offer", type=["pdf", "jpg", "jpeg", "png"], label_visibility="collapsed")
    if uploaded is not None and st.button(t(language, "parse")):
        with st.spinner(t(language, "parsing")):
            try:
                st.session_state["parsed_offer"] = extract_offer(
                    uploaded.getvalue(), uploaded.type or "application/pdf", filename=uploaded.name
                )
            except UpstreamExtractionError as exc:
                st.error(str(exc))

    parsed = st.session_state.get("parsed_offer")
    if parsed is not None:
        render_review(language, parsed)

    with st.expander(t(language, "import_title")):
        bulk = st.file_uploader("Bulk", type=["csv", "json"], key="bulk_import", label_visibility="collapsed")
        if bulk is None:
            return
        try:
            text = bulk.getvalue().decode("utf-8-sig")
            if bulk.name.lower().endswith(".json"):
                records = load_offers_from_json(text)
            else:
                records = load_offers_from_csv(text)
        except ValueError as exc:
            st.error(str(exc))
            return
        st.caption(t(language, "import_preview").format(**preview_import(get_store(), records)))
        if st.button(t(language, "import_button")):
            for outcome in import_offers(get_store(), records):
                (st.success if outcome.success else st.warning)(outcome.message)


def main() -> None:
    language = st.sidebar.selectbox(
        f"{t('en', 'language')} / {t('zh', 'language')}",
        ["en", "zh"],
        format_func=lambda code: {"en": "English", "zh": "中文"}[code],
    )
    st.title(t(language, "app_title"))
    st.caption(t(language, "subtitle"))
    if st.sidebar.button("Load demo data"):
        seed_demo_offers(get_store())
    page = st.sidebar.radio("Menu", PAGES, format_func=lambda key: t(language, key))

    if page == "nav_dashboard":
        render_dashboard(language)
    elif page == "nav_students":
        render_students(language)
    elif page == "nav_tasks":
        render_tasks(language)
    else:
        render_upload(language)


main()
