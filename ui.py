from __future__ import annotations

from html import escape

import streamlit as st

from records import OfferStatus, OfferType


I18N = {
    "en": {
        "app_title": "OfferFlow - Admissions Tracker",
        "subtitle": "Upload offer letters and keep student applications and tasks in sync.",
        "language": "Language",
        "nav_dashboard": "Dashboard",
        "nav_students": "Students",
        "nav_tasks": "Tasks & Reminders",
        "nav_upload": "Upload Offer",
        "kpi_students": "Students",
        "kpi_offers": "Offers",
        "kpi_unconditional": "unconditional",
        "kpi_pending_tasks": "Pending tasks",
        "kpi_deposits": "Deposits (approx.)",
        "chart_status": "Offer status",
        "chart_universities": "Top universities",
        "upload_title": "Upload an offer letter",
        "upload_help": "PDF or image (JPG, PNG). Student name, conditions and deposit deadline are extracted automatically.",
        "parse": "Parse document",
        "parsing": "Parsing with AI...",
        "review_title": "Review parsed result",
        "review_help": "Check the fields before saving.",
        "save": "Save to tracker",
        "discard": "Discard",
        "conditions": "Conditions",
        "next_steps": "Next steps",
        "excerpt": "Excerpt for verification",
        "no_conditions": "No specific conditions detected.",
        "none": "None.",
        "no_students": "No students yet. Upload an offer letter to get started.",
        "no_matches": "No students match the search.",
        "no_tasks": "All caught up. No tasks yet.",
        "mark_done": "Mark done",
        "mark_pending": "Reopen",
        "download_pdf": "Download PDF Report",
        "download_json": "Download JSON Summary",
        "search": "Search students",
        "import_title": "Bulk import (CSV or JSON)",
        "import_button": "Import offers",
        "import_preview": "Preview: {new_students} new students, {new_applications} new applications, {updates} updates, {incomplete} incomplete rows.",
        "unknown": "Unknown",
    },
    "zh": {
        "app_title": "OfferFlow - 留学申请跟踪",
        "subtitle": "上传录取通知书，自动同步学生申请与任务。",
        "language": "语言",
        "nav_dashboard": "仪表盘",
        "nav_students": "学生列表",
        "nav_tasks": "任务与提醒",
        "nav_upload": "上传 Offer",
        "kpi_students": "学生总数",
        "kpi_offers": "已录取",
        "kpi_unconditional": "个无条件录取",
        "kpi_pending_tasks": "待办任务",
        "kpi_deposits": "押金总额（约）",
        "chart_status": "录取状态",
        "chart_universities": "热门院校",
        "upload_title": "上传录取通知书 (Offer)",
        "upload_help": "支持 PDF 或图片格式 (JPG, PNG)。系统将自动提取学生姓名、录取条件、押金截止日期等关键信息。",
        "parse": "开始解析文档",
        "parsing": "正在 AI 智能解析中...",
        "review_title": "解析结果确认",
        "review_help": "请在保存前核对信息",
        "save": "保存",
        "discard": "放弃",
        "conditions": "录取条件",
        "next_steps": "下一步",
        "excerpt": "原文摘录（用于核对）",
        "no_conditions": "未检测到特定条件。",
        "none": "无。",
        "no_students": "暂无学生。请先上传录取通知书。",
        "no_matches": "没有符合搜索条件的学生。",
        "no_tasks": "太棒了！所有任务都已完成。",
        "mark_done": "标记完成",
        "mark_pending": "重新打开",
        "download_pdf": "下载 PDF 报告",
        "download_json": "下载 JSON 摘要",
        "search": "搜索学生",
        "import_title": "批量导入 (CSV 或 JSON)",
        "import_button": "导入",
        "import_preview": "预览：新学生 {new_students} 名，新申请 {new_applications} 条，更新 {updates} 条，信息不完整 {incomplete} 行。",
        "unknown": "未知",
    },
}

_STATUS_LABELS = {
    "zh": {
        OfferStatus.NONE: "等待中",
        OfferStatus.OFFER: "已录取",
        OfferStatus.REJECT: "被拒",
        OfferStatus.WAITLIST: "候补",
    },
}

_STATUS_COLORS = {
    OfferStatus.NONE: "#64748B",
    OfferStatus.OFFER: "#10B981",
    OfferStatus.REJECT: "#EF4444",
    OfferStatus.WAITLIST: "#F59E0B",
}


@st.cache_data
def get_i18n(language: str) -> dict[str, str]:
    return I18N.get(language, I18N["en"])


def t(language: str, key: str) -> str:
    return get_i18n(language).get(key, key)


def status_label(language: str, status: OfferStatus) -> str:
    return _STATUS_LABELS.get(language, {}).get(status, status.value)


def offer_type_label(language: str, raw_type: str | None) -> str:
    if not raw_type:
        return t(language, "unknown")
    if language == "zh":
        return {
            "Conditional": "有条件录取 (Conditional)",
            "Unconditional": "无条件录取 (Unconditional)",
            "Reject": "拒信 (Reject)",
            "Waitlist": "候补 (Waitlist)",
        }.get(raw_type, raw_type)
    return raw_type


def inject_css() -> None:
    st.markdown(
        """
        <style>
            .of-badge {
                display: inline-block;
                padding: 2px 10px;
                border-radius: 999px;
                font-size: 0.75rem;
                font-weight: 700;
                color: #ffffff;
                text-transform: uppercase;
                letter-spacing: 0.04em;
            }
            .of-kpi {
                background: #ffffff;
                border: 1px solid #e2e8f0;
                border-radius: 12px;
                padding: 16px;
            }
            .of-kpi-label { color: #64748b; font-size: 0.85rem; }
            .of-kpi-value { color: #1e293b; font-size: 1.6rem; font-weight: 700; }
            .of-kpi-note { color: #10b981; font-size: 0.8rem; }
            .of-deadline { color: #ef4444; font-weight: 700; font-size: 0.8rem; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_status_badge(language: str, status: OfferStatus, offer_type: OfferType | None = None) -> None:
    label = escape(status_label(language, status))
    if offer_type and offer_type != OfferType.UNKNOWN:
        label += f" &middot; {escape(offer_type.value)}"
    st.markdown(
        f"<span class='of-badge' style='background:{_STATUS_COLORS[status]}'>{label}</span>",
        unsafe_allow_html=True,
    )


def render_kpi(label: str, value: str, note: str | None = None) -> None:
    note_html = f"<div class='of-kpi-note'>{escape(note)}</div>" if note else ""
    st.markdown(
        f"""
        <div class="of-kpi">
            <div class="of-kpi-label">{escape(label)}</div>
            <div class="of-kpi-value">{escape(value)}</div>
            {note_html}
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_field(label: str, value: str | None) -> None:
    st.caption(label)
    st.write(value or "-")


def render_bullets(items: list[str] | None, empty_text: str) -> None:
    if not items:
        st.caption(empty_text)
        return
    st.markdown("\n".join(f"- {item}" for item in items))
