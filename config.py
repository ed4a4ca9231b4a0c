from __future__ import annotations

import os

import streamlit as st
from dotenv import load_dotenv

load_dotenv()

DEFAULT_EXTRACTION_MODEL = "gpt-4o-mini"


def _setting_from_secrets(name: str) -> str | None:
    try:
        for key in (name, name.lower()):
            if key in st.secrets:
                value = str(st.secrets[key]).strip()
                if value:
                    return value
    except Exception:
        # st.secrets raises when no secrets.toml exists; that just means "not configured".
        return None
    return None


def get_setting(name: str, default: str | None = None) -> str | None:
    value = (os.getenv(name) or "").strip()
    if value:
        return value
    return _setting_from_secrets(name) or default
