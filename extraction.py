from __future__ import annotations

import base64
import json
import logging
from typing import Any

from openai import OpenAI

from config import DEFAULT_EXTRACTION_MODEL, get_setting
from errors import UpstreamExtractionError
from records import ParsedOfferRecord

logger = logging.getLogger(__name__)

OFFER_TYPES = ["Conditional", "Unconditional", "Reject", "Waitlist"]

EXTRACTION_PROMPT = """You are an expert university admissions officer assistant.
Analyze this document (a PDF offer letter, a scanned image, or an email screenshot).
The document may be in English or Chinese.
Return a single JSON object with exactly these keys:
  studentName (string) - full name of the student
  university (string) - name of the university issuing the offer
  program (string) - degree or program name, e.g. "MSc Computer Science"
  offerType (string) - one of "Conditional", "Unconditional", "Reject", "Waitlist"
  conditions (array of strings) - specific conditions such as "IELTS 7.0"; null if none
  depositAmount (string) - deposit including currency symbol, e.g. "£2000"
  depositDeadline (string) - deposit payment deadline
  startTerm (string) - intake or start term, e.g. "September 2024"
  offerDate (string) - date the letter was issued
  schoolId (string) - student or application ID assigned by the school
  nextSteps (array of strings) - actionable next steps required from the student
  keySentences (string) - short excerpt confirming the offer status, for verification

Rules:
1. If a field is not present, return null.
2. Map Chinese status terms to offerType: 有条件录取 -> "Conditional", 无条件录取 -> "Unconditional",
   拒信 -> "Reject", 候补 -> "Waitlist".
3. Format dates as YYYY-MM-DD where possible.
4. Keep conditions and next steps in their original language."""

_CLIENT: OpenAI | None = None


def get_client() -> OpenAI:
    global _CLIENT
    if _CLIENT is None:
        api_key = get_setting("OPENAI_API_KEY")
        if not api_key:
            raise UpstreamExtractionError("OPENAI_API_KEY is not set; offer extraction is unavailable.")
        kwargs: dict[str, Any] = {"api_key": api_key}
        base_url = get_setting("OPENAI_BASE_URL")
        if base_url:
            kwargs["base_url"] = base_url
        _CLIENT = OpenAI(**kwargs)
    return _CLIENT


def _document_part(file_bytes: bytes, mime_type: str, filename: str) -> dict[str, Any]:
    b64 = base64.b64encode(file_bytes).decode("ascii")
    data_url = f"data:{mime_type};base64,{b64}"
    if mime_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": data_url}}
    return {"type": "file", "file": {"filename": filename, "file_data": data_url}}


def parse_extraction_payload(text: str | None) -> ParsedOfferRecord:
    if not text or not text.strip():
        raise UpstreamExtractionError("The extraction service returned no content.")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise UpstreamExtractionError(f"The extraction service returned invalid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise UpstreamExtractionError(
            f"The extraction service returned {type(payload).__name__}, expected a JSON object."
        )
    return ParsedOfferRecord.from_dict(payload)


def extract_offer(
    file_bytes: bytes,
    mime_type: str,
    *,
    filename: str = "offer",
    client: Any = None,
    model: str | None = None,
) -> ParsedOfferRecord:
    """Send one offer document to the extraction model and parse its answer.

    Fields the model could not find come back as None. No retries are made;
    every failure surfaces as UpstreamExtractionError.
    """
    client = client or get_client()
    model = model or get_setting("OFFERFLOW_EXTRACTION_MODEL", DEFAULT_EXTRACTION_MODEL)
    messages = [
        {
            "role": "user",
            "content": [
                _document_part(file_bytes, mime_type, filename),
                {"type": "text", "text": EXTRACTION_PROMPT},
            ],
        }
    ]
    try:
        resp = client.chat.completions.create(
            model=model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=0.1,
        )
        text = resp.choices[0].message.content
    except Exception as exc:
        logger.exception("Offer extraction failed for %s (%s)", filename, mime_type)
        raise UpstreamExtractionError(
            "Could not parse the document with the extraction service. Check the network and API key."
        ) from exc
    return parse_extraction_payload(text)
