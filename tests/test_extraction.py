import json
from types import SimpleNamespace

import pytest

from errors import UpstreamExtractionError
from extraction import extract_offer, parse_extraction_payload


class FakeCompletions:
    def __init__(self, content=None, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content=None, error: Exception | None = None) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(content, error)))


def test_parse_extraction_payload_maps_camel_case_fields() -> None:
    record = parse_extraction_payload(
        json.dumps(
            {
                "studentName": " Alice Tan ",
                "university": "University of Edinburgh",
                "program": "",
                "offerType": "Conditional",
                "conditions": "IELTS 7.0",
                "depositAmount": "£2000",
                "depositDeadline": "2025-06-01",
                "nextSteps": ["Accept the offer", ""],
                "keySentences": None,
            }
        )
    )

    assert record.student_name == "Alice Tan"
    assert record.program is None
    assert record.conditions == ["IELTS 7.0"]
    assert record.next_steps == ["Accept the offer"]
    assert record.start_term is None
    assert record.key_sentences is None


@pytest.mark.parametrize("text", [None, "", "   ", "not json", "[1, 2]"])
def test_parse_extraction_payload_rejects_bad_output(text) -> None:
    with pytest.raises(UpstreamExtractionError):
        parse_extraction_payload(text)


def test_extract_offer_sends_pdf_as_file_part() -> None:
    client = fake_client(json.dumps({"studentName": "Alice Tan", "university": "MIT", "offerType": "Waitlist"}))

    record = extract_offer(b"%PDF-1.4 test", "application/pdf", filename="offer.pdf", client=client, model="test-model")

    assert record.university == "MIT"
    call = client.chat.completions.calls[0]
    assert call["model"] == "test-model"
    assert call["response_format"] == {"type": "json_object"}
    part = call["messages"][0]["content"][0]
    assert part["type"] == "file"
    assert part["file"]["filename"] == "offer.pdf"
    assert part["file"]["file_data"].startswith("data:application/pdf;base64,")


def test_extract_offer_sends_images_as_image_url() -> None:
    client = fake_client(json.dumps({"studentName": "Alice Tan", "university": "MIT"}))

    extract_offer(b"\x89PNG", "image/png", client=client, model="test-model")

    part = client.chat.completions.calls[0]["messages"][0]["content"][0]
    assert part["type"] == "image_url"
    assert part["image_url"]["url"].startswith("data:image/png;base64,")


def test_extract_offer_wraps_client_failures() -> None:
    client = fake_client(error=RuntimeError("connection reset"))

    with pytest.raises(UpstreamExtractionError) as excinfo:
        extract_offer(b"data", "application/pdf", client=client, model="test-model")

    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_extract_offer_rejects_empty_content() -> None:
    client = fake_client(content=None)

    with pytest.raises(UpstreamExtractionError):
        extract_offer(b"data", "application/pdf", client=client, model="test-model")
