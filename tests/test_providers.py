import base64

import cv2
import numpy as np
import pytest
import requests

from medivision.errors import PrescriptionParseError
from medivision.llm.gemini import GeminiVisionProvider
from medivision.llm.moondream import MoondreamVisionProvider
from medivision.llm.prescription import PrescriptionParser
from medivision.results import ParseFailure, Success, TransportFailure
from medivision.schema import Point, WhenToTake


# -----------------------------
# Fakes
# -----------------------------

class FakeResponse:
    def __init__(self, payload=None, status=200, text=None):
        self.payload = payload
        self.status_code = status
        self.text = text if text is not None else str(payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


class FakeGenaiResponse:
    def __init__(self, text):
        self.text = text


class FakeModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, model, contents):
        self.calls.append((model, contents))
        if self.error:
            raise self.error
        return FakeGenaiResponse(self.text)


class FakeGenaiClient:
    def __init__(self, text=None, error=None):
        self.models = FakeModels(text, error)


@pytest.fixture
def large_image():
    return np.full((2048, 1024, 3), 127, dtype=np.uint8)


def moondream(session):
    return MoondreamVisionProvider("md-key", "https://md.example/v1", timeout=7, session=session)


def gemini(text=None, error=None):
    return GeminiVisionProvider("g-key", "gemini-test", client=FakeGenaiClient(text, error))


# -----------------------------
# Moondream
# -----------------------------

def test_moondream_point(image):
    session = FakeSession(FakeResponse({"points": [{"x": 0.3, "y": 0.7}]}))

    result = moondream(session).point(image, "Aspirin medicine")

    assert result == Success([Point(x=0.3, y=0.7)])
    call = session.calls[0]
    assert call["url"] == "https://md.example/v1/point"
    assert call["headers"] == {"X-Moondream-Auth": "md-key"}
    assert call["timeout"] == 7
    assert call["json"]["object"] == "Aspirin medicine"
    assert call["json"]["image_url"].startswith("data:image/jpeg;base64,")


def test_moondream_upload_is_downscaled(large_image):
    session = FakeSession(FakeResponse({"points": []}))

    moondream(session).point(large_image, "Aspirin")

    encoded = session.calls[0]["json"]["image_url"].split(",", 1)[1]
    decoded = cv2.imdecode(np.frombuffer(base64.b64decode(encoded), np.uint8), cv2.IMREAD_COLOR)
    assert decoded.shape[:2] == (1024, 512)


def test_moondream_skips_out_of_range_points(image):
    session = FakeSession(FakeResponse({"points": [{"x": 0.3, "y": 0.7}, {"x": -0.2, "y": 0.5}]}))

    assert moondream(session).point(image, "Aspirin") == Success([Point(x=0.3, y=0.7)])


def test_moondream_query(image):
    session = FakeSession(FakeResponse({"request_id": "r1", "answer": "Yes"}))

    result = moondream(session).ask(image, "Is Aspirin visible?")

    assert result == Success("Yes")
    assert session.calls[0]["url"] == "https://md.example/v1/query"
    assert session.calls[0]["json"]["stream"] is False


def test_moondream_http_error(image):
    session = FakeSession(FakeResponse({"error": "quota"}, status=429))
    assert isinstance(moondream(session).point(image, "Aspirin"), TransportFailure)


def test_moondream_connection_error(image):
    session = FakeSession(error=requests.ConnectionError("unreachable"))
    assert moondream(session).ask(image, "?") == TransportFailure("unreachable")


def test_moondream_bad_payloads(image):
    assert isinstance(moondream(FakeSession(FakeResponse(None, text="<html>"))).point(image, "A"), ParseFailure)
    assert isinstance(moondream(FakeSession(FakeResponse({"points": "none"}))).point(image, "A"), ParseFailure)
    assert isinstance(moondream(FakeSession(FakeResponse({"result": "Yes"}))).ask(image, "?"), ParseFailure)


# -----------------------------
# Gemini
# -----------------------------

def test_gemini_point(image):
    provider = gemini('```json\n{"coordinates": [{"x": 0.5, "y": 0.25}]}\n```')

    result = provider.point(image, "Aspirin medicine")

    assert result == Success([Point(x=0.5, y=0.25)])
    model, contents = provider.client.models.calls[0]
    assert model == "gemini-test"
    assert "Aspirin medicine" in contents[-1]


def test_gemini_ask(image):
    assert gemini("YES").ask(image, "Is it there?") == Success("YES")


def test_gemini_failures(image):
    assert gemini(error=RuntimeError("503 UNAVAILABLE")).point(image, "A") == TransportFailure("503 UNAVAILABLE")
    assert isinstance(gemini("").ask(image, "?"), ParseFailure)
    assert isinstance(gemini("no idea").point(image, "A"), ParseFailure)


# -----------------------------
# Prescription parsing
# -----------------------------

def test_prescription_from_image(image):
    raw = '{"medicines": [{"name": "Paracetamol", "when_to_take": "Both", "frequency": 2}]}'
    parsed = PrescriptionParser(gemini(raw)).parse(image=image, file_name="rx.jpg")

    assert parsed.extracted_text == raw
    assert parsed.medicines[0].name == "Paracetamol"
    assert parsed.medicines[0].when_to_take == WhenToTake.BOTH


def test_prescription_from_pdf():
    provider = gemini('{"medicines": []}')

    parsed = PrescriptionParser(provider).parse(pdf_bytes=b"%PDF-1.4", file_name="rx.pdf")

    assert parsed.medicines == []
    _, contents = provider.client.models.calls[0]
    assert len(contents) == 2


def test_unparsable_prescription_keeps_raw_text(image):
    parsed = PrescriptionParser(gemini("Could not read the handwriting")).parse(image=image)

    assert parsed.extracted_text == "Could not read the handwriting"
    assert parsed.medicines == []


def test_prescription_errors(image):
    with pytest.raises(PrescriptionParseError):
        PrescriptionParser(gemini("{}")).parse()

    with pytest.raises(PrescriptionParseError, match="rx.jpg"):
        PrescriptionParser(gemini(error=RuntimeError("boom"))).parse(image=image, file_name="rx.jpg")
