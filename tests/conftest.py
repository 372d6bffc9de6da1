import numpy as np
import pytest

from medivision.results import Success, TransportFailure
from medivision.schema import (
    Medicine,
    NormalizedBoundingBox,
    OcrBlock,
    OcrElement,
    OcrLine,
    OcrResult,
    Point,
    PrescriptionRecord,
    WhenToTake,
)


def make_record(*medicines, record_id="rx-1", file_name="rx.jpg"):
    return PrescriptionRecord(
        id=record_id,
        file_name=file_name,
        extracted_text="",
        medicines=list(medicines),
        timestamp_millis=0,
    )


def med(name, when=WhenToTake.MORNING, frequency=1):
    return Medicine(name=name, when_to_take=when, frequency=frequency)


def box(left, top, right, bottom):
    return NormalizedBoundingBox(left=left, top=top, right=right, bottom=bottom)


def ocr_line(text, line_box, words=()):
    """A one-line block. words is a sequence of (text, box) pairs."""
    line = OcrLine(
        text=text,
        bounding_box=line_box,
        elements=[OcrElement(text=w, bounding_box=b) for w, b in words],
    )
    return OcrBlock(text=text, bounding_box=line_box, lines=[line])


class FakeStore:
    def __init__(self, records=()):
        self.records = list(records)

    def get_all_records(self):
        return list(self.records)


class FakeOcrProvider:
    def __init__(self, blocks=(), error=None):
        self.blocks = list(blocks)
        self.error = error
        self.calls = 0

    def extract_text_with_layout(self, image):
        self.calls += 1
        if self.error:
            raise self.error
        return OcrResult(
            full_text="\n".join(b.text for b in self.blocks),
            blocks=self.blocks,
        )


class FakeVisionProvider:
    """
    point_responses maps a query to a result, a list of points, or an
    exception to raise. Unknown queries return no points.
    """

    def __init__(self, point_responses=None, answer="YES"):
        self.point_responses = point_responses or {}
        self.answer = answer
        self.point_calls = []
        self.ask_calls = []

    def point(self, image, query):
        self.point_calls.append(query)
        response = self.point_responses.get(query, [])
        if isinstance(response, Exception):
            raise response
        if isinstance(response, list):
            return Success(response)
        return response

    def ask(self, image, question):
        self.ask_calls.append(question)
        if isinstance(self.answer, Exception):
            raise self.answer
        if isinstance(self.answer, str):
            return Success(self.answer)
        return self.answer


@pytest.fixture
def image():
    return np.zeros((200, 100, 3), dtype=np.uint8)


@pytest.fixture
def paracetamol_records():
    return [
        make_record(
            med("Paracetamol", WhenToTake.MORNING, 1),
            med("Ibuprofen", WhenToTake.EVENING, 2),
        )
    ]


@pytest.fixture
def transport_failure():
    return TransportFailure("connection reset")


@pytest.fixture
def point():
    return Point(x=0.25, y=0.75)
