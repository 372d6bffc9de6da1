import numpy as np
import pytest

from medivision.matching import TextMatcher
from medivision.ocr import PaddleOcrProvider, _parse_ocr_result, _split_words


class FakePaddle:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    def ocr(self, image, cls=True):
        self.calls += 1
        return self.result


PADDLE_RESULT = [[
    [[[10, 20], [190, 20], [190, 40], [10, 40]], ("Tab PARACETAMOL 500", 0.97)],
    [[[20, 100], [80, 100], [80, 120], [20, 120]], ("Zinc", 0.88)],
]]


def test_split_words_is_proportional():
    words = _split_words("Tab PARACETAMOL 500", (0, 0, 190, 10))

    assert [w for w, _ in words] == ["Tab", "PARACETAMOL", "500"]
    assert words[1][1] == pytest.approx((40, 0, 150, 10))
    assert words[2][1] == pytest.approx((160, 0, 190, 10))


def test_split_words_empty():
    assert _split_words("", (0, 0, 10, 10)) == []


def test_parse_ocr_result():
    result = _parse_ocr_result(PADDLE_RESULT, 200, 200)

    assert result.engine == "PaddleOCR"
    assert result.full_text == "Tab PARACETAMOL 500\nZinc"
    assert (result.image_width, result.image_height) == (200, 200)

    first = result.blocks[0]
    assert first.bounding_box.left == pytest.approx(0.05)
    assert first.bounding_box.bottom == pytest.approx(0.2)
    assert [e.text for e in first.lines[0].elements] == ["Tab", "PARACETAMOL", "500"]


@pytest.mark.parametrize("raw", [None, [], [None]])
def test_parse_empty_ocr_result(raw):
    result = _parse_ocr_result(raw, 100, 100)
    assert result.blocks == []
    assert result.full_text == ""


def test_quads_outside_the_image_are_clamped():
    raw = [[[[[-5, -5], [120, -5], [120, 10], [-5, 10]], ("Aspirin", 0.9)]]]
    box = _parse_ocr_result(raw, 100, 100).blocks[0].bounding_box

    assert (box.left, box.top, box.right) == (0.0, 0.0, 1.0)


def test_provider_uses_injected_engine():
    engine = FakePaddle(PADDLE_RESULT)
    provider = PaddleOcrProvider(engine=engine)

    result = provider.extract_text_with_layout(np.zeros((200, 200, 3), dtype=np.uint8))
    detections = TextMatcher().detect_in_ocr(result, ["Paracetamol", "Zinc"])

    assert engine.calls == 1
    assert [d.name for d in detections] == ["Paracetamol", "Zinc"]


def test_provider_without_image():
    engine = FakePaddle(PADDLE_RESULT)

    assert PaddleOcrProvider(engine=engine).extract_text_with_layout(None).blocks == []
    assert engine.calls == 0
