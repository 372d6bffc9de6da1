# medivision/ocr.py
import logging
from typing import List, Optional, Protocol, Tuple

import numpy as np

from medivision.schema import NormalizedBoundingBox, OcrBlock, OcrElement, OcrLine, OcrResult

logging.getLogger("ppocr").setLevel(logging.ERROR)
logger = logging.getLogger(__name__)

PixelRect = Tuple[float, float, float, float]


class OcrProvider(Protocol):
    def extract_text_with_layout(self, image: np.ndarray) -> OcrResult:
        ...


def _split_words(text: str, rect: PixelRect) -> List[Tuple[str, PixelRect]]:
    """
    Approximate per-word rects by slicing the line rect in proportion to
    character offsets. PaddleOCR only reports line-level boxes.
    """
    x1, y1, x2, y2 = rect
    if not text:
        return []

    char_width = (x2 - x1) / len(text)
    words = []
    offset = 0

    for word in text.split():
        start = text.index(word, offset)
        end = start + len(word)
        words.append((word, (x1 + start * char_width, y1, x1 + end * char_width, y2)))
        offset = end

    return words


def _parse_ocr_result(result, image_width: int, image_height: int) -> OcrResult:
    blocks = []
    full_text_lines = []

    if result and result[0]:
        for line in result[0]:
            quad = line[0]           # [[x1,y1], [x2,y2], [x3,y3], [x4,y4]]
            text = line[1][0]

            xs = [p[0] for p in quad]
            ys = [p[1] for p in quad]
            rect = (min(xs), min(ys), max(xs), max(ys))
            box = NormalizedBoundingBox.from_pixels(rect, image_width, image_height)

            elements = [
                OcrElement(
                    text=word,
                    bounding_box=NormalizedBoundingBox.from_pixels(word_rect, image_width, image_height)
                )
                for word, word_rect in _split_words(text, rect)
            ]

            blocks.append(OcrBlock(
                text=text,
                bounding_box=box,
                lines=[OcrLine(text=text, bounding_box=box, elements=elements)]
            ))
            full_text_lines.append(text)

    return OcrResult(
        engine="PaddleOCR",
        full_text="\n".join(full_text_lines),
        blocks=blocks,
        image_width=image_width,
        image_height=image_height,
    )


class PaddleOcrProvider:
    """On-device OCR with PaddleOCR. The engine is created on first use."""

    def __init__(self, lang: str = "en", engine=None):
        self.lang = lang
        self._engine = engine

    def _get_engine(self):
        if self._engine is None:
            from paddleocr import PaddleOCR

            self._engine = PaddleOCR(
                use_angle_cls=True,
                lang=self.lang,
                det_db_thresh=0.1,
                det_db_box_thresh=0.3,
                show_log=False
            )
        return self._engine

    def extract_text_with_layout(self, image: Optional[np.ndarray]) -> OcrResult:
        if image is None:
            return OcrResult()

        h, w = image.shape[:2]
        result = self._get_engine().ocr(image, cls=True)
        ocr_result = _parse_ocr_result(result, w, h)

        logger.info("[OCR] Extracted %d line(s)", len(ocr_result.blocks))
        return ocr_result
