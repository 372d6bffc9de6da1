# medivision/matching.py
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from rapidfuzz import fuzz

from medivision.schema import DetectedMedicine, NormalizedBoundingBox, OcrResult

logger = logging.getLogger(__name__)

TOKEN_SPLIT = re.compile(r"[ \-_]")

# Shorter fragments or prefixes are too likely to be noise like "P9" or "No"
MIN_PARTIAL_LENGTH = 3
MIN_FUZZY_TOKEN_LENGTH = 4


@dataclass(frozen=True)
class Fragment:
    text: str
    bounding_box: Optional[NormalizedBoundingBox] = None
    granularity: str = "line"


def iter_fragments(ocr_result: OcrResult) -> Iterator[Fragment]:
    """Yield every line of the OCR tree followed by the words of that line."""
    for block in ocr_result.blocks:
        for line in block.lines:
            yield Fragment(line.text, line.bounding_box, "line")
            for element in line.elements:
                yield Fragment(element.text, element.bounding_box, "element")


def _tokens(text: str) -> List[str]:
    return [t for t in TOKEN_SPLIT.split(text) if t]


def _tokens_match(ocr_word: str, med_word: str, fuzzy_threshold: Optional[float]) -> bool:
    if ocr_word == med_word:
        return True
    if med_word.startswith(ocr_word) and len(ocr_word) >= MIN_PARTIAL_LENGTH:
        return True
    if ocr_word.startswith(med_word) and len(med_word) >= MIN_PARTIAL_LENGTH:
        return True
    if fuzzy_threshold is not None and min(len(ocr_word), len(med_word)) >= MIN_FUZZY_TOKEN_LENGTH:
        return fuzz.ratio(ocr_word, med_word) >= fuzzy_threshold
    return False


def is_match(fragment_text: str, medicine_name: str, fuzzy_threshold: Optional[float] = None) -> bool:
    """
    Check whether an OCR fragment refers to a medicine name.

    Case-insensitive. Matches on equality, containment either way (the
    fragment must be at least 3 characters when it is the shorter side), or
    on a shared word / word prefix such as "Para" for "Paracetamol".
    """
    ocr = fragment_text.lower().strip()
    med = medicine_name.lower().strip()

    if not ocr or not med:
        return False

    if ocr == med:
        return True

    if med in ocr:
        return True

    if ocr in med and len(ocr) >= MIN_PARTIAL_LENGTH:
        return True

    med_words = _tokens(med)
    ocr_words = _tokens(ocr)

    return any(
        _tokens_match(ocr_word, med_word, fuzzy_threshold)
        for med_word in med_words
        for ocr_word in ocr_words
    )


class TextMatcher:
    def __init__(self, fuzzy_threshold: Optional[float] = None):
        self.fuzzy_threshold = fuzzy_threshold

    def is_match(self, fragment_text: str, medicine_name: str) -> bool:
        return is_match(fragment_text, medicine_name, self.fuzzy_threshold)

    def detect(self, fragments: Iterable[Fragment], target_names: Iterable[str]) -> List[DetectedMedicine]:
        """
        Find each target name among the fragments.

        For every name only the occurrence with the largest box area is kept,
        across line and word fragments alike. Names with no boxed match are
        left out of the result.
        """
        names = list(dict.fromkeys(n for n in target_names if n and n.strip()))
        fragments = list(fragments)
        logger.debug("[MATCH] Scanning %d fragment(s) for %s", len(fragments), ", ".join(names))

        best: Dict[str, DetectedMedicine] = {}

        for fragment in fragments:
            box = fragment.bounding_box
            if box is None:
                continue

            for name in names:
                if not self.is_match(fragment.text, name):
                    continue

                current = best.get(name)
                current_area = current.bounding_box.area if current else 0.0

                if box.area > current_area:
                    best[name] = DetectedMedicine(
                        name=name,
                        matched_text=fragment.text,
                        bounding_box=box,
                    )
                    logger.info(
                        "   -> Found '%s' in %s '%s' (area: %.4f)",
                        name, fragment.granularity, fragment.text, box.area,
                    )

        return [best[name] for name in names if name in best]

    def detect_in_ocr(self, ocr_result: OcrResult, target_names: Iterable[str]) -> List[DetectedMedicine]:
        return self.detect(iter_fragments(ocr_result), target_names)
