# medivision/locators.py
"""
The two ways of finding medicine names in an image, behind one interface:

- OcrTextLocator: on-device OCR plus TextMatcher. Deterministic, returns boxes.
- VisionPointLocator: cloud point queries through CoordinatePointer. Returns
  points, one medicine at a time.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from medivision.config import EngineConfig
from medivision.errors import ConfigurationError
from medivision.llm.gemini import GeminiVisionProvider
from medivision.llm.moondream import MoondreamVisionProvider
from medivision.matching import TextMatcher
from medivision.ocr import OcrProvider, PaddleOcrProvider
from medivision.pointer import CoordinatePointer
from medivision.results import NotFound, Success
from medivision.schema import DetectedMedicine, DetectionStrategy, PointDetection

logger = logging.getLogger(__name__)


@dataclass
class LocatorResult:
    detections: List[DetectedMedicine] = field(default_factory=list)
    points: List[PointDetection] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
    # Set when the whole lookup failed rather than single medicines
    fatal: Optional[str] = None


class MedicineLocator(Protocol):
    strategy: DetectionStrategy

    async def locate(self, image, medicine_names: Sequence[str]) -> LocatorResult:
        ...


class VisionProvider(Protocol):
    def point(self, image, query: str):
        ...

    def ask(self, image, question: str):
        ...


class OcrTextLocator:
    strategy = DetectionStrategy.OCR

    def __init__(self, ocr_provider: OcrProvider, matcher: Optional[TextMatcher] = None):
        self.ocr_provider = ocr_provider
        self.matcher = matcher or TextMatcher()

    async def locate(self, image, medicine_names: Sequence[str]) -> LocatorResult:
        try:
            ocr_result = await asyncio.to_thread(self.ocr_provider.extract_text_with_layout, image)
        except Exception as e:
            logger.error("[OCR] Text recognition failed: %s", e)
            return LocatorResult(fatal=f"OCR failed: {e}")

        logger.info("[OCR] %d block(s), full text: %s", len(ocr_result.blocks), ocr_result.full_text[:200])
        return LocatorResult(detections=self.matcher.detect_in_ocr(ocr_result, medicine_names))


class VisionPointLocator:
    strategy = DetectionStrategy.VISION

    def __init__(self, pointer: CoordinatePointer):
        self.pointer = pointer

    async def locate(self, image, medicine_names: Sequence[str]) -> LocatorResult:
        result = LocatorResult()
        names = list(dict.fromkeys(n for n in medicine_names if n and n.strip()))

        for index, name in enumerate(names, start=1):
            logger.info("--- Processing medicine %d/%d: '%s' ---", index, len(names), name)
            try:
                outcome = await self.pointer.locate(image, name)
            except Exception as e:
                logger.error("✗ Exception while detecting '%s': %s", name, e)
                result.failures.append(f"{name}: {e}")
                continue

            if isinstance(outcome, Success):
                point = outcome.payload
                result.points.append(PointDetection(name=name, point=point))
                logger.info("✓ Detected '%s' at (%.3f, %.3f)", name, point.x, point.y)
            elif isinstance(outcome, NotFound):
                logger.info("✗ %s", outcome.reason)
            else:
                logger.warning("✗ Lookup failed for '%s': %s", name, outcome.reason)
                result.failures.append(f"{name}: {outcome.reason}")

        return result


def build_vision_provider(config: EngineConfig) -> VisionProvider:
    if config.vision_provider == "moondream":
        return MoondreamVisionProvider.from_config(config)

    return GeminiVisionProvider.from_config(config)


def build_locator(
    config: EngineConfig,
    ocr_provider: Optional[OcrProvider] = None,
    vision_provider: Optional[VisionProvider] = None,
) -> MedicineLocator:
    if config.strategy == DetectionStrategy.OCR:
        return OcrTextLocator(
            ocr_provider or PaddleOcrProvider(),
            TextMatcher(fuzzy_threshold=config.fuzzy_threshold),
        )

    if config.strategy == DetectionStrategy.VISION:
        provider = vision_provider or build_vision_provider(config)
        pointer = CoordinatePointer(
            point_fn=provider.point,
            ask_fn=provider.ask if config.verify else None,
            policy=config.verification_policy,
        )
        return VisionPointLocator(pointer)

    raise ConfigurationError(f"Unknown detection strategy: {config.strategy}")
