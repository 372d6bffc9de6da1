from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WhenToTake(str, Enum):
    MORNING = "Morning"
    EVENING = "Evening"
    BOTH = "Both"


class DetectionStrategy(str, Enum):
    OCR = "ocr"
    VISION = "vision"


class DetectionStatus(str, Enum):
    COMPLETED = "completed"
    NO_ELIGIBLE_MEDICINES = "no_eligible_medicines"
    FAILED = "failed"


class Medicine(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    when_to_take: WhenToTake
    frequency: int = Field(default=1, ge=1, le=2)

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data):
        if isinstance(data, dict) and "whenToTake" in data and "when_to_take" not in data:
            data = dict(data)
            data["when_to_take"] = data.pop("whenToTake")
        return data


class PrescriptionRecord(BaseModel):
    id: str
    file_name: str
    extracted_text: str
    medicines: List[Medicine] = Field(default_factory=list)
    timestamp_millis: int
    is_pdf: bool = False


class NormalizedBoundingBox(BaseModel):
    """
    Box in normalized image coordinates.
    (0,0) is top-left, (1,1) is bottom-right.
    """
    model_config = ConfigDict(frozen=True)

    left: float = Field(ge=0.0, le=1.0)
    top: float = Field(ge=0.0, le=1.0)
    right: float = Field(ge=0.0, le=1.0)
    bottom: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_order(self):
        if self.left > self.right or self.top > self.bottom:
            raise ValueError(
                f"invalid box: left={self.left} right={self.right} top={self.top} bottom={self.bottom}"
            )
        return self

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center_x(self) -> float:
        return (self.left + self.right) / 2

    @property
    def center_y(self) -> float:
        return (self.top + self.bottom) / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    @classmethod
    def from_pixels(cls, rect: Tuple[float, float, float, float], image_width: int, image_height: int) -> "NormalizedBoundingBox":
        """Normalize an (x1, y1, x2, y2) pixel rect, clamping into the image."""
        x1, y1, x2, y2 = rect

        def clamp(value: float) -> float:
            return min(max(value, 0.0), 1.0)

        left, right = sorted((clamp(x1 / image_width), clamp(x2 / image_width)))
        top, bottom = sorted((clamp(y1 / image_height), clamp(y2 / image_height)))
        return cls(left=left, top=top, right=right, bottom=bottom)


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)


class DetectedMedicine(BaseModel):
    name: str
    matched_text: str
    bounding_box: NormalizedBoundingBox


class PointDetection(BaseModel):
    name: str
    point: Point


# -----------------------------
# OCR layout tree
# -----------------------------

class OcrElement(BaseModel):
    text: str
    bounding_box: Optional[NormalizedBoundingBox] = None


class OcrLine(BaseModel):
    text: str
    bounding_box: Optional[NormalizedBoundingBox] = None
    elements: List[OcrElement] = Field(default_factory=list)


class OcrBlock(BaseModel):
    text: str
    bounding_box: Optional[NormalizedBoundingBox] = None
    lines: List[OcrLine] = Field(default_factory=list)


class OcrResult(BaseModel):
    engine: str = "PaddleOCR"
    full_text: str = ""
    blocks: List[OcrBlock] = Field(default_factory=list)
    image_width: int = 0
    image_height: int = 0


# -----------------------------
# Detection output
# -----------------------------

class DetectionReport(BaseModel):
    status: DetectionStatus
    hour: int
    time_of_day: WhenToTake
    strategy: DetectionStrategy
    eligible_medicines: List[Medicine] = Field(default_factory=list)
    detections: List[DetectedMedicine] = Field(default_factory=list)
    points: List[PointDetection] = Field(default_factory=list)
    failures: List[str] = Field(default_factory=list)
    message: Optional[str] = None

    @property
    def detected_names(self) -> List[str]:
        return [d.name for d in self.detections] + [p.name for p in self.points]

    def summary(self) -> str:
        time_of_day = self.time_of_day.value
        if self.status == DetectionStatus.NO_ELIGIBLE_MEDICINES:
            return f"No medicines found for {time_of_day} time in your saved prescriptions."

        lines = [f"Time: {time_of_day}", "", "Medicines to take now:"]
        lines += [f"• {m.name}" for m in self.eligible_medicines]
        lines.append("")

        if self.detections:
            lines.append("Detected in image (OCR):")
            lines += [f"✓ {d.name} (found: '{d.matched_text}')" for d in self.detections]
        elif self.points:
            lines.append("Detected in image:")
            lines += [f"✓ {p.name}" for p in self.points]
        else:
            lines.append("None of these medicines were found in the image.")

        if self.message:
            lines += ["", self.message]
        return "\n".join(lines)
