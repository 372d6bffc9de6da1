"""
Mapping between normalized detection coordinates and on-screen pixels.

Two fit policies are supported:
- contain: the image is scaled to fit entirely inside the container and
  centered, leaving letterbox bars (offsets are added).
- cover: the image is scaled to fill the container and centered, cropping
  the overflow (offsets are subtracted).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from medivision.schema import NormalizedBoundingBox, Point


class FitPolicy(str, Enum):
    CONTAIN = "contain"
    COVER = "cover"


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    @classmethod
    def parse(cls, value: str) -> "Size":
        """Parse "WIDTHxHEIGHT", e.g. "1080x1920"."""
        width, _, height = value.lower().partition("x")
        return cls(float(width), float(height))


@dataclass(frozen=True)
class ScreenRect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class ScreenPoint:
    x: float
    y: float


@dataclass(frozen=True)
class Placement:
    policy: FitPolicy
    scale: float
    scaled_width: float
    scaled_height: float
    # Letterbox padding for contain, crop amount for cover. Never negative.
    offset_x: float
    offset_y: float

    @property
    def origin_x(self) -> float:
        """Screen x of the image's left edge."""
        return self.offset_x if self.policy == FitPolicy.CONTAIN else -self.offset_x

    @property
    def origin_y(self) -> float:
        return self.offset_y if self.policy == FitPolicy.CONTAIN else -self.offset_y

    def map_x(self, nx: float) -> float:
        return self.origin_x + nx * self.scaled_width

    def map_y(self, ny: float) -> float:
        return self.origin_y + ny * self.scaled_height

    def unmap_x(self, x: float) -> float:
        return (x - self.origin_x) / self.scaled_width

    def unmap_y(self, y: float) -> float:
        return (y - self.origin_y) / self.scaled_height


def compute_placement(image_size: Size, container_size: Size, policy: FitPolicy) -> Optional[Placement]:
    """
    Work out where the scaled image lands inside the container.

    Returns None for degenerate sizes (an empty container or an image with
    no area), in which case nothing should be drawn.
    """
    if container_size.width <= 0 or container_size.height <= 0:
        return None
    if image_size.width <= 0 or image_size.height <= 0:
        return None

    scale_x = container_size.width / image_size.width
    scale_y = container_size.height / image_size.height

    if policy == FitPolicy.CONTAIN:
        scale = min(scale_x, scale_y)
    else:
        scale = max(scale_x, scale_y)

    scaled_width = image_size.width * scale
    scaled_height = image_size.height * scale

    if policy == FitPolicy.CONTAIN:
        offset_x = (container_size.width - scaled_width) / 2
        offset_y = (container_size.height - scaled_height) / 2
    else:
        offset_x = (scaled_width - container_size.width) / 2
        offset_y = (scaled_height - container_size.height) / 2

    return Placement(
        policy=FitPolicy(policy),
        scale=scale,
        scaled_width=scaled_width,
        scaled_height=scaled_height,
        offset_x=offset_x,
        offset_y=offset_y,
    )


def to_screen(
    target: Union[NormalizedBoundingBox, Point],
    image_size: Size,
    container_size: Size,
    policy: FitPolicy,
) -> Optional[Union[ScreenRect, ScreenPoint]]:
    placement = compute_placement(image_size, container_size, policy)
    if placement is None:
        return None

    if isinstance(target, Point):
        return ScreenPoint(placement.map_x(target.x), placement.map_y(target.y))

    return ScreenRect(
        left=placement.map_x(target.left),
        top=placement.map_y(target.top),
        width=target.width * placement.scaled_width,
        height=target.height * placement.scaled_height,
    )


def to_normalized(
    target: Union[ScreenRect, ScreenPoint],
    image_size: Size,
    container_size: Size,
    policy: FitPolicy,
) -> Optional[Union[NormalizedBoundingBox, Point]]:
    """
    Inverse of to_screen.

    Screen positions outside the image (letterbox bars, cropped margins) are
    clamped to the nearest image edge.
    """
    placement = compute_placement(image_size, container_size, policy)
    if placement is None:
        return None

    if isinstance(target, ScreenPoint):
        return Point(x=_clamp(placement.unmap_x(target.x)), y=_clamp(placement.unmap_y(target.y)))

    return NormalizedBoundingBox(
        left=_clamp(placement.unmap_x(target.left)),
        top=_clamp(placement.unmap_y(target.top)),
        right=_clamp(placement.unmap_x(target.right)),
        bottom=_clamp(placement.unmap_y(target.bottom)),
    )


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)
