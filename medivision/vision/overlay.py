# medivision/vision/overlay.py
import cv2
import numpy as np

from medivision.geometry import FitPolicy, Placement, Size, compute_placement, to_screen
from medivision.schema import DetectionReport
from medivision.vision.imaging import image_size

GREEN = (0, 255, 0)
BOX_THICKNESS = 3
DOT_RADIUS = 8


def _place_image(image: np.ndarray, container: Size, placement: Placement) -> np.ndarray:
    """Scale the image and position it inside a container-sized canvas."""
    cw, ch = int(round(container.width)), int(round(container.height))
    sw = max(int(round(placement.scaled_width)), 1)
    sh = max(int(round(placement.scaled_height)), 1)
    scaled = cv2.resize(image, (sw, sh), interpolation=cv2.INTER_AREA)
    if scaled.ndim == 2:
        scaled = cv2.cvtColor(scaled, cv2.COLOR_GRAY2BGR)

    canvas = np.zeros((ch, cw, 3), dtype=np.uint8)
    ox, oy = int(round(placement.origin_x)), int(round(placement.origin_y))

    # Intersection of the scaled image with the canvas, in canvas coordinates
    x0, y0 = max(ox, 0), max(oy, 0)
    x1, y1 = min(ox + sw, cw), min(oy + sh, ch)
    if x1 > x0 and y1 > y0:
        canvas[y0:y1, x0:x1] = scaled[y0 - oy:y1 - oy, x0 - ox:x1 - ox]
    return canvas


def render_overlay(
    image: np.ndarray,
    report: DetectionReport,
    container: Size,
    policy: FitPolicy = FitPolicy.CONTAIN,
) -> np.ndarray:
    """
    Draw the report the way a screen of the given size would show it:
    green boxes for OCR detections, green dots for point detections.
    Degenerate sizes give back an unannotated copy of the image.
    """
    source = image_size(image)
    placement = compute_placement(source, container, policy)
    if placement is None:
        return image.copy()

    canvas = _place_image(image, container, placement)

    for detection in report.detections:
        rect = to_screen(detection.bounding_box, source, container, policy)
        cv2.rectangle(
            canvas,
            (int(rect.left), int(rect.top)),
            (int(rect.right), int(rect.bottom)),
            GREEN,
            BOX_THICKNESS,
        )

    for detection in report.points:
        point = to_screen(detection.point, source, container, policy)
        cv2.circle(canvas, (int(point.x), int(point.y)), DOT_RADIUS, GREEN, -1)

    return canvas
