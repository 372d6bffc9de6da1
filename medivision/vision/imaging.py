# medivision/vision/imaging.py
"""
Image helpers shared by the OCR and vision providers.
Images are OpenCV BGR arrays throughout.
"""

import base64

import cv2
import numpy as np

from medivision.geometry import Size

MAX_UPLOAD_SIDE = 1024
JPEG_QUALITY = 80


def load_image(image_path: str) -> np.ndarray:
    img = cv2.imread(image_path)
    if img is None:
        raise ValueError(f"Image not readable: {image_path}")
    return img


def image_size(image: np.ndarray) -> Size:
    h, w = image.shape[:2]
    return Size(width=w, height=h)


def downscale(image: np.ndarray, max_side: int = MAX_UPLOAD_SIDE) -> np.ndarray:
    """Shrink so the longest side is at most max_side. Never upscales."""
    h, w = image.shape[:2]
    longest = max(h, w)
    if longest <= max_side:
        return image

    scale = max_side / longest
    return cv2.resize(image, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)


def encode_jpeg(image: np.ndarray, max_side: int = MAX_UPLOAD_SIDE, quality: int = JPEG_QUALITY) -> bytes:
    ok, buffer = cv2.imencode(".jpg", downscale(image, max_side), [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ValueError("JPEG encoding failed")
    return buffer.tobytes()


def to_data_uri(image: np.ndarray, max_side: int = MAX_UPLOAD_SIDE) -> str:
    encoded = base64.b64encode(encode_jpeg(image, max_side)).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"
