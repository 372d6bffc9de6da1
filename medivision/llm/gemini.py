# medivision/llm/gemini.py
import logging
from typing import List, Optional

from google import genai
from google.genai import types

from medivision.config import EngineConfig
from medivision.llm.parsing import parse_coordinates
from medivision.llm.prompts import LOCATE_MEDICINE
from medivision.results import ParseFailure, ProviderResult, Success, TransportFailure
from medivision.schema import Point
from medivision.vision.imaging import encode_jpeg

logger = logging.getLogger(__name__)


class GeminiVisionProvider:
    """
    Vision provider backed by Gemini.

    Gemini has no native pointing endpoint, so point() asks for JSON
    coordinates and validates them.
    """

    def __init__(self, api_key: str, model: str, client: Optional[genai.Client] = None):
        self.model = model
        self.client = client or genai.Client(api_key=api_key)

    @classmethod
    def from_config(cls, config: EngineConfig) -> "GeminiVisionProvider":
        return cls(api_key=config.require_google_key(), model=config.gemini_model)

    def generate(self, prompt: str, image=None, pdf_bytes: Optional[bytes] = None) -> ProviderResult[str]:
        contents = []
        if image is not None:
            contents.append(types.Part.from_bytes(data=encode_jpeg(image), mime_type="image/jpeg"))
        if pdf_bytes is not None:
            contents.append(types.Part.from_bytes(data=pdf_bytes, mime_type="application/pdf"))
        contents.append(prompt)

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=contents
            )
        except Exception as e:
            logger.warning("[GEMINI] Call failed: %s", e)
            return TransportFailure(str(e))

        raw_text = response.text
        logger.debug(">>> GEMINI RAW RESPONSE <<<\n%s", raw_text)

        if not raw_text:
            return ParseFailure("empty response")
        return Success(raw_text)

    def point(self, image, query: str) -> ProviderResult[List[Point]]:
        result = self.generate(LOCATE_MEDICINE.format(query=query), image=image)
        if not isinstance(result, Success):
            return result
        return parse_coordinates(result.payload)

    def ask(self, image, question: str) -> ProviderResult[str]:
        return self.generate(question, image=image)
