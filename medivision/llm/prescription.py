# medivision/llm/prescription.py
import logging
from typing import List, NamedTuple, Optional

from medivision.errors import PrescriptionParseError
from medivision.llm.gemini import GeminiVisionProvider
from medivision.llm.parsing import parse_medicines
from medivision.llm.prompts import EXTRACT_MEDICINE_INFO
from medivision.results import Success
from medivision.schema import Medicine

logger = logging.getLogger(__name__)


class ParsedPrescription(NamedTuple):
    extracted_text: str
    medicines: List[Medicine]


class PrescriptionParser:
    def __init__(self, provider: GeminiVisionProvider):
        self.provider = provider

    def parse(self, image=None, pdf_bytes: Optional[bytes] = None, file_name: str = "") -> ParsedPrescription:
        """
        Extract the medicine list from a prescription photo or PDF.

        A response that is not valid JSON is kept as raw text with an empty
        medicine list. Only a failed call raises.
        """
        if image is None and pdf_bytes is None:
            raise PrescriptionParseError("Nothing to parse: provide an image or PDF bytes")

        result = self.provider.generate(EXTRACT_MEDICINE_INFO, image=image, pdf_bytes=pdf_bytes)
        if not isinstance(result, Success):
            raise PrescriptionParseError(f"Failed to identify medicine in '{file_name}': {result.reason}")

        raw_text = result.payload
        medicines = parse_medicines(raw_text)

        if isinstance(medicines, Success):
            logger.info("[PRESCRIPTION] Parsed %d medicine(s) from '%s'", len(medicines.payload), file_name)
            return ParsedPrescription(raw_text, medicines.payload)

        logger.warning("[PRESCRIPTION] Could not parse response for '%s': %s", file_name, medicines.reason)
        return ParsedPrescription(raw_text, [])
