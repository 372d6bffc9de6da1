# medivision/llm/moondream.py
import logging
from typing import Any, List, Optional

import requests
from pydantic import BaseModel, Field, ValidationError

from medivision.config import EngineConfig
from medivision.llm.parsing import points_or_failure
from medivision.results import ParseFailure, ProviderResult, Success, TransportFailure
from medivision.schema import Point
from medivision.vision.imaging import to_data_uri

logger = logging.getLogger(__name__)


class MoondreamPointResponse(BaseModel):
    points: List[Any] = Field(default_factory=list)


class MoondreamQueryResponse(BaseModel):
    request_id: Optional[str] = None
    answer: str


class MoondreamVisionProvider:
    """Moondream REST API: native /point and /query endpoints."""

    def __init__(self, api_key: str, base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: EngineConfig) -> "MoondreamVisionProvider":
        return cls(
            api_key=config.require_moondream_key(),
            base_url=config.moondream_base_url,
            timeout=config.request_timeout,
        )

    def _post(self, endpoint: str, payload: dict) -> ProviderResult[dict]:
        try:
            r = self.session.post(
                self.base_url + endpoint,
                json=payload,
                headers={"X-Moondream-Auth": self.api_key},
                timeout=self.timeout
            )
            r.raise_for_status()
        except requests.RequestException as e:
            logger.warning("[MOONDREAM] /%s failed: %s", endpoint, e)
            return TransportFailure(str(e))

        try:
            return Success(r.json())
        except ValueError:
            return ParseFailure("response is not JSON", raw=r.text)

    def point(self, image, query: str) -> ProviderResult[List[Point]]:
        result = self._post("point", {"image_url": to_data_uri(image), "object": query})
        if not isinstance(result, Success):
            return result

        try:
            response = MoondreamPointResponse.model_validate(result.payload)
        except ValidationError as e:
            return ParseFailure(f"invalid point response: {e.error_count()} error(s)", raw=str(result.payload))

        return points_or_failure(response.points, str(result.payload))

    def ask(self, image, question: str) -> ProviderResult[str]:
        result = self._post("query", {"image_url": to_data_uri(image), "question": question, "stream": False})
        if not isinstance(result, Success):
            return result

        try:
            response = MoondreamQueryResponse.model_validate(result.payload)
        except ValidationError as e:
            return ParseFailure(f"invalid query response: {e.error_count()} error(s)", raw=str(result.payload))

        return Success(response.answer)
