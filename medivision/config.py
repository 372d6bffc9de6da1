# medivision/config.py
import os
from typing import Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError, field_validator

from medivision.errors import ConfigurationError
from medivision.pointer import VerificationPolicy
from medivision.schema import DetectionStrategy

DEFAULT_GEMINI_MODEL = "gemini-flash-latest"
DEFAULT_MOONDREAM_URL = "https://api.moondream.ai/v1/"
DEFAULT_STORE_PATH = "prescriptions.json"

VISION_PROVIDERS = ("gemini", "moondream")


class EngineConfig(BaseModel):
    """
    Everything the engine needs, passed explicitly into constructors.
    Build one with EngineConfig.from_env() or directly in tests.
    """
    strategy: DetectionStrategy = DetectionStrategy.OCR
    vision_provider: str = "gemini"

    google_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    moondream_api_key: Optional[str] = None
    moondream_base_url: str = DEFAULT_MOONDREAM_URL

    verify: bool = True
    verification_policy: VerificationPolicy = VerificationPolicy.ACCEPT_ON_AMBIGUOUS
    fuzzy_threshold: Optional[float] = Field(default=None, ge=0, le=100)

    store_path: str = DEFAULT_STORE_PATH
    request_timeout: float = Field(default=30.0, gt=0)

    @field_validator("vision_provider")
    @classmethod
    def _known_provider(cls, value: str) -> str:
        value = value.lower()
        if value not in VISION_PROVIDERS:
            raise ValueError(f"unknown vision provider '{value}' (expected one of {', '.join(VISION_PROVIDERS)})")
        return value

    def require_google_key(self) -> str:
        if not self.google_api_key:
            raise ConfigurationError("GOOGLE_API_KEY is not set")
        return self.google_api_key

    def require_moondream_key(self) -> str:
        if not self.moondream_api_key:
            raise ConfigurationError("MOONDREAM_API_KEY is not set")
        return self.moondream_api_key

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None, **overrides) -> "EngineConfig":
        """
        Read settings from a .env file overlaid with the process environment.
        The .env values are never written into os.environ.
        """
        env = {**dotenv_values(dotenv_path), **os.environ}

        values = {
            "strategy": env.get("MEDIVISION_STRATEGY"),
            "vision_provider": env.get("MEDIVISION_VISION_PROVIDER"),
            "google_api_key": env.get("GOOGLE_API_KEY"),
            "gemini_model": env.get("MEDIVISION_GEMINI_MODEL"),
            "moondream_api_key": env.get("MOONDREAM_API_KEY"),
            "moondream_base_url": env.get("MOONDREAM_BASE_URL"),
            "verify": env.get("MEDIVISION_VERIFY"),
            "verification_policy": env.get("MEDIVISION_VERIFICATION_POLICY"),
            "fuzzy_threshold": env.get("MEDIVISION_FUZZY_THRESHOLD"),
            "store_path": env.get("MEDIVISION_STORE_PATH"),
            "request_timeout": env.get("MEDIVISION_REQUEST_TIMEOUT"),
        }
        values = {k: v for k, v in values.items() if v not in (None, "")}
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            config = cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        return config
