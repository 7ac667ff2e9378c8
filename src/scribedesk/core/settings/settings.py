"""
Settings management with JSON persistence.

Handles loading, saving, and validating application settings.
Uses platformdirs for cross-platform directory resolution.
"""

import json
from pathlib import Path
from typing import Optional

from platformdirs import user_config_path, user_data_path
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...utils.logger import get_logger
from ..models import DEFAULT_LANGUAGE, BackendKind, ModelSize

logger = get_logger(__name__)

APP_NAME = "scribedesk"

DEFAULT_API_ENDPOINT = "https://api.openai.com/v1/audio/transcriptions"


def get_config_dir() -> Path:
    return user_config_path(APP_NAME, ensure_exists=True)


def get_data_dir() -> Path:
    return user_data_path(APP_NAME, ensure_exists=True)


def get_recordings_dir() -> Path:
    recordings = get_data_dir() / "recordings"
    recordings.mkdir(parents=True, exist_ok=True)
    return recordings


class Settings(BaseModel):
    model_config = ConfigDict(validate_assignment=False, protected_namespaces=())

    selected_backend: BackendKind = BackendKind.LOCAL
    model_size: ModelSize = ModelSize.SMALL
    language: str = DEFAULT_LANGUAGE
    python_path: Optional[str] = None

    openai_api_key: str = ""
    api_endpoint: str = DEFAULT_API_ENDPOINT

    sample_rate: int = Field(default=44100, ge=8000, le=192000)
    input_device: Optional[str] = None
    # Last microphone decision on macOS: "authorized", "denied" or None
    microphone_permission: Optional[str] = None

    @field_validator("language")
    @classmethod
    def language_not_empty(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("language must be a non-empty string")
        return v.strip().lower()

    @field_validator("api_endpoint")
    @classmethod
    def endpoint_is_http(cls, v):
        if not isinstance(v, str) or not v.startswith(("http://", "https://")):
            raise ValueError("api_endpoint must be an http(s) URL")
        return v

    @classmethod
    def load(cls) -> "Settings":
        config_file = get_config_dir() / "settings.json"

        if not config_file.exists():
            return cls()

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError, OSError) as e:
            logger.warning(
                f"Could not load settings: {e}. Using defaults.", exc_info=True
            )
            return cls()

        if not isinstance(data, dict):
            logger.warning("Settings file is not a JSON object. Using defaults.")
            return cls()

        return cls._load_with_fallbacks(data)

    @classmethod
    def _load_with_fallbacks(cls, data: dict) -> "Settings":
        """Validate each known field on its own, resetting invalid ones to defaults."""
        defaults = cls()
        result_data = {}

        for field_name in cls.model_fields:
            if field_name not in data:
                continue
            try:
                validated = cls.model_validate(
                    {**defaults.model_dump(), field_name: data[field_name]}
                )
                result_data[field_name] = getattr(validated, field_name)
            except ValidationError:
                default_val = getattr(defaults, field_name)
                logger.warning(
                    f"Invalid {field_name} {data[field_name]!r}, "
                    f"resetting to {default_val!r}"
                )

        return cls(**result_data)

    def save(self) -> None:
        config_file = get_config_dir() / "settings.json"

        with open(config_file, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    def reset_to_defaults(self) -> None:
        default = Settings()
        for key in Settings.model_fields:
            setattr(self, key, getattr(default, key))


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.load()
    return _settings_instance
