"""
Settings management with JSON persistence.

Handles loading, saving, and validating application settings.
Uses platformdirs for cross-platform directory resolution.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from platformdirs import user_config_path, user_data_path
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...utils.logger import get_logger
from .config import (
    DOUBLE_CLICK_WINDOW_MS,
    ERROR_DISPLAY_MS,
    HOLD_THRESHOLD_MS,
    KEY_MONITOR_RESTART_MS,
)

logger = get_logger(__name__)

APP_NAME = "voxrelay"

MODIFIER_KEYS = ("COMMAND", "OPTION", "CONTROL", "FN")
TRANSCRIPTION_PROVIDERS = ("openai", "deepgram", "local")


def _get_default_chain() -> List[str]:
    from ..transcript_processor.prompts import DEFAULT_CHAIN

    return list(DEFAULT_CHAIN)


def get_config_dir() -> Path:
    return user_config_path(APP_NAME, ensure_exists=True)


def get_data_dir() -> Path:
    return user_data_path(APP_NAME, ensure_exists=True)


class ShortcutSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    watched_keys: List[str] = Field(default_factory=lambda: ["COMMAND"])
    hold_threshold_ms: int = Field(default=HOLD_THRESHOLD_MS, ge=50, le=5000)
    double_click_window_ms: int = Field(default=DOUBLE_CLICK_WINDOW_MS, ge=50, le=5000)
    restart_backoff_ms: int = Field(default=KEY_MONITOR_RESTART_MS, ge=0)
    key_monitor_path: Optional[str] = None

    @field_validator("watched_keys")
    @classmethod
    def keys_are_modifiers(cls, v):
        normalized = []
        for key in v:
            if not isinstance(key, str) or key.strip().upper() not in MODIFIER_KEYS:
                raise ValueError(f"watched_keys must be a subset of {MODIFIER_KEYS}")
            name = key.strip().upper()
            if name not in normalized:
                normalized.append(name)
        return normalized


class TranscriptionProviderSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=False)

    model: str = ""
    api_key: Optional[str] = None
    api_base: Optional[str] = None


class TranscriptionSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    provider: Optional[str] = "openai"
    provider_settings: Dict[str, dict] = Field(default_factory=dict)
    language: Optional[str] = None

    def get_provider_settings(self, provider_id: str) -> TranscriptionProviderSettings:
        if provider_id in self.provider_settings:
            return TranscriptionProviderSettings.model_validate(
                self.provider_settings[provider_id]
            )
        return TranscriptionProviderSettings()

    def set_provider_settings(
        self, provider_id: str, settings: TranscriptionProviderSettings
    ) -> None:
        self.provider_settings[provider_id] = settings.model_dump()


class LLMProviderSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=False)

    model: str = ""
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    saved_models: List[str] = Field(default_factory=list)


class EnhancementSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    enabled: bool = False
    provider: str = "openai"
    provider_settings: Dict[str, dict] = Field(default_factory=dict)
    active_prompt_chain: List[str] = Field(default_factory=_get_default_chain)
    custom_prompts: List[dict] = Field(default_factory=list)

    use_context_screen: bool = False
    use_context_input_field: bool = False
    use_context_clipboard: bool = False
    use_dictionary_word_list: bool = False

    def get_provider_settings(self, provider_id: str) -> LLMProviderSettings:
        if provider_id in self.provider_settings:
            return LLMProviderSettings.model_validate(
                self.provider_settings[provider_id]
            )
        return LLMProviderSettings()

    def set_provider_settings(
        self, provider_id: str, settings: LLMProviderSettings
    ) -> None:
        self.provider_settings[provider_id] = settings.model_dump()

    @property
    def llm_model(self) -> str:
        return self.get_provider_settings(self.provider).model

    @property
    def llm_api_key(self) -> Optional[str]:
        return self.get_provider_settings(self.provider).api_key

    @property
    def llm_api_base(self) -> Optional[str]:
        return self.get_provider_settings(self.provider).api_base


class AudioSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    sample_rate: int = Field(default=16000, ge=8000, le=192000)
    input_device: Optional[str] = None
    silence_threshold: float = Field(default=0.07, ge=0.0, le=1.0)


class OutputSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    auto_paste: bool = True
    restore_clipboard: bool = False


class Settings(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    shortcut: ShortcutSettings = Field(default_factory=ShortcutSettings)
    transcription: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    enhancement: EnhancementSettings = Field(default_factory=EnhancementSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)

    dictionary_words: List[str] = Field(default_factory=list)
    error_display_ms: int = Field(default=ERROR_DISPLAY_MS, ge=0)

    @classmethod
    def load(cls) -> "Settings":
        config_file = get_config_dir() / "settings.json"

        if not config_file.exists():
            return cls()

        try:
            with open(config_file, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(
                f"Could not load settings: {e}. Using defaults.", exc_info=True
            )
            return cls()

        if not isinstance(data, dict):
            logger.warning("Settings file does not contain an object, using defaults")
            return cls()

        valid_keys = cls.model_fields.keys()
        filtered_data = {k: v for k, v in data.items() if k in valid_keys}
        return cls._load_with_fallbacks(filtered_data)

    @classmethod
    def _load_with_fallbacks(cls, data: dict) -> "Settings":
        """Load settings with field-level fallback to defaults on validation errors."""
        defaults = cls()
        result_data = {}

        for field_name in cls.model_fields:
            if field_name not in data:
                result_data[field_name] = getattr(defaults, field_name)
                continue
            try:
                partial = cls.model_validate({field_name: data[field_name]})
                result_data[field_name] = getattr(partial, field_name)
            except ValueError:
                default_val = getattr(defaults, field_name)
                logger.warning(
                    f"Invalid {field_name} {data[field_name]!r}, resetting to {default_val}"
                )
                result_data[field_name] = default_val

        return cls.model_construct(**result_data)

    def save(self) -> None:
        config_file = get_config_dir() / "settings.json"

        data = self.model_dump()

        with open(config_file, "w") as f:
            json.dump(data, f, indent=2)

    def reset_to_defaults(self) -> None:
        default = Settings()
        for key in type(self).model_fields:
            setattr(self, key, getattr(default, key))

    def get_value(self, key: str, default: Any = None) -> Any:
        """Read a setting by dotted key, e.g. ``enhancement.active_prompt_chain``."""
        node: Any = self
        for part in key.split("."):
            if isinstance(node, BaseModel):
                if part not in type(node).model_fields:
                    return default
                node = getattr(node, part)
            elif isinstance(node, dict):
                if part not in node:
                    return default
                node = node[part]
            else:
                return default
        return node

    def set_value(self, key: str, value: Any) -> None:
        """
        Write a setting by dotted key.

        The whole model is re-validated, so an invalid value raises
        ``pydantic.ValidationError`` and leaves the settings untouched.
        """
        parts = key.split(".")
        if parts[0] not in type(self).model_fields:
            raise KeyError(f"Unknown setting: {key}")

        data = self.model_dump()
        target = data
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = value

        updated = type(self).model_validate(data)
        for name in type(self).model_fields:
            setattr(self, name, getattr(updated, name))


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.load()
    return _settings_instance


def reload_settings() -> Settings:
    global _settings_instance
    _settings_instance = Settings.load()
    return _settings_instance
