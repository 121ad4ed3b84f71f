"""
Configuration models and loaders.
"""
import json
from pathlib import Path
from typing import List, Literal, Optional, Protocol

import tomli
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .fields import CANONICAL_FIELDS, DEFAULT_SCHEMA


class ProcessingConfig(BaseModel):
    """Batch processing configuration"""
    max_concurrent_files: int = Field(4, ge=1, le=16)
    max_files: int = Field(100, ge=1)
    pdf_page_limit: int = Field(0, ge=0)


class OCRConfig(BaseModel):
    """Page extraction / OCR fallback configuration"""
    language: str = "por+eng"
    timeout_seconds: float = Field(30.0, gt=0)
    raster_scale: float = Field(2.0, gt=0)
    min_text_length: int = Field(20, ge=0)
    enable_preprocessing: bool = True


class ExportConfig(BaseModel):
    """TXT/XLSX export configuration"""
    separator: str = ";"


class Settings(BaseModel):
    """Complete application settings"""
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    @classmethod
    def load_from_toml(cls, config_path: Path) -> "Settings":
        """Load settings from TOML file"""
        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)
            return cls(**data)
        except (OSError, tomli.TOMLDecodeError, ValidationError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}. Using defaults.")
            return cls()


class EnvironmentSettings(BaseSettings):
    """Environment variables"""
    tesseract_cmd: Optional[str] = None
    log_level: str = "INFO"
    output_dir: str = "./output"
    logs_dir: str = "./logs"
    preferences_path: str = "./config/preferences.json"

    model_config = SettingsConfigDict(env_prefix="NFSE_", env_file=".env", env_file_encoding="utf-8")


DecimalLocale = Literal["pt", "en"]


class ExportPreferences(BaseModel):
    """User-controlled TXT layout and decimal separator"""
    schema_fields: List[str] = Field(default_factory=lambda: list(DEFAULT_SCHEMA))
    decimal_locale: DecimalLocale = "pt"

    @field_validator("schema_fields")
    @classmethod
    def validate_schema_fields(cls, v: List[str]) -> List[str]:
        unknown = [name for name in v if name not in CANONICAL_FIELDS]
        if unknown:
            raise ValueError(f"unknown fields: {', '.join(unknown)}")
        if len(set(v)) != len(v):
            raise ValueError("duplicated fields in schema")
        return v

    def move_field(self, source: int, target: int) -> "ExportPreferences":
        """Return a copy with the field at ``source`` moved to ``target``"""
        fields = list(self.schema_fields)
        if not (0 <= source < len(fields) and 0 <= target < len(fields)):
            raise IndexError(f"position out of range (0..{len(fields) - 1})")
        moved = fields.pop(source)
        fields.insert(target, moved)
        return ExportPreferences(schema_fields=fields, decimal_locale=self.decimal_locale)

    def with_locale(self, locale: str) -> "ExportPreferences":
        return ExportPreferences(schema_fields=list(self.schema_fields), decimal_locale=locale)


class PreferencesStore(Protocol):
    """Key-value persistence for export preferences"""

    def load(self) -> ExportPreferences:
        ...

    def save(self, preferences: ExportPreferences) -> None:
        ...


class MemoryPreferencesStore:
    """Preferences kept in memory only (nothing survives the process)"""

    def __init__(self, preferences: Optional[ExportPreferences] = None):
        self._preferences = preferences or ExportPreferences()

    def load(self) -> ExportPreferences:
        return self._preferences.model_copy(deep=True)

    def save(self, preferences: ExportPreferences) -> None:
        self._preferences = preferences.model_copy(deep=True)


class JsonPreferencesStore:
    """Preferences kept in a small JSON key-value file"""

    SCHEMA_KEY = "schema_layout"
    DECIMAL_KEY = "decimal"

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> ExportPreferences:
        if not self.path.exists():
            logger.debug(f"No preferences at {self.path}, using defaults")
            return ExportPreferences()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            kwargs = {}
            if data.get(self.SCHEMA_KEY):
                kwargs["schema_fields"] = data[self.SCHEMA_KEY]
            if data.get(self.DECIMAL_KEY):
                kwargs["decimal_locale"] = data[self.DECIMAL_KEY]
            return ExportPreferences(**kwargs)
        except (OSError, ValueError, AttributeError) as e:
            # ValidationError and JSONDecodeError are both ValueErrors
            logger.warning(f"Failed to load preferences from {self.path}: {e}. Using defaults.")
            return ExportPreferences()

    def save(self, preferences: ExportPreferences) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            self.SCHEMA_KEY: preferences.schema_fields,
            self.DECIMAL_KEY: preferences.decimal_locale,
        }
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        logger.debug(f"Saved preferences to {self.path}")


class PreferencesManager:
    """Holds the active preferences and saves them on every change"""

    def __init__(self, store: PreferencesStore):
        self.store = store
        self.current = store.load()

    @property
    def schema_fields(self) -> List[str]:
        return list(self.current.schema_fields)

    @property
    def decimal_locale(self) -> str:
        return self.current.decimal_locale

    def _update(self, preferences: ExportPreferences):
        self.current = preferences
        self.store.save(preferences)

    def set_schema(self, fields: List[str]):
        self._update(ExportPreferences(schema_fields=fields, decimal_locale=self.current.decimal_locale))

    def move_field(self, source: int, target: int):
        self._update(self.current.move_field(source, target))

    def reset_schema(self):
        self.set_schema(list(DEFAULT_SCHEMA))

    def set_locale(self, locale: str):
        self._update(self.current.with_locale(locale))
