"""
Configuration settings for the HVAC qualification report service
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .schemas.enums import AggregationPolicy, RoomClass, StorageBackend

logger = logging.getLogger(__name__)


def _per_room_class(value: float) -> Dict[RoomClass, float]:
    return {room_class: value for room_class in RoomClass}


class CriteriaThresholds(BaseModel):
    """
    Acceptance thresholds applied by the criteria evaluator.

    Defaults follow the hospital HVAC qualification practice the reports were
    built around (ISO 14644-3 test methods); every value can be overridden
    through the environment (CRITERIA__...) or a JSON criteria file.
    """
    min_air_change_rate: Dict[RoomClass, float] = Field(
        default_factory=lambda: _per_room_class(20.0),
        description="Minimum air changes per hour, per room class",
    )
    min_pressure_difference_pa: float = Field(6.0, description="Minimum differential pressure in Pa")
    max_hepa_leakage_percent: float = Field(0.01, ge=0, description="Maximum HEPA leakage in %")
    target_iso_class: Dict[RoomClass, int] = Field(
        default_factory=lambda: {room_class: 7 for room_class in RoomClass},
        description="Target ISO 14644-1 class, per room class",
    )
    max_recovery_time_minutes: float = Field(25.0, ge=0)
    temperature_range_c: tuple[float, float] = (20.0, 24.0)
    humidity_range_percent: tuple[float, float] = (40.0, 60.0)
    max_noise_level_db: float = Field(45.0, ge=0)

    @field_validator("min_air_change_rate", "target_iso_class", mode="before")
    @classmethod
    def fill_missing_room_classes(cls, v, info):
        """Partial overrides keep the defaults for room classes not listed"""
        if not isinstance(v, dict):
            return v
        defaults = cls.model_fields[info.field_name].default_factory()
        merged = {room_class.value: value for room_class, value in defaults.items()}
        merged.update({getattr(key, "value", key): value for key, value in v.items()})
        return merged

    @field_validator("temperature_range_c", "humidity_range_percent")
    @classmethod
    def validate_range(cls, v, info):
        low, high = v
        if low > high:
            raise ValueError(f"{info.field_name} lower bound must not exceed upper bound")
        return v

    def air_change_threshold(self, room_class: RoomClass) -> float:
        return self.min_air_change_rate[room_class]

    def iso_class_target(self, room_class: RoomClass) -> int:
        return self.target_iso_class[room_class]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_nested_delimiter="__", env_file=None)

    # Storage
    database_url: str = "sqlite+aiosqlite:///./hvac_reports.db"
    storage_backend: StorageBackend = StorageBackend.SQL

    # Logging
    log_level: str = "INFO"

    # Report rendering
    default_organization_name: str = ""
    include_charts: bool = True
    instance_aggregation_policy: AggregationPolicy = AggregationPolicy.ALL_MUST_PASS

    # Criteria
    criteria_file: Optional[Path] = None
    criteria: CriteriaThresholds = Field(default_factory=CriteriaThresholds)

    @field_validator("database_url")
    @classmethod
    def use_async_driver(cls, v: str) -> str:
        """Convert PostgreSQL URLs to the async driver"""
        if v.startswith("postgresql://"):
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif v.startswith("sqlite:///"):
            v = v.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    def load_criteria(self) -> CriteriaThresholds:
        """Return criteria thresholds, merging the criteria file when configured"""
        if self.criteria_file is None:
            return self.criteria

        if not self.criteria_file.exists():
            raise ValueError(f"Criteria file does not exist: {self.criteria_file}")

        with self.criteria_file.open("r", encoding="utf-8") as handle:
            overrides = json.load(handle)

        merged = self.criteria.model_dump(mode="json")
        merged.update(overrides)
        logger.info(f"Loaded criteria overrides from {self.criteria_file}")
        return CriteriaThresholds.model_validate(merged)


@lru_cache
def get_settings() -> Settings:
    return Settings()
