"""
Configuration settings for the adaptive review engine.

Uses Pydantic Settings for environment variable management with .env file support.
Every field can be overridden with an ADAPTIVE_-prefixed environment variable,
e.g. ADAPTIVE_SM2_MINIMUM_EASE=1.3 or ADAPTIVE_LEITNER_SCHEDULE='[1,3,7,14,30]'.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ADAPTIVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # SM-2
    # ========================================
    sm2_initial_ease: float = Field(default=2.5, description="Ease factor for new items")
    sm2_minimum_ease: float = Field(default=1.3, ge=1.3, description="Ease factor floor")
    sm2_first_interval: int = Field(default=1, ge=1, description="Days after first success")
    sm2_second_interval: int = Field(default=6, ge=1, description="Days after second success")

    # ========================================
    # Leitner
    # ========================================
    leitner_schedule: list[int] = Field(
        default=[1, 3, 7, 14, 30],
        description="Review interval in days for box 1..N",
    )

    # ========================================
    # Difficulty Adjustment
    # ========================================
    difficulty_window: int = Field(default=20, ge=1, description="Responses considered")
    difficulty_decay: float = Field(default=0.8, gt=0.0, le=1.0, description="Per-response age weight")
    difficulty_accuracy_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    difficulty_latency_tolerance: float = Field(
        default=1.25, gt=0.0, description="Allowed multiple of the peer latency baseline"
    )
    difficulty_learning_rate: float = Field(default=0.2, gt=0.0, le=1.0)
    difficulty_max_penalty: int = Field(
        default=2, ge=0, le=5, description="Quality points removed at difficulty 1.0"
    )

    # ========================================
    # Weak Topic Detection
    # ========================================
    weak_topic_min_attempts: int = Field(default=5, ge=1)
    weak_topic_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    # ========================================
    # Outcome
    # ========================================
    outcome_message_template: str = Field(
        default="Next review in {days} {unit}",
        description="Outcome message; {days} is the interval, {unit} is day/days",
    )
    include_retention: bool = Field(default=True)

    @field_validator("leitner_schedule")
    @classmethod
    def _schedule_increasing(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("leitner_schedule needs at least one box")
        if any(days < 1 for days in v):
            raise ValueError("leitner_schedule intervals must be >= 1 day")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("leitner_schedule must increase with box index")
        return v

    @field_validator("outcome_message_template")
    @classmethod
    def _template_formats(cls, v: str) -> str:
        try:
            v.format(days=1, unit="day")
        except (KeyError, IndexError) as e:
            raise ValueError(
                f"outcome_message_template may only use {{days}} and {{unit}}, got {e}"
            ) from e
        return v

    @model_validator(mode="after")
    def _ease_consistent(self) -> EngineSettings:
        if self.sm2_initial_ease < self.sm2_minimum_ease:
            raise ValueError("sm2_initial_ease must not be below sm2_minimum_ease")
        return self

    @property
    def leitner_boxes(self) -> int:
        return len(self.leitner_schedule)


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Get cached settings instance."""
    return EngineSettings()
