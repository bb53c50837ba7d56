"""
exam-ninja configuration

All magic numbers, API keys, model choices, and game tuning live here.
Environment variables override defaults for deployment flexibility.
"""

import os
from dataclasses import dataclass, field
from typing import Literal, Optional


def _optional_float(value: str) -> Optional[float]:
    number = float(value)
    return number if number > 0 else None


@dataclass
class GameConfig:
    """Round timing and scoring"""
    time_limit: int = int(os.getenv("TIME_LIMIT", "30"))  # units per question
    advance_delay: float = float(os.getenv("ADVANCE_DELAY", "2.5"))  # units of feedback
    tick_seconds: float = float(os.getenv("TICK_SECONDS", "1.0"))  # wall clock per unit
    base_points: int = 100
    time_bonus_per_unit: int = 2
    combo_step: float = 0.2
    combo_cap: float = 2.0
    mcq_penalty: int = 25


@dataclass
class GenerationConfig:
    """Question generation behavior"""
    default_count: int = int(os.getenv("QUESTION_COUNT", "5"))
    timeout_seconds: Optional[float] = _optional_float(os.getenv("GENERATION_TIMEOUT", "60"))
    temperature: float = float(os.getenv("GENERATION_TEMPERATURE", "0.7"))
    max_tokens: int = int(os.getenv("GENERATION_MAX_TOKENS", "8192"))


@dataclass
class ModelConfig:
    """AI model selection"""
    provider: Literal["claude", "gemini", "deepseek", "mock"] = os.getenv("QUIZ_PROVIDER", "gemini")
    model: str = os.getenv("QUIZ_MODEL", "")  # Empty = use provider default

    # Default models per provider
    PROVIDER_DEFAULTS = {
        "claude": "claude-sonnet-4-20250514",
        "gemini": "gemini-2.5-flash",
        "deepseek": "deepseek-chat",
        "mock": "mock-model-v1",
    }

    def get_model(self) -> str:
        """Get model, falling back to provider default."""
        return self.model or self.PROVIDER_DEFAULTS.get(self.provider, "")


@dataclass
class Config:
    """Master config, import this"""
    game: GameConfig = field(default_factory=GameConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    models: ModelConfig = field(default_factory=ModelConfig)

    @classmethod
    def fast_mode(cls) -> "Config":
        """For development/testing: near-instant timers"""
        cfg = cls()
        cfg.game.tick_seconds = 0.01
        cfg.generation.timeout_seconds = 5.0
        return cfg


# Singleton
config = Config()
