"""Service configuration: YAML file with environment overrides."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from mission_compass.common.schema import DEFAULT_MAX_CHARS, GenerationParameters

LOGGER = logging.getLogger("mission_compass.config")

DEFAULT_CONFIG_PATH = "configs/generation.yaml"

DEFAULT_QUESTIONS = [
    "Nice to meet you. Which kind of career interests you? (e.g. education, startups, research, creative work)",
    "When did you feel most fulfilled so far? What were you doing, and why did it matter?",
    "Name three values you care about. (e.g. challenge, integrity, contribution)",
    "What strength do people tend to rely on you for? (e.g. organizing, explaining, moving things forward)",
    "How would you like to be useful to the people around you or to society?",
]


@dataclass
class Settings:
    api_key: str = ""
    primary_model: str = "gemini-2.5-flash"
    fallback_models: list[str] = field(default_factory=lambda: ["gemini-2.0-flash", "gemini-1.5-flash-8b"])
    api_version: str = "v1beta"
    base_url: str = "https://generativelanguage.googleapis.com"
    timeout_s: float = 20.0
    budget_s: float | None = 45.0
    max_chars: int = DEFAULT_MAX_CHARS
    parameters: GenerationParameters = field(default_factory=GenerationParameters)
    questions: list[str] = field(default_factory=lambda: list(DEFAULT_QUESTIONS))

    @property
    def candidates(self) -> list[str]:
        return build_candidates(self.primary_model, self.fallback_models)

    @property
    def api_versions(self) -> list[str]:
        return build_api_versions(self.api_version)


def build_candidates(primary: str, fallbacks: list[str]) -> list[str]:
    """
    Build the model preference order.

    The primary model comes first, then its non-``-latest`` alias, then the
    fallbacks. Duplicates and empty names are dropped, order is preserved.
    """
    names = [primary]
    if primary.endswith("-latest"):
        names.append(primary[: -len("-latest")])
    names.extend(fallbacks)
    return list(dict.fromkeys(n.strip() for n in names if n and n.strip()))


def build_api_versions(configured: str) -> list[str]:
    """Configured API version first, then the other of v1/v1beta."""
    other = "v1beta" if configured == "v1" else "v1"
    return list(dict.fromkeys([configured, other]))


def load_cfg(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: str | None = None) -> Settings:
    """
    Load settings from YAML and apply environment overrides.

    Args:
        path: YAML config path. Defaults to ``MISSION_COMPASS_CONFIG`` or
            ``configs/generation.yaml``. A missing file yields defaults.
    """
    path = path or os.getenv("MISSION_COMPASS_CONFIG", DEFAULT_CONFIG_PATH)
    if Path(path).exists():
        cfg = load_cfg(path)
    else:
        LOGGER.warning("Config %s not found; using built-in defaults", path)
        cfg = {}
    gen = cfg.get("generation", {}) or {}
    defaults = Settings()

    budget = cfg.get("budget_s", defaults.budget_s)
    settings = Settings(
        api_key=os.getenv("GEMINI_API_KEY", ""),
        primary_model=os.getenv("GEMINI_MODEL") or str(cfg.get("model", defaults.primary_model)),
        fallback_models=[str(m) for m in (cfg.get("fallback_models", defaults.fallback_models) or [])],
        api_version=os.getenv("GEMINI_API_VERSION") or str(cfg.get("api_version", defaults.api_version)),
        base_url=str(cfg.get("base_url", defaults.base_url)).rstrip("/"),
        timeout_s=float(os.getenv("GEMINI_TIMEOUT_S") or cfg.get("timeout_s", defaults.timeout_s)),
        budget_s=float(budget) if budget is not None else None,
        max_chars=int(cfg.get("max_chars", defaults.max_chars)),
        parameters=GenerationParameters(
            temperature=float(gen.get("temperature", 0.7)),
            max_output_tokens=int(gen.get("max_output_tokens", 512)),
            top_p=float(gen["top_p"]) if gen.get("top_p") is not None else None,
            top_k=int(gen["top_k"]) if gen.get("top_k") is not None else None,
        ),
        questions=[str(q) for q in (cfg.get("questions") or defaults.questions)],
    )
    return settings
