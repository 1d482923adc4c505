"""Dataclasses for generation requests, attempts and outcomes."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

DEFAULT_MAX_CHARS = 4000


class FailureKind(str, Enum):
    RETRYABLE_UNAVAILABLE = "retryable_unavailable"
    BLOCKED = "blocked"
    AUTH_OR_CONFIG = "auth_or_config"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"
    NO_CANDIDATES = "no_candidates"


@dataclass(frozen=True)
class GenerationParameters:
    """Sampling parameters forwarded to the backend."""
    temperature: float = 0.7
    max_output_tokens: int = 512
    top_p: float | None = None
    top_k: int | None = None

    def to_payload(self) -> dict[str, float | int]:
        """Render as a ``generationConfig`` object, omitting unset values."""
        cfg: dict[str, float | int] = {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
        }
        if self.top_p is not None:
            cfg["topP"] = self.top_p
        if self.top_k is not None:
            cfg["topK"] = self.top_k
        return cfg


@dataclass(frozen=True)
class GenerationRequest:
    prompt_text: str
    parameters: GenerationParameters = field(default_factory=GenerationParameters)

    @classmethod
    def from_text(
        cls,
        text: str,
        parameters: GenerationParameters | None = None,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> "GenerationRequest":
        """
        Build a request, truncating the prompt to ``max_chars`` characters.

        Args:
            text: Fully rendered prompt.
            parameters: Sampling parameters; defaults when omitted.
            max_chars: Upper bound on prompt length.
        """
        return cls(
            prompt_text=text[:max_chars],
            parameters=parameters or GenerationParameters(),
        )


@dataclass(frozen=True)
class Attempt:
    """Result of calling one candidate model once.

    Exactly one of ``text`` (usable output) or ``kind`` (classified failure) is set.
    """
    text: str | None = None
    kind: FailureKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is None and bool(self.text and self.text.strip())


@dataclass(frozen=True)
class Success:
    text: str
    model_used: str
    models_tried: tuple[str, ...]


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    models_tried: tuple[str, ...]


GenerationOutcome = Union[Success, Failure]


@dataclass
class LastModelCache:
    """Single-slot hint of the model that most recently succeeded.

    Unsynchronized; concurrent writers only change which model is tried first.
    """
    model: str | None = None

    def get(self) -> str | None:
        return self.model

    def set(self, model: str) -> None:
        self.model = model

    def clear(self) -> None:
        self.model = None
