"""Model selection with ordered fallback."""
from __future__ import annotations
import logging
import time
from typing import Protocol, Sequence

import httpx

from mission_compass.common.schema import (
    Attempt,
    Failure,
    FailureKind,
    GenerationOutcome,
    GenerationRequest,
    LastModelCache,
    Success,
)

LOGGER = logging.getLogger("mission_compass.generation.dispatcher")

FATAL_KINDS = frozenset({FailureKind.BLOCKED, FailureKind.AUTH_OR_CONFIG})


class Backend(Protocol):
    def generate(self, model: str, request: GenerationRequest) -> Attempt:
        ...


def traversal_order(candidates: Sequence[str], cache: LastModelCache | None) -> list[str]:
    """Return candidates with the cached model moved to the front, if it is one of them."""
    order = list(candidates)
    hint = cache.get() if cache is not None else None
    if hint is not None and hint in order:
        order.remove(hint)
        order.insert(0, hint)
    return order


def dispatch(
    request: GenerationRequest,
    candidates: Sequence[str],
    backend: Backend,
    cache: LastModelCache | None = None,
    budget_s: float | None = None,
) -> GenerationOutcome:
    """
    Obtain generated text from the first candidate that produces any.

    Candidates are tried one at a time. Blocked and auth/config failures stop
    the traversal; unavailable, transient and unknown failures move on to the
    next candidate. A transient failure on the last candidate, or once
    ``budget_s`` has elapsed, ends the traversal.

    Args:
        request: Prompt and sampling parameters.
        candidates: Model identifiers in preference order. Not modified.
        backend: Performs one attempt per model.
        cache: Optional last-successful-model hint, updated on success.
        budget_s: Optional overall time budget across attempts.

    Returns:
        Success or Failure. Never raises.
    """
    if not candidates:
        return Failure(FailureKind.NO_CANDIDATES, "No candidate models configured", ())

    order = traversal_order(candidates, cache)
    tried: list[str] = []
    last_kind = FailureKind.UNKNOWN
    last_message = "No candidate model produced a response"
    start = time.monotonic()

    for index, model in enumerate(order):
        tried.append(model)
        try:
            attempt = backend.generate(model, request)
        except httpx.TimeoutException as e:
            attempt = Attempt(kind=FailureKind.TRANSIENT, message=f"Timed out: {e}")
        except httpx.TransportError as e:
            attempt = Attempt(kind=FailureKind.TRANSIENT, message=f"Transport error: {e}")
        except Exception as e:
            LOGGER.error("Unexpected error calling %s: %s", model, e)
            return Failure(FailureKind.UNKNOWN, str(e) or type(e).__name__, tuple(tried))

        if attempt.ok:
            text = (attempt.text or "").strip()
            if cache is not None:
                cache.set(model)
            LOGGER.info("Generated with %s after %d attempt(s)", model, len(tried))
            return Success(text=text, model_used=model, models_tried=tuple(tried))

        kind = attempt.kind or FailureKind.RETRYABLE_UNAVAILABLE
        message = attempt.message or ("Empty response" if kind is FailureKind.RETRYABLE_UNAVAILABLE else kind.value)
        LOGGER.info("Model %s failed: %s (%s)", model, kind.value, message)
        last_kind, last_message = kind, message

        if kind in FATAL_KINDS:
            return Failure(kind, message, tuple(tried))
        has_next = index < len(order) - 1
        if has_next and budget_s is not None and time.monotonic() - start >= budget_s:
            LOGGER.warning("Generation budget of %ss exhausted after %s", budget_s, tried)
            return Failure(kind, message, tuple(tried))

    LOGGER.warning("All candidates failed: %s", tried)
    return Failure(last_kind, last_message, tuple(tried))
