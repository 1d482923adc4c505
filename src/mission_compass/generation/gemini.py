"""Gemini ``generateContent`` backend.

One ``generate`` call is one candidate attempt. Inside it, a 404 on one API
version retries the same model on the next version before the model is
reported unavailable.
"""
from __future__ import annotations
import logging
import time
from typing import Any
from urllib.parse import quote

import httpx

from mission_compass.common.schema import Attempt, FailureKind, GenerationRequest

LOGGER = logging.getLogger("mission_compass.generation.gemini")

SAFETY_FINISH_REASONS = frozenset(
    {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "IMAGE_SAFETY"}
)
AUTH_OR_CONFIG_STATUSES = frozenset({400, 401, 403, 429})


def _error_message(status_code: int, payload: Any) -> str:
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            return f"HTTP {status_code}: {err['message']}"
    return f"HTTP {status_code}"


def _well_formed(payload: dict[str, Any]) -> bool:
    """Check the nested shapes the classifier reads are objects and lists."""
    if not isinstance(payload.get("promptFeedback") or {}, dict):
        return False
    candidates = payload.get("candidates") or []
    if not isinstance(candidates, list):
        return False
    if not candidates:
        return True
    first = candidates[0]
    if not isinstance(first, dict):
        return False
    content = first.get("content") or {}
    return isinstance(content, dict) and isinstance(content.get("parts") or [], list)


def extract_text(payload: dict[str, Any]) -> str:
    """Join the text parts of the first candidate; empty string when absent or malformed."""
    if not _well_formed(payload):
        return ""
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict))


def classify_response(status_code: int, payload: Any) -> Attempt:
    """
    Classify one backend reply.

    Args:
        status_code: HTTP status of the reply.
        payload: Decoded JSON body, or None if it was not JSON.

    Returns:
        Attempt carrying the generated text or a failure kind.
    """
    if status_code == 404:
        return Attempt(kind=FailureKind.RETRYABLE_UNAVAILABLE, message=_error_message(status_code, payload))
    if status_code in AUTH_OR_CONFIG_STATUSES:
        return Attempt(kind=FailureKind.AUTH_OR_CONFIG, message=_error_message(status_code, payload))
    if status_code >= 500:
        return Attempt(kind=FailureKind.TRANSIENT, message=_error_message(status_code, payload))
    if not 200 <= status_code < 300:
        return Attempt(kind=FailureKind.UNKNOWN, message=_error_message(status_code, payload))
    if not isinstance(payload, dict) or not _well_formed(payload):
        return Attempt(kind=FailureKind.UNKNOWN, message="Malformed response body")

    block_reason = (payload.get("promptFeedback") or {}).get("blockReason")
    if block_reason:
        return Attempt(kind=FailureKind.BLOCKED, message=f"Prompt blocked: {block_reason}")
    candidates = payload.get("candidates") or []
    if candidates and candidates[0].get("finishReason") in SAFETY_FINISH_REASONS:
        return Attempt(
            kind=FailureKind.BLOCKED,
            message=f"Response blocked: {candidates[0]['finishReason']}",
        )

    text = extract_text(payload).strip()
    if not text:
        return Attempt(kind=FailureKind.RETRYABLE_UNAVAILABLE, message="Empty response")
    return Attempt(text=text)


class GeminiBackend:
    """HTTP client for one Gemini attempt per model identifier."""

    def __init__(
        self,
        api_key: str,
        api_versions: list[str],
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout_s: float = 20.0,
    ) -> None:
        self.api_key = api_key
        self.api_versions = list(api_versions) or ["v1beta"]
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def url(self, model: str, version: str) -> str:
        return f"{self.base_url}/{version}/models/{quote(model, safe='')}:generateContent"

    def payload(self, request: GenerationRequest) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": request.prompt_text}]}],
            "generationConfig": request.parameters.to_payload(),
        }

    def generate(self, model: str, request: GenerationRequest) -> Attempt:
        """
        Attempt generation with a single model.

        ``timeout_s`` is shared by all API versions tried for this model. httpx
        applies it per phase (connect, read, write, pool), so each request gets
        whatever remains, and no further version is tried once it is spent.

        Transport errors and timeouts propagate as ``httpx`` exceptions; the
        dispatcher classifies them.
        """
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        body = self.payload(request)
        attempt = Attempt(kind=FailureKind.UNKNOWN, message="No API version attempted")
        deadline = time.monotonic() + self.timeout_s
        for i, version in enumerate(self.api_versions):
            remaining = deadline - time.monotonic()
            if i > 0 and remaining <= 0:
                LOGGER.debug("Timeout for %s spent before trying %s", model, version)
                break
            with httpx.Client(timeout=max(remaining, 0.001)) as client:
                r = client.post(self.url(model, version), headers=headers, json=body)
            try:
                data = r.json()
            except ValueError:
                data = None
            attempt = classify_response(r.status_code, data)
            if r.status_code == 404:
                LOGGER.debug("Model %s not found on %s", model, version)
                continue
            return attempt
        return attempt
