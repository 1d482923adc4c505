"""Run one generation dispatch from the command line."""
from __future__ import annotations
import argparse
import logging
import sys

from mission_compass.common.config import load_settings
from mission_compass.common.logging_setup import setup_logging
from mission_compass.common.schema import Failure, GenerationParameters, GenerationRequest
from mission_compass.common.templates import load_template, render_prompt
from mission_compass.generation.dispatcher import dispatch
from mission_compass.generation.gemini import GeminiBackend

LOGGER = logging.getLogger("mission_compass.cli")

def main(argv: list[str] | None = None) -> int:
    setup_logging()
    ap = argparse.ArgumentParser(description="Send one message through the model fallback chain")
    ap.add_argument("--text", required=True, help="User input text")
    ap.add_argument("--cfg", default=None, help="Config path")
    ap.add_argument("--model", action="append", dest="models", help="Candidate model (repeatable); overrides config")
    ap.add_argument("--raw", action="store_true", help="Send text as-is instead of rendering the chat template")
    ap.add_argument("--temperature", type=float, default=None)
    ap.add_argument("--max-tokens", type=int, default=None)
    args = ap.parse_args(argv)

    settings = load_settings(args.cfg)
    if not settings.api_key:
        LOGGER.error("GEMINI_API_KEY is not set")
        return 2

    params = settings.parameters
    params = GenerationParameters(
        temperature=args.temperature if args.temperature is not None else params.temperature,
        max_output_tokens=args.max_tokens if args.max_tokens is not None else params.max_output_tokens,
        top_p=params.top_p,
        top_k=params.top_k,
    )
    prompt = args.text if args.raw else render_prompt(load_template("chat_template.txt"), input=args.text)
    backend = GeminiBackend(settings.api_key, settings.api_versions, settings.base_url, settings.timeout_s)
    outcome = dispatch(
        GenerationRequest.from_text(prompt, params, settings.max_chars),
        args.models or settings.candidates,
        backend,
        budget_s=settings.budget_s,
    )
    if isinstance(outcome, Failure):
        LOGGER.error("Failed (%s) after %s: %s", outcome.kind.value, list(outcome.models_tried), outcome.message)
        return 1

    LOGGER.info("Model: %s | tried=%s", outcome.model_used, list(outcome.models_tried))
    print(outcome.text)
    return 0

if __name__ == "__main__":
    sys.exit(main())
