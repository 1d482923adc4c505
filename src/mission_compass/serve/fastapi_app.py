"""FastAPI app for Mission Compass conversations.

Endpoints:
- GET /health
- POST /api/chat    { "message": "..." }
- POST /api/guided  { "step": 0, "answers": [{"q": "...", "a": "..."}] }
"""
from __future__ import annotations
import logging
from typing import Literal, NoReturn

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from mission_compass.common.config import load_settings
from mission_compass.common.logging_setup import setup_logging
from mission_compass.common.schema import (
    Failure,
    FailureKind,
    GenerationOutcome,
    GenerationRequest,
    LastModelCache,
)
from mission_compass.common.templates import load_template, placeholders, render_prompt
from mission_compass.generation.dispatcher import dispatch
from mission_compass.generation.extract import extract_mission, extract_options
from mission_compass.generation.gemini import GeminiBackend

LOGGER = logging.getLogger("mission_compass.serve.app")
setup_logging()

SETTINGS = load_settings()
CACHE = LastModelCache()

CHAT_TEMPLATE = "chat_template.txt"
GUIDED_TEMPLATE = "guided_template.txt"

BLOCKED_MESSAGE = "Your message was filtered by the content policy. Please rephrase it and try again."
UNAVAILABLE_MESSAGE = "The assistant is temporarily unavailable. Please try again in a moment."

STATUS_BY_KIND = {
    FailureKind.BLOCKED: 422,
    FailureKind.AUTH_OR_CONFIG: 502,
    FailureKind.TRANSIENT: 502,
    FailureKind.RETRYABLE_UNAVAILABLE: 502,
    FailureKind.UNKNOWN: 500,
    FailureKind.NO_CANDIDATES: 500,
}

class ChatIn(BaseModel):
    message: str = ""

class OptionOut(BaseModel):
    label: str
    text: str

class ChatOut(BaseModel):
    reply: str
    model_used: str
    options: list[OptionOut] = []

class AnswerIn(BaseModel):
    q: str = ""
    a: str = ""

class GuidedIn(BaseModel):
    step: int = Field(default=0, ge=0)
    answers: list[AnswerIn] = []

class QuestionOut(BaseModel):
    type: Literal["question"] = "question"
    step: int
    total: int
    question: str

class MissionOut(BaseModel):
    values: list[str]
    passions: list[str]
    statement: str

class FinalOut(BaseModel):
    type: Literal["final"] = "final"
    mission: MissionOut
    model_used: str

class ErrorOut(BaseModel):
    error_message: str
    kind: str
    tried_models: list[str]

app = FastAPI()

@app.on_event("startup")
def _validate_config_on_startup() -> None:
    """Warn about missing credentials, empty candidate lists and malformed templates."""
    if not SETTINGS.api_key:
        LOGGER.warning("GEMINI_API_KEY is not set; generation endpoints will return 400")
    if not SETTINGS.candidates:
        LOGGER.warning("No candidate models configured")
    for name, required in ((CHAT_TEMPLATE, "input"), (GUIDED_TEMPLATE, "answers")):
        try:
            if required not in placeholders(load_template(name)):
                LOGGER.warning("Prompt template %s is missing {{%s}}", name, required)
        except OSError as e:
            LOGGER.warning("Failed to read prompt template %s: %s", name, e)

@app.get("/health")
def health() -> dict[str, object]:
    return {"status": "ok", "models": SETTINGS.candidates}

def _generate(prompt: str) -> GenerationOutcome:
    if not SETTINGS.api_key:
        raise HTTPException(status_code=400, detail="GEMINI_API_KEY is not configured")
    backend = GeminiBackend(
        api_key=SETTINGS.api_key,
        api_versions=SETTINGS.api_versions,
        base_url=SETTINGS.base_url,
        timeout_s=SETTINGS.timeout_s,
    )
    request = GenerationRequest.from_text(prompt, SETTINGS.parameters, SETTINGS.max_chars)
    return dispatch(request, SETTINGS.candidates, backend, cache=CACHE, budget_s=SETTINGS.budget_s)

def _raise_failure(outcome: Failure) -> NoReturn:
    LOGGER.error(
        "Generation failed: kind=%s tried=%s message=%s",
        outcome.kind.value,
        list(outcome.models_tried),
        outcome.message,
    )
    user_message = BLOCKED_MESSAGE if outcome.kind is FailureKind.BLOCKED else UNAVAILABLE_MESSAGE
    raise HTTPException(
        status_code=STATUS_BY_KIND.get(outcome.kind, 500),
        detail=ErrorOut(
            error_message=user_message,
            kind=outcome.kind.value,
            tried_models=list(outcome.models_tried),
        ).model_dump(),
    )

@app.post("/api/chat", response_model=ChatOut)
def chat(body: ChatIn) -> ChatOut:
    message = body.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is empty")

    prompt = render_prompt(load_template(CHAT_TEMPLATE), input=message)
    outcome = _generate(prompt)
    if isinstance(outcome, Failure):
        _raise_failure(outcome)
    return ChatOut(
        reply=outcome.text,
        model_used=outcome.model_used,
        options=[OptionOut(label=o.label, text=o.text) for o in extract_options(outcome.text)],
    )

@app.post("/api/guided", response_model=QuestionOut | FinalOut)
def guided(body: GuidedIn) -> QuestionOut | FinalOut:
    questions = SETTINGS.questions
    total = len(questions)
    if body.step < total:
        return QuestionOut(step=body.step, total=total, question=questions[body.step])

    qa = "\n\n".join(
        f"Q{i + 1}: {ans.q}\nA{i + 1}: {ans.a}" for i, ans in enumerate(body.answers[:total])
    )
    prompt = render_prompt(load_template(GUIDED_TEMPLATE), answers=qa)
    outcome = _generate(prompt)
    if isinstance(outcome, Failure):
        _raise_failure(outcome)
    mission = extract_mission(outcome.text)
    return FinalOut(
        mission=MissionOut(values=mission.values, passions=mission.passions, statement=mission.statement),
        model_used=outcome.model_used,
    )
