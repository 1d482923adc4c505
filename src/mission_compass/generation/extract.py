"""Best-effort extraction of structured hints from generated prose.

Nothing here raises on unexpected text; absence of a match yields an empty
result.
"""
from __future__ import annotations
import json
import re
from dataclasses import dataclass, field

MAX_OPTIONS = 3
MAX_OPTION_CHARS = 80

# "1. foo", "2) bar", "(A) baz", "b: qux"
_OPTION_RE = re.compile(
    r"^\s*\(?([0-9]{1,2}|[A-Za-z])[.)）:：]\s+(.+?)\s*$",
    re.MULTILINE,
)
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class Option:
    label: str
    text: str


@dataclass
class Mission:
    values: list[str] = field(default_factory=list)
    passions: list[str] = field(default_factory=list)
    statement: str = ""


def extract_options(text: str, limit: int = MAX_OPTIONS) -> list[Option]:
    """
    Pull up to ``limit`` short labeled items from an enumerated list.

    Items longer than ``MAX_OPTION_CHARS`` after stripping markdown emphasis
    are skipped.
    """
    options: list[Option] = []
    for m in _OPTION_RE.finditer(text or ""):
        item = m.group(2).replace("**", "").replace("__", "").strip()
        if not item or len(item) > MAX_OPTION_CHARS:
            continue
        options.append(Option(label=m.group(1), text=item))
        if len(options) >= limit:
            break
    return options


def _str_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def extract_mission(raw: str) -> Mission:
    """
    Parse the mission JSON out of a model reply.

    Tolerates code fences and surrounding prose. When no object can be parsed,
    the whitespace-collapsed reply becomes the statement.
    """
    raw = raw or ""
    m = _JSON_OBJECT_RE.search(raw)
    parsed: object = None
    try:
        parsed = json.loads(m.group(0) if m else raw)
    except ValueError:
        parsed = None
    if not isinstance(parsed, dict):
        parsed = {}

    statement = parsed.get("statement")
    if not isinstance(statement, str) or not statement.strip():
        statement = re.sub(r"\s+", " ", raw).strip()
    return Mission(
        values=_str_list(parsed.get("values")),
        passions=_str_list(parsed.get("passions")),
        statement=statement.strip(),
    )
