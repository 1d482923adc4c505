"""Prompt templating helpers.

Templates are read from ``configs/`` relative to the working directory unless
``MISSION_COMPASS_TEMPLATE_DIR`` points elsewhere.
"""
from __future__ import annotations
import os
import re
from pathlib import Path

TEMPLATE_DIR = "configs"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

def load_template(name: str, directory: str | None = None) -> str:
    """
    Load a prompt template file.

    Args:
        name: File name inside ``directory``.
        directory: Directory holding templates. Defaults to
            ``MISSION_COMPASS_TEMPLATE_DIR`` or ``configs``.
    """
    directory = directory or os.getenv("MISSION_COMPASS_TEMPLATE_DIR", TEMPLATE_DIR)
    return (Path(directory) / name).read_text(encoding="utf-8")

def placeholders(template: str) -> set[str]:
    """Return the placeholder names used in a template."""
    return set(_PLACEHOLDER_RE.findall(template))

def render_prompt(template: str, **values: str) -> str:
    """
    Render values into the template.

    Args:
        template: Template content containing ``{{name}}`` placeholders.
        values: Replacement text per placeholder name.

    Returns:
        Rendered prompt. Unknown placeholders are left as-is.
    """
    def _sub(m: re.Match[str]) -> str:
        return values.get(m.group(1), m.group(0))

    return _PLACEHOLDER_RE.sub(_sub, template)
