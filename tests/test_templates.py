from __future__ import annotations

from pathlib import Path

import pytest

from mission_compass.common.templates import load_template, placeholders, render_prompt


def test_render_prompt_substitution() -> None:
    tpl = "Hello {{input}}!"
    out = render_prompt(tpl, input="world")
    assert out == "Hello world!"


def test_render_prompt_leaves_unknown_placeholders() -> None:
    out = render_prompt("{{ input }} and {{other}}", input="x")
    assert out == "x and {{other}}"


def test_repo_templates_have_placeholders() -> None:
    assert "input" in placeholders(load_template("chat_template.txt"))
    assert "answers" in placeholders(load_template("guided_template.txt"))


def test_chat_template_renders_message() -> None:
    prompt = render_prompt(load_template("chat_template.txt"), input="How do I start?")
    assert "User: How do I start?" in prompt
    assert "today's step" in prompt


def test_template_dir_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    (tmp_path / "chat_template.txt").write_text("Elsewhere: {{input}}", encoding="utf-8")
    monkeypatch.setenv("MISSION_COMPASS_TEMPLATE_DIR", str(tmp_path))
    assert load_template("chat_template.txt") == "Elsewhere: {{input}}"
