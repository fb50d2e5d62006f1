"""Unit tests for input resolution helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from tofu_backend._input_resolution import (
    InputResolution,
    PromptInputProvider,
    ScriptedInputProvider,
    resolve_input,
)


def test_parameter_wins_over_environment_and_prompt() -> None:
    provider = ScriptedInputProvider({"Region": "us-east-1"})
    value = resolve_input(
        "eu-central-1",
        InputResolution(env_key="AWS_REGION", prompt="Region"),
        env={"AWS_REGION": "eu-west-2"},
        provider=provider,
    )
    assert value == "eu-central-1"
    assert provider.asked == [], "Prompt should not be consulted"


def test_environment_wins_over_prompt() -> None:
    provider = ScriptedInputProvider({"Region": "us-east-1"})
    value = resolve_input(
        None,
        InputResolution(env_key="AWS_REGION", prompt="Region"),
        env={"AWS_REGION": "eu-west-2"},
        provider=provider,
    )
    assert value == "eu-west-2"
    assert provider.asked == []


def test_prompt_answer_used_when_unset() -> None:
    provider = ScriptedInputProvider({"Region": " us-east-1 "})
    value = resolve_input(
        None,
        InputResolution(env_key="AWS_REGION", default="eu-west-1", prompt="Region"),
        env={},
        provider=provider,
    )
    assert value == "us-east-1"


def test_blank_prompt_falls_back_to_default() -> None:
    provider = ScriptedInputProvider({})
    value = resolve_input(
        None,
        InputResolution(env_key="AWS_REGION", default="eu-west-1", prompt="Region"),
        env={},
        provider=provider,
    )
    assert value == "eu-west-1"
    assert provider.asked == ["Region"]


def test_as_path_converts_environment_value() -> None:
    value = resolve_input(
        None, InputResolution(env_key="TEMPLATE", as_path=True), env={"TEMPLATE": "t.yaml"}
    )
    assert value == Path("t.yaml")


def test_empty_environment_variable_falls_through_to_prompt() -> None:
    provider = ScriptedInputProvider({"Project": "demo"})
    value = resolve_input(
        None,
        InputResolution(env_key="PROJECT_NAME", prompt="Project"),
        env={"PROJECT_NAME": ""},
        provider=provider,
    )
    assert value == "demo", "An empty variable counts as unset"
    assert provider.asked == ["Project"]


def test_empty_environment_variable_uses_default_without_prompt() -> None:
    value = resolve_input(
        None,
        InputResolution(env_key="AWS_REGION", default="eu-west-1"),
        env={"AWS_REGION": ""},
    )
    assert value == "eu-west-1"


def test_prompt_provider_treats_eof_as_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_input(_prompt: str) -> str:
        raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)
    assert PromptInputProvider().ask("Project") == ""


def test_prompt_provider_appends_colon(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[str] = []

    def fake_input(prompt: str) -> str:
        seen.append(prompt)
        return "demo"

    monkeypatch.setattr("builtins.input", fake_input)
    assert PromptInputProvider().ask("Project") == "demo"
    assert seen == ["Project: "]
