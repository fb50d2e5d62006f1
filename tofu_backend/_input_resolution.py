"""Shared helpers for resolving CLI, environment and interactive inputs."""

from __future__ import annotations

import os
from collections import abc as cabc
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True, slots=True)
class InputResolution:
    """Configuration for resolving an input from multiple sources."""

    env_key: str
    default: str | Path | None = None
    as_path: bool = False
    prompt: str | None = None


class InputProvider(Protocol):
    """Source of answers for values the CLI and environment did not supply."""

    def ask(self, prompt: str) -> str:
        """Return the answer to ``prompt`` (empty string when none)."""
        ...


class PromptInputProvider:
    """Ask the operator on the terminal."""

    def ask(self, prompt: str) -> str:
        try:
            return input(f"{prompt}: ")
        except EOFError:
            return ""


@dataclass(slots=True)
class ScriptedInputProvider:
    """Answer prompts from a fixed mapping, recording what was asked.

    Prompts without a scripted answer receive an empty string, matching an
    operator who just presses enter.

    Examples
    --------
    >>> provider = ScriptedInputProvider({"Project name": "demo"})
    >>> provider.ask("Project name")
    'demo'
    >>> provider.ask("Environment name")
    ''
    >>> provider.asked
    ['Project name', 'Environment name']
    """

    answers: cabc.Mapping[str, str]
    asked: list[str] = field(default_factory=list)

    def ask(self, prompt: str) -> str:
        self.asked.append(prompt)
        return self.answers.get(prompt, "")


def resolve_input(
    param_value: str | Path | None,
    resolution: InputResolution,
    env: cabc.Mapping[str, str] | None = None,
    provider: InputProvider | None = None,
) -> str | Path | None:
    """Resolve input from parameter, environment, prompt, or default.

    An empty environment variable counts as unset. The prompt is only
    consulted when ``resolution.prompt`` is set and a provider is available;
    a blank answer falls through to the default.
    """

    if param_value is not None:
        return param_value

    env_value = (env if env is not None else os.environ).get(resolution.env_key)
    if env_value:
        return Path(env_value) if resolution.as_path else env_value

    if resolution.prompt is not None and provider is not None:
        answer = provider.ask(resolution.prompt).strip()
        if answer:
            return Path(answer) if resolution.as_path else answer

    return resolution.default
