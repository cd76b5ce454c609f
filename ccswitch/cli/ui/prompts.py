"""Input sources for the provider flows.

``PromptToolkitInput`` drives real terminal prompts. ``ScriptedInput`` replays
prepared answers, for tests and non-interactive harnesses. Both raise
``Cancelled`` when the user (or the script) aborts.
"""

from __future__ import annotations

import html
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from prompt_toolkit import print_formatted_text
from prompt_toolkit import prompt as pt_prompt
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import choice
from prompt_toolkit.styles import Style

from ccswitch.core.errors import Cancelled


def prompt_style() -> Style:
    """Neutral palette shared by all ccswitch prompts."""
    return Style.from_dict(
        {
            "frame.border": "#7f8fa6",
            "selected-option": "bold",
            "option": "#d7e3f4",
            "question": "#e8ecf5",
            "placeholder": "#707070",
            "hint": "#707070 italic",
        }
    )


def _esc_cancels() -> KeyBindings:
    key_bindings = KeyBindings()

    @key_bindings.add("escape", eager=True)
    def _esc_handler(event: Any) -> None:  # noqa: ANN001 (called by key_binding)
        event.app.exit(exception=KeyboardInterrupt, style="class:aborting")

    return key_bindings


class PromptToolkitInput:
    """Terminal prompts; Esc or Ctrl-C cancels the current flow."""

    def __init__(self, style: Optional[Style] = None) -> None:
        self._style = style or prompt_style()

    def text(
        self,
        label: str,
        *,
        current: Optional[str] = None,
        placeholder: str = "",
        multiline: bool = False,
    ) -> str:
        placeholder_html = None
        if placeholder and not current:
            placeholder_html = HTML(f"<placeholder>{html.escape(placeholder)}</placeholder>")
        try:
            if multiline:
                return pt_prompt(
                    f"{label} (Alt+Enter to finish):\n",
                    default=current or "",
                    placeholder=placeholder_html,
                    multiline=True,
                    style=self._style,
                )
            return pt_prompt(
                f"{label}: ",
                default=current or "",
                placeholder=placeholder_html,
                key_bindings=_esc_cancels(),
                style=self._style,
            )
        except (KeyboardInterrupt, EOFError) as exc:
            raise Cancelled() from exc

    def select(self, label: str, options: Sequence[Tuple[str, str]], *, default: str) -> str:
        try:
            return choice(
                message=HTML(f"<question>{html.escape(label)}</question>"),
                options=list(options),
                default=default,
                style=self._style,
                key_bindings=_esc_cancels(),
            )
        except (KeyboardInterrupt, EOFError) as exc:
            raise Cancelled() from exc

    def confirm(self, label: str, *, default: bool) -> bool:
        answer = self.select(
            label,
            [("yes", "Yes"), ("no", "No")],
            default="yes" if default else "no",
        )
        return answer == "yes"

    def show(self, label: str, body: str) -> None:
        print_formatted_text(
            HTML(f"<question>{html.escape(label)}:</question>\n<hint>{html.escape(body)}</hint>"),
            style=self._style,
        )


class _Marker:
    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Accept whatever is pre-filled (pressing Enter on an edit prompt).
KEEP = _Marker("KEEP")
# Abort the flow at this prompt (pressing Esc).
CANCEL = _Marker("CANCEL")

Answer = Union[str, bool, _Marker]


class ScriptedInput:
    """Replays ``answers`` in order and records every prompt label."""

    def __init__(self, answers: Iterable[Answer]) -> None:
        self._answers: List[Answer] = list(answers)
        self.prompts: List[str] = []
        self.shown: List[Tuple[str, str]] = []

    def _next(self, label: str) -> Answer:
        self.prompts.append(label)
        if not self._answers:
            raise AssertionError(f"No scripted answer left for prompt '{label}'")
        answer = self._answers.pop(0)
        if answer is CANCEL:
            raise Cancelled()
        return answer

    @property
    def remaining(self) -> int:
        return len(self._answers)

    def text(
        self,
        label: str,
        *,
        current: Optional[str] = None,
        placeholder: str = "",
        multiline: bool = False,
    ) -> str:
        answer = self._next(label)
        if answer is KEEP:
            return current or ""
        if not isinstance(answer, str):
            raise AssertionError(f"Prompt '{label}' expects text, got {answer!r}")
        return answer

    def select(self, label: str, options: Sequence[Tuple[str, str]], *, default: str) -> str:
        answer = self._next(label)
        if answer is KEEP:
            return default
        values = [value for value, _ in options]
        if answer not in values:
            raise AssertionError(f"Prompt '{label}' expects one of {values}, got {answer!r}")
        return str(answer)

    def confirm(self, label: str, *, default: bool) -> bool:
        answer = self._next(label)
        if answer is KEEP:
            return default
        if not isinstance(answer, bool):
            raise AssertionError(f"Prompt '{label}' expects a bool, got {answer!r}")
        return answer

    def show(self, label: str, body: str) -> None:
        self.shown.append((label, body))


__all__ = ["CANCEL", "KEEP", "PromptToolkitInput", "ScriptedInput", "prompt_style"]
