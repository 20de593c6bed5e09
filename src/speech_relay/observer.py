"""Observer contract for pipeline notifications, plus console and logging observers."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from rich.console import Console
from rich.markup import escape

from speech_relay.models import CancellationReason

PROMPT_TEXT = "マイクに向かって喋って下さい。"
UNRECOGNIZED_TEXT = "認識できませんでした。"


class Observer(Protocol):
    """Receives state and text updates from a running session."""

    def on_prompt(self) -> None:
        """The session is listening and ready for speech."""

    def on_partial_text(self, text: str) -> None:
        """An interim hypothesis changed."""

    def on_final_text(self, text: str) -> None:
        """A span of speech was conclusively recognized."""

    def on_translated_text(self, text: str) -> None:
        """The latest final text was translated."""

    def on_unrecognized(self) -> None:
        """A final result carried no recognizable speech."""

    def on_recognition_error(self, code: str, details: str) -> None:
        """Recognition was canceled or a final result could not be translated."""

    def on_synthesis_error(
        self,
        reason: CancellationReason,
        code: str | None = None,
        details: str | None = None,
    ) -> None:
        """Speaking the translated text was canceled."""

    def on_session_stopped(self) -> None:
        """The session reached its terminal state."""


def format_synthesis_error(reason: CancellationReason, code: str | None = None, details: str | None = None) -> str:
    lines = [f"CANCELED: Reason={reason.value}"]
    if reason is CancellationReason.ERROR:
        lines.append(f"CANCELED: ErrorCode={code}")
        lines.append(f"CANCELED: ErrorDetails=[{details}]")
        lines.append("CANCELED: Did you update the subscription info?")
    return "\n".join(lines)


class LoggingObserver:
    """Writes every notification to a logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("speech_relay.observer")

    def on_prompt(self) -> None:
        self._logger.info("session_prompt")

    def on_partial_text(self, text: str) -> None:
        self._logger.debug("partial_text", extra={"text": text})

    def on_final_text(self, text: str) -> None:
        self._logger.info("final_text", extra={"text": text})

    def on_translated_text(self, text: str) -> None:
        self._logger.info("translated_text", extra={"text": text})

    def on_unrecognized(self) -> None:
        self._logger.info("speech_unrecognized")

    def on_recognition_error(self, code: str, details: str) -> None:
        self._logger.warning("recognition_error", extra={"error_code": code, "error_details": details})

    def on_synthesis_error(
        self,
        reason: CancellationReason,
        code: str | None = None,
        details: str | None = None,
    ) -> None:
        self._logger.warning(
            "synthesis_error",
            extra={"reason": reason.value, "error_code": code, "error_details": details},
        )

    def on_session_stopped(self) -> None:
        self._logger.info("session_stopped")


class ConsoleObserver:
    """Renders session progress on a terminal.

    When ``max_consecutive_errors`` is set, that many recognition errors in a row
    (with no recognized speech in between) trigger the bound shutdown callback.
    """

    def __init__(self, console: Console | None = None, *, max_consecutive_errors: int | None = None) -> None:
        self._console = console or Console()
        self._max_consecutive_errors = max_consecutive_errors
        self._consecutive_errors = 0
        self._shutdown: Callable[[str], object] | None = None

    @property
    def consecutive_errors(self) -> int:
        return self._consecutive_errors

    def bind_shutdown(self, shutdown: Callable[[str], object]) -> None:
        self._shutdown = shutdown

    def on_prompt(self) -> None:
        self._console.print(f"[bold cyan]{PROMPT_TEXT}[/]")

    def on_partial_text(self, text: str) -> None:
        self._console.print(f"[dim]… {escape(text)}[/]", highlight=False)

    def on_final_text(self, text: str) -> None:
        self._consecutive_errors = 0
        self._console.print(f"[bold]heard:[/] {escape(text)}", highlight=False)

    def on_translated_text(self, text: str) -> None:
        self._console.print(f"[bold green]translated:[/] {escape(text)}", highlight=False)

    def on_unrecognized(self) -> None:
        self._console.print(f"[yellow]{UNRECOGNIZED_TEXT}[/]")

    def on_recognition_error(self, code: str, details: str) -> None:
        self._console.print(f"[red]ErrorCode={escape(code)}; ErrorDetails={escape(details)};[/]", highlight=False)
        self._consecutive_errors += 1
        if (
            self._max_consecutive_errors is not None
            and self._consecutive_errors >= self._max_consecutive_errors
            and self._shutdown is not None
        ):
            self._console.print("[red]Too many consecutive errors, stopping session.[/]")
            self._shutdown("too_many_errors")

    def on_synthesis_error(
        self,
        reason: CancellationReason,
        code: str | None = None,
        details: str | None = None,
    ) -> None:
        self._console.print(f"[red]{escape(format_synthesis_error(reason, code, details))}[/]", highlight=False)

    def on_session_stopped(self) -> None:
        self._console.print("[bold]Session stopped.[/]")
