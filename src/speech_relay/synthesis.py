"""Text-to-speech client that serializes engine calls onto a dedicated worker thread."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor

from speech_relay.models import CancellationReason, SynthesisCanceled, SynthesisCompleted, SynthesisOutcome
from speech_relay.voice.interfaces import SpeechEngine


class SynthesisClient:
    """Submits text to a speech engine and awaits the rendering outcome.

    Engine failures never escape ``speak``; they come back as
    ``SynthesisCanceled(ERROR, ...)`` so the caller can report and keep going.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        *,
        voice_name: str | None = None,
        timeout_seconds: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engine = engine
        self._voice_name = voice_name
        self._timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger("speech_relay.synthesis")
        self._executor: ThreadPoolExecutor | None = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="speech-synthesis"
        )
        self._rendering: Future[SynthesisOutcome] | None = None

    @property
    def voice_name(self) -> str | None:
        return self._voice_name

    @property
    def closed(self) -> bool:
        return self._executor is None

    async def speak(self, text: str) -> SynthesisOutcome:
        """Render ``text`` and wait for the engine to finish."""
        if self._executor is None:
            raise RuntimeError("SynthesisClient is closed")

        normalized = " ".join(text.split())
        if not normalized:
            self._logger.debug("synthesis_skipped_empty_text")
            return SynthesisCompleted()

        self._logger.info("synthesis_started", extra={"voice": self._voice_name, "chars": len(normalized)})
        self._rendering = self._executor.submit(self._engine.speak, normalized)
        try:
            outcome = await asyncio.wait_for(
                asyncio.wrap_future(self._rendering),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._logger.warning("synthesis_timeout", extra={"timeout_seconds": self._timeout_seconds})
            return SynthesisCanceled(
                CancellationReason.ERROR,
                "Timeout",
                f"Synthesis did not finish within {self._timeout_seconds}s",
            )
        except Exception as exc:  # noqa: BLE001 - engine failures are reported as cancellations.
            self._logger.exception("synthesis_failed", extra={"voice": self._voice_name})
            return SynthesisCanceled(CancellationReason.ERROR, type(exc).__name__, str(exc))

        if isinstance(outcome, SynthesisCanceled):
            self._logger.warning(
                "synthesis_canceled",
                extra={"reason": outcome.reason.value, "error_code": outcome.error_code},
            )
        else:
            self._logger.info("synthesis_completed")
        return outcome

    def close(self) -> None:
        """Release the engine on its worker thread and stop the worker. Safe to call more than once."""
        executor, self._executor = self._executor, None
        if executor is None:
            return
        rendering = self._rendering is not None and not self._rendering.done()
        closing = executor.submit(self._engine.close)
        executor.shutdown(wait=False)
        try:
            if rendering:
                # A timed-out render still holds the worker; the engine closes once it returns.
                self._logger.warning("synthesis_close_deferred")
                closing.add_done_callback(self._report_close_failure)
            else:
                closing.result()
        finally:
            self._logger.info("synthesis_client_closed")

    def _report_close_failure(self, future: Future[None]) -> None:
        error = future.exception()
        if error is not None:
            self._logger.error("synthesis_engine_close_failed", exc_info=error)

    async def __aenter__(self) -> SynthesisClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
