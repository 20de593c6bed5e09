"""Session pipeline: recognition events -> translation -> synthesis, with graceful shutdown."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from speech_relay.config import SessionConfig
from speech_relay.models import (
    FinalResult,
    PartialResult,
    RecognitionCanceled,
    RecognitionEvent,
    SessionStarted,
    SessionState,
    SessionStopped,
    SynthesisCanceled,
)
from speech_relay.observer import Observer
from speech_relay.synthesis import SynthesisClient
from speech_relay.termination import TerminationSignal
from speech_relay.translation import TranslationClient, TranslationError, TransportError
from speech_relay.voice.interfaces import RecognitionStream, SpeechEngine, Translator

StreamFactory = Callable[[SessionConfig], RecognitionStream]
EngineFactory = Callable[[SessionConfig], SpeechEngine]
TranslatorFactory = Callable[[SessionConfig], Translator]

_WAKE = object()


class SessionPipeline:
    """Owns one recognition stream and drives the hear -> translate -> speak loop.

    Events are queued in arrival order and handled one at a time by a single
    consumer task, so the translate/speak/termination-check sequence of one final
    result always completes before the next event is looked at.
    """

    def __init__(
        self,
        config: SessionConfig,
        observer: Observer,
        *,
        stream_factory: StreamFactory,
        engine_factory: EngineFactory,
        translator_factory: TranslatorFactory = TranslationClient.from_config,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._observer = observer
        self._stream_factory = stream_factory
        self._engine_factory = engine_factory
        self._translator_factory = translator_factory
        self._logger = logger or logging.getLogger("speech_relay.pipeline")

        self._state = SessionState.IDLE
        self._termination = TerminationSignal()
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stream: RecognitionStream | None = None
        self._translator: Translator | None = None
        self._synthesizer: SynthesisClient | None = None
        self._consumer_task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def termination(self) -> TerminationSignal:
        return self._termination

    async def run(self) -> None:
        """Start the session and wait until it has fully stopped."""
        await self.start()
        try:
            await self.wait_closed()
        except asyncio.CancelledError:
            self.request_shutdown("cancelled")
            raise

    async def start(self) -> None:
        """Build collaborators, start recognition and begin consuming events."""
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"Session cannot be started from state {self._state.value!r}")

        self._set_state(SessionState.STARTING)
        self._loop = asyncio.get_running_loop()
        self._termination.bind(self._loop)

        try:
            self._translator = self._translator_factory(self._config)
            self._synthesizer = SynthesisClient(
                self._engine_factory(self._config),
                voice_name=self._config.voice_name,
                timeout_seconds=self._config.synthesis_timeout_seconds,
            )
            self._stream = self._stream_factory(self._config)
            self._stream.subscribe(self._on_event)
            await self._stream.start()
        except BaseException:
            self._logger.exception("session_start_failed")
            self._finish()
            raise

        self._set_state(SessionState.LISTENING)
        self._observer.on_prompt()
        self._consumer_task = asyncio.create_task(self._consume(), name="session-pipeline-consumer")

    async def wait_closed(self) -> None:
        """Wait until the session reaches ``Stopped``."""
        await self._stopped.wait()
        if self._consumer_task is not None:
            await self._consumer_task

    def request_shutdown(self, reason: str = "external") -> bool:
        """Ask the session to stop. Thread-safe; only the first request has an effect."""
        won = self._termination.set(reason)
        if won:
            self._logger.info("shutdown_requested", extra={"reason": reason})
            self._submit(_WAKE)
        return won

    def _on_event(self, event: RecognitionEvent) -> None:
        self._submit(event)

    def _submit(self, item: object) -> None:
        loop = self._loop
        if loop is None or loop.is_closed() or self._state is SessionState.STOPPED:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._queue.put_nowait(item)
        else:
            loop.call_soon_threadsafe(self._queue.put_nowait, item)

    async def _consume(self) -> None:
        try:
            while not self._termination.is_set:
                item = await self._queue.get()
                try:
                    if item is not _WAKE:
                        await self._dispatch(item)
                finally:
                    self._queue.task_done()
        except asyncio.CancelledError:
            self._termination.set("cancelled")
            raise
        except Exception:
            self._logger.exception("session_consumer_failed")
            self._termination.set("internal_error")
            raise
        finally:
            try:
                if self._state is SessionState.LISTENING:
                    await asyncio.shield(self._shutdown())
            finally:
                self._finish()

    async def _dispatch(self, event: object) -> None:
        try:
            if isinstance(event, SessionStarted):
                self._logger.info("recognition_session_started")
            elif isinstance(event, PartialResult):
                self._observer.on_partial_text(event.text)
            elif isinstance(event, FinalResult):
                await self._handle_final(event)
            elif isinstance(event, RecognitionCanceled):
                self._logger.warning(
                    "recognition_canceled",
                    extra={"error_code": event.error_code, "error_details": event.error_details},
                )
                self._observer.on_recognition_error(event.error_code, event.error_details)
            elif isinstance(event, SessionStopped):
                self._logger.info("recognition_session_stopped")
                self._termination.set("stream_stopped")
            else:
                self._logger.warning("unknown_event_ignored", extra={"event": repr(event)})
        except Exception as exc:  # noqa: BLE001 - one bad event must not end the session.
            self._logger.exception("event_handler_failed", extra={"event": type(event).__name__})
            try:
                self._observer.on_recognition_error("InternalError", f"{type(exc).__name__}: {exc}")
            except Exception:  # noqa: BLE001 - a failing observer must not end the session.
                self._logger.exception("observer_failed", extra={"callback": "on_recognition_error"})

    async def _handle_final(self, event: FinalResult) -> None:
        if not event.recognized:
            self._logger.info("speech_unrecognized", extra={"reason": event.reason.value})
            self._observer.on_unrecognized()
            return

        text = event.text
        self._observer.on_final_text(text)

        try:
            translated = await self._translate(text)
        except TranslationError as exc:
            self._logger.warning("translation_failed", extra={"error_code": exc.code, "error": str(exc)})
            self._observer.on_recognition_error(exc.code, str(exc))
        else:
            self._observer.on_translated_text(translated)
            if self._synthesizer is None:
                raise RuntimeError("Synthesis client is not available")
            outcome = await self._synthesizer.speak(translated)
            if isinstance(outcome, SynthesisCanceled):
                self._observer.on_synthesis_error(outcome.reason, outcome.error_code, outcome.error_details)

        phrase = self._config.termination_phrase
        if phrase and phrase in text:
            if self._termination.set("termination_phrase"):
                self._logger.info("termination_phrase_heard", extra={"phrase": phrase})

    async def _translate(self, text: str) -> str:
        if self._translator is None:
            raise RuntimeError("Translation client is not available")
        target = self._config.target_language
        timeout = self._config.translate_timeout_seconds
        attempts = self._config.translate_max_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                translated = await asyncio.wait_for(
                    asyncio.to_thread(self._translator.translate, text, target),
                    timeout=timeout,
                )
                self._logger.info("translation_succeeded", extra={"attempt": attempt, "target_language": target})
                return translated
            except asyncio.TimeoutError as exc:
                error: TranslationError = TransportError(
                    f"Translation timed out after {timeout}s (attempt {attempt}/{attempts})"
                )
                error.__cause__ = exc
            except TransportError as exc:
                error = exc

            self._logger.warning(
                "translation_transport_error",
                extra={"attempt": attempt, "max_attempts": attempts, "error": str(error)},
            )
            if attempt >= attempts:
                raise error
            await asyncio.sleep(self._config.translate_retry_delay_seconds)

        raise TransportError("Translation was not attempted")

    async def _shutdown(self) -> None:
        self._set_state(SessionState.STOPPING)
        self._logger.info("session_stopping", extra={"reason": self._termination.reason})
        if self._stream is not None:
            await self._stream.stop()

        discarded = 0
        while not self._queue.empty():
            item = self._queue.get_nowait()
            self._queue.task_done()
            if item is not _WAKE:
                discarded += 1
        if discarded:
            self._logger.info("queued_events_discarded", extra={"count": discarded})

    def _finish(self) -> None:
        if self._state is SessionState.STOPPED:
            return
        try:
            if self._synthesizer is not None:
                self._synthesizer.close()
            if self._translator is not None:
                self._translator.close()
        finally:
            self._set_state(SessionState.STOPPED)
            self._stopped.set()
            self._observer.on_session_stopped()

    def _set_state(self, state: SessionState) -> None:
        previous, self._state = self._state, state
        self._logger.info("session_state_changed", extra={"from_state": previous.value, "to_state": state.value})
