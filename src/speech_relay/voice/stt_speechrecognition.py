"""Microphone recognition stream powered by ``speech_recognition``."""

from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Any, Callable

from speech_relay.models import (
    FinalResult,
    RecognitionCanceled,
    RecognitionEvent,
    RecognitionReason,
    SessionStarted,
    SessionStopped,
)
from speech_relay.voice.interfaces import EventHandler, RecognitionStream


class MicrophoneRecognitionStream(RecognitionStream):
    """Continuous recognition from the default microphone using Google web speech.

    ``speech_recognition`` has no interim hypotheses, so this stream only emits
    final results. Each captured phrase is recognized on the library's background
    listener thread.
    """

    def __init__(
        self,
        *,
        language: str = "ja-JP",
        phrase_time_limit: float | None = 10.0,
        sample_rate: int = 16_000,
        chunk_size: int = 1024,
        adjust_noise_seconds: float = 0.5,
        logger: logging.Logger | None = None,
    ) -> None:
        try:
            sr = importlib.import_module("speech_recognition")
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Microphone backend unavailable. Install extras with: pip install 'speech-relay[voice]'"
            ) from exc
        self._sr: Any = sr
        self._recognizer = sr.Recognizer()
        self._microphone = sr.Microphone(sample_rate=sample_rate, chunk_size=chunk_size)
        self._language = language
        self._phrase_time_limit = phrase_time_limit
        self._adjust_noise_seconds = max(0.0, adjust_noise_seconds)
        self._logger = logger or logging.getLogger("speech_relay.voice.stt")
        self._handlers: list[EventHandler] = []
        self._stop_listening: Callable[..., None] | None = None

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    async def start(self) -> None:
        if self._stop_listening is not None:
            return
        await asyncio.to_thread(self._start_blocking)
        self._emit(SessionStarted())

    async def stop(self) -> None:
        stop_listening, self._stop_listening = self._stop_listening, None
        if stop_listening is None:
            return
        await asyncio.to_thread(stop_listening, wait_for_stop=True)
        self._emit(SessionStopped())

    def _start_blocking(self) -> None:
        if self._adjust_noise_seconds > 0:
            with self._microphone as source:
                self._recognizer.adjust_for_ambient_noise(source, duration=self._adjust_noise_seconds)
        self._stop_listening = self._recognizer.listen_in_background(
            self._microphone,
            self._on_audio,
            phrase_time_limit=self._phrase_time_limit,
        )
        self._logger.info("microphone_listening", extra={"language": self._language})

    def _on_audio(self, recognizer: Any, audio: Any) -> None:
        self._emit(self.recognize(audio, recognizer))

    def recognize(self, audio: Any, recognizer: Any | None = None) -> RecognitionEvent:
        """Map one captured phrase onto a recognition event."""
        recognizer = recognizer or self._recognizer
        try:
            text = recognizer.recognize_google(audio, language=self._language)
        except self._sr.UnknownValueError:
            return FinalResult("", RecognitionReason.NO_MATCH)
        except self._sr.RequestError as exc:
            return RecognitionCanceled("RequestError", str(exc))

        text = (text or "").strip()
        if not text:
            return FinalResult("", RecognitionReason.NO_MATCH)
        return FinalResult(text, RecognitionReason.RECOGNIZED_SPEECH)

    def _emit(self, event: RecognitionEvent) -> None:
        for handler in self._handlers:
            handler(event)
