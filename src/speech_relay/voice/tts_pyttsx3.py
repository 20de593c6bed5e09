"""Local text-to-speech engine powered by ``pyttsx3``."""

from __future__ import annotations

import importlib
from typing import Any

from speech_relay.models import CancellationReason, SynthesisCanceled, SynthesisCompleted, SynthesisOutcome
from speech_relay.voice.interfaces import SpeechEngine


class Pyttsx3SpeechEngine(SpeechEngine):
    """Speaker playback using a local pyttsx3 engine instance.

    The pyttsx3 driver is created lazily on the first ``speak`` so it lives on the
    thread that drives it.
    """

    def __init__(self, *, voice_id: str | None = None, rate: int | None = None, volume: float | None = None) -> None:
        try:
            self._pyttsx3: Any = importlib.import_module("pyttsx3")
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Audio output backend unavailable. Install extras with: pip install 'speech-relay[voice]'"
            ) from exc
        self._voice_id = voice_id
        self._rate = rate
        self._volume = volume
        self._engine: Any = None

    def speak(self, text: str) -> SynthesisOutcome:
        text = text.strip()
        if not text:
            return SynthesisCompleted()
        engine = self._ensure_engine()
        try:
            engine.say(text)
            engine.runAndWait()
        except RuntimeError as exc:
            return SynthesisCanceled(CancellationReason.ERROR, "EngineError", str(exc))
        return SynthesisCompleted()

    def close(self) -> None:
        engine, self._engine = self._engine, None
        if engine is not None:
            engine.stop()

    def _ensure_engine(self) -> Any:
        if self._engine is None:
            engine = self._pyttsx3.init()
            if self._voice_id:
                engine.setProperty("voice", self._voice_id)
            if self._rate is not None:
                engine.setProperty("rate", self._rate)
            if self._volume is not None:
                engine.setProperty("volume", max(0.0, min(1.0, self._volume)))
            self._engine = engine
        return self._engine
