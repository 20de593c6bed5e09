"""Azure Speech SDK adapters for continuous recognition and synthesis.

The SDK is imported lazily so the rest of the package, and the tests, work
without ``azure-cognitiveservices-speech`` installed.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Any

from speech_relay.config import SessionConfig
from speech_relay.models import (
    CancellationReason,
    FinalResult,
    PartialResult,
    RecognitionCanceled,
    RecognitionEvent,
    RecognitionReason,
    SessionStarted,
    SessionStopped,
    SynthesisCanceled,
    SynthesisCompleted,
    SynthesisOutcome,
)
from speech_relay.voice.interfaces import EventHandler, RecognitionStream, SpeechEngine


class AzureSpeechUnavailableError(RuntimeError):
    """Raised when the Azure Speech SDK is not installed."""


def load_speech_sdk() -> Any:
    try:
        return importlib.import_module("azure.cognitiveservices.speech")
    except ImportError as exc:
        raise AzureSpeechUnavailableError(
            "Azure Speech SDK unavailable. Install extras with: pip install 'speech-relay[azure]'"
        ) from exc


def _enum_name(value: Any) -> str:
    return getattr(value, "name", None) or str(value)


class AzureRecognitionStream(RecognitionStream):
    """Wraps ``SpeechRecognizer`` continuous recognition.

    SDK callbacks fire on SDK-owned threads; subscribers must marshal events
    themselves.
    """

    def __init__(self, *, api_key: str, region: str, language: str, logger: logging.Logger | None = None) -> None:
        self._sdk = load_speech_sdk()
        speech_config = self._sdk.SpeechConfig(subscription=api_key, region=region)
        speech_config.speech_recognition_language = language
        self._recognizer = self._sdk.SpeechRecognizer(speech_config=speech_config)
        self._logger = logger or logging.getLogger("speech_relay.adapters.azure")
        self._handlers: list[EventHandler] = []
        self._connected = False

    @classmethod
    def from_config(cls, config: SessionConfig) -> AzureRecognitionStream:
        return cls(api_key=config.speech_api_key, region=config.region, language=config.source_language)

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)
        if self._connected:
            return
        self._recognizer.session_started.connect(lambda evt: self._emit(SessionStarted()))
        self._recognizer.recognizing.connect(lambda evt: self._emit(PartialResult(evt.result.text)))
        self._recognizer.recognized.connect(lambda evt: self._emit(self.map_recognized(evt.result)))
        self._recognizer.canceled.connect(lambda evt: self._emit(self.map_canceled(evt)))
        self._recognizer.session_stopped.connect(lambda evt: self._emit(SessionStopped()))
        self._connected = True

    async def start(self) -> None:
        future = self._recognizer.start_continuous_recognition_async()
        await asyncio.to_thread(future.get)
        self._logger.info("azure_recognition_started")

    async def stop(self) -> None:
        future = self._recognizer.stop_continuous_recognition_async()
        await asyncio.to_thread(future.get)
        self._logger.info("azure_recognition_stopped")

    def map_recognized(self, result: Any) -> FinalResult:
        reason = result.reason
        if reason == self._sdk.ResultReason.RecognizedSpeech:
            return FinalResult(result.text, RecognitionReason.RECOGNIZED_SPEECH)
        if reason == self._sdk.ResultReason.NoMatch:
            return FinalResult(result.text or "", RecognitionReason.NO_MATCH)
        return FinalResult(result.text or "", RecognitionReason.OTHER)

    def map_canceled(self, evt: Any) -> RecognitionCanceled:
        details = evt.cancellation_details
        return RecognitionCanceled(_enum_name(details.code), details.error_details or "")

    def _emit(self, event: RecognitionEvent) -> None:
        for handler in self._handlers:
            handler(event)


_CANCELLATION_REASONS = {
    "Error": CancellationReason.ERROR,
    "EndOfStream": CancellationReason.END_OF_STREAM,
    "CancelledByUser": CancellationReason.CANCELLED_BY_USER,
}


class AzureSpeechEngine(SpeechEngine):
    """``SpeechSynthesizer`` speaking through the default speaker with a fixed voice."""

    def __init__(self, *, api_key: str, region: str, voice_name: str) -> None:
        self._sdk = load_speech_sdk()
        speech_config = self._sdk.SpeechConfig(subscription=api_key, region=region)
        speech_config.speech_synthesis_voice_name = voice_name
        audio_config = self._sdk.audio.AudioOutputConfig(use_default_speaker=True)
        self._synthesizer: Any = self._sdk.SpeechSynthesizer(speech_config=speech_config, audio_config=audio_config)

    @classmethod
    def from_config(cls, config: SessionConfig) -> AzureSpeechEngine:
        return cls(api_key=config.speech_api_key, region=config.region, voice_name=config.voice_name)

    def speak(self, text: str) -> SynthesisOutcome:
        if self._synthesizer is None:
            raise RuntimeError("AzureSpeechEngine is closed")
        result = self._synthesizer.speak_text_async(text).get()
        return self.map_result(result)

    def map_result(self, result: Any) -> SynthesisOutcome:
        if result.reason == self._sdk.ResultReason.SynthesizingAudioCompleted:
            return SynthesisCompleted()

        details = result.cancellation_details
        reason = _CANCELLATION_REASONS.get(_enum_name(details.reason), CancellationReason.ERROR)
        if reason is CancellationReason.ERROR:
            return SynthesisCanceled(reason, _enum_name(details.error_code), details.error_details or "")
        return SynthesisCanceled(reason)

    def close(self) -> None:
        self._synthesizer = None
