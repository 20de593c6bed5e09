from __future__ import annotations

import asyncio
import enum
import sys
import types
from types import SimpleNamespace

import pytest

from speech_relay.config import SessionConfig
from speech_relay.models import (
    CancellationReason,
    FinalResult,
    PartialResult,
    RecognitionCanceled,
    RecognitionReason,
    SessionStarted,
    SessionStopped,
    SynthesisCanceled,
    SynthesisCompleted,
)


class ResultReason(enum.Enum):
    RecognizedSpeech = 3
    NoMatch = 0
    SynthesizingAudioCompleted = 10
    Canceled = 1


class SdkCancellationReason(enum.Enum):
    Error = 1
    EndOfStream = 2
    CancelledByUser = 3


class CancellationErrorCode(enum.Enum):
    AuthenticationFailure = 1
    ConnectionFailure = 4


class _Signal:
    def __init__(self) -> None:
        self.callbacks = []

    def connect(self, callback) -> None:
        self.callbacks.append(callback)

    def fire(self, evt) -> None:
        for callback in self.callbacks:
            callback(evt)


class _Future:
    def __init__(self, value=None) -> None:
        self.value = value

    def get(self):
        return self.value


class SpeechConfig:
    def __init__(self, subscription: str, region: str) -> None:
        self.subscription = subscription
        self.region = region
        self.speech_recognition_language = None
        self.speech_synthesis_voice_name = None


class SpeechRecognizer:
    def __init__(self, speech_config: SpeechConfig) -> None:
        self.speech_config = speech_config
        self.session_started = _Signal()
        self.recognizing = _Signal()
        self.recognized = _Signal()
        self.canceled = _Signal()
        self.session_stopped = _Signal()
        self.calls: list[str] = []

    def start_continuous_recognition_async(self) -> _Future:
        self.calls.append("start")
        return _Future()

    def stop_continuous_recognition_async(self) -> _Future:
        self.calls.append("stop")
        return _Future()


class SpeechSynthesizer:
    next_result = None

    def __init__(self, speech_config: SpeechConfig, audio_config) -> None:
        self.speech_config = speech_config
        self.audio_config = audio_config
        self.spoken: list[str] = []

    def speak_text_async(self, text: str) -> _Future:
        self.spoken.append(text)
        return _Future(SpeechSynthesizer.next_result)


@pytest.fixture()
def fake_sdk(monkeypatch) -> types.ModuleType:
    sdk = types.ModuleType("azure.cognitiveservices.speech")
    sdk.ResultReason = ResultReason
    sdk.CancellationReason = SdkCancellationReason
    sdk.SpeechConfig = SpeechConfig
    sdk.SpeechRecognizer = SpeechRecognizer
    sdk.SpeechSynthesizer = SpeechSynthesizer
    sdk.audio = SimpleNamespace(AudioOutputConfig=lambda use_default_speaker: {"speaker": use_default_speaker})
    monkeypatch.setitem(sys.modules, "azure.cognitiveservices.speech", sdk)
    return sdk


def test_recognition_stream_maps_sdk_events(fake_sdk) -> None:
    from speech_relay.adapters.azure_speech import AzureRecognitionStream

    config = SessionConfig(speech_api_key="key", region="japaneast", source_language="ja-JP")
    stream = AzureRecognitionStream.from_config(config)
    events: list = []
    stream.subscribe(events.append)
    recognizer = stream._recognizer

    recognizer.session_started.fire(SimpleNamespace())
    recognizer.recognizing.fire(SimpleNamespace(result=SimpleNamespace(text="こん")))
    recognizer.recognized.fire(
        SimpleNamespace(result=SimpleNamespace(reason=ResultReason.RecognizedSpeech, text="こんにちは"))
    )
    recognizer.recognized.fire(SimpleNamespace(result=SimpleNamespace(reason=ResultReason.NoMatch, text="")))
    recognizer.canceled.fire(
        SimpleNamespace(
            cancellation_details=SimpleNamespace(
                reason=SdkCancellationReason.Error,
                code=CancellationErrorCode.ConnectionFailure,
                error_details="websocket closed",
            )
        )
    )
    recognizer.session_stopped.fire(SimpleNamespace())

    assert recognizer.speech_config.speech_recognition_language == "ja-JP"
    assert recognizer.speech_config.region == "japaneast"
    assert events == [
        SessionStarted(),
        PartialResult("こん"),
        FinalResult("こんにちは", RecognitionReason.RECOGNIZED_SPEECH),
        FinalResult("", RecognitionReason.NO_MATCH),
        RecognitionCanceled("ConnectionFailure", "websocket closed"),
        SessionStopped(),
    ]


def test_recognition_stream_start_and_stop_wait_for_sdk(fake_sdk) -> None:
    from speech_relay.adapters.azure_speech import AzureRecognitionStream

    stream = AzureRecognitionStream(api_key="key", region="japaneast", language="ja-JP")

    async def _run() -> None:
        await stream.start()
        await stream.stop()

    asyncio.run(_run())

    assert stream._recognizer.calls == ["start", "stop"]


def test_speech_engine_maps_synthesis_results(fake_sdk) -> None:
    from speech_relay.adapters.azure_speech import AzureSpeechEngine

    engine = AzureSpeechEngine.from_config(SessionConfig(speech_api_key="key", voice_name="en-US-GuyNeural"))
    assert engine._synthesizer.speech_config.speech_synthesis_voice_name == "en-US-GuyNeural"

    SpeechSynthesizer.next_result = SimpleNamespace(reason=ResultReason.SynthesizingAudioCompleted)
    assert engine.speak("Hello") == SynthesisCompleted()

    SpeechSynthesizer.next_result = SimpleNamespace(
        reason=ResultReason.Canceled,
        cancellation_details=SimpleNamespace(
            reason=SdkCancellationReason.Error,
            error_code=CancellationErrorCode.AuthenticationFailure,
            error_details="invalid subscription key",
        ),
    )
    assert engine.speak("Hello") == SynthesisCanceled(
        CancellationReason.ERROR, "AuthenticationFailure", "invalid subscription key"
    )

    SpeechSynthesizer.next_result = SimpleNamespace(
        reason=ResultReason.Canceled,
        cancellation_details=SimpleNamespace(
            reason=SdkCancellationReason.CancelledByUser, error_code=None, error_details=""
        ),
    )
    assert engine.speak("Hello") == SynthesisCanceled(CancellationReason.CANCELLED_BY_USER)

    engine.close()
    with pytest.raises(RuntimeError, match="closed"):
        engine.speak("Hello")


def test_missing_sdk_raises_actionable_error(monkeypatch) -> None:
    monkeypatch.setitem(sys.modules, "azure.cognitiveservices.speech", None)
    from speech_relay.adapters.azure_speech import AzureSpeechUnavailableError, load_speech_sdk

    with pytest.raises(AzureSpeechUnavailableError, match=r"speech-relay\[azure\]"):
        load_speech_sdk()
