"""CLI entrypoint for Speech Relay."""

from __future__ import annotations

import asyncio
import logging
import signal
from types import FrameType
from typing import Any, Callable

import typer
from rich import print

from speech_relay.config import SessionConfig, settings
from speech_relay.models import SynthesisCanceled, SynthesisOutcome
from speech_relay.observer import ConsoleObserver, format_synthesis_error
from speech_relay.pipeline import EngineFactory, SessionPipeline, StreamFactory
from speech_relay.synthesis import SynthesisClient
from speech_relay.telemetry.logging import configure_logging
from speech_relay.translation import TranslationClient, TranslationError

app = typer.Typer(help="Live speech translation relay: hear, transcribe, translate, speak.")
logger = logging.getLogger("speech_relay.main")


def _build_factories(backend: str) -> tuple[StreamFactory, EngineFactory]:
    """Resolve recognition/synthesis factories; raises ``RuntimeError`` for missing extras."""
    backend = backend.lower()
    if backend == "azure":
        from speech_relay.adapters.azure_speech import AzureRecognitionStream, AzureSpeechEngine, load_speech_sdk

        load_speech_sdk()
        return AzureRecognitionStream.from_config, AzureSpeechEngine.from_config
    if backend == "local":
        from speech_relay.voice.stt_speechrecognition import MicrophoneRecognitionStream
        from speech_relay.voice.tts_pyttsx3 import Pyttsx3SpeechEngine

        def stream_factory(config: SessionConfig) -> MicrophoneRecognitionStream:
            return MicrophoneRecognitionStream(language=config.source_language)

        def engine_factory(config: SessionConfig) -> Pyttsx3SpeechEngine:
            return Pyttsx3SpeechEngine(voice_id=config.local_voice_id)

        return stream_factory, engine_factory
    raise typer.BadParameter(f"Unknown backend {backend!r}. Valid options: azure, local")


def _forward_signal(
    loop: asyncio.AbstractEventLoop, pipeline: SessionPipeline, reason: str
) -> Callable[[int, FrameType | None], None]:
    def _handler(signum: int, frame: FrameType | None) -> None:
        loop.call_soon_threadsafe(pipeline.request_shutdown, reason)

    return _handler


def _install_shutdown_handlers(
    pipeline: SessionPipeline, loop: asyncio.AbstractEventLoop | None = None
) -> Callable[[], None]:
    """Route SIGINT/SIGTERM to ``request_shutdown``; returns a callable restoring prior handlers."""
    loop = loop or asyncio.get_running_loop()
    previous: dict[int, Any] = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        reason = f"signal:{signal.Signals(signum).name}"
        try:
            loop.add_signal_handler(signum, pipeline.request_shutdown, reason)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler.
            previous[signum] = signal.signal(signum, _forward_signal(loop, pipeline, reason))
        except RuntimeError as exc:
            logger.debug("signal_handlers_unavailable", extra={"error": str(exc)})
            break

    def _restore() -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    return _restore


def _voice_overrides(backend: str, voice: str | None) -> dict[str, str | None]:
    if backend.lower() == "local":
        return {"local_voice_id": voice}
    return {"voice_name": voice}


@app.command("show-config")
def show_config() -> None:
    """Show the effective runtime configuration (keys redacted)."""
    payload = settings.model_dump()
    for key in ("speech_api_key", "translator_api_key"):
        payload[key] = "***" if payload[key] else ""
    print(payload)


@app.command()
def translate(
    text: str,
    to: str = typer.Option(None, "--to", help="Target language code, e.g. en"),
) -> None:
    """Translate one piece of text and print the result."""
    configure_logging(settings.log_level)
    config = SessionConfig.from_settings(target_language=to)
    client = TranslationClient.from_config(config)
    try:
        translated = client.translate(text, config.target_language)
    except TranslationError as exc:
        print({"error": exc.code, "details": str(exc)})
        raise typer.Exit(code=1)
    finally:
        client.close()
    print({"text": text, "translated": translated, "to": config.target_language})


@app.command()
def speak(
    text: str,
    backend: str = typer.Option(None, help="Speech backend: azure or local"),
    voice: str = typer.Option(
        None, help="Synthesis voice: an Azure voice name, or a pyttsx3 voice id with --backend local"
    ),
) -> None:
    """Speak one piece of text with the configured voice."""
    configure_logging(settings.log_level)
    backend = backend or settings.speech_backend
    config = SessionConfig.from_settings(**_voice_overrides(backend, voice))
    try:
        _, engine_factory = _build_factories(backend)
        engine = engine_factory(config)
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    async def _run() -> SynthesisOutcome:
        async with SynthesisClient(engine, voice_name=config.voice_name) as client:
            return await client.speak(text)

    outcome = asyncio.run(_run())
    if isinstance(outcome, SynthesisCanceled):
        print({"error": format_synthesis_error(outcome.reason, outcome.error_code, outcome.error_details)})
        raise typer.Exit(code=1)
    print({"spoken": text})


@app.command()
def run(
    backend: str = typer.Option(None, help="Speech backend: azure or local"),
    source_language: str = typer.Option(None, help="Recognition language, e.g. ja-JP"),
    target_language: str = typer.Option(None, help="Translation target language, e.g. en"),
    voice: str = typer.Option(
        None, help="Synthesis voice: an Azure voice name, or a pyttsx3 voice id with --backend local"
    ),
    termination_phrase: str = typer.Option(None, help="Spoken phrase that ends the session"),
    max_recognition_errors: int = typer.Option(
        None, help="Stop after this many consecutive recognition errors (default: never)"
    ),
) -> None:
    """Run a live session until the termination phrase is heard or Ctrl+C is pressed."""
    configure_logging(settings.log_level)
    backend = backend or settings.speech_backend
    config = SessionConfig.from_settings(
        source_language=source_language,
        target_language=target_language,
        termination_phrase=termination_phrase,
        **_voice_overrides(backend, voice),
    )
    try:
        stream_factory, engine_factory = _build_factories(backend)
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    observer = ConsoleObserver(max_consecutive_errors=max_recognition_errors)
    pipeline = SessionPipeline(
        config,
        observer,
        stream_factory=stream_factory,
        engine_factory=engine_factory,
    )
    observer.bind_shutdown(pipeline.request_shutdown)

    print(
        {
            "session": "starting",
            "source_language": config.source_language,
            "target_language": config.target_language,
            "hint": f"Say '{config.termination_phrase}' or press Ctrl+C to stop.",
        }
    )

    async def _run() -> None:
        restore_handlers = _install_shutdown_handlers(pipeline)
        try:
            await pipeline.run()
        finally:
            restore_handlers()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        # Ctrl+C landed before handlers were installed, or the loop was interrupted directly.
        pipeline.request_shutdown("signal:SIGINT")
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)
    print({"session": "stopped", "reason": pipeline.termination.reason})


if __name__ == "__main__":
    app()
