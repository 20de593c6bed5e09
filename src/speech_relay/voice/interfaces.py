"""Contracts for speech recognition streams, speech engines and translators."""

from __future__ import annotations

from typing import Callable, Protocol

from speech_relay.models import RecognitionEvent, SynthesisOutcome

EventHandler = Callable[[RecognitionEvent], None]


class RecognitionStream(Protocol):
    """A live, continuous recognition session emitting ``RecognitionEvent``s.

    Events may be delivered on any thread but must be causally ordered per
    session: ``SessionStarted`` first, ``SessionStopped`` last.
    """

    def subscribe(self, handler: EventHandler) -> None:
        """Register the callable receiving every event of this stream."""

    async def start(self) -> None:
        """Begin continuous recognition."""

    async def stop(self) -> None:
        """Request graceful shutdown; ``SessionStopped`` follows eventually."""


class SpeechEngine(Protocol):
    """Blocking text-to-speech renderer bound to one voice."""

    def speak(self, text: str) -> SynthesisOutcome:
        """Render ``text`` to audio and return once playback is done or canceled."""

    def close(self) -> None:
        """Release engine resources."""


class Translator(Protocol):
    """Blocking text translator."""

    def translate(self, text: str, target_language: str) -> str:
        """Return ``text`` translated into ``target_language``."""

    def close(self) -> None:
        """Release transport resources."""
