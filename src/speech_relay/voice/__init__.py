"""Speech recognition and synthesis boundaries."""

from .interfaces import EventHandler, RecognitionStream, SpeechEngine, Translator

__all__ = [
    "EventHandler",
    "RecognitionStream",
    "SpeechEngine",
    "Translator",
]
