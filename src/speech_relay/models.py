"""Event and outcome types exchanged between the pipeline and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    """Lifecycle states of one recognition -> translation -> synthesis session."""

    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    STOPPING = "stopping"
    STOPPED = "stopped"


class RecognitionReason(str, Enum):
    """Why a recognition stream produced a final result."""

    RECOGNIZED_SPEECH = "recognized_speech"
    NO_MATCH = "no_match"
    OTHER = "other"


class CancellationReason(str, Enum):
    """Why a synthesis request was canceled."""

    ERROR = "error"
    END_OF_STREAM = "end_of_stream"
    CANCELLED_BY_USER = "cancelled_by_user"


@dataclass(frozen=True, slots=True)
class SessionStarted:
    pass


@dataclass(frozen=True, slots=True)
class PartialResult:
    """Interim hypothesis that may still change."""

    text: str


@dataclass(frozen=True, slots=True)
class FinalResult:
    """Conclusive transcript for one span of speech."""

    text: str
    reason: RecognitionReason = RecognitionReason.RECOGNIZED_SPEECH

    @property
    def recognized(self) -> bool:
        return self.reason is RecognitionReason.RECOGNIZED_SPEECH


@dataclass(frozen=True, slots=True)
class RecognitionCanceled:
    """Stream-level cancellation; non-fatal for the session."""

    error_code: str
    error_details: str = ""


@dataclass(frozen=True, slots=True)
class SessionStopped:
    pass


RecognitionEvent = SessionStarted | PartialResult | FinalResult | RecognitionCanceled | SessionStopped


@dataclass(frozen=True, slots=True)
class SynthesisCompleted:
    """Audio for the submitted text was rendered."""


@dataclass(frozen=True, slots=True)
class SynthesisCanceled:
    """Synthesis did not complete. Error fields are only set for ``CancellationReason.ERROR``."""

    reason: CancellationReason
    error_code: str | None = None
    error_details: str | None = None

    def __post_init__(self) -> None:
        if self.reason is not CancellationReason.ERROR and (self.error_code or self.error_details):
            raise ValueError("error_code/error_details are only allowed when reason is ERROR")


SynthesisOutcome = SynthesisCompleted | SynthesisCanceled
