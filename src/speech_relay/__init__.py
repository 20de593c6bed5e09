"""Live speech -> translation -> speech relay."""

from .config import SessionConfig, Settings, settings
from .models import SessionState
from .pipeline import SessionPipeline

__all__ = ["SessionConfig", "SessionPipeline", "SessionState", "Settings", "settings"]
