"""Cloud speech service adapters."""

from .azure_speech import AzureRecognitionStream, AzureSpeechEngine, AzureSpeechUnavailableError

__all__ = [
    "AzureRecognitionStream",
    "AzureSpeechEngine",
    "AzureSpeechUnavailableError",
]
