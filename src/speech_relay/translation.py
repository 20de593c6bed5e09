"""Client for the remote text-translation REST API."""

from __future__ import annotations

import logging

import requests
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from speech_relay.config import DEFAULT_TRANSLATOR_ENDPOINT, SessionConfig

logger = logging.getLogger("speech_relay.translation")


class TranslationError(RuntimeError):
    """Base class for failures of a translation request."""

    code = "TranslationError"


class TransportError(TranslationError):
    """Network failure, timeout, or non-success HTTP status."""

    code = "TransportError"


class AuthError(TranslationError):
    """The service rejected the subscription key."""

    code = "AuthError"


class ParseError(TranslationError):
    """The response body did not have the expected shape."""

    code = "ParseError"


class TranslationEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str
    to: str


class TranslateResult(BaseModel):
    """Per-input result holding one translation per requested language."""

    model_config = ConfigDict(extra="ignore")

    translations: list[TranslationEntry] = Field(default_factory=list)


_RESPONSE_ADAPTER = TypeAdapter(list[TranslateResult])


def select_translation(results: list[TranslateResult], original: str, target_language: str) -> str:
    """Pick the translation for ``target_language``; fall back to ``original`` when absent."""
    if not results:
        raise ParseError("Translation response contained no results")

    for entry in results[0].translations:
        if entry.to == target_language:
            return entry.text
    logger.info("translation_fallback", extra={"target_language": target_language})
    return original


class TranslationClient:
    """Submits single-item batch requests to the translator ``/translate`` route."""

    def __init__(
        self,
        api_key: str,
        *,
        endpoint: str = DEFAULT_TRANSLATOR_ENDPOINT,
        api_version: str = "3.0",
        region: str | None = None,
        timeout_seconds: float | None = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = f"{endpoint.rstrip('/')}/translate"
        self._api_version = api_version
        self._region = region
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config: SessionConfig) -> TranslationClient:
        return cls(
            config.translator_api_key,
            endpoint=config.translator_endpoint,
            api_version=config.translator_api_version,
            region=config.translator_region,
            timeout_seconds=config.translate_timeout_seconds,
        )

    def translate(self, text: str, target_language: str) -> str:
        """Translate ``text`` into ``target_language``.

        Returns the input unchanged when the response carries no entry for the
        requested language. Raises a ``TranslationError`` subclass otherwise.
        """
        headers = {
            "Ocp-Apim-Subscription-Key": self._api_key,
            "Content-Type": "application/json; charset=UTF-8",
        }
        if self._region:
            headers["Ocp-Apim-Subscription-Region"] = self._region

        try:
            response = self._session.post(
                self._url,
                params={"api-version": self._api_version, "to": target_language},
                headers=headers,
                json=[{"Text": text}],
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Translation request failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthError(f"Translation request was rejected ({response.status_code}): {response.text}")
        if response.status_code >= 400:
            raise TransportError(f"Translation request failed ({response.status_code}): {response.text}")

        try:
            results = _RESPONSE_ADAPTER.validate_json(response.content)
        except ValidationError as exc:
            raise ParseError(f"Malformed translation response: {exc.errors(include_url=False)}") from exc

        return select_translation(results, text, target_language)

    def close(self) -> None:
        self._session.close()
