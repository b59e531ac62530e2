"""Shared HTTP helpers for source clients."""

import logging
from typing import Any

import chardet
import requests

from bibliotech.config import HttpConfig
from bibliotech.errors import ApiError, TransientFetchError

logger = logging.getLogger(__name__)


def create_session(http_config: HttpConfig) -> requests.Session:
    """Create a session that identifies the client on every request.

    Args:
        http_config: Shared HTTP settings holding the User-Agent string.

    Returns:
        A requests Session with the identification header installed.
    """
    session = requests.Session()
    session.headers.update({"User-Agent": http_config.user_agent})
    return session


def get(
    session: requests.Session,
    url: str,
    params: dict[str, Any] | None = None,
    timeout: float = 30.0,
) -> requests.Response:
    """Issue a GET, converting transport failures and non-200 status codes.

    Raises:
        TransientFetchError: On connection errors, timeouts or a non-200 status.
    """
    try:
        response = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        raise TransientFetchError(f"Request to {url} failed: {exc}") from exc

    if response.status_code != 200:
        raise TransientFetchError(
            f"HTTP {response.status_code} from {url}: {response.text[:200]}"
        )
    return response


def parse_json_payload(response: requests.Response) -> dict[str, Any]:
    """Decode a JSON API response body.

    The body is sniffed before decoding: its first non-whitespace
    character must open an object or an array.

    Raises:
        TransientFetchError: If the body is not JSON.
        ApiError: If the payload carries an ``error`` object.
    """
    body = response.text
    stripped = body.lstrip()
    if not stripped or stripped[0] not in "{[":
        raise TransientFetchError(f"Expected JSON, got: {stripped[:100]!r}")

    try:
        payload = response.json()
    except ValueError as exc:
        raise TransientFetchError(f"Malformed JSON response: {exc}") from exc

    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        error = payload["error"]
        raise ApiError(str(error.get("code", "unknown")), str(error.get("info", "")))
    if not isinstance(payload, dict):
        raise TransientFetchError("Expected a JSON object at the top level")
    return payload


def decode_payload(raw_bytes: bytes) -> str:
    """Decode a text payload, trying UTF-8 first and falling back to chardet.

    Args:
        raw_bytes: The response body.

    Returns:
        The decoded text.
    """
    try:
        return raw_bytes.decode("utf-8")
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(raw_bytes)
    encoding = detected.get("encoding") or "utf-8"
    confidence = detected.get("confidence", 0)

    if confidence < 0.7:
        logger.warning(
            "Low confidence encoding detection for catalog payload: %s (%.0f%%)",
            encoding,
            confidence * 100,
        )

    try:
        return raw_bytes.decode(encoding)
    except (UnicodeDecodeError, LookupError):
        logger.error("Failed to decode catalog payload as %s", encoding)
        return raw_bytes.decode("utf-8", errors="replace")
