"""Classifier backed by a remote text-generation endpoint."""

import logging
import re
from typing import Any

import requests

from bibliotech.config import ClassifierConfig
from bibliotech.errors import ClassificationError

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"\b(\d{3})\b")

SYSTEM_PROMPT = (
    "You are a librarian expert in Dewey Decimal Classification. "
    "Return only the 3-digit code (000-999), nothing else."
)

USER_PROMPT = """Classify the following book into a Dewey Decimal Classification category.

Book Title: {title}
Description: {description}

Return ONLY a 3-digit Dewey Decimal code (000-999) that best fits this book.
Do not include any explanation, just the 3-digit number.

Common categories:
- 000: Computer Science, Information & General Works
- 100: Philosophy & Psychology
- 200: Religion
- 300: Social Sciences
- 400: Language
- 500: Science
- 600: Technology
- 700: Arts & Recreation
- 800: Literature
- 900: History & Geography

Return the code:"""


def extract_code(content: str) -> str:
    """Pull the first 3-digit token out of a free-text answer.

    Raises:
        ClassificationError: If no valid code is present.
    """
    match = CODE_PATTERN.search(content)
    if not match:
        raise ClassificationError(f'Could not extract a code from: "{content}"')
    code = match.group(1)
    if not 0 <= int(code) <= 999:
        raise ClassificationError(f"Invalid code: {code}")
    return code


def extract_content(payload: Any) -> str | None:
    """Find the generated text in any of the supported response shapes."""
    if isinstance(payload, list):
        if payload and isinstance(payload[0], dict) and payload[0].get("generated_text"):
            return str(payload[0]["generated_text"]).strip()  # Hugging Face
        return None
    if not isinstance(payload, dict):
        return None

    choices = payload.get("choices") or []
    if choices and (choices[0].get("message") or {}).get("content"):
        return str(choices[0]["message"]["content"]).strip()  # OpenAI / OpenRouter
    message = payload.get("message")
    if isinstance(message, dict) and message.get("content"):
        return str(message["content"]).strip()  # Ollama
    if payload.get("content"):
        return str(payload["content"]).strip()
    return None


class LLMClassifier:
    """Asks a chat-completion style endpoint for a 3-digit code.

    The request body follows the OpenAI chat format, with variants for
    Hugging Face inference and Ollama endpoints detected from the URL.

    Args:
        config: Endpoint, model and credential settings.
        session: Optional pre-built session, mainly for tests.
    """

    def __init__(
        self,
        config: ClassifierConfig,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()

    @property
    def api_url(self) -> str:
        return self._config.api_url

    @property
    def model(self) -> str:
        return self._config.model

    def build_request(self, title: str, description: str | None) -> dict[str, Any]:
        prompt = USER_PROMPT.format(
            title=title, description=description or "No description available"
        )
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        url = self._config.api_url

        if "huggingface.co" in url:
            return {
                "inputs": prompt,
                "parameters": {
                    "max_new_tokens": self._config.max_tokens,
                    "temperature": self._config.temperature,
                },
            }
        if "ollama" in url or "localhost" in url:
            return {
                "model": self._config.model,
                "messages": messages,
                "stream": False,
                "options": {
                    "temperature": self._config.temperature,
                    "num_predict": self._config.max_tokens,
                },
            }

        body: dict[str, Any] = {
            "model": self._config.model,
            "messages": messages,
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
        }
        if "openrouter.ai" in url:
            body["provider"] = "openai"
        return body

    def classify(self, title: str, text: str | None = None) -> str:
        """Classify a book by title and description.

        Raises:
            ClassificationError: On endpoint errors or an answer without a
                valid 3-digit code.
        """
        body = self.build_request(title, text)
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"

        response = self._post(body, headers)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ClassificationError(
                f"Parse error: {exc}. Response: {response.text[:200]}"
            ) from exc

        if isinstance(payload, dict) and payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ClassificationError(f"API Error: {message or error}")
        if response.status_code != 200:
            raise ClassificationError(f"HTTP {response.status_code} from {self._config.api_url}")

        content = extract_content(payload)
        if not content:
            logger.debug("Classifier response without content: %s", str(payload)[:500])
            raise ClassificationError("No response content from API")
        return extract_code(content)

    def _post(self, body: dict[str, Any], headers: dict[str, str]) -> requests.Response:
        # One retry, transport errors only.
        last_exc: requests.RequestException | None = None
        for attempt in range(2):
            try:
                return self._session.post(
                    self._config.api_url,
                    json=body,
                    headers=headers,
                    timeout=self._config.timeout,
                )
            except requests.RequestException as exc:
                last_exc = exc
                logger.warning("Classifier request failed (attempt %d/2): %s", attempt + 1, exc)
        raise ClassificationError(f"Classifier endpoint unreachable: {last_exc}") from last_exc
