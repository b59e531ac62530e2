"""Tests for the remote text-generation classifier."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from bibliotech.config import ClassifierConfig
from bibliotech.errors import ClassificationError
from bibliotech.ingestion.llm_classifier import LLMClassifier, extract_code, extract_content


def _response(payload: object, status: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.text = json.dumps(payload)
    response.json.return_value = payload
    return response


def _chat(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


@pytest.fixture
def classifier(session: MagicMock) -> LLMClassifier:
    return LLMClassifier(ClassifierConfig(api_key="secret"), session=session)


class TestExtractCode:
    @pytest.mark.parametrize(
        "content,code",
        [("005", "005"), ("The code is 510.", "510"), ("  780\n", "780"), ("000 or 100", "000")],
    )
    def test_first_three_digit_token(self, content: str, code: str) -> None:
        assert extract_code(content) == code

    @pytest.mark.parametrize("content", ["", "none", "1234", "12", "Dewey 5.1"])
    def test_no_valid_token(self, content: str) -> None:
        with pytest.raises(ClassificationError):
            extract_code(content)


class TestExtractContent:
    def test_openai_shape(self) -> None:
        assert extract_content(_chat(" 500 ")) == "500"

    def test_huggingface_shape(self) -> None:
        assert extract_content([{"generated_text": "300"}]) == "300"

    def test_ollama_shape(self) -> None:
        assert extract_content({"message": {"content": "200"}}) == "200"

    def test_generic_shape(self) -> None:
        assert extract_content({"content": "100"}) == "100"

    def test_unknown_shape(self) -> None:
        assert extract_content({"choices": []}) is None
        assert extract_content("500") is None


class TestBuildRequest:
    def test_openrouter_body(self, classifier: LLMClassifier) -> None:
        body = classifier.build_request("Python Programming", "A book about Python")
        assert body["model"] == "gpt-oss-120b:free"
        assert body["provider"] == "openai"
        assert body["max_tokens"] == 10
        assert "Python Programming" in body["messages"][1]["content"]

    def test_missing_description_placeholder(self, classifier: LLMClassifier) -> None:
        body = classifier.build_request("Title", None)
        assert "No description available" in body["messages"][1]["content"]

    def test_huggingface_body(self) -> None:
        config = ClassifierConfig(api_url="https://api-inference.huggingface.co/models/x")
        body = LLMClassifier(config, session=MagicMock()).build_request("T", "D")
        assert set(body) == {"inputs", "parameters"}
        assert body["parameters"]["max_new_tokens"] == 10

    def test_ollama_body(self) -> None:
        config = ClassifierConfig(api_url="http://localhost:11434/api/chat", model="llama3")
        body = LLMClassifier(config, session=MagicMock()).build_request("T", "D")
        assert body["stream"] is False
        assert body["model"] == "llama3"
        assert body["options"]["num_predict"] == 10


class TestClassify:
    def test_returns_code(self, classifier: LLMClassifier, session: MagicMock) -> None:
        session.post.return_value = _response(_chat("005"))

        assert classifier.classify("Python Programming", "Learn Python") == "005"

        headers = session.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer secret"

    def test_no_auth_header_without_key(self, session: MagicMock) -> None:
        session.post.return_value = _response(_chat("100"))
        LLMClassifier(ClassifierConfig(), session=session).classify("T")
        assert "Authorization" not in session.post.call_args.kwargs["headers"]

    def test_api_error(self, classifier: LLMClassifier, session: MagicMock) -> None:
        session.post.return_value = _response({"error": {"message": "rate limited"}}, status=429)
        with pytest.raises(ClassificationError, match="rate limited"):
            classifier.classify("T")

    def test_empty_content(self, classifier: LLMClassifier, session: MagicMock) -> None:
        session.post.return_value = _response(_chat(""))
        with pytest.raises(ClassificationError, match="No response content"):
            classifier.classify("T")

    def test_unparseable_answer(self, classifier: LLMClassifier, session: MagicMock) -> None:
        session.post.return_value = _response(_chat("I am not sure."))
        with pytest.raises(ClassificationError):
            classifier.classify("T")

    def test_non_json_body(self, classifier: LLMClassifier, session: MagicMock) -> None:
        response = MagicMock(status_code=502, text="<html>bad gateway</html>")
        response.json.side_effect = ValueError("no json")
        session.post.return_value = response
        with pytest.raises(ClassificationError, match="Parse error"):
            classifier.classify("T")

    def test_retries_network_failure_once(
        self, classifier: LLMClassifier, session: MagicMock
    ) -> None:
        session.post.side_effect = [requests.Timeout("slow"), _response(_chat("900"))]
        assert classifier.classify("History") == "900"
        assert session.post.call_count == 2

    def test_gives_up_after_second_failure(
        self, classifier: LLMClassifier, session: MagicMock
    ) -> None:
        session.post.side_effect = requests.ConnectionError("down")
        with pytest.raises(ClassificationError, match="unreachable"):
            classifier.classify("History")
        assert session.post.call_count == 2
