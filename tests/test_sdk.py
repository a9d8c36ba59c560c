"""
Unit tests for SDK layer.

Tests completion client ordering (cache, rate limiter, network), request
shape, and error classification.
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from ai_codegen.config.loader import ApiConfig, DEFAULT_ENDPOINT, Settings
from ai_codegen.core.cache import CodeCache
from ai_codegen.core.errors import (
    DecodeError,
    EmptyChoices,
    RateLimitExceeded,
    TransportError,
    UnexpectedStatus,
)
from ai_codegen.core.generator import CODE_GENERATOR, SQL_GENERATOR
from ai_codegen.core.rate_limiter import Admission
from ai_codegen.sdk.openai_client import CompletionClient


def make_response(status_code=200, payload=None, body=None, chunks=None):
    """Create a mock streamed HTTP response."""
    response = Mock()
    response.status_code = status_code
    if chunks is None:
        text = body if body is not None else json.dumps(payload)
        chunks = [text.encode("utf-8")]
    response.iter_content.return_value = chunks
    return response


USERS_PAYLOAD = {
    "choices": [
        {"text": "SELECT * FROM users;", "index": 0, "logprobs": None, "finish_reason": "stop"}
    ]
}


class TestCompletionClient:
    """Test CompletionClient request lifecycle."""

    def setup_method(self):
        """Set up a fresh cache, limiter and session per test."""
        self.cache = CodeCache()
        self.rate_limiter = Mock()
        self.rate_limiter.check.return_value = Admission.ALLOW
        self.session = Mock()

    def make_client(self, **kwargs):
        return CompletionClient(
            api_key="sk-test",
            cache=self.cache,
            rate_limiter=self.rate_limiter,
            session=self.session,
            **kwargs
        )

    def test_init_missing_api_key(self):
        """Test initialization fails with missing api key."""
        with pytest.raises(ValueError, match="api_key is required"):
            CompletionClient(api_key="")

        with pytest.raises(ValueError, match="api_key is required"):
            CompletionClient(api_key=None)

    @patch('ai_codegen.sdk.openai_client.requests.Session')
    def test_init_defaults(self, mock_session_class):
        """Test default collaborators are built from settings."""
        client = CompletionClient(api_key="sk-test")

        assert client.generator is SQL_GENERATOR
        assert client.cache.capacity == 100
        assert client.rate_limiter.rate == 1000
        assert client.session is mock_session_class.return_value

    def test_first_call_posts_once_then_cache_hit(self):
        """Test a prompt is sent once and repeated prompts are served from cache."""
        self.session.post.return_value = make_response(payload=USERS_PAYLOAD)
        client = self.make_client()

        assert client.generate("find all users") == "SELECT * FROM users;"
        assert client.generate("find all users") == "SELECT * FROM users;"

        self.session.post.assert_called_once_with(
            DEFAULT_ENDPOINT,
            json={
                "prompt": "Generate a SQL code for the given statement. find all users",
                "max_tokens": 1000,
            },
            headers={
                "Content-Type": "application/json",
                "Authorization": "Bearer sk-test",
            },
            timeout=10.0,
            stream=True
        )
        assert self.rate_limiter.check.call_count == 1

    def test_cache_hit_bypasses_limiter_and_network(self):
        """Test a prepopulated entry is returned without rate check or transport."""
        self.cache.put("find all users", "SELECT 1;")
        client = self.make_client()

        assert client.generate("find all users") == "SELECT 1;"

        self.rate_limiter.check.assert_not_called()
        self.session.post.assert_not_called()

    def test_success_writes_cache(self):
        """Test successful generation stores the unprefixed prompt."""
        self.session.post.return_value = make_response(payload=USERS_PAYLOAD)
        client = self.make_client()

        client.generate("find all users")

        assert self.cache.get("find all users") == "SELECT * FROM users;"

    def test_generator_prefix_used(self):
        """Test the generic generator uses its own instruction prefix."""
        self.session.post.return_value = make_response(payload={
            "choices": [{"text": "print(1)", "index": 0, "logprobs": None, "finish_reason": "stop"}]
        })
        client = self.make_client(generator=CODE_GENERATOR)

        client.generate("print one")

        kwargs = self.session.post.call_args.kwargs
        assert kwargs["json"]["prompt"] == "Generate code for the given statement. print one"

    def test_settings_control_request(self):
        """Test endpoint, max_tokens and timeout come from settings."""
        settings = Settings(api=ApiConfig(
            endpoint="http://localhost:8080/v1/completions",
            max_tokens=256,
            timeout=2.5
        ))
        self.session.post.return_value = make_response(payload=USERS_PAYLOAD)
        client = self.make_client(settings=settings)

        client.generate("find all users")

        args, kwargs = self.session.post.call_args
        assert args[0] == "http://localhost:8080/v1/completions"
        assert kwargs["json"]["max_tokens"] == 256
        assert kwargs["timeout"] == 2.5

    def test_local_rate_limit_denial(self):
        """Test a local denial raises without network or cache access."""
        self.rate_limiter.check.return_value = Admission.DENY
        client = self.make_client()

        with pytest.raises(RateLimitExceeded) as excinfo:
            client.generate("find all users")

        assert excinfo.value.source == "local"
        self.session.post.assert_not_called()
        assert len(self.cache) == 0

    def test_server_rate_limit_not_cached(self):
        """Test HTTP 429 raises RateLimitExceeded and leaves the cache empty."""
        self.session.post.return_value = make_response(status_code=429)
        client = self.make_client()

        with pytest.raises(RateLimitExceeded) as excinfo:
            client.generate("find all users")

        assert excinfo.value.source == "server"
        assert "find all users" not in self.cache

    def test_unparsable_body_raises_decode_error(self):
        """Test HTTP 200 with invalid JSON raises DecodeError and leaves cache unchanged."""
        self.cache.put("other prompt", "SELECT 2;")
        self.session.post.return_value = make_response(body="<html>oops</html>")
        client = self.make_client()

        with pytest.raises(DecodeError, match="JSON Error"):
            client.generate("find all users")

        assert len(self.cache) == 1
        assert "find all users" not in self.cache

    def test_malformed_structure_raises_decode_error(self):
        """Test a JSON body without choices raises DecodeError."""
        self.session.post.return_value = make_response(payload={"error": "nope"})
        client = self.make_client()

        with pytest.raises(DecodeError, match="choices"):
            client.generate("find all users")

    def test_empty_choices(self):
        """Test a response with zero choices raises EmptyChoices."""
        self.session.post.return_value = make_response(payload={"choices": []})
        client = self.make_client()

        with pytest.raises(EmptyChoices):
            client.generate("find all users")

        assert len(self.cache) == 0

    @pytest.mark.parametrize("status_code", [400, 401, 404, 500, 503])
    def test_unexpected_status(self, status_code):
        """Test other status codes raise UnexpectedStatus carrying the code."""
        self.session.post.return_value = make_response(status_code=status_code)
        client = self.make_client()

        with pytest.raises(UnexpectedStatus) as excinfo:
            client.generate("find all users")

        assert excinfo.value.status_code == status_code
        assert str(status_code) in str(excinfo.value)
        assert len(self.cache) == 0

    @pytest.mark.parametrize("exc", [
        requests.ConnectionError("connection refused"),
        requests.Timeout("read timed out"),
    ])
    def test_transport_failure(self, exc):
        """Test transport failures raise TransportError with the cause."""
        self.session.post.side_effect = exc
        client = self.make_client()

        with pytest.raises(TransportError) as excinfo:
            client.generate("find all users")

        assert excinfo.value.cause is exc
        assert excinfo.value.__cause__ is exc
        assert len(self.cache) == 0

    def test_failure_then_success_same_prompt(self):
        """Test a failed attempt does not block a later successful one."""
        self.session.post.side_effect = [
            make_response(status_code=500),
            make_response(payload=USERS_PAYLOAD),
        ]
        client = self.make_client()

        with pytest.raises(UnexpectedStatus):
            client.generate("find all users")

        assert client.generate("find all users") == "SELECT * FROM users;"
        assert self.session.post.call_count == 2

    def test_only_first_choice_used(self):
        """Test the first of several choices is returned."""
        self.session.post.return_value = make_response(payload={
            "choices": [
                {"text": "SELECT 1;", "index": 0, "logprobs": None, "finish_reason": "stop"},
                {"text": "SELECT 2;", "index": 1, "logprobs": None, "finish_reason": "stop"},
            ]
        })
        client = self.make_client()

        assert client.generate("one") == "SELECT 1;"

    def test_body_split_across_chunks(self):
        """Test a body arriving in several chunks is joined before decoding."""
        body = json.dumps(USERS_PAYLOAD).encode("utf-8")
        response = make_response(chunks=[body[:10], body[10:]])
        self.session.post.return_value = response
        client = self.make_client()

        assert client.generate("find all users") == "SELECT * FROM users;"
        response.close.assert_called_once()

    @patch('ai_codegen.sdk.openai_client.time')
    def test_slow_body_exceeds_overall_timeout(self, mock_time):
        """Test a body still trickling in after the timeout raises TransportError."""
        mock_time.monotonic.side_effect = [0.0, 5.0, 11.0]
        response = make_response(chunks=[b'{"choices": ', b'[]}'])
        self.session.post.return_value = response
        client = self.make_client()

        with pytest.raises(TransportError) as excinfo:
            client.generate("find all users")

        assert isinstance(excinfo.value.cause, requests.Timeout)
        response.close.assert_called_once()
        assert len(self.cache) == 0

    def test_body_read_failure(self):
        """Test a connection dropped mid-body raises TransportError."""
        response = make_response()
        response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError("connection reset")
        self.session.post.return_value = response
        client = self.make_client()

        with pytest.raises(TransportError):
            client.generate("find all users")

        response.close.assert_called_once()

    def test_error_response_closed(self):
        """Test non-200 responses are closed without reading the body."""
        response = make_response(status_code=503)
        self.session.post.return_value = response
        client = self.make_client()

        with pytest.raises(UnexpectedStatus):
            client.generate("find all users")

        response.iter_content.assert_not_called()
        response.close.assert_called_once()
