"""
Cached, rate-limited OpenAI completion client.

Turns a natural-language prompt into generated code with one HTTP call per
distinct prompt. Every per-request failure is raised as a CompletionError
subclass; nothing is retried.
"""

import json
import logging
import time
from typing import Optional

import requests

from ..config.loader import Settings
from ..core.cache import CodeCache
from ..core.errors import (
    DecodeError,
    RateLimitExceeded,
    TransportError,
    UnexpectedStatus,
)
from ..core.generator import SQL_GENERATOR, CodeGenerator
from ..core.rate_limiter import Admission, GCRARateLimiter
from .models import CompletionRequest, CompletionResponse

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 8192


class CompletionClient:
    """Completion client holding its cache, rate limiter and HTTP session.

    Lookup order for every prompt is cache, then rate limiter, then network.
    A cache hit never consumes rate limiter capacity. All state lives on the
    instance so each caller (and each test) can supply its own collaborators.
    """

    def __init__(
        self,
        api_key: str,
        generator: CodeGenerator = SQL_GENERATOR,
        settings: Optional[Settings] = None,
        cache: Optional[CodeCache] = None,
        rate_limiter: Optional[GCRARateLimiter] = None,
        session: Optional[requests.Session] = None
    ):
        """Initialize the completion client.

        Args:
            api_key: Bearer credential for the API (required)
            generator: Generator kind supplying the instruction prefix
            settings: Endpoint, timeout, cache and rate limit settings
            cache: Result cache (defaults to one sized from settings)
            rate_limiter: Outbound limiter (defaults to one from settings)
            session: HTTP session used for requests

        Raises:
            ValueError: If api_key is missing/empty
        """
        if not api_key or not api_key.strip():
            raise ValueError("api_key is required and cannot be empty")

        self.api_key = api_key
        self.generator = generator
        self.settings = settings or Settings()
        self.cache = cache if cache is not None else CodeCache(self.settings.cache.size)
        self.rate_limiter = rate_limiter or GCRARateLimiter(
            rate=self.settings.rate_limit.requests,
            period=self.settings.rate_limit.period_seconds
        )
        self.session = session or requests.Session()

    def generate(self, prompt: str) -> str:
        """Generate code for a prompt.

        Args:
            prompt: Natural-language statement, used verbatim as cache key

        Returns:
            Generated code text (unformatted)

        Raises:
            RateLimitExceeded: Local limiter denied the request or API returned 429
            TransportError: Connection, DNS or timeout failure
            DecodeError: Successful response with an unparsable body
            EmptyChoices: Successful response without any choices
            UnexpectedStatus: Any other HTTP status
        """
        cached = self.cache.get(prompt)
        if cached is not None:
            logger.debug("Cache hit, skipping API call")
            return cached

        if self.rate_limiter.check() is Admission.DENY:
            logger.warning("Local rate limit exceeded, request not sent")
            raise RateLimitExceeded(source="local")

        request = CompletionRequest(
            prompt=self.generator.build_prompt(prompt),
            max_tokens=self.settings.api.max_tokens
        )
        code = self._send(request)

        self.cache.put(prompt, code)
        return code

    def _send(self, request: CompletionRequest) -> str:
        """POST one completion request and classify the outcome.

        The configured timeout bounds each socket operation in requests, so
        the body is streamed and abandoned once the whole exchange has run
        past the same timeout measured from the start of the request.
        """
        api = self.settings.api
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        logger.debug(f"POST {api.endpoint} (timeout {api.timeout}s)")
        deadline = time.monotonic() + api.timeout
        try:
            response = self.session.post(
                api.endpoint,
                json=request.to_dict(),
                headers=headers,
                timeout=api.timeout,
                stream=True
            )
        except requests.RequestException as e:
            logger.warning(f"Completion request failed: {e}")
            raise TransportError(e) from e

        try:
            status = response.status_code
            if status == 200:
                return self._parse(self._read_body(response, deadline))
        finally:
            response.close()

        if status == 429:
            logger.warning("API reported rate limit exceeded")
            raise RateLimitExceeded(source="server")

        logger.warning(f"Unexpected response status code: {status}")
        raise UnexpectedStatus(status)

    @staticmethod
    def _read_body(response: requests.Response, deadline: float) -> bytes:
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    raise requests.Timeout("Response body not received within the request timeout")
        except requests.RequestException as e:
            logger.warning(f"Reading response body failed: {e}")
            raise TransportError(e) from e
        return b"".join(chunks)

    @staticmethod
    def _parse(body: bytes) -> str:
        try:
            payload = json.loads(body)
        except ValueError as e:
            logger.warning(f"Could not decode response body: {e}")
            raise DecodeError(str(e), cause=e) from e

        return CompletionResponse.from_dict(payload).first_text()
