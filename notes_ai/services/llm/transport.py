"""OpenRouter Transport

Performs exactly one bounded HTTP call to the chat-completions endpoint
and maps transport outcomes onto the GenerationError taxonomy.

No retries and no payload logging happen here; RetryHandler drives
repeated attempts.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from notes_ai.services.llm.exceptions import GenerationError

DEFAULT_API_URL = "https://openrouter.ai/api/v1/chat/completions"


def classify_status(status: int, message: str) -> GenerationError:
    """Map a non-2xx HTTP status onto a typed error.

    Args:
        status: HTTP status code
        message: Upstream error message (or a default)

    Returns:
        GenerationError of the matching kind
    """
    if status in (401, 403):
        return GenerationError.auth(f"Authentication failed: {message}")
    if status == 429:
        return GenerationError.rate_limit(f"Rate limit exceeded: {message}")
    if status == 400:
        return GenerationError.validation(f"Invalid request: {message}")
    if status in (503, 504):
        return GenerationError.service(f"Service unavailable: {message}")
    if status >= 500:
        return GenerationError.service(f"Server error: {message}")
    return GenerationError.api(message, status_code=status)


def extract_error_message(body: bytes, status: int) -> str:
    """Pull ``error.message`` out of an error body when present.

    Undecodable or non-JSON bodies fall back to a default message.
    """
    default = f"OpenRouter API error ({status})"
    try:
        data = json.loads(body)
    except (ValueError, TypeError):
        return default
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return default


class OpenRouterTransport:
    """Single-attempt HTTP client for the upstream completions API.

    Owns a lazily created aiohttp session; call ``close()`` on shutdown.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        app_url: Optional[str] = None,
        app_name: Optional[str] = None,
    ):
        """Initialize transport.

        Args:
            api_key: Bearer credential for the upstream API
            api_url: Chat completions endpoint
            app_url: Optional HTTP-Referer for attribution
            app_name: Optional X-Title for attribution
        """
        self._api_key = api_key
        self.api_url = api_url
        self.app_url = app_url
        self.app_name = app_name
        self._session: Optional[aiohttp.ClientSession] = None

    def build_headers(self) -> Dict[str, str]:
        """Request headers including credential and attribution."""
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        if self.app_url:
            headers["HTTP-Referer"] = self.app_url
        if self.app_name:
            headers["X-Title"] = self.app_name
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def invoke(
        self, payload: Dict[str, Any], timeout_seconds: float
    ) -> Dict[str, Any]:
        """Issue one POST and return the decoded response body.

        Args:
            payload: Chat-completions payload
            timeout_seconds: Timeout for this attempt

        Returns:
            Decoded JSON response object

        Raises:
            GenerationError: TIMEOUT, NETWORK, or a status-derived kind
        """
        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        try:
            async with session.post(
                self.api_url,
                json=payload,
                headers=self.build_headers(),
                timeout=timeout,
            ) as response:
                body = await response.read()
                if not 200 <= response.status < 300:
                    raise classify_status(
                        response.status,
                        extract_error_message(body, response.status),
                    )
        except asyncio.TimeoutError:
            raise GenerationError.timeout(
                f"Request timed out after {int(timeout_seconds * 1000)}ms"
            )
        except (aiohttp.ClientError, OSError) as e:
            raise GenerationError.network(
                f"Network error occurred while calling OpenRouter API: {e}"
            )

        # UnicodeDecodeError is a ValueError
        try:
            data = json.loads(body)
        except ValueError as e:
            preview = body[:200].decode("utf-8", errors="replace")
            raise GenerationError.parse(
                f"Upstream returned a non-JSON body: {e}. Content: {preview}"
            )
        if not isinstance(data, dict):
            raise GenerationError.parse("Upstream response body must be a JSON object")
        return data
