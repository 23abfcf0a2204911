"""
OpenAI-compatible content provider - implementation of ContentProviderPort.

Talks to any Chat Completions endpoint that speaks the OpenAI wire format.
The primary provider is OpenAI itself; the secondary provider is the same
adapter pointed at another vendor's compatible base URL.
"""

import json
import logging
from typing import Optional

from openai import (
    AsyncOpenAI,
    APIError,
    RateLimitError,
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
)
from pydantic import ValidationError

from domain.content.ports import (
    ContentProviderPort,
    ProviderVerdict,
    ProviderTimeoutError,
    ProviderRateLimitError,
    ProviderAuthError,
    ProviderServiceError,
    ProviderInvalidResponseError,
)
from pipeline.prompts import build_messages

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(ContentProviderPort):
    """
    Content provider backed by an OpenAI-compatible Chat Completions API.

    Uses the async SDK client with JSON mode. Vendor exceptions are mapped
    onto the ProviderError hierarchy; the message text never appears in
    exception messages or logs.
    """

    def __init__(
        self,
        name: str,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 20.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize provider.

        Args:
            name: Provider label used in metrics and item records
            api_key: API key for the endpoint
            model: Chat model name
            base_url: Compatible endpoint (None = api.openai.com)
            timeout: Per-request timeout in seconds
            client: Preconfigured client (tests)

        Raises:
            ValueError: If no API key and no client is provided
        """
        if client is None and not api_key:
            raise ValueError(f"API key not provided for content provider '{name}'")

        self.name = name
        self.model = model
        self.timeout = timeout
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def screen_and_rewrite(self, text: str) -> ProviderVerdict:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=build_messages(text),
                response_format={"type": "json_object"},
                temperature=0.2,
                timeout=self.timeout,
            )
        except APITimeoutError as e:
            raise ProviderTimeoutError(f"{self.name} timeout: {e}")

        except RateLimitError as e:
            raise ProviderRateLimitError(f"{self.name} rate limit exceeded: {e}")

        except AuthenticationError as e:
            raise ProviderAuthError(f"{self.name} authentication failed: {e}")

        except (APIConnectionError, APIError) as e:
            raise ProviderServiceError(f"{self.name} service error: {e}")

        if not response.choices:
            raise ProviderInvalidResponseError(f"{self.name} returned no choices")

        return self.parse_verdict(response.choices[0].message.content)

    def parse_verdict(self, raw_output: Optional[str]) -> ProviderVerdict:
        """Validate the model's JSON answer into a ProviderVerdict."""
        if not raw_output:
            raise ProviderInvalidResponseError(f"{self.name} returned empty content")

        try:
            payload = json.loads(raw_output)
        except json.JSONDecodeError as e:
            raise ProviderInvalidResponseError(f"{self.name} returned invalid JSON: {e.msg}")

        if not isinstance(payload, dict):
            raise ProviderInvalidResponseError(f"{self.name} returned non-object JSON")

        try:
            return ProviderVerdict.model_validate(payload)
        except ValidationError as e:
            raise ProviderInvalidResponseError(
                f"{self.name} answer did not match contract ({e.error_count()} errors)"
            )
