"""
Chat-completion client for vision analysis and design advice.

The client is constructed per worker invocation and passed in, so tests can
hand workers a fake with the same ``complete_json`` signature. SDK-level
retries are disabled; retries are applied by the caller through with_retry.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import openai

from roomwise.core.exceptions import ProviderConfigurationError, ProviderError, ProviderUnavailable
from roomwise.services.api_cost import TokenUsage, normalize_openai_usage
from roomwise.services.retry import RETRYABLE_STATUS_CODES

logger = logging.getLogger(__name__)

PROVIDER = "openai"


@dataclass
class ChatCompletionResult:
    content: Optional[str]
    usage: TokenUsage
    model: str


class ChatCompletionClient:
    """Wraps openai.AsyncOpenAI chat completions in JSON-object mode"""

    provider = PROVIDER

    def __init__(self, api_key: str, model: str = "gpt-4o", timeout: float = 120.0, client=None):
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def complete_json(
        self,
        system_prompt: str,
        user_text: str,
        image_urls: Sequence[str] = (),
        max_tokens: int = 2000,
        temperature: float = 0.7,
        image_detail: str = "high",
    ) -> ChatCompletionResult:
        """
        Send one system prompt plus a user message (text and optional images) and
        ask for a JSON object back. Parsing the content is left to the caller.
        """
        if not self.configured:
            raise ProviderConfigurationError(PROVIDER, "OPENAI_API_KEY is not configured")

        content = [{"type": "text", "text": user_text}]
        for url in image_urls:
            content.append({"type": "image_url", "image_url": {"url": url, "detail": image_detail}})

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": content},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as e:
            raise ProviderUnavailable(PROVIDER, f"OpenAI request timed out: {e}") from e
        except openai.APIConnectionError as e:
            raise ProviderUnavailable(PROVIDER, f"Could not reach OpenAI: {e}") from e
        except openai.AuthenticationError as e:
            raise ProviderConfigurationError(PROVIDER, f"OpenAI rejected the API key: {e}", status_code=401) from e
        except openai.APIStatusError as e:
            error_cls = ProviderUnavailable if e.status_code in RETRYABLE_STATUS_CODES else ProviderError
            raise error_cls(PROVIDER, f"OpenAI API error ({e.status_code}): {e}", status_code=e.status_code) from e

        message_content = response.choices[0].message.content if response.choices else None
        usage = normalize_openai_usage(getattr(response, "usage", None))
        logger.info(f"OpenAI {self.model} call finished: tokens={usage.total_tokens}")
        return ChatCompletionResult(content=message_content, usage=usage, model=self.model)
