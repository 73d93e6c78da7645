"""
OpenAI provider implementation.

Works against any OpenAI-compatible chat-completion endpoint (set
LLM_BASE_URL to point it elsewhere).
"""
import logging
from typing import Optional, Dict, List
from collections.abc import Iterator

from openai import OpenAI, APIError, APITimeoutError, APIConnectionError

from app.core.exceptions import UpstreamServiceException, UpstreamTimeoutException
from app.llm.provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2000


class OpenAIProvider(LLMProvider):
    """OpenAI provider using official OpenAI SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 30,
        max_retries: int = 1,
    ):
        if not api_key:
            raise ValueError("OPENAI_API_KEY not configured")
        self.model = model
        self.timeout = timeout
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )
        logger.info(f"OpenAI provider initialized (model={model}, custom_base_url={base_url is not None})")

    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a chat completion."""
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
                **kwargs
            )
        except APITimeoutError as e:
            logger.error(f"OpenAI request timed out after {self.timeout}s: {e}")
            raise UpstreamTimeoutException("The assistant took too long to respond")
        except (APIConnectionError, APIError) as e:
            logger.error(f"OpenAI API error: {e}", exc_info=True)
            raise UpstreamServiceException("The assistant is unavailable")

        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content or "",
            tokens_in=usage.prompt_tokens if usage else 0,
            tokens_out=usage.completion_tokens if usage else 0,
            model=self.model,
            metadata={
                "finish_reason": response.choices[0].finish_reason,
            }
        )

    def stream(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> Iterator[str]:
        """Stream a chat completion token by token."""
        try:
            stream = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
                stream=True,
            )

            for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except APITimeoutError as e:
            logger.error(f"OpenAI streaming timed out: {e}")
            raise UpstreamTimeoutException("The assistant took too long to respond")
        except (APIConnectionError, APIError) as e:
            logger.error(f"OpenAI streaming API error: {e}", exc_info=True)
            raise UpstreamServiceException("The assistant is unavailable")
