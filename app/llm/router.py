"""
Provider selection for the coach and CV analysis features.
"""
import logging

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.core.exceptions import ProviderNotConfiguredException
from app.llm.openai_provider import OpenAIProvider
from app.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


def build_provider(settings: Settings) -> LLMProvider:
    if not settings.llm_enabled:
        logger.warning("OPENAI_API_KEY not configured - assistant features disabled")
        raise ProviderNotConfiguredException("Assistant provider not configured")
    return OpenAIProvider(
        api_key=settings.OPENAI_API_KEY,
        model=settings.LLM_MODEL,
        base_url=settings.LLM_BASE_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )


def get_llm_provider(settings: Settings = Depends(get_settings)) -> LLMProvider:
    """FastAPI dependency; tests override it with a fake provider."""
    return build_provider(settings)
