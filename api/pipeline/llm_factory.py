"""
LLM Factory

Centralizes creation of the chat-completion backend used by the rewrite step.
The provider is picked once from settings; missing credentials fail here,
before any request is made.
"""

import logging
from typing import Optional, Protocol, Union

import httpx
import openai
from langchain_core.messages import HumanMessage
from langchain_openai import AzureChatOpenAI, ChatOpenAI

from config import Settings
from .errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)


class CompletionBackend(Protocol):
    model: str

    async def complete(self, prompt: str) -> str:
        """Send ``prompt`` as a single user turn and return the raw reply text."""


class ChatCompletion:
    """
    Single-turn completion over a LangChain chat model (OpenAI or Azure).
    """

    def __init__(self, llm: Union[ChatOpenAI, AzureChatOpenAI], model: str):
        self.llm = llm
        self.model = model

    async def complete(self, prompt: str) -> str:
        try:
            response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        except (openai.APIError, httpx.HTTPError) as exc:
            raise TransportError(f"Completion request failed: {exc}") from exc

        content = response.content
        if isinstance(content, list):
            # Content blocks: keep only text parts
            content = "".join(
                part if isinstance(part, str) else part.get("text", "")
                for part in content
            )
        return content or ""


def get_completion_backend(
    settings: Settings,
    http_async_client: Optional[httpx.AsyncClient] = None,
) -> CompletionBackend:
    """
    Create the configured completion backend.

    Args:
        settings: Application settings
        http_async_client: Optional client (carries the trust-root configuration)

    Returns:
        Backend with the rewrite temperature applied

    Raises:
        ConfigurationError: unknown provider or missing credentials
    """
    provider = (settings.completion_provider or "").strip().lower()

    if provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for LLM calls")

        llm_config = {
            "model": settings.openai_model,
            "api_key": settings.openai_api_key,
            "base_url": settings.openai_base_url,
            "temperature": settings.rewrite_temperature,
        }
        if http_async_client is not None:
            llm_config["http_async_client"] = http_async_client

        logger.info(f"Using OpenAI: model={settings.openai_model}")
        return ChatCompletion(ChatOpenAI(**llm_config), model=settings.openai_model)

    if provider == "azure":
        if not settings.azure_openai_key or not settings.azure_openai_endpoint:
            raise ConfigurationError(
                "AZURE_OPENAI_KEY and AZURE_OPENAI_ENDPOINT are required for azure provider"
            )

        llm_config = {
            "azure_deployment": settings.azure_openai_deployment,
            "api_key": settings.azure_openai_key,
            "azure_endpoint": settings.azure_openai_endpoint,
            "api_version": settings.azure_openai_api_version,
            "temperature": settings.rewrite_temperature,
        }
        if http_async_client is not None:
            llm_config["http_async_client"] = http_async_client

        logger.info(
            f"Using Azure OpenAI: deployment={settings.azure_openai_deployment}, "
            f"endpoint={settings.azure_openai_endpoint}"
        )
        return ChatCompletion(AzureChatOpenAI(**llm_config), model=settings.azure_openai_deployment)

    raise ConfigurationError(f"Unsupported COMPLETION_PROVIDER: {settings.completion_provider}")
