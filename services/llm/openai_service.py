"""
=====================================================
Voice Lead Agent - OpenAI LLM Service
=====================================================
Chat completions against OpenAI or an Azure OpenAI deployment
"""

from typing import Optional

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI
from loguru import logger

from .llm_base import (
    LLMError,
    LLMErrorKind,
    LLMServiceBase,
    LLMRequest,
    LLMResponse,
    LLMRole
)


def classify_openai_error(error: Exception) -> LLMErrorKind:
    """Map an openai SDK exception to an LLMErrorKind"""
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return LLMErrorKind.AUTHENTICATION
    if isinstance(error, (openai.NotFoundError, openai.BadRequestError, openai.UnprocessableEntityError)):
        return LLMErrorKind.CONFIGURATION
    if isinstance(error, openai.RateLimitError):
        return LLMErrorKind.RATE_LIMITED
    if isinstance(error, openai.APIConnectionError):
        # APITimeoutError is a subclass
        return LLMErrorKind.CONNECTION
    return LLMErrorKind.UNKNOWN


class OpenAILLM(LLMServiceBase):
    """
    OpenAI chat service

    With azure_endpoint set the client talks to Azure OpenAI and
    model is the deployment name.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        azure_endpoint: Optional[str] = None,
        api_version: Optional[str] = None,
    ):
        """
        Initialize OpenAI LLM service

        Args:
            api_key: OpenAI or Azure OpenAI API key
            model: Model (or Azure deployment) to use
            azure_endpoint: Azure OpenAI resource endpoint
            api_version: Azure OpenAI API version
        """
        super().__init__(api_key, model)

        self._azure_endpoint = azure_endpoint
        self._api_version = api_version

        self._client: Optional[AsyncOpenAI] = None

    @property
    def provider(self) -> str:
        return "azure" if self._azure_endpoint else "openai"

    async def _get_client(self) -> AsyncOpenAI:
        """Get or create the async client"""
        if self._client is None:
            if self._azure_endpoint:
                self._client = AsyncAzureOpenAI(
                    api_key=self.api_key,
                    azure_endpoint=self._azure_endpoint,
                    api_version=self._api_version,
                )
            else:
                self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def chat(self, request: LLMRequest) -> LLMResponse:
        """
        Non-streaming chat completion, single attempt

        Args:
            request: LLM request

        Returns:
            Complete LLM response

        Raises:
            LLMError: classified provider failure
        """
        client = await self._get_client()
        messages = [msg.to_dict() for msg in request.messages]

        logger.info(f"OpenAI: Sending {len(messages)} messages to {self.model} ({self.provider})")

        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                stream=False,
            )
        except openai.OpenAIError as e:
            kind = classify_openai_error(e)
            logger.error(f"OpenAI: Chat error ({kind.value}): {e}")
            raise LLMError(kind, str(e)) from e

        if not response.choices:
            raise LLMError(LLMErrorKind.EMPTY_RESPONSE, "No choices returned")

        choice = response.choices[0]
        content = (choice.message.content or "").strip()
        if not content:
            raise LLMError(LLMErrorKind.EMPTY_RESPONSE, f"Empty completion (finish_reason={choice.finish_reason})")

        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=content,
            role=LLMRole.ASSISTANT,
            finish_reason=choice.finish_reason,
            tokens_used=usage.total_tokens if usage else 0,
            metadata={
                "model": response.model,
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
            }
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


# Factory function
def create_openai_llm(config: dict) -> Optional[OpenAILLM]:
    """
    Factory function to create the LLM service from config

    Args:
        config: Configuration dictionary (from Settings)

    Returns:
        Configured OpenAILLM, or None when no API key is set
    """
    api_key = config.get('openai_api_key')
    if not api_key:
        logger.warning("OpenAI: No API key configured, replies will use fallback apologies")
        return None

    azure_endpoint = config.get('azure_openai_endpoint') or None
    model = config.get('openai_model', 'gpt-4o-mini')
    if azure_endpoint:
        model = config.get('azure_openai_deployment') or model

    return OpenAILLM(
        api_key=api_key,
        model=model,
        azure_endpoint=azure_endpoint,
        api_version=config.get('azure_openai_api_version'),
    )
