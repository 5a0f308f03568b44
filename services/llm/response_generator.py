"""
=====================================================
Voice Lead Agent - Response Generator
=====================================================
One short assistant reply per turn. Never raises: provider failures
become a spoken apology chosen by error kind.
"""

from typing import Dict, List, Optional

from loguru import logger

from .llm_base import LLMError, LLMErrorKind, LLMRequest, LLMServiceBase, Message


SERVICE_APOLOGY = "I'm having trouble with my AI service. Let me connect you with someone who can help."
CONFIGURATION_APOLOGY = "I'm having configuration issues. Please call back in a few minutes."
GENERIC_APOLOGY = "I'm having trouble right now. Could you try again?"

APOLOGIES: Dict[LLMErrorKind, str] = {
    LLMErrorKind.NOT_CONFIGURED: SERVICE_APOLOGY,
    LLMErrorKind.AUTHENTICATION: SERVICE_APOLOGY,
    LLMErrorKind.CONFIGURATION: CONFIGURATION_APOLOGY,
}


def apology_for(kind: LLMErrorKind) -> str:
    return APOLOGIES.get(kind, GENERIC_APOLOGY)


class ResponseGenerator:
    """Wraps an LLM service with the phone call's token budget"""

    def __init__(
        self,
        llm: Optional[LLMServiceBase],
        temperature: float = 0.7,
        max_tokens: int = 80,
    ):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def is_configured(self) -> bool:
        return self.llm is not None

    async def reply(self, messages: List[Message]) -> str:
        """
        Get the assistant's next line for the conversation so far.

        Args:
            messages: System prompt followed by the call history

        Returns:
            Reply text, or an apology on failure
        """
        if self.llm is None:
            logger.warning("ResponseGenerator: No LLM configured")
            return apology_for(LLMErrorKind.NOT_CONFIGURED)

        request = LLMRequest(
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        try:
            response = await self.llm.chat(request)
        except LLMError as e:
            logger.error(f"ResponseGenerator: LLM failed ({e.kind.value}): {e}")
            return apology_for(e.kind)
        except Exception as e:
            logger.error(f"ResponseGenerator: Unexpected LLM error: {e}")
            return apology_for(LLMErrorKind.UNKNOWN)

        logger.info(f"ResponseGenerator: Reply ({response.tokens_used} tokens): {response.content[:80]}")
        return response.content
