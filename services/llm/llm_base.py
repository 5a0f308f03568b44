"""
=====================================================
Voice Lead Agent - LLM Service Base Interface
=====================================================
Abstract base class for LLM (Large Language Model) providers
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
from enum import Enum


class LLMRole(Enum):
    """Roles in conversation"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """Conversation message"""
    role: LLMRole
    content: str

    def to_dict(self) -> dict:
        """Convert to dictionary for API calls"""
        return {
            "role": self.role.value,
            "content": self.content
        }


@dataclass
class LLMRequest:
    """Request for LLM completion"""
    messages: List[Message]
    temperature: float = 0.7
    max_tokens: int = 80
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResponse:
    """Response from LLM"""
    content: str
    role: LLMRole = LLMRole.ASSISTANT
    finish_reason: Optional[str] = None
    tokens_used: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


class LLMErrorKind(Enum):
    """Coarse failure classes a provider reports"""
    NOT_CONFIGURED = "not_configured"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"  # unknown model/deployment, bad request
    RATE_LIMITED = "rate_limited"
    CONNECTION = "connection"
    EMPTY_RESPONSE = "empty_response"
    UNKNOWN = "unknown"


class LLMError(Exception):
    """Provider failure with a structured kind"""

    def __init__(self, kind: LLMErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind


class LLMServiceBase(ABC):
    """
    Abstract base class for LLM services

    Providers raise LLMError instead of their own SDK exceptions.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        """
        Initialize LLM service

        Args:
            api_key: Provider API key
            model: Model identifier
        """
        self.api_key = api_key
        self.model = model

    @abstractmethod
    async def chat(self, request: LLMRequest) -> LLMResponse:
        """
        Non-streaming chat completion

        Args:
            request: LLM request

        Returns:
            Complete LLM response

        Raises:
            LLMError: on any provider failure
        """
        pass

    async def close(self) -> None:
        """Release client resources"""
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
