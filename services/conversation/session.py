"""
=====================================================
Voice Lead Agent - Conversation Session
=====================================================
Per-call session record and the bounded in-process session cache.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from services.business.business_base import DEFAULT_TENANT_ID
from services.lead.lead_base import LeadInfo
from services.llm.llm_base import LLMRole, Message


class CallState(Enum):
    """Call lifecycle as seen by the webhook handlers"""
    GREETING = "greeting"
    LISTENING = "listening"
    PROCESSING = "processing"
    RESPONDING = "responding"
    ENDED = "ended"


def session_key(tenant_id: Optional[str], call_sid: str) -> str:
    """Tenant-scoped key; bare call sid for untenanted calls"""
    if not tenant_id or tenant_id == DEFAULT_TENANT_ID:
        return call_sid
    return f"{tenant_id}_{call_sid}"


@dataclass
class ConversationSession:
    """
    One phone call's conversation.

    messages holds only user/assistant turns; the system prompt is kept
    apart and prepended for the LLM.
    """
    call_sid: str
    caller_number: str
    tenant_id: str = DEFAULT_TENANT_ID
    system_prompt: str = ""
    messages: List[Message] = field(default_factory=list)
    lead_info: LeadInfo = field(default_factory=LeadInfo)
    state: CallState = CallState.GREETING
    is_durable: bool = False
    previous_calls: int = 0

    @property
    def session_key(self) -> str:
        return session_key(self.tenant_id, self.call_sid)

    @property
    def turn_count(self) -> int:
        return sum(1 for m in self.messages if m.role == LLMRole.USER)

    def add_message(self, role: LLMRole, content: str) -> Message:
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    def to_llm_messages(self) -> List[Message]:
        return [Message(role=LLMRole.SYSTEM, content=self.system_prompt)] + list(self.messages)


class SessionCache:
    """Fixed-capacity LRU of sessions keyed by session_key"""

    def __init__(self, max_size: int = 1000):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._sessions: "OrderedDict[str, ConversationSession]" = OrderedDict()

    def get(self, key: str) -> Optional[ConversationSession]:
        session = self._sessions.get(key)
        if session is not None:
            self._sessions.move_to_end(key)
        return session

    def put(self, session: ConversationSession) -> None:
        key = session.session_key
        self._sessions[key] = session
        self._sessions.move_to_end(key)
        while len(self._sessions) > self.max_size:
            self._sessions.popitem(last=False)

    def pop(self, key: str) -> Optional[ConversationSession]:
        return self._sessions.pop(key, None)

    def discard_call(self, call_sid: str) -> int:
        """Drop every entry for a call, whichever tenant it was cached under"""
        keys = [key for key, session in self._sessions.items() if session.call_sid == call_sid]
        for key in keys:
            del self._sessions[key]
        return len(keys)

    def __contains__(self, key: str) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
