"""
=====================================================
Voice Lead Agent - Conversation Store
=====================================================
PostgreSQL-backed call history and lead records, with an in-process
fallback so a storage outage never fails a live call.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

from loguru import logger

from services.business.business_base import TenantContext, mask_phone
from services.business.prompts import build_system_prompt, generic_system_prompt
from services.database import Database, load_json
from services.lead.lead_base import LeadInfo
from services.llm.llm_base import LLMRole
from .session import ConversationSession, SessionCache, session_key


PRIVATE_NUMBER_MARKERS = ("private", "unknown", "anonymous", "restricted", "")


class ConversationStore:
    """
    Loads and persists ConversationSessions.

    Both paths return the same ConversationSession type; is_durable tells
    which one served the request.
    """

    def __init__(
        self,
        database: Database,
        message_ttl_days: int = 365,
        lead_ttl_days: int = 730,
        cache_size: int = 1000,
        returning_call_lookback: int = 3,
    ):
        self.database = database
        self.message_ttl = timedelta(days=message_ttl_days)
        self.lead_ttl = timedelta(days=lead_ttl_days)
        self.returning_call_lookback = returning_call_lookback
        # Live calls by session key; serves as the fallback when the store is down
        self._sessions = SessionCache(cache_size)

    # ---- helpers ------------------------------------------------

    @staticmethod
    def _is_private_number(phone_number: str) -> bool:
        if not phone_number:
            return True
        return phone_number.lower().strip() in PRIVATE_NUMBER_MARKERS

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    @property
    def sessions(self) -> SessionCache:
        return self._sessions

    # ---- load ---------------------------------------------------

    async def load_or_create(
        self,
        tenant: TenantContext,
        call_sid: str,
        caller_number: str,
    ) -> ConversationSession:
        """
        Session for this call, seeded with a system prompt.

        Args:
            tenant: Resolved tenant for the dialed number
            call_sid: Twilio CallSid
            caller_number: Caller's number (Twilio "From")

        Returns:
            ConversationSession from the durable store, or from the
            in-process fallback when the store is unavailable
        """
        cached = self._cached(tenant.tenant_id, call_sid)
        try:
            rows, previous_calls, lead_info = await self._fetch_durable(tenant.tenant_id, call_sid, caller_number)
        except Exception as e:
            logger.warning(f"ConversationStore: Durable store unavailable, using memory fallback: {e}")
            return self._memory_session(tenant, call_sid, caller_number, cached)

        if cached is not None:
            # Lead writes run in the background and may lag the next turn
            lead_info = cached.lead_info.copy()

        session = ConversationSession(
            call_sid=call_sid,
            caller_number=caller_number,
            tenant_id=tenant.tenant_id,
            system_prompt=self._system_prompt(tenant, previous_calls, lead_info.contact_name),
            lead_info=lead_info,
            is_durable=True,
            previous_calls=previous_calls,
        )
        for row in rows:
            try:
                role = LLMRole(row["role"])
            except ValueError:
                continue
            session.add_message(role, row["content"])

        if cached is not None and len(cached.messages) > len(session.messages):
            # Turns served from memory during an outage never reached the store
            session.messages = list(cached.messages)
        if cached is not None and cached.session_key != session.session_key:
            self._sessions.pop(cached.session_key)

        self._sessions.put(session)
        logger.info(
            f"ConversationStore: Loaded call {call_sid} ({len(session.messages)} messages, "
            f"{previous_calls} previous calls from {mask_phone(caller_number)})"
        )
        return session

    def _cached(self, tenant_id: str, call_sid: str) -> Optional[ConversationSession]:
        # A call that began before its tenant resolved is cached under the bare call sid
        return self._sessions.get(session_key(tenant_id, call_sid)) or self._sessions.get(call_sid)

    def _memory_session(
        self,
        tenant: TenantContext,
        call_sid: str,
        caller_number: str,
        cached: Optional[ConversationSession],
    ) -> ConversationSession:
        if cached is not None:
            return cached
        session = ConversationSession(
            call_sid=call_sid,
            caller_number=caller_number,
            tenant_id=tenant.tenant_id,
            system_prompt=generic_system_prompt(),
        )
        self._sessions.put(session)
        logger.info(f"ConversationStore: New in-memory session for call {call_sid}")
        return session

    @staticmethod
    def _system_prompt(tenant: TenantContext, previous_calls: int, known_name: Optional[str]) -> str:
        try:
            return build_system_prompt(tenant, previous_calls=previous_calls, known_name=known_name)
        except Exception as e:
            logger.error(f"ConversationStore: Could not build prompt for {tenant.tenant_id}, using generic prompt: {e}")
            return generic_system_prompt()

    async def _fetch_durable(
        self,
        tenant_id: str,
        call_sid: str,
        caller_number: str,
    ) -> Tuple[List[Any], int, LeadInfo]:
        """(message rows, previous call count, lead info) for this call"""
        pool = await self.database.get_pool()

        rows = await pool.fetch(
            """
            SELECT role, content
            FROM conversation_messages
            WHERE tenant_id = $1 AND call_sid = $2 AND expires_at > NOW()
            ORDER BY created_at ASC
            """,
            tenant_id, call_sid,
        )

        previous_calls = 0
        lead_info = LeadInfo()
        if not self._is_private_number(caller_number):
            prior = await pool.fetch(
                """
                SELECT call_sid, MAX(created_at) AS last_message_at
                FROM conversation_messages
                WHERE tenant_id = $1 AND phone_number = $2 AND call_sid <> $3
                  AND expires_at > NOW()
                GROUP BY call_sid
                ORDER BY last_message_at DESC
                LIMIT $4
                """,
                tenant_id, caller_number, call_sid, self.returning_call_lookback,
            )
            previous_calls = len(prior)

            lead_row = await pool.fetchrow(
                """
                SELECT lead_info, last_call_sid
                FROM leads
                WHERE tenant_id = $1 AND phone_number = $2 AND expires_at > NOW()
                """,
                tenant_id, caller_number,
            )
            if lead_row is not None:
                stored = LeadInfo.from_dict(load_json(lead_row["lead_info"], {}))
                if lead_row["last_call_sid"] == call_sid:
                    lead_info = stored
                else:
                    # New call: only the caller's name carries over
                    lead_info = LeadInfo(contact_name=stored.contact_name)

        return rows, previous_calls, lead_info

    # ---- writes -------------------------------------------------

    async def append_message(
        self,
        session: ConversationSession,
        role: LLMRole,
        text: str,
        created_at: Optional[datetime] = None,
    ) -> bool:
        """
        Persist one message. Failures are logged, never raised.

        Returns:
            True if the row was written
        """
        created_at = created_at or self._now()
        try:
            pool = await self.database.get_pool()
            await pool.execute(
                """
                INSERT INTO conversation_messages
                    (tenant_id, call_sid, phone_number, role, content, created_at, expires_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                """,
                session.tenant_id, session.call_sid, session.caller_number,
                role.value, text, created_at, created_at + self.message_ttl,
            )
            return True
        except Exception as e:
            logger.warning(f"ConversationStore: Failed to save {role.value} message for {session.call_sid}: {e}")
            return False

    async def upsert_lead(
        self,
        phone_number: str,
        lead_info: LeadInfo,
        call_sid: str,
        tenant_id: str = "default",
    ) -> bool:
        """
        Insert or replace the lead record for a phone number.

        Idempotent: the score is derived from lead_info.

        Returns:
            True if the row was written
        """
        if self._is_private_number(phone_number):
            logger.info(f"ConversationStore: Private number, lead not saved for call {call_sid}")
            return False

        now = self._now()
        try:
            pool = await self.database.get_pool()
            await pool.execute(
                """
                INSERT INTO leads
                    (tenant_id, phone_number, lead_info, score, last_contact, last_call_sid, expires_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                ON CONFLICT (tenant_id, phone_number) DO UPDATE
                    SET lead_info = EXCLUDED.lead_info,
                        score = EXCLUDED.score,
                        last_contact = EXCLUDED.last_contact,
                        last_call_sid = EXCLUDED.last_call_sid,
                        expires_at = EXCLUDED.expires_at
                """,
                tenant_id, phone_number, lead_info.to_dict(), lead_info.qualification_score,
                now, call_sid, now + self.lead_ttl,
            )
            logger.info(
                f"ConversationStore: Lead {mask_phone(phone_number)} scored {lead_info.qualification_score}"
            )
            return True
        except Exception as e:
            logger.warning(f"ConversationStore: Failed to update lead {mask_phone(phone_number)}: {e}")
            return False

    def forget(self, call_sid: str) -> None:
        """Drop a finished call from the in-process cache"""
        if self._sessions.discard_call(call_sid):
            logger.debug(f"ConversationStore: Released in-memory session {call_sid}")
