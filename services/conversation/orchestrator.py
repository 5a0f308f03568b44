"""
=====================================================
Voice Lead Agent - Turn Orchestrator
=====================================================

Entry point for every Twilio voice webhook. One call in, one TwiML
document out:

    GREETING -> LISTENING -> PROCESSING -> RESPONDING -> LISTENING | ENDED

Nothing here raises to the web layer. Any failure ends in a spoken
apology and a hangup, or a static <Say> if even that cannot be
synthesized.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Set

from loguru import logger

from services.business.business_base import TenantContext, mask_phone
from services.business.business_resolver import BusinessResolver
from services.business.prompts import build_greeting
from services.lead.lead_analyzer import LeadAnalyzer
from services.lead.lead_base import LeadInfo
from services.llm.llm_base import LLMRole
from services.llm.response_generator import ResponseGenerator
from services.telephony.twiml import TwimlBuilder
from services.tts.speech_synthesizer import SpeechSynthesizer
from services.tts.tts_base import ToneContext
from .conversation_store import ConversationStore
from .session import CallState, ConversationSession


REPROMPT = "I didn't catch that. Could you please repeat what you need help with?"
TECHNICAL_DIFFICULTIES = (
    "I'm sorry, we're experiencing technical difficulties. Please call back in a few minutes."
)

EMERGENCY_FOLLOW_UP = "Can I get your address to send someone out?"
NAME_FOLLOW_UP = "What's your name for our records?"
DEFAULT_FOLLOW_UP = "Anything else I can help with?"


@dataclass
class TurnOutcome:
    """What a webhook handler produced"""
    twiml: str
    state: CallState
    spoken_text: Optional[str] = None
    lead_info: Optional[LeadInfo] = None


def follow_up_for(lead_info: LeadInfo) -> str:
    if lead_info.has_emergency:
        return EMERGENCY_FOLLOW_UP
    if lead_info.service_type is not None and not lead_info.contact_name:
        return NAME_FOLLOW_UP
    return DEFAULT_FOLLOW_UP


class TurnOrchestrator:
    """
    Sequences tenant lookup, lead analysis, the LLM reply, persistence
    and speech synthesis for each webhook.

    Each webhook is independent; per-call state lives in the
    ConversationStore. Twilio delivers one call's webhooks strictly in
    order, so no locking is done here.
    """

    def __init__(
        self,
        resolver: BusinessResolver,
        analyzer: LeadAnalyzer,
        store: ConversationStore,
        responder: ResponseGenerator,
        synthesizer: SpeechSynthesizer,
        twiml: TwimlBuilder,
        confidence_threshold: float = 0.2,
    ):
        self.resolver = resolver
        self.analyzer = analyzer
        self.store = store
        self.responder = responder
        self.synthesizer = synthesizer
        self.twiml = twiml
        self.confidence_threshold = confidence_threshold

        self._background: Set[asyncio.Task] = set()

    # =====================================================
    # HELPERS
    # =====================================================

    def is_acceptable(self, text: str, confidence: Optional[float]) -> bool:
        """Recognized speech worth processing: non-empty and confidence >= threshold"""
        if not text or not text.strip():
            return False
        if confidence is None:
            # Twilio omits Confidence for some recognizers; trust the text
            return True
        return confidence >= self.confidence_threshold

    @staticmethod
    def _tone(tenant: Optional[TenantContext], lead_info: Optional[LeadInfo] = None) -> ToneContext:
        tone = ToneContext()
        if tenant is not None:
            tone.voice_style = tenant.ai_config.voice_style
            tone.voice_name = tenant.ai_config.voice_name
        if lead_info is not None:
            tone.is_emergency = lead_info.has_emergency
            tone.urgency = lead_info.urgency
        return tone

    def _schedule(self, coro) -> None:
        """Run persistence off the response path, keeping a reference until done"""
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_background(self) -> None:
        """Wait for pending persistence (shutdown and tests)"""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _persist_turn(
        self,
        session: ConversationSession,
        user_text: str,
        user_at: datetime,
        reply: str,
        reply_at: datetime,
        lead_info: LeadInfo,
    ) -> None:
        # Sequential so the two messages keep their order in the store
        await self.store.append_message(session, LLMRole.USER, user_text, created_at=user_at)
        await self.store.append_message(session, LLMRole.ASSISTANT, reply, created_at=reply_at)
        await self.store.upsert_lead(
            session.caller_number, lead_info, session.call_sid, tenant_id=session.tenant_id
        )

    async def _technical_difficulties(self, tenant: Optional[TenantContext]) -> TurnOutcome:
        """Apology and hangup; static <Say> if synthesis is down too"""
        try:
            audio_url = await self.synthesizer.speak(TECHNICAL_DIFFICULTIES, self._tone(tenant))
            twiml = self.twiml.play_and_hangup(audio_url)
        except Exception as e:
            logger.error(f"Orchestrator: Apology synthesis failed, falling back to <Say>: {e}")
            twiml = self.twiml.say_and_hangup(TECHNICAL_DIFFICULTIES)
        return TurnOutcome(twiml=twiml, state=CallState.ENDED, spoken_text=TECHNICAL_DIFFICULTIES)

    # =====================================================
    # WEBHOOK HANDLERS
    # =====================================================

    async def handle_incoming_call(
        self,
        called_number: str,
        caller_number: str,
        call_sid: str,
    ) -> TurnOutcome:
        """
        First webhook of a call: greet and start listening.

        Args:
            called_number: Number the caller dialed (Twilio "To")
            caller_number: Caller's number (Twilio "From")
            call_sid: Twilio CallSid
        """
        tenant: Optional[TenantContext] = None
        try:
            tenant = await self.resolver.resolve(called_number)
            session = await self.store.load_or_create(tenant, call_sid, caller_number)

            known_name = session.lead_info.contact_name if session.previous_calls else None
            greeting = build_greeting(tenant, known_name=known_name)

            audio_url = await self.synthesizer.speak(greeting, self._tone(tenant))
            session.state = CallState.LISTENING

            logger.info(
                f"Orchestrator: Greeting call {call_sid} from {mask_phone(caller_number)} "
                f"for {tenant.company_name}"
            )
            return TurnOutcome(
                twiml=self.twiml.play_and_gather(audio_url),
                state=CallState.LISTENING,
                spoken_text=greeting,
                lead_info=session.lead_info,
            )
        except Exception as e:
            logger.error(f"Orchestrator: Greeting failed for call {call_sid}: {e}")
            return await self._technical_difficulties(tenant)

    async def handle_turn(
        self,
        called_number: str,
        caller_number: str,
        call_sid: str,
        speech_result: Optional[str],
        confidence: Optional[float],
    ) -> TurnOutcome:
        """
        One caller utterance in, the assistant's spoken reply out.

        Args:
            called_number: Number the caller dialed (Twilio "To")
            caller_number: Caller's number (Twilio "From")
            call_sid: Twilio CallSid
            speech_result: Twilio SpeechResult
            confidence: Twilio Confidence (0.0-1.0)
        """
        tenant: Optional[TenantContext] = None
        try:
            tenant = await self.resolver.resolve(called_number)
            session = await self.store.load_or_create(tenant, call_sid, caller_number)
            text = (speech_result or "").strip()

            # LISTENING: ask again on empty or low-confidence speech
            if not self.is_acceptable(text, confidence):
                logger.info(
                    f"Orchestrator: Low confidence ({confidence}) or empty speech on call {call_sid}, reprompting"
                )
                session.state = CallState.LISTENING
                audio_url = await self.synthesizer.speak(REPROMPT, self._tone(tenant, session.lead_info))
                return TurnOutcome(
                    twiml=self.twiml.play_and_gather(audio_url, session.lead_info.has_emergency),
                    state=CallState.LISTENING,
                    spoken_text=REPROMPT,
                    lead_info=session.lead_info,
                )

            # PROCESSING
            session.state = CallState.PROCESSING
            logger.info(f"Orchestrator: Call {call_sid} said: {text}")

            signal = self.analyzer.analyze(text, tenant)
            lead_info = session.lead_info.merge(signal)
            if signal.matched_keywords:
                logger.warning(f"Orchestrator: Emergency keywords on call {call_sid}: {signal.matched_keywords}")

            user_at = datetime.now(timezone.utc)
            session.add_message(LLMRole.USER, text)

            reply = await self.responder.reply(session.to_llm_messages())
            reply_at = datetime.now(timezone.utc)
            session.add_message(LLMRole.ASSISTANT, reply)

            # RESPONDING
            session.state = CallState.RESPONDING
            self._schedule(self._persist_turn(session, text, user_at, reply, reply_at, lead_info.copy()))

            spoken = reply if reply.rstrip().endswith("?") else f"{reply} {follow_up_for(lead_info)}"
            audio_url = await self.synthesizer.speak(spoken, self._tone(tenant, lead_info))

            session.state = CallState.LISTENING
            logger.info(
                f"Orchestrator: Call {call_sid} turn {session.turn_count} done, "
                f"lead score {lead_info.qualification_score}"
            )
            return TurnOutcome(
                twiml=self.twiml.play_and_gather(audio_url, lead_info.has_emergency),
                state=CallState.LISTENING,
                spoken_text=spoken,
                lead_info=lead_info,
            )
        except Exception as e:
            logger.error(f"Orchestrator: Turn failed for call {call_sid}: {e}")
            return await self._technical_difficulties(tenant)

    async def end_call(self, call_sid: str, status: str) -> CallState:
        """Twilio status callback; releases per-call memory once the call is over"""
        if status in ("completed", "busy", "failed", "no-answer", "canceled"):
            self.store.forget(call_sid)
            logger.info(f"Orchestrator: Call {call_sid} ended ({status})")
            return CallState.ENDED
        return CallState.LISTENING
