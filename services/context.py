"""
=====================================================
Voice Lead Agent - Application Context
=====================================================
Every service the request handlers use, built once per process and
stored on app.state. Handlers get it from the request instead of from
module-level singletons.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from loguru import logger

from config.settings import Settings
from services.business.business_resolver import BusinessResolver
from services.business.industry_templates import IndustryTemplateStore, get_template_store
from services.conversation.conversation_store import ConversationStore
from services.conversation.orchestrator import TurnOrchestrator
from services.dashboard.auth_service import AuthService
from services.dashboard.dashboard_service import DashboardService
from services.database import Database
from services.lead.lead_analyzer import LeadAnalyzer
from services.llm.llm_base import LLMServiceBase
from services.llm.openai_service import create_openai_llm
from services.llm.response_generator import ResponseGenerator
from services.storage.blob_storage import AudioStorage, create_audio_storage
from services.telephony.twiml import TwimlBuilder, VOICE_STREAM_PATH, VOICE_TWIML_PATH
from services.tts.elevenlabs_service import create_elevenlabs_tts
from services.tts.speech_synthesizer import SpeechSynthesizer
from services.tts.tts_base import TTSServiceBase


@dataclass
class AppContext:
    settings: Settings
    database: Database
    templates: IndustryTemplateStore
    resolver: BusinessResolver
    store: ConversationStore
    responder: ResponseGenerator
    synthesizer: SpeechSynthesizer
    orchestrator: TurnOrchestrator
    dashboard: DashboardService
    auth: AuthService
    llm: Optional[LLMServiceBase] = None
    tts: Optional[TTSServiceBase] = None
    storage: Optional[AudioStorage] = None

    async def close(self):
        """Flush background writes and release clients"""
        await self.orchestrator.wait_for_background()
        for name, resource in (("llm", self.llm), ("tts", self.tts), ("storage", self.storage)):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"AppContext: Error closing {name}: {e}")
        await self.database.close()


def build_context(settings: Settings) -> AppContext:
    """Wire up all services from settings; unconfigured services degrade to None"""
    config = settings.model_dump()

    database = Database(
        dsn=settings.database_url,
        connect_timeout=settings.db_connect_timeout,
        retry_cooldown=settings.db_retry_cooldown,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    templates = get_template_store()
    resolver = BusinessResolver(database, templates)
    store = ConversationStore(
        database,
        message_ttl_days=settings.message_ttl_days,
        lead_ttl_days=settings.lead_ttl_days,
        cache_size=settings.session_cache_size,
        returning_call_lookback=settings.returning_call_lookback,
    )

    llm = create_openai_llm(config)
    responder = ResponseGenerator(
        llm,
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
    )

    tts = create_elevenlabs_tts(config)
    storage = create_audio_storage(config)
    synthesizer = SpeechSynthesizer(tts, storage, default_voice_id=settings.elevenlabs_voice_id)

    twiml = TwimlBuilder(
        action_url=settings.webhook_url(VOICE_STREAM_PATH),
        redirect_url=settings.webhook_url(VOICE_TWIML_PATH),
        gather_timeout=settings.gather_timeout,
        emergency_gather_timeout=settings.emergency_gather_timeout,
        say_voice=settings.fallback_say_voice,
    )
    orchestrator = TurnOrchestrator(
        resolver=resolver,
        analyzer=LeadAnalyzer(),
        store=store,
        responder=responder,
        synthesizer=synthesizer,
        twiml=twiml,
        confidence_threshold=settings.speech_confidence_threshold,
    )

    dashboard = DashboardService(
        database,
        lead_limit=settings.dashboard_lead_limit,
        conversation_limit=settings.dashboard_conversation_limit,
        high_score_threshold=settings.high_score_threshold,
    )
    auth = AuthService(
        database,
        session_expiry_hours=settings.session_expiry_hours,
        max_login_attempts=settings.max_login_attempts,
        lockout_minutes=settings.lockout_minutes,
    )

    return AppContext(
        settings=settings,
        database=database,
        templates=templates,
        resolver=resolver,
        store=store,
        responder=responder,
        synthesizer=synthesizer,
        orchestrator=orchestrator,
        dashboard=dashboard,
        auth=auth,
        llm=llm,
        tts=tts,
        storage=storage,
    )


def get_app_context(request: Request) -> AppContext:
    """FastAPI dependency"""
    return request.app.state.context
