"""Shared test fixtures, fakes and helpers."""

from typing import Any, Dict, List, Optional

import pytest

from config.settings import Settings
from services.business.business_base import (
    AIConfig,
    BusinessHours,
    Industry,
    Schedule,
    Tenant,
    TenantContext,
)
from services.business.business_resolver import BusinessResolver
from services.business.industry_templates import IndustryTemplateStore
from services.context import AppContext
from services.conversation.conversation_store import ConversationStore
from services.conversation.orchestrator import TurnOrchestrator
from services.dashboard.auth_service import AuthService
from services.dashboard.dashboard_service import DashboardService
from services.database import DatabaseUnavailableError
from services.lead.lead_analyzer import LeadAnalyzer
from services.llm.llm_base import LLMRequest, LLMResponse, LLMServiceBase
from services.llm.response_generator import ResponseGenerator
from services.telephony.twiml import TwimlBuilder
from services.tts.speech_synthesizer import SpeechSynthesizer
from services.tts.tts_base import (
    AudioUploadError,
    SpeechSynthesisError,
    TTSRequest,
    TTSResponse,
    TTSServiceBase,
)


# =====================================================
# DATABASE FAKES
# =====================================================

class FakePool:
    """
    asyncpg pool stand-in. Results are looked up by a SQL fragment the
    query must contain; values may be callables taking the query args.
    """

    def __init__(self, fail_with: Optional[Exception] = None):
        self.fail_with = fail_with
        self.fetch_results: Dict[str, Any] = {}
        self.fetchrow_results: Dict[str, Any] = {}
        self.fetchval_results: Dict[str, Any] = {}
        self.executed: List[tuple] = []

    def _lookup(self, table: Dict[str, Any], query: str, args: tuple, default):
        if self.fail_with is not None:
            raise self.fail_with
        for fragment, result in table.items():
            if fragment in query:
                return result(*args) if callable(result) else result
        return default

    async def fetch(self, query: str, *args):
        return self._lookup(self.fetch_results, query, args, [])

    async def fetchrow(self, query: str, *args):
        return self._lookup(self.fetchrow_results, query, args, None)

    async def fetchval(self, query: str, *args):
        return self._lookup(self.fetchval_results, query, args, None)

    async def execute(self, query: str, *args):
        if self.fail_with is not None:
            raise self.fail_with
        self.executed.append((query, args))
        return "OK"

    def executed_matching(self, fragment: str) -> List[tuple]:
        return [args for query, args in self.executed if fragment in query]


class FakeDatabase:
    """Database stand-in; unavailable means get_pool raises"""

    def __init__(self, pool: Optional[FakePool] = None, available: bool = True):
        self.pool = pool or FakePool()
        self.available = available
        self.closed = False

    @property
    def is_configured(self) -> bool:
        return self.available

    @property
    def is_connected(self) -> bool:
        return self.available

    async def get_pool(self) -> FakePool:
        if not self.available:
            raise DatabaseUnavailableError("DATABASE_URL is not configured")
        return self.pool

    async def close(self):
        self.closed = True


# =====================================================
# SERVICE FAKES
# =====================================================

class FakeLLM(LLMServiceBase):
    """Replies with fixed text, or raises the configured error"""

    def __init__(self, reply: str = "Sure, we can help with that.", error: Optional[Exception] = None):
        super().__init__(api_key="test-key", model="fake-model")
        self.reply = reply
        self.error = error
        self.requests: List[LLMRequest] = []

    async def chat(self, request: LLMRequest) -> LLMResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.reply, tokens_used=12)


class FakeTTS(TTSServiceBase):
    def __init__(self, fail: bool = False):
        super().__init__(api_key="test-key", default_voice_id="Rachel")
        self.fail = fail
        self.requests: List[TTSRequest] = []

    async def synthesize(self, request: TTSRequest) -> TTSResponse:
        self.requests.append(request)
        if self.fail:
            raise SpeechSynthesisError("ElevenLabs returned 500")
        return TTSResponse(
            audio_data=b"ID3fake-audio",
            format="mp3",
            content_type="audio/mpeg",
            text=request.text,
            voice_id=request.voice.voice_id,
        )

    async def get_available_voices(self, language: str = "all") -> List[dict]:
        return [{"voice_id": "21m00Tcm4TlvDq8ikWAM", "name": "Rachel", "category": "premade", "labels": {}}]


class FakeStorage:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads: List[str] = []

    async def upload_audio(self, text, audio, voice_id, content_type="audio/mpeg", extension="mp3") -> str:
        if self.fail:
            raise AudioUploadError("Upload failed: container unavailable")
        self.uploads.append(text)
        return f"https://audio.test/voice-audio/clip-{len(self.uploads)}.{extension}"

    async def close(self):
        return None


# =====================================================
# BUILDERS
# =====================================================

def make_tenant(
    industry: Industry = Industry.HVAC,
    company_name: str = "Acme Heating",
    tenant_id: str = "biz-1",
    ai_config: Optional[AIConfig] = None,
    schedule: Optional[Schedule] = None,
    services: Optional[List[str]] = None,
) -> TenantContext:
    """Helper to create a TenantContext with sensible defaults."""
    tenant = Tenant(
        id=tenant_id,
        company_name=company_name,
        industry=industry,
        services=services if services is not None else ["furnace repair", "ac installation"],
        schedule=schedule or Schedule(
            weekday=BusinessHours("08:00", "17:00"),
            weekend=BusinessHours("09:00", "15:00"),
        ),
        twilio_numbers=["+15550001111"],
    )
    return TenantContext(
        tenant=tenant,
        ai_config=ai_config or AIConfig(),
        template=IndustryTemplateStore().template_for(industry),
    )


def business_row(
    business_id: str = "biz-1",
    company_name: str = "Acme Heating",
    industry: str = "hvac",
    twilio_numbers: Optional[List[str]] = None,
    schedule: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """A businesses table row as the pool returns it"""
    return {
        "id": business_id,
        "company_name": company_name,
        "industry": industry,
        "services": ["furnace repair", "ac installation"],
        "schedule": schedule or {
            "weekdayHours": {"open": "08:00", "close": "17:00"},
            "weekendHours": None,
        },
        "twilio_numbers": twilio_numbers or ["+15550001111"],
    }


def make_orchestrator(
    database: Optional[FakeDatabase] = None,
    llm: Optional[LLMServiceBase] = None,
    tts: Optional[TTSServiceBase] = None,
    storage: Optional[FakeStorage] = None,
    confidence_threshold: float = 0.2,
) -> TurnOrchestrator:
    database = database or FakeDatabase(available=False)
    templates = IndustryTemplateStore()
    return TurnOrchestrator(
        resolver=BusinessResolver(database, templates),
        analyzer=LeadAnalyzer(),
        store=ConversationStore(database),
        responder=ResponseGenerator(llm),
        synthesizer=SpeechSynthesizer(tts, storage),
        twiml=TwimlBuilder(),
        confidence_threshold=confidence_threshold,
    )


def make_app_context(
    database: Optional[FakeDatabase] = None,
    llm: Optional[LLMServiceBase] = None,
    tts: Optional[TTSServiceBase] = None,
    storage: Optional[FakeStorage] = None,
    **settings_values,
) -> AppContext:
    """AppContext wired with fakes, mirroring build_context"""
    settings = Settings(_env_file=None, **settings_values)
    database = database or FakeDatabase(available=False)
    templates = IndustryTemplateStore()
    resolver = BusinessResolver(database, templates)
    store = ConversationStore(database)
    responder = ResponseGenerator(llm)
    synthesizer = SpeechSynthesizer(tts, storage)
    orchestrator = TurnOrchestrator(
        resolver=resolver,
        analyzer=LeadAnalyzer(),
        store=store,
        responder=responder,
        synthesizer=synthesizer,
        twiml=TwimlBuilder(),
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
        dashboard=DashboardService(database),
        auth=AuthService(database),
        llm=llm,
        tts=tts,
        storage=storage,
    )


# =====================================================
# FIXTURES
# =====================================================

@pytest.fixture
def hvac_tenant() -> TenantContext:
    return make_tenant()


@pytest.fixture
def analyzer() -> LeadAnalyzer:
    return LeadAnalyzer()


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture
def fake_db(fake_pool) -> FakeDatabase:
    return FakeDatabase(fake_pool)
