"""Tests for the per-webhook turn state machine."""

import pytest

from services.conversation.orchestrator import (
    DEFAULT_FOLLOW_UP,
    EMERGENCY_FOLLOW_UP,
    NAME_FOLLOW_UP,
    REPROMPT,
    TECHNICAL_DIFFICULTIES,
    follow_up_for,
)
from services.conversation.session import CallState
from services.lead.lead_base import LeadInfo, ServiceType
from services.llm.llm_base import LLMError, LLMErrorKind
from services.llm.response_generator import CONFIGURATION_APOLOGY
from tests.conftest import (
    FakeDatabase,
    FakeLLM,
    FakePool,
    FakeStorage,
    FakeTTS,
    business_row,
    make_orchestrator,
)


CALLED = "+15550001111"
CALLER = "+15551234567"


class TestConfidenceGate:
    def setup_method(self):
        self.orchestrator = make_orchestrator(confidence_threshold=0.2)

    def test_threshold_is_inclusive(self):
        assert self.orchestrator.is_acceptable("hello", 0.2) is True
        assert self.orchestrator.is_acceptable("hello", 0.19) is False

    def test_missing_confidence_trusts_text(self):
        assert self.orchestrator.is_acceptable("hello", None) is True

    def test_empty_text_rejected(self):
        assert self.orchestrator.is_acceptable("  ", 0.99) is False


class TestFollowUp:
    def test_emergency(self):
        assert follow_up_for(LeadInfo(has_emergency=True)) == EMERGENCY_FOLLOW_UP

    def test_service_without_name(self):
        assert follow_up_for(LeadInfo(service_type=ServiceType.REPAIR)) == NAME_FOLLOW_UP

    def test_default(self):
        assert follow_up_for(LeadInfo(service_type=ServiceType.REPAIR, contact_name="Jo")) == DEFAULT_FOLLOW_UP


class TestIncomingCall:
    @pytest.mark.asyncio
    async def test_unknown_number_greets_as_default_tenant(self):
        storage = FakeStorage()
        orchestrator = make_orchestrator(FakeDatabase(FakePool()), FakeLLM(), FakeTTS(), storage)

        outcome = await orchestrator.handle_incoming_call("+15559999999", CALLER, "CA100")

        assert outcome.state == CallState.LISTENING
        assert "Blue Caller HVAC" in outcome.spoken_text
        assert storage.uploads == [outcome.spoken_text]
        assert outcome.twiml.count("<Play>") == 1
        assert outcome.twiml.count("<Gather") == 1
        assert "<Redirect" in outcome.twiml

    @pytest.mark.asyncio
    async def test_known_number_uses_tenant_greeting(self):
        pool = FakePool()
        pool.fetchrow_results["FROM businesses"] = business_row(industry="plumbing", company_name="Drip Stop")
        orchestrator = make_orchestrator(FakeDatabase(pool), FakeLLM(), FakeTTS(), FakeStorage())

        outcome = await orchestrator.handle_incoming_call(CALLED, CALLER, "CA100")

        assert outcome.spoken_text == "Thanks for calling Drip Stop! What plumbing issue can we help you with?"

    @pytest.mark.asyncio
    async def test_returning_caller_greeted_by_name(self):
        pool = FakePool()
        pool.fetch_results["GROUP BY call_sid"] = [{"call_sid": "CA001"}]
        pool.fetchrow_results["FROM leads"] = {
            "lead_info": {"contactName": "Jane"},
            "last_call_sid": "CA001",
        }
        orchestrator = make_orchestrator(FakeDatabase(pool), FakeLLM(), FakeTTS(), FakeStorage())

        outcome = await orchestrator.handle_incoming_call(CALLED, CALLER, "CA100")

        assert outcome.spoken_text.startswith("Welcome back, Jane! ")

    @pytest.mark.asyncio
    async def test_synthesis_and_storage_down_falls_back_to_say(self):
        orchestrator = make_orchestrator(FakeDatabase(available=False), FakeLLM(), FakeTTS(fail=True), FakeStorage())

        outcome = await orchestrator.handle_incoming_call(CALLED, CALLER, "CA100")

        assert outcome.state == CallState.ENDED
        assert "<Say" in outcome.twiml
        assert TECHNICAL_DIFFICULTIES in outcome.twiml
        assert "<Hangup" in outcome.twiml
        assert "<Play>" not in outcome.twiml

    @pytest.mark.asyncio
    async def test_no_tts_configured_falls_back_to_say(self):
        orchestrator = make_orchestrator(FakeDatabase(available=False), FakeLLM(), None, None)
        outcome = await orchestrator.handle_incoming_call(CALLED, CALLER, "CA100")
        assert outcome.state == CallState.ENDED
        assert "<Say" in outcome.twiml


class TestTurn:
    @pytest.mark.asyncio
    async def test_low_confidence_reprompts_without_touching_lead(self):
        llm = FakeLLM()
        storage = FakeStorage()
        orchestrator = make_orchestrator(FakeDatabase(available=False), llm, FakeTTS(), storage)
        await orchestrator.handle_incoming_call(CALLED, CALLER, "CA100")

        outcome = await orchestrator.handle_turn(CALLED, CALLER, "CA100", "no heat emergency", 0.05)

        assert outcome.spoken_text == REPROMPT
        assert outcome.state == CallState.LISTENING
        assert outcome.lead_info == LeadInfo()
        assert "<Gather" in outcome.twiml
        assert llm.requests == []

    @pytest.mark.asyncio
    async def test_emergency_turn(self):
        pool = FakePool()
        llm = FakeLLM(reply="I'm sorry to hear that, we'll get someone out right away.")
        tts = FakeTTS()
        orchestrator = make_orchestrator(FakeDatabase(pool), llm, tts, FakeStorage())

        outcome = await orchestrator.handle_turn(
            CALLED, CALLER, "CA100",
            "This is an emergency, my furnace isn't working and I smell gas", 0.92,
        )
        await orchestrator.wait_for_background()

        assert outcome.state == CallState.LISTENING
        assert outcome.lead_info.has_emergency is True
        assert outcome.lead_info.qualification_score == 100
        assert outcome.spoken_text.endswith(EMERGENCY_FOLLOW_UP)
        # faster, steadier voice for an emergency
        assert tts.requests[-1].voice.speed == 1.1
        # shorter gather timeout
        assert 'timeout="15"' in outcome.twiml

        messages = pool.executed_matching("INSERT INTO conversation_messages")
        assert [args[3] for args in messages] == ["user", "assistant"]
        assert messages[0][5] <= messages[1][5]
        (lead_write,) = pool.executed_matching("INSERT INTO leads")
        assert lead_write[3] == 100

        # system prompt first, then the caller's words
        sent = llm.requests[0].messages
        assert sent[0].content.startswith("You are a friendly customer service agent")
        assert sent[-1].content.startswith("This is an emergency")

    @pytest.mark.asyncio
    async def test_question_reply_gets_no_follow_up(self):
        orchestrator = make_orchestrator(
            FakeDatabase(available=False), FakeLLM(reply="What's your address?"), FakeTTS(), FakeStorage()
        )
        outcome = await orchestrator.handle_turn(CALLED, CALLER, "CA100", "My heater is making strange noises", None)
        assert outcome.spoken_text == "What's your address?"

    @pytest.mark.asyncio
    async def test_lead_accumulates_across_turns_in_memory(self):
        orchestrator = make_orchestrator(FakeDatabase(available=False), FakeLLM(), FakeTTS(), FakeStorage())

        await orchestrator.handle_turn(CALLED, CALLER, "CA100", "My furnace is broken", 0.9)
        outcome = await orchestrator.handle_turn(CALLED, CALLER, "CA100", "my name is Sam Lee", 0.9)

        assert outcome.lead_info.service_type == ServiceType.REPAIR
        assert outcome.lead_info.contact_name == "Sam Lee"
        session = orchestrator.store.sessions.get("CA100")
        assert session.turn_count == 2

    @pytest.mark.asyncio
    async def test_history_kept_when_store_recovers_mid_call(self):
        pool = FakePool()
        pool.fetchrow_results["FROM businesses"] = business_row()
        database = FakeDatabase(pool, available=False)
        llm = FakeLLM()
        orchestrator = make_orchestrator(database, llm, FakeTTS(), FakeStorage())

        await orchestrator.handle_turn(CALLED, CALLER, "CA100", "My furnace is broken", 0.9)
        await orchestrator.wait_for_background()
        database.available = True
        await orchestrator.handle_turn(CALLED, CALLER, "CA100", "my name is Sam Lee", 0.9)

        sent = [m.content for m in llm.requests[1].messages]
        assert "My furnace is broken" in sent
        assert sent[-1] == "my name is Sam Lee"
        assert "Acme Heating" in sent[0]

    @pytest.mark.asyncio
    async def test_store_failing_everywhere_still_answers(self):
        pool = FakePool(fail_with=RuntimeError("connection lost"))
        storage = FakeStorage()
        orchestrator = make_orchestrator(FakeDatabase(pool), FakeLLM(), FakeTTS(), storage)

        outcome = await orchestrator.handle_turn(CALLED, CALLER, "CA100", "my AC stopped working", 0.8)
        await orchestrator.wait_for_background()

        assert outcome.state == CallState.LISTENING
        assert outcome.twiml.startswith("<?xml")
        assert "<Play>" in outcome.twiml
        assert outcome.spoken_text.startswith("Sure, we can help with that.")

    @pytest.mark.asyncio
    async def test_llm_failure_is_spoken_as_apology(self):
        llm = FakeLLM(error=LLMError(LLMErrorKind.CONFIGURATION, "deployment not found"))
        orchestrator = make_orchestrator(FakeDatabase(available=False), llm, FakeTTS(), FakeStorage())

        outcome = await orchestrator.handle_turn(CALLED, CALLER, "CA100", "my AC stopped working", 0.8)

        assert outcome.state == CallState.LISTENING
        assert outcome.spoken_text.startswith(CONFIGURATION_APOLOGY)

    @pytest.mark.asyncio
    async def test_upload_failure_ends_call(self):
        orchestrator = make_orchestrator(FakeDatabase(available=False), FakeLLM(), FakeTTS(), FakeStorage(fail=True))

        outcome = await orchestrator.handle_turn(CALLED, CALLER, "CA100", "my AC stopped working", 0.8)

        assert outcome.state == CallState.ENDED
        assert "<Say" in outcome.twiml


class TestEndCall:
    @pytest.mark.asyncio
    async def test_completed_call_releases_session(self):
        orchestrator = make_orchestrator(FakeDatabase(available=False), FakeLLM(), FakeTTS(), FakeStorage())
        await orchestrator.handle_incoming_call(CALLED, CALLER, "CA100")

        assert await orchestrator.end_call("CA100", "completed") == CallState.ENDED
        assert "CA100" not in orchestrator.store.sessions

    @pytest.mark.asyncio
    async def test_in_progress_status_keeps_session(self):
        orchestrator = make_orchestrator(FakeDatabase(available=False), FakeLLM(), FakeTTS(), FakeStorage())
        await orchestrator.handle_incoming_call(CALLED, CALLER, "CA100")

        assert await orchestrator.end_call("CA100", "in-progress") == CallState.LISTENING
        assert "CA100" in orchestrator.store.sessions
