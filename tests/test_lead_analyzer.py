"""Tests for lead signal extraction and scoring."""

import pytest

from services.business.business_base import Industry
from services.lead.lead_analyzer import LeadAnalyzer
from services.lead.lead_base import (
    LeadInfo,
    LeadSignal,
    ServiceType,
    UrgencyLevel,
    calculate_lead_score,
)
from tests.conftest import make_tenant


class TestCallerScenarios:
    def setup_method(self):
        self.analyzer = LeadAnalyzer()
        self.tenant = make_tenant(Industry.HVAC)

    def test_gas_smell_emergency(self):
        signal = self.analyzer.analyze(
            "This is an emergency, my furnace isn't working and I smell gas", self.tenant
        )
        assert signal.has_emergency is True
        assert signal.service_type == ServiceType.HEATING
        assert signal.urgency == UrgencyLevel.EMERGENCY
        assert signal.qualification_score >= 85
        assert "smell gas" in signal.matched_keywords

    def test_named_installation_request(self):
        signal = self.analyzer.analyze(
            "Hi, my name is John Smith, I need a new air conditioning system", self.tenant
        )
        assert signal.contact_name == "John Smith"
        assert signal.service_type == ServiceType.INSTALLATION
        assert signal.has_emergency is False
        assert signal.qualification_score >= 75

    def test_noisy_heater_is_a_repair(self):
        signal = self.analyzer.analyze("My heater is making strange noises, can you help?", self.tenant)
        assert signal.service_type == ServiceType.REPAIR
        assert signal.has_emergency is False
        assert 35 <= signal.qualification_score <= 55

    def test_carbon_monoxide_is_critical(self):
        signal = self.analyzer.analyze("My carbon monoxide alarm keeps going off", self.tenant)
        assert signal.has_emergency is True
        assert signal.urgency == UrgencyLevel.CRITICAL

    def test_asap_raises_urgency_without_emergency(self):
        signal = self.analyzer.analyze("Can someone come out asap for a tune up?", self.tenant)
        assert signal.has_emergency is False
        assert signal.urgency == UrgencyLevel.HIGH
        assert signal.service_type == ServiceType.MAINTENANCE

    def test_plumbing_keywords_apply_to_plumbing_tenant(self):
        plumber = make_tenant(Industry.PLUMBING, company_name="Drip Stop")
        signal = self.analyzer.analyze("There's a burst pipe and water everywhere", plumber)
        assert signal.has_emergency is True
        assert signal.urgency == UrgencyLevel.CRITICAL

    def test_empty_text_yields_empty_signal(self):
        signal = self.analyzer.analyze("   ", self.tenant)
        assert signal == LeadSignal()

    def test_analysis_is_deterministic(self):
        text = "I'm Maria and my boiler stopped working today"
        first = self.analyzer.analyze(text, self.tenant)
        second = self.analyzer.analyze(text, self.tenant)
        assert first == second


class TestNameExtraction:
    @pytest.mark.parametrize("text,expected", [
        ("my name is John Smith", "John Smith"),
        ("Hello, I'm Maria", "Maria"),
        ("i am bob", "bob"),
        ("I’m Dana Lee and I need help", "Dana Lee"),
    ])
    def test_introductions(self, text, expected):
        assert LeadAnalyzer.extract_name(text) == expected

    def test_no_introduction(self):
        assert LeadAnalyzer.extract_name("The furnace is out") is None


class TestServiceDetection:
    def test_first_matching_type_wins(self):
        # mentions both a repair and heating
        assert LeadAnalyzer().detect_service_type("please fix my furnace") == ServiceType.REPAIR

    def test_cooling(self):
        assert LeadAnalyzer().detect_service_type("the A/C blows hot air") == ServiceType.COOLING

    def test_nothing_recognized(self):
        assert LeadAnalyzer().detect_service_type("what are your hours") is None


class TestLeadScore:
    def test_base_score(self):
        assert calculate_lead_score(False, None, UrgencyLevel.NORMAL, None) == 10

    def test_score_is_capped(self):
        assert calculate_lead_score(True, ServiceType.INSTALLATION, UrgencyLevel.CRITICAL, "Ann") == 100

    def test_other_service_type(self):
        assert calculate_lead_score(False, ServiceType.COOLING, UrgencyLevel.HIGH, None) == 45


class TestLeadMerge:
    def test_merge_is_monotonic(self):
        info = LeadInfo()
        info.merge(LeadSignal(has_emergency=True, service_type=ServiceType.HEATING, urgency=UrgencyLevel.EMERGENCY))
        info.merge(LeadSignal(service_type=ServiceType.REPAIR, urgency=UrgencyLevel.HIGH))

        assert info.has_emergency is True
        assert info.service_type == ServiceType.HEATING
        assert info.urgency == UrgencyLevel.EMERGENCY

    def test_score_never_decreases_across_turns(self):
        analyzer = LeadAnalyzer()
        tenant = make_tenant()
        info = LeadInfo()
        scores = []
        for text in [
            "My furnace is broken",
            "my name is Sam",
            "no heat at all, it's an emergency",
            "thanks, that's all",
        ]:
            info.merge(analyzer.analyze(text, tenant))
            scores.append(info.qualification_score)
        assert scores == sorted(scores)

    def test_later_name_replaces_earlier(self):
        info = LeadInfo(contact_name="Sam")
        info.merge(LeadSignal(contact_name="Samantha Jones"))
        assert info.contact_name == "Samantha Jones"

    def test_stored_score_is_recomputed(self):
        info = LeadInfo.from_dict({
            "hasEmergency": False,
            "serviceType": "repair",
            "urgencyLevel": "normal",
            "contactName": None,
            "qualificationScore": 99,
        })
        assert info.qualification_score == 40
        assert info.to_dict()["qualificationScore"] == 40


class TestUrgencyLevel:
    def test_ordering(self):
        assert UrgencyLevel.NORMAL < UrgencyLevel.HIGH < UrgencyLevel.EMERGENCY < UrgencyLevel.CRITICAL

    def test_unknown_value_is_normal(self):
        assert UrgencyLevel.from_value("panic") == UrgencyLevel.NORMAL

    def test_is_emergency(self):
        assert UrgencyLevel.CRITICAL.is_emergency
        assert not UrgencyLevel.HIGH.is_emergency
