"""
=====================================================
Voice Lead Agent - Lead Analyzer
=====================================================
Keyword and regex lead signals from a single caller utterance.

Matching is plain lower-cased substring containment. Service types are
tested in declaration order and the first hit wins, so an utterance that
mentions both a repair and heating is classified as a repair.
"""

import re
from typing import Optional, Sequence, Tuple

from services.business.business_base import TenantContext
from .lead_base import LeadSignal, ServiceType, UrgencyLevel


SERVICE_KEYWORDS: Tuple[Tuple[ServiceType, Tuple[str, ...]], ...] = (
    (ServiceType.INSTALLATION, ("install", "replace", "replacement", "new ")),
    (ServiceType.REPAIR, ("repair", "fix", "broken", "noise", "not working properly", "stopped working")),
    (ServiceType.HEATING, ("heat", "furnace", "boiler", "warm")),
    (ServiceType.COOLING, ("cool", "air condition", "a/c", "cold")),
    (ServiceType.MAINTENANCE, ("maintenance", "tune up", "tune-up", "check-up", "inspection")),
)

# One or two words after the introduction phrase
NAME_PATTERN = re.compile(
    r"\b(?:my name is|i'm|i’m|i am)\s+([a-z]+(?:\s+[a-z]+)?)",
    re.IGNORECASE,
)


def _matches(text: str, keywords: Sequence[str]) -> list:
    return [keyword for keyword in keywords if keyword.lower() in text]


class LeadAnalyzer:
    """Pure function of (utterance, tenant); holds no state"""

    def __init__(self, service_keywords=SERVICE_KEYWORDS):
        self.service_keywords = service_keywords

    def detect_service_type(self, text: str) -> Optional[ServiceType]:
        lowered = text.lower()
        for service_type, keywords in self.service_keywords:
            if _matches(lowered, keywords):
                return service_type
        return None

    @staticmethod
    def extract_name(text: str) -> Optional[str]:
        match = NAME_PATTERN.search(text)
        if not match:
            return None
        return match.group(1).strip()

    def analyze(self, text: str, tenant: TenantContext) -> LeadSignal:
        """
        Analyse one utterance for the given tenant.

        Args:
            text: Recognized caller speech
            tenant: Tenant whose industry keywords apply

        Returns:
            LeadSignal with emergency flag, service type, urgency and name
        """
        if not text or not text.strip():
            return LeadSignal()

        lowered = text.lower()
        template = tenant.template

        emergency_hits = _matches(lowered, tenant.emergency_keywords)
        has_emergency = bool(emergency_hits)

        if has_emergency:
            critical_hits = _matches(lowered, template.critical_keywords)
            urgency = UrgencyLevel.CRITICAL if critical_hits else UrgencyLevel.EMERGENCY
        elif _matches(lowered, template.high_urgency_keywords):
            urgency = UrgencyLevel.HIGH
        else:
            urgency = UrgencyLevel.NORMAL

        return LeadSignal(
            has_emergency=has_emergency,
            service_type=self.detect_service_type(text),
            urgency=urgency,
            contact_name=self.extract_name(text),
            matched_keywords=emergency_hits,
        )
