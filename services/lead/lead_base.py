"""
=====================================================
Voice Lead Agent - Lead Data Model
=====================================================
Urgency tiers, service types and the per-call lead aggregate.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class UrgencyLevel(str, Enum):
    """Ordered urgency tiers, lowest first"""
    NORMAL = "normal"
    HIGH = "high"
    EMERGENCY = "emergency"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _URGENCY_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, UrgencyLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, UrgencyLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, UrgencyLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, UrgencyLevel):
            return NotImplemented
        return self.rank >= other.rank

    @property
    def is_emergency(self) -> bool:
        return self >= UrgencyLevel.EMERGENCY

    @classmethod
    def from_value(cls, value: Optional[str]) -> "UrgencyLevel":
        try:
            return cls(value)
        except ValueError:
            return cls.NORMAL


_URGENCY_ORDER = (
    UrgencyLevel.NORMAL,
    UrgencyLevel.HIGH,
    UrgencyLevel.EMERGENCY,
    UrgencyLevel.CRITICAL,
)


class ServiceType(str, Enum):
    INSTALLATION = "installation"
    REPAIR = "repair"
    HEATING = "heating"
    COOLING = "cooling"
    MAINTENANCE = "maintenance"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["ServiceType"]:
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


# =====================================================
# SCORING
# =====================================================

SCORE_BASE = 10
SCORE_EMERGENCY = 50
SCORE_CONTACT_NAME = 15
SCORE_SERVICE = {
    ServiceType.INSTALLATION: 50,
    ServiceType.REPAIR: 30,
}
SCORE_SERVICE_OTHER = 20
SCORE_URGENCY = {
    UrgencyLevel.NORMAL: 0,
    UrgencyLevel.HIGH: 15,
    UrgencyLevel.EMERGENCY: 30,
    UrgencyLevel.CRITICAL: 40,
}
MAX_SCORE = 100


def calculate_lead_score(
    has_emergency: bool,
    service_type: Optional[ServiceType],
    urgency: UrgencyLevel,
    contact_name: Optional[str],
) -> int:
    """Qualification score, 0-100"""
    score = SCORE_BASE
    if has_emergency:
        score += SCORE_EMERGENCY
    if service_type is not None:
        score += SCORE_SERVICE.get(service_type, SCORE_SERVICE_OTHER)
    if contact_name:
        score += SCORE_CONTACT_NAME
    score += SCORE_URGENCY[urgency]
    return min(MAX_SCORE, score)


@dataclass
class LeadInfo:
    """
    What we know about the caller's need so far in this call.

    qualification_score is derived; it is never set directly.
    """
    has_emergency: bool = False
    service_type: Optional[ServiceType] = None
    urgency: UrgencyLevel = UrgencyLevel.NORMAL
    contact_name: Optional[str] = None

    @property
    def qualification_score(self) -> int:
        return calculate_lead_score(
            self.has_emergency, self.service_type, self.urgency, self.contact_name
        )

    def merge(self, signal: "LeadSignal") -> "LeadInfo":
        """
        Fold one utterance's signal into this call's lead info, in place.

        Emergency and service type never go back to unset; urgency only rises.
        """
        self.has_emergency = self.has_emergency or signal.has_emergency
        if self.service_type is None and signal.service_type is not None:
            self.service_type = signal.service_type
        if signal.urgency > self.urgency:
            self.urgency = signal.urgency
        if signal.contact_name:
            self.contact_name = signal.contact_name
        return self

    def copy(self) -> "LeadInfo":
        return LeadInfo(
            has_emergency=self.has_emergency,
            service_type=self.service_type,
            urgency=self.urgency,
            contact_name=self.contact_name,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasEmergency": self.has_emergency,
            "serviceType": self.service_type.value if self.service_type else None,
            "urgencyLevel": self.urgency.value,
            "contactName": self.contact_name,
            "qualificationScore": self.qualification_score,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LeadInfo":
        # The stored score is ignored; it is always recomputed
        data = data or {}
        return cls(
            has_emergency=bool(data.get("hasEmergency", False)),
            service_type=ServiceType.from_value(data.get("serviceType")),
            urgency=UrgencyLevel.from_value(data.get("urgencyLevel")),
            contact_name=data.get("contactName") or None,
        )


@dataclass
class LeadSignal:
    """Result of analysing a single utterance"""
    has_emergency: bool = False
    service_type: Optional[ServiceType] = None
    urgency: UrgencyLevel = UrgencyLevel.NORMAL
    contact_name: Optional[str] = None
    matched_keywords: List[str] = field(default_factory=list)

    @property
    def lead_info(self) -> LeadInfo:
        return LeadInfo(
            has_emergency=self.has_emergency,
            service_type=self.service_type,
            urgency=self.urgency,
            contact_name=self.contact_name,
        )

    @property
    def qualification_score(self) -> int:
        return self.lead_info.qualification_score
