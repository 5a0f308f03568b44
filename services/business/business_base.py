"""
=====================================================
Voice Lead Agent - Business Data Model
=====================================================
Typed tenant, schedule and assistant-configuration records.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .industry_templates import IndustryTemplate


DEFAULT_TENANT_ID = "default"

VOICE_STYLES = ("professional", "friendly", "casual", "authoritative")


class Industry(str, Enum):
    """Supported industries"""
    HVAC = "hvac"
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    ROOFING = "roofing"
    GENERAL_CONTRACTOR = "general-contractor"
    GENERAL = "general"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "Industry":
        if not value:
            return cls.GENERAL
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GENERAL


def parse_clock(value: Any) -> Optional[time]:
    """'HH:MM' as a time; None when it does not parse"""
    try:
        return datetime.strptime(str(value).strip(), "%H:%M").time()
    except ValueError:
        return None


@dataclass
class BusinessHours:
    open: str = "08:00"
    close: str = "17:00"

    @property
    def opens_at(self) -> Optional[time]:
        return parse_clock(self.open)

    @property
    def closes_at(self) -> Optional[time]:
        return parse_clock(self.close)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["BusinessHours"]:
        """None when either end is missing or not HH:MM"""
        if not data:
            return None
        opens_at = parse_clock(data.get("open"))
        closes_at = parse_clock(data.get("close"))
        if opens_at is None or closes_at is None:
            return None
        return cls(open=opens_at.strftime("%H:%M"), close=closes_at.strftime("%H:%M"))


@dataclass
class Schedule:
    """Opening hours; None for a day type means closed"""
    weekday: Optional[BusinessHours] = None
    weekend: Optional[BusinessHours] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Schedule":
        data = data or {}
        weekday_data = data.get("weekdayHours")
        weekend_data = data.get("weekendHours")
        weekday = BusinessHours.from_dict(weekday_data)
        weekend = BusinessHours.from_dict(weekend_data)
        if (weekday_data and weekday is None) or (weekend_data and weekend is None):
            # Malformed hours: no schedule rather than a wrong one
            return cls()
        return cls(weekday=weekday, weekend=weekend)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekdayHours": asdict(self.weekday) if self.weekday else None,
            "weekendHours": asdict(self.weekend) if self.weekend else None,
        }


@dataclass
class Tenant:
    """A business using the voice agent"""
    id: str
    company_name: str
    industry: Industry = Industry.GENERAL
    services: List[str] = field(default_factory=list)
    schedule: Schedule = field(default_factory=Schedule)
    twilio_numbers: List[str] = field(default_factory=list)

    def profile_dict(self) -> Dict[str, Any]:
        return {
            "companyName": self.company_name,
            "industry": self.industry.value,
            "services": list(self.services),
        }


@dataclass
class HumanForwarding:
    enabled: bool = False
    phone_number: str = ""
    transfer_threshold: int = 3

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "HumanForwarding":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", False)),
            phone_number=data.get("phoneNumber", "") or "",
            transfer_threshold=int(data.get("transferThreshold", 3)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "phoneNumber": self.phone_number,
            "transferThreshold": self.transfer_threshold,
        }


@dataclass
class AIConfig:
    """Per-tenant assistant configuration"""
    voice_style: str = "friendly"
    gender: str = "female"
    voice_name: Optional[str] = None
    response_tone: str = "professional"
    greeting_message: Optional[str] = None
    business_slogan: Optional[str] = None
    buffer_time: int = 15
    service_radius: int = 25
    human_forwarding: HumanForwarding = field(default_factory=HumanForwarding)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AIConfig":
        """Build from the stored camelCase document, defaults for anything missing"""
        data = data or {}
        defaults = cls()
        style = data.get("voiceStyle", defaults.voice_style)
        return cls(
            voice_style=style if style in VOICE_STYLES else defaults.voice_style,
            gender=data.get("gender", defaults.gender),
            voice_name=data.get("voiceName") or None,
            response_tone=data.get("responseTone", defaults.response_tone),
            greeting_message=data.get("greetingMessage") or None,
            business_slogan=data.get("businessSlogan") or None,
            buffer_time=int(data.get("bufferTime", defaults.buffer_time)),
            service_radius=int(data.get("serviceRadius", defaults.service_radius)),
            human_forwarding=HumanForwarding.from_dict(data.get("humanForwarding")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voiceStyle": self.voice_style,
            "gender": self.gender,
            "voiceName": self.voice_name,
            "responseTone": self.response_tone,
            "greetingMessage": self.greeting_message,
            "businessSlogan": self.business_slogan,
            "bufferTime": self.buffer_time,
            "serviceRadius": self.service_radius,
            "humanForwarding": self.human_forwarding.to_dict(),
        }

    def merged(self, updates: Dict[str, Any]) -> "AIConfig":
        """New config with camelCase updates applied over this one"""
        data = self.to_dict()
        for key, value in updates.items():
            if key == "humanForwarding" and isinstance(value, dict):
                data["humanForwarding"] = {**data["humanForwarding"], **value}
            else:
                data[key] = value
        return AIConfig.from_dict(data)


@dataclass
class TenantContext:
    """Everything the call path needs to know about the dialed business"""
    tenant: Tenant
    ai_config: AIConfig
    template: "IndustryTemplate"
    is_default: bool = False

    @property
    def tenant_id(self) -> str:
        return self.tenant.id

    @property
    def company_name(self) -> str:
        return self.tenant.company_name

    @property
    def industry(self) -> Industry:
        return self.tenant.industry

    @property
    def services(self) -> List[str]:
        return self.tenant.services or list(self.template.services)

    @property
    def emergency_keywords(self) -> Tuple[str, ...]:
        return self.template.emergency_keywords


def default_tenant() -> Tenant:
    """The tenant used when the dialed number is unknown or lookup fails"""
    return Tenant(
        id=DEFAULT_TENANT_ID,
        company_name="Blue Caller HVAC",
        industry=Industry.HVAC,
        services=["heating repair", "cooling repair", "maintenance", "installation"],
        schedule=Schedule(
            weekday=BusinessHours("08:00", "17:00"),
            weekend=BusinessHours("09:00", "15:00"),
        ),
    )


def mask_phone(phone_number: Optional[str]) -> str:
    """Phone number safe for logs"""
    if not phone_number:
        return "unknown"
    return f"***{phone_number[-4:]}"
