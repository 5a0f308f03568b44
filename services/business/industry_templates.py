"""
=====================================================
Voice Lead Agent - Industry Template Store
=====================================================
Static per-industry prompt fragments, keyword lists and greetings.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple, Union

from .business_base import Industry


COMPANY_PLACEHOLDER = "{company_name}"

DEFAULT_HIGH_URGENCY_KEYWORDS: Tuple[str, ...] = (
    "asap", "as soon as possible", "right away", "today", "urgent", "immediately",
)


@dataclass(frozen=True)
class IndustryTemplate:
    """Prompt and keyword material for one industry"""
    key: Industry
    name: str
    services: Tuple[str, ...]
    common_issues: Tuple[str, ...]
    emergency_keywords: Tuple[str, ...]
    prompt_fragment: str
    greeting_template: str
    critical_keywords: Tuple[str, ...] = ()
    high_urgency_keywords: Tuple[str, ...] = DEFAULT_HIGH_URGENCY_KEYWORDS
    seasonal_context: Dict[str, str] = field(default_factory=dict)
    safety_first: bool = False
    follow_up_questions: Tuple[str, ...] = (
        "Can you tell me more about what's happening?",
        "When would be a good time to schedule service?",
        "Is this urgent or can it wait a few days?",
    )

    def render_prompt(self, company_name: str) -> str:
        return self.prompt_fragment.replace(COMPANY_PLACEHOLDER, company_name)

    def render_greeting(self, company_name: str) -> str:
        return self.greeting_template.replace(COMPANY_PLACEHOLDER, company_name)


_TEMPLATES: Dict[Industry, IndustryTemplate] = {
    Industry.HVAC: IndustryTemplate(
        key=Industry.HVAC,
        name="hvac_base",
        services=("heating", "cooling", "air conditioning", "ventilation", "ductwork", "heat pumps"),
        common_issues=("no heat", "no cooling", "strange noises", "high bills", "poor air flow"),
        emergency_keywords=(
            "no heat", "no air", "no cooling", "furnace down", "ac down", "leak",
            "emergency", "smell gas", "gas smell", "carbon monoxide",
        ),
        critical_keywords=("carbon monoxide",),
        prompt_fragment=(
            "You are a friendly customer service agent for {company_name}. "
            "Focus on heating, cooling, and ventilation services. "
            "Prioritize emergency calls with no heat or AC. "
            "Understand seasonal needs: heating in winter, cooling in summer."
        ),
        greeting_template=(
            "Thank you for calling {company_name}! "
            "How can we help with your heating and cooling needs today?"
        ),
        seasonal_context={
            "summer": "Prioritize AC and cooling issues",
            "winter": "Focus on heating and furnace problems",
            "spring": "Mention maintenance and tune-ups",
            "fall": "Suggest heating system preparation",
        },
        follow_up_questions=(
            "Is this for heating or cooling?",
            "When did you first notice the issue?",
            "What type of system do you have?",
            "Is this affecting your whole home or just one area?",
        ),
    ),
    Industry.PLUMBING: IndustryTemplate(
        key=Industry.PLUMBING,
        name="plumbing_base",
        services=("leak repair", "drain cleaning", "water heater", "pipe installation", "toilet repair", "faucet repair"),
        common_issues=("clogged drain", "water leak", "no hot water", "running toilet", "low water pressure"),
        emergency_keywords=("leak", "flood", "no water", "burst pipe", "overflow", "emergency", "water everywhere"),
        critical_keywords=("flood", "burst pipe", "water everywhere"),
        prompt_fragment=(
            "You are a friendly customer service agent for {company_name}. "
            "Handle plumbing emergencies urgently, especially leaks and floods. "
            "Water damage can be costly, so emphasize quick response times."
        ),
        greeting_template="Thanks for calling {company_name}! What plumbing issue can we help you with?",
        follow_up_questions=(
            "Where exactly is the issue located?",
            "Is there any water damage?",
            "How long has this been happening?",
            "Can you turn off the water if needed?",
        ),
    ),
    Industry.ELECTRICAL: IndustryTemplate(
        key=Industry.ELECTRICAL,
        name="electrical_base",
        services=("wiring", "outlet installation", "panel upgrade", "lighting", "circuit repair", "safety inspection"),
        common_issues=("power outage", "flickering lights", "outlet not working", "tripped breaker"),
        emergency_keywords=("no power", "sparks", "burning smell", "shock", "electrical fire", "emergency"),
        critical_keywords=("sparks", "burning", "shock", "fire"),
        prompt_fragment=(
            "You are a professional electrical service representative for {company_name}. "
            "Prioritize safety: any mention of sparks, burning smells, or shocks is an emergency. "
            "Electrical issues can be dangerous, so emphasize licensed professional service."
        ),
        greeting_template="Hello! Thank you for calling {company_name}. How can we help with your electrical needs?",
        safety_first=True,
        follow_up_questions=(
            "Is this a safety concern with sparks or burning smells?",
            "Which room or area is affected?",
            "Have you checked your circuit breaker?",
            "When did this start happening?",
        ),
    ),
    Industry.ROOFING: IndustryTemplate(
        key=Industry.ROOFING,
        name="roofing_base",
        services=("roof repair", "roof replacement", "leak repair", "gutter installation", "storm damage"),
        common_issues=("roof leak", "missing shingles", "storm damage", "gutter problems"),
        emergency_keywords=("leak", "storm damage", "collapsed", "emergency", "water coming in"),
        critical_keywords=("collapsed",),
        prompt_fragment=(
            "You are a professional roofing service representative for {company_name}. "
            "Focus on protecting homes from weather damage. "
            "Roof leaks are urgent because water damage spreads quickly."
        ),
        greeting_template="Thank you for calling {company_name}! How can we help protect your home?",
    ),
    Industry.GENERAL_CONTRACTOR: IndustryTemplate(
        key=Industry.GENERAL_CONTRACTOR,
        name="contractor_base",
        services=("home renovation", "kitchen remodel", "bathroom remodel", "additions", "repairs"),
        common_issues=("renovation needs", "repair estimates", "project planning", "permits"),
        emergency_keywords=("structural damage", "water damage", "emergency repair"),
        prompt_fragment=(
            "You are a professional general contractor representative for {company_name}. "
            "Help with home improvement projects and repairs. "
            "Focus on understanding project scope and scheduling consultations."
        ),
        greeting_template=(
            "Thank you for calling {company_name}! "
            "What home improvement project can we help you with?"
        ),
    ),
    Industry.GENERAL: IndustryTemplate(
        key=Industry.GENERAL,
        name="general_base",
        services=("various services",),
        common_issues=("general inquiries", "service requests"),
        emergency_keywords=("emergency", "urgent", "immediate"),
        prompt_fragment=(
            "You are a friendly customer service agent for {company_name}. "
            "Provide helpful information about services and schedule appointments."
        ),
        greeting_template="Thank you for calling {company_name}! How may we assist you today?",
    ),
}


class IndustryTemplateStore:
    """Lookup over the static template table"""

    def __init__(self, templates: Dict[Industry, IndustryTemplate] = None):
        self._templates = dict(templates or _TEMPLATES)

    def template_for(self, industry_key: Union[str, Industry, None]) -> IndustryTemplate:
        """Template for an industry; unknown keys get the generic one"""
        industry = industry_key if isinstance(industry_key, Industry) else Industry.from_value(industry_key)
        return self._templates.get(industry, self._templates[Industry.GENERAL])


# Global instance
_template_store = IndustryTemplateStore()


def get_template_store() -> IndustryTemplateStore:
    """Get the shared template store"""
    return _template_store
