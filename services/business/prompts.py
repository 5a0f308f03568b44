"""
=====================================================
Voice Lead Agent - Prompt & Greeting Builders
=====================================================
Pure functions turning a TenantContext into LLM prompts and greetings.
"""

from datetime import datetime
from typing import Optional, Tuple

from .business_base import BusinessHours, Industry, Schedule, TenantContext


CONVERSATION_STYLE = """CONVERSATION STYLE:
- Be warm, conversational, and relatable
- Listen carefully and respond to what they actually say
- Keep responses SHORT (1-2 sentences, under 30 words) for phone conversation
- Ask helpful follow-up questions
- Get their name, the issue, and how urgent it is naturally during conversation
- Never promise prices or exact arrival times"""

GENERIC_SYSTEM_PROMPT = """You are a friendly receptionist for a home services company answering a phone call.
Help the caller describe their problem, find out how urgent it is, and get their name and address so a technician can follow up.

""" + CONVERSATION_STYLE


def current_season(now: Optional[datetime] = None) -> str:
    month = (now or datetime.now()).month
    if month == 12 or month <= 2:
        return "winter"
    if month <= 5:
        return "spring"
    if month <= 8:
        return "summer"
    return "fall"


def analyze_business_hours(schedule: Schedule, now: Optional[datetime] = None) -> Tuple[bool, Optional[str]]:
    """
    Check whether the business is open right now.

    Returns:
        (is_open, message) where message is a caller-facing after-hours note
    """
    if schedule is None or schedule.weekday is None:
        # No schedule configured: treat as always open
        return True, None

    now = now or datetime.now()
    is_weekend = now.weekday() >= 5
    hours: Optional[BusinessHours] = schedule.weekend if is_weekend else schedule.weekday

    if hours is None:
        message = "We're closed on weekends" if is_weekend else "We're currently closed"
        return False, message

    opens_at, closes_at = hours.opens_at, hours.closes_at
    if opens_at is None or closes_at is None:
        return True, None
    if opens_at <= now.time() < closes_at:
        return True, None

    if is_weekend and schedule.weekday:
        next_open = f"Monday at {schedule.weekday.open}"
    else:
        next_open = f"tomorrow at {hours.open}"
    return False, (
        f"We're currently closed. Our next available time is {next_open}. "
        "For emergencies, please let me know!"
    )


def build_system_prompt(
    ctx: TenantContext,
    now: Optional[datetime] = None,
    previous_calls: int = 0,
    known_name: Optional[str] = None,
) -> str:
    """Tenant-personalized system prompt"""
    template = ctx.template
    parts = [template.render_prompt(ctx.company_name)]

    services = ctx.services
    if services:
        parts.append(f"Our main services include: {', '.join(services[:5])}.")

    if ctx.emergency_keywords:
        parts.append(
            "EMERGENCY DETECTION: If the customer mentions any of these keywords, "
            f"treat as urgent: {', '.join(ctx.emergency_keywords)}."
        )

    if ctx.industry == Industry.HVAC and template.seasonal_context:
        season = current_season(now)
        focus = template.seasonal_context.get(season)
        if focus:
            parts.append(f"SEASONAL FOCUS ({season}): {focus}.")

    if template.safety_first and template.critical_keywords:
        parts.append(
            f"SAFETY PRIORITY: If the customer mentions {', '.join(template.critical_keywords)}, "
            "this is an emergency requiring immediate attention. Tell them to stay safe first."
        )

    config = ctx.ai_config
    parts.append(f"Use a {config.response_tone} tone.")
    if config.business_slogan:
        parts.append(f"Company slogan: {config.business_slogan}")

    is_open, hours_message = analyze_business_hours(ctx.tenant.schedule, now)
    if not is_open and hours_message:
        parts.append(f"BUSINESS HOURS: {hours_message}")

    if template.follow_up_questions:
        parts.append(
            "Helpful follow-up questions: " + " ".join(template.follow_up_questions[:2])
        )

    if previous_calls > 0:
        note = f"Returning customer ({previous_calls} previous calls)"
        if known_name:
            note += f", name on file: {known_name}"
        parts.append(note + ".")

    parts.append(CONVERSATION_STYLE)
    return "\n\n".join(parts)


def generic_system_prompt() -> str:
    """Prompt used when tenant context could not be loaded with the session"""
    return GENERIC_SYSTEM_PROMPT


def build_greeting(ctx: TenantContext, known_name: Optional[str] = None) -> str:
    """Opening line for a call: custom greeting if configured, else the industry one"""
    custom = (ctx.ai_config.greeting_message or "").strip()
    greeting = custom or ctx.template.render_greeting(ctx.company_name)
    if known_name:
        greeting = f"Welcome back, {known_name}! {greeting}"
    return greeting
