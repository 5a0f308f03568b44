"""
=====================================================
Voice Lead Agent - Business Config API Routes
=====================================================
Read and edit a tenant's assistant configuration.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from loguru import logger

from services.context import AppContext, get_app_context
from services.dashboard.dashboard_routes import get_current_user, require_auth
from services.database import DatabaseUnavailableError
from services.tts.tts_base import AudioUploadError, SpeechSynthesisError, ToneContext
from .business_base import TenantContext, mask_phone


router = APIRouter(prefix="/api", tags=["business"])

DEFAULT_TEST_TEXT = "Hi, thanks for calling {company_name}. How can I help you today?"


# =====================================================
# REQUEST MODELS
# =====================================================

class HumanForwardingUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: Optional[bool] = None
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber", max_length=20)
    transfer_threshold: Optional[int] = Field(default=None, alias="transferThreshold", ge=1, le=10)


class AIConfigUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    voice_style: Optional[Literal["professional", "friendly", "casual", "authoritative"]] = Field(
        default=None, alias="voiceStyle"
    )
    gender: Optional[Literal["female", "male"]] = None
    voice_name: Optional[str] = Field(default=None, alias="voiceName", max_length=100)
    response_tone: Optional[str] = Field(default=None, alias="responseTone", max_length=50)
    greeting_message: Optional[str] = Field(default=None, alias="greetingMessage", max_length=500)
    business_slogan: Optional[str] = Field(default=None, alias="businessSlogan", max_length=200)
    buffer_time: Optional[int] = Field(default=None, alias="bufferTime", ge=0, le=60)
    service_radius: Optional[int] = Field(default=None, alias="serviceRadius", ge=0, le=500)
    human_forwarding: Optional[HumanForwardingUpdate] = Field(default=None, alias="humanForwarding")


class TestVoiceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = Field(default=None, max_length=500)
    voice_name: Optional[str] = Field(default=None, alias="voiceName")


class BusinessConfigUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    business_id: Optional[str] = Field(default=None, alias="businessId")
    ai_config: Optional[AIConfigUpdate] = Field(default=None, alias="aiConfig")
    test_voice: Optional[TestVoiceRequest] = Field(default=None, alias="testVoice")


# =====================================================
# HELPERS
# =====================================================

def config_payload(ctx: TenantContext, include_numbers: bool = False) -> dict:
    """Public JSON shape of a tenant's configuration"""
    payload = {
        "found": not ctx.is_default,
        "isDefault": ctx.is_default,
        "businessId": ctx.tenant_id,
        "profile": ctx.tenant.profile_dict(),
        "aiAssistant": ctx.ai_config.to_dict(),
        "industryTemplate": {
            "key": ctx.template.key.value,
            "name": ctx.template.name,
            "emergencyKeywords": list(ctx.emergency_keywords),
        },
        "schedule": ctx.tenant.schedule.to_dict(),
    }
    if include_numbers:
        payload["twilioNumbers"] = list(ctx.tenant.twilio_numbers)
    return payload


def authorized_business_id(user: dict, requested: Optional[str]) -> str:
    """Business the user may act on; 403 for someone else's"""
    if requested and requested != user.get("business_id") and not user.get("is_superuser"):
        logger.warning(f"BusinessConfig: User {user.get('id')} denied access to business {requested}")
        raise HTTPException(status_code=403, detail="Access denied for this business")
    business_id = requested or user.get("business_id")
    if not business_id:
        raise HTTPException(status_code=400, detail="businessId is required")
    return business_id


# =====================================================
# ENDPOINTS
# =====================================================

@router.get("/business-config")
async def get_business_config(
    request: Request,
    phone_number: Optional[str] = Query(default=None, alias="phoneNumber"),
    business_id: Optional[str] = Query(default=None, alias="businessId"),
    ctx: AppContext = Depends(get_app_context),
):
    """
    Look up a configuration by dialed number (public) or by id (owner only)
    """
    if phone_number:
        tenant = await ctx.resolver.resolve(phone_number)
        logger.info(f"BusinessConfig: Lookup for {mask_phone(phone_number)} -> {tenant.tenant_id}")
        return config_payload(tenant)

    user = await get_current_user(request)
    if not user:
        if not business_id:
            raise HTTPException(status_code=400, detail="phoneNumber or businessId is required")
        raise HTTPException(status_code=401, detail="Not authenticated")
    # Owners without a businessId get their own business
    business_id = authorized_business_id(user, business_id)

    try:
        tenant = await ctx.resolver.resolve_by_id(business_id)
    except DatabaseUnavailableError as e:
        logger.error(f"BusinessConfig: Store unavailable: {e}")
        raise HTTPException(status_code=503, detail="Business data unavailable")

    if tenant is None:
        raise HTTPException(status_code=404, detail="Business not found")
    return config_payload(tenant, include_numbers=True)


@router.api_route("/business-config", methods=["PUT", "POST"])
async def update_business_config(
    body: BusinessConfigUpdate,
    user: dict = Depends(require_auth),
    ctx: AppContext = Depends(get_app_context),
):
    """Update the assistant config and/or synthesize a voice sample"""
    if body.ai_config is None and body.test_voice is None:
        raise HTTPException(status_code=400, detail="Nothing to do: send aiConfig or testVoice")

    business_id = authorized_business_id(user, body.business_id)
    result = {"success": True, "businessId": business_id}

    try:
        tenant = await ctx.resolver.resolve_by_id(business_id)
        if tenant is None:
            raise HTTPException(status_code=404, detail="Business not found")

        if body.ai_config is not None:
            updates = body.ai_config.model_dump(by_alias=True, exclude_none=True)
            try:
                updated = await ctx.resolver.update_ai_config(business_id, updates)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            result["aiAssistant"] = updated.to_dict()
            tenant.ai_config = updated

    except DatabaseUnavailableError as e:
        logger.error(f"BusinessConfig: Store unavailable: {e}")
        raise HTTPException(status_code=503, detail="Business data unavailable")

    if body.test_voice is not None:
        text = body.test_voice.text or DEFAULT_TEST_TEXT.format(company_name=tenant.company_name)
        tone = ToneContext(
            voice_style=tenant.ai_config.voice_style,
            voice_name=body.test_voice.voice_name or tenant.ai_config.voice_name,
        )
        try:
            result["audioUrl"] = await ctx.synthesizer.speak(text, tone)
        except (SpeechSynthesisError, AudioUploadError) as e:
            logger.error(f"BusinessConfig: Voice test failed: {e}")
            raise HTTPException(status_code=502, detail="Voice test failed")

    return result


@router.get("/voices")
async def list_voices(
    user: dict = Depends(require_auth),
    ctx: AppContext = Depends(get_app_context),
):
    """Voices available for the assistant"""
    try:
        voices = await ctx.synthesizer.list_voices()
    except SpeechSynthesisError as e:
        logger.error(f"BusinessConfig: Voice list unavailable: {e}")
        raise HTTPException(status_code=503, detail="Voice service not configured")
    return {"voices": voices}
