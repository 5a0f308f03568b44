"""
=====================================================
Voice Lead Agent - Main FastAPI Application
=====================================================
"""

import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config.settings import Settings, get_settings
from services.business.business_routes import router as business_router
from services.context import AppContext, build_context, get_app_context
from services.dashboard.dashboard_routes import router as dashboard_router
from services.security.middleware import SecurityHeadersMiddleware, validate_twilio_signature
from services.telephony.twiml import VOICE_STREAM_PATH, VOICE_TWIML_PATH


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(settings: Settings) -> None:
    """stdout always; a rotating file as well when LOG_FILE is set"""
    logger.remove()  # Remove default handler
    if settings.log_file:
        logger.add(
            settings.log_file,
            format=LOG_FORMAT,
            rotation="500 MB",
            retention="10 days",
            level=settings.log_level,
            backtrace=True,
            diagnose=settings.debug,
        )
    logger.add(sys.stdout, format=LOG_FORMAT, level=settings.log_level)


def xml_response(twiml: str) -> Response:
    return Response(content=twiml, media_type="application/xml")


async def twilio_params(request: Request) -> Dict[str, str]:
    """Webhook parameters: form body for POST, query string for GET"""
    params = dict(request.query_params)
    if request.method == "POST":
        form_data = await request.form()
        params.update({key: str(value) for key, value in form_data.items()})
    return params


def parse_confidence(value: Optional[str]) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Twilio: Unparseable Confidence {value!r}")
        return 0.0


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to the environment-loaded settings
        context: Prebuilt services (tests); built from settings otherwise
    """
    settings = settings or (context.settings if context else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management"""
        logger.info(f"{settings.app_name} starting up ({settings.environment})...")
        yield
        logger.info(f"{settings.app_name} shutting down...")
        await app.state.context.close()

    app = FastAPI(
        title=settings.app_name,
        description="AI phone assistant that qualifies leads for home-services businesses",
        version=settings.app_version,
        lifespan=lifespan
    )
    app.state.context = context or build_context(settings)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(dashboard_router)
    app.include_router(business_router)

    # =====================================================
    # HEALTH CHECK
    # =====================================================

    @app.get("/health")
    async def health_check(ctx: AppContext = Depends(get_app_context)):
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "voice-lead-agent",
            "version": settings.app_version,
            "environment": settings.environment,
            "services": {
                "database": ctx.database.is_connected,
                "llm": ctx.responder.is_configured,
                "tts": ctx.tts is not None,
                "storage": ctx.storage is not None,
            },
            "activeSessions": len(ctx.store.sessions),
            "system": ctx.dashboard.get_system_health(),
        }

    # =====================================================
    # TWILIO VOICE WEBHOOKS
    # =====================================================

    @app.api_route(VOICE_TWIML_PATH, methods=["GET", "POST"], dependencies=[Depends(validate_twilio_signature)])
    async def voice_twiml(request: Request, ctx: AppContext = Depends(get_app_context)):
        """
        Incoming call (and gather timeout redirect)
        Returns TwiML that greets the caller and listens
        """
        params = await twilio_params(request)
        outcome = await ctx.orchestrator.handle_incoming_call(
            called_number=params.get("To", ""),
            caller_number=params.get("From", ""),
            call_sid=params.get("CallSid", ""),
        )
        return xml_response(outcome.twiml)

    @app.get(VOICE_STREAM_PATH)
    async def voice_stream_ready():
        return PlainTextResponse("ready")

    @app.post(VOICE_STREAM_PATH, dependencies=[Depends(validate_twilio_signature)])
    async def voice_stream(request: Request, ctx: AppContext = Depends(get_app_context)):
        """Speech gathered by <Gather>; returns the spoken reply"""
        params = await twilio_params(request)
        outcome = await ctx.orchestrator.handle_turn(
            called_number=params.get("To", ""),
            caller_number=params.get("From", ""),
            call_sid=params.get("CallSid", ""),
            speech_result=params.get("SpeechResult"),
            confidence=parse_confidence(params.get("Confidence")),
        )
        return xml_response(outcome.twiml)

    @app.post("/api/call-status", dependencies=[Depends(validate_twilio_signature)])
    async def call_status(request: Request, ctx: AppContext = Depends(get_app_context)):
        """Twilio status callback"""
        params = await twilio_params(request)
        state = await ctx.orchestrator.end_call(
            params.get("CallSid", ""),
            params.get("CallStatus", ""),
        )
        return {"received": True, "state": state.value}

    # =====================================================
    # ERROR HANDLERS
    # =====================================================

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(f"Unhandled exception on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    return app


configure_logging(get_settings())
app = create_app()


# =====================================================
# MAIN ENTRY POINT (for development)
# =====================================================

def main():
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
