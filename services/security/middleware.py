"""
=====================================================
Voice Lead Agent - Security Middleware
=====================================================
Twilio signature validation for the voice webhooks and
security headers for everything else.
"""

from typing import Callable

from fastapi import Request, Response, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from twilio.request_validator import RequestValidator
from loguru import logger


class TwilioSignatureValidator:
    """
    Validates Twilio webhook request signatures.

    Twilio signs every webhook with the X-Twilio-Signature header,
    computed over the public URL and the POST parameters.
    """

    def __init__(self, auth_token: str):
        self.validator = RequestValidator(auth_token)

    @staticmethod
    def signed_url(request: Request, public_base_url: str = "") -> str:
        """URL Twilio signed; proxies rewrite scheme and host"""
        query = f"?{request.url.query}" if request.url.query else ""
        if public_base_url:
            return f"{public_base_url.rstrip('/')}{request.url.path}{query}"

        proto = request.headers.get("X-Forwarded-Proto", request.url.scheme)
        host = request.headers.get("X-Forwarded-Host", request.headers.get("Host", ""))
        return f"{proto}://{host}{request.url.path}{query}"

    async def validate_request(self, request: Request, public_base_url: str = "") -> bool:
        """
        Validate a Twilio webhook request.

        Args:
            request: FastAPI request object
            public_base_url: Externally visible base URL, if behind a proxy

        Returns:
            True if signature is valid, False otherwise
        """
        signature = request.headers.get("X-Twilio-Signature", "")
        if not signature:
            logger.warning("Twilio: Missing X-Twilio-Signature header")
            return False

        request_url = self.signed_url(request, public_base_url)

        params = {}
        if request.method == "POST":
            form_data = await request.form()
            params = dict(form_data)

        is_valid = self.validator.validate(request_url, params, signature)
        if not is_valid:
            logger.warning(f"Twilio: Invalid signature for {request_url}")
        return is_valid


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to all responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if request.headers.get("X-Forwarded-Proto") == "https":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Frame-Options"] = "DENY"
        # Dashboard page uses an inline stylesheet
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:;"
        )
        return response


# Dependency for Twilio webhook endpoints
async def validate_twilio_signature(request: Request) -> bool:
    """
    FastAPI dependency to validate Twilio webhook signatures.

    A no-op unless VALIDATE_TWILIO_SIGNATURE is on.
    """
    settings = request.app.state.context.settings
    if not settings.validate_twilio_signature:
        return True

    if not settings.twilio_auth_token:
        logger.error("Twilio: Signature validation enabled but TWILIO_AUTH_TOKEN is empty")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid Twilio signature"
        )

    validator = TwilioSignatureValidator(settings.twilio_auth_token)
    if not await validator.validate_request(request, settings.public_base_url):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid Twilio signature"
        )

    return True
