"""Security module for Voice Lead Agent"""

from .middleware import (
    TwilioSignatureValidator,
    SecurityHeadersMiddleware,
    validate_twilio_signature,
)

__all__ = [
    "TwilioSignatureValidator",
    "SecurityHeadersMiddleware",
    "validate_twilio_signature",
]
