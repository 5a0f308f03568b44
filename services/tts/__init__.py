"""
=====================================================
Voice Lead Agent - TTS (Text-to-Speech) Services
=====================================================
"""

from .tts_base import (
    AudioUploadError,
    SpeechSynthesisError,
    ToneContext,
    TTSRequest,
    TTSResponse,
    TTSServiceBase,
    VoiceProfile,
)
from .elevenlabs_service import ElevenLabsTTS, create_elevenlabs_tts

__all__ = [
    'AudioUploadError',
    'SpeechSynthesisError',
    'ToneContext',
    'TTSRequest',
    'TTSResponse',
    'TTSServiceBase',
    'VoiceProfile',
    'ElevenLabsTTS',
    'create_elevenlabs_tts',
]
