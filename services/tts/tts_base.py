"""
=====================================================
Voice Lead Agent - TTS Service Base Interface
=====================================================
Abstract base class for Text-to-Speech providers
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from services.lead.lead_base import UrgencyLevel


class SpeechSynthesisError(Exception):
    """TTS engine failed or is not configured"""


class AudioUploadError(Exception):
    """Synthesized audio could not be published"""


@dataclass(frozen=True)
class VoiceProfile:
    """Voice identity plus delivery settings for one utterance"""
    voice_id: str
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.0
    speed: float = 1.0
    use_speaker_boost: bool = True

    def to_voice_settings(self) -> Dict[str, Any]:
        """ElevenLabs voice_settings payload"""
        return {
            "stability": round(self.stability, 2),
            "similarity_boost": round(self.similarity_boost, 2),
            "style": round(self.style, 2),
            "speed": round(self.speed, 2),
            "use_speaker_boost": self.use_speaker_boost,
        }


@dataclass
class ToneContext:
    """What the caller's situation asks of the voice"""
    is_emergency: bool = False
    urgency: UrgencyLevel = UrgencyLevel.NORMAL
    voice_style: str = "friendly"
    voice_name: Optional[str] = None


@dataclass
class TTSRequest:
    """Request for TTS synthesis"""
    text: str
    voice: VoiceProfile
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TTSResponse:
    """Response from TTS synthesis"""
    audio_data: bytes
    format: str  # mp3, pcm, ulaw, etc.
    content_type: str
    text: str
    voice_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class TTSServiceBase(ABC):
    """
    Abstract base class for Text-to-Speech services

    Providers raise SpeechSynthesisError on any failure.
    """

    def __init__(self, api_key: str, default_voice_id: str):
        """
        Initialize TTS service

        Args:
            api_key: Provider API key
            default_voice_id: Default voice to use
        """
        self.api_key = api_key
        self.default_voice_id = default_voice_id

    @abstractmethod
    async def synthesize(self, request: TTSRequest) -> TTSResponse:
        """
        Synthesize complete audio for the request text

        Raises:
            SpeechSynthesisError: on provider failure
        """
        pass

    @abstractmethod
    async def get_available_voices(self, language: str = "all") -> List[dict]:
        """List voices offered by the provider"""
        pass

    async def close(self) -> None:
        """Release client resources"""
        return None
