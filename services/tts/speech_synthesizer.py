"""
=====================================================
Voice Lead Agent - Speech Synthesizer
=====================================================
Text in, public audio URL out.

One synthesis path parameterized by VoiceProfile: a preset per voice
style, adjusted for urgency. There is no fallback voice; any failure
raises and the caller decides what to say instead.
"""

from dataclasses import replace
from typing import Dict, List, Optional

from loguru import logger

from services.lead.lead_base import UrgencyLevel
from .tts_base import (
    AudioUploadError,
    SpeechSynthesisError,
    ToneContext,
    TTSRequest,
    TTSServiceBase,
    VoiceProfile,
)


# (stability, similarity_boost, style) per voice style
STYLE_PRESETS: Dict[str, Dict[str, float]] = {
    "professional": {"stability": 0.6, "similarity_boost": 0.75, "style": 0.1},
    "friendly": {"stability": 0.45, "similarity_boost": 0.75, "style": 0.35},
    "casual": {"stability": 0.35, "similarity_boost": 0.7, "style": 0.45},
    "authoritative": {"stability": 0.7, "similarity_boost": 0.8, "style": 0.05},
}

URGENCY_SPEED: Dict[UrgencyLevel, float] = {
    UrgencyLevel.NORMAL: 1.0,
    UrgencyLevel.HIGH: 1.05,
    UrgencyLevel.EMERGENCY: 1.1,
    UrgencyLevel.CRITICAL: 1.1,
}
EMERGENCY_STABILITY_BOOST = 0.15


class SpeechSynthesizer:
    """TTS engine plus audio storage behind one call"""

    def __init__(
        self,
        tts: Optional[TTSServiceBase],
        storage,
        default_voice_id: str = "Rachel",
    ):
        self.tts = tts
        self.storage = storage
        self.default_voice_id = default_voice_id

    @property
    def is_configured(self) -> bool:
        return self.tts is not None and self.storage is not None

    def select_voice(self, tone: Optional[ToneContext] = None) -> VoiceProfile:
        """Voice profile for the style and urgency in tone"""
        tone = tone or ToneContext()
        preset = STYLE_PRESETS.get(tone.voice_style, STYLE_PRESETS["friendly"])
        profile = VoiceProfile(
            voice_id=tone.voice_name or self.default_voice_id,
            **preset,
        )

        urgency = tone.urgency
        if tone.is_emergency and urgency < UrgencyLevel.EMERGENCY:
            urgency = UrgencyLevel.EMERGENCY

        profile = replace(profile, speed=URGENCY_SPEED[urgency])
        if urgency.is_emergency:
            # Calm, even delivery when the caller is in trouble
            profile = replace(
                profile,
                stability=min(1.0, profile.stability + EMERGENCY_STABILITY_BOOST),
                style=0.0,
            )
        return profile

    async def speak(self, text: str, tone: Optional[ToneContext] = None) -> str:
        """
        Synthesize text and publish the clip.

        Args:
            text: What to say
            tone: Caller situation used to pick the voice profile

        Returns:
            Public URL of the audio

        Raises:
            SpeechSynthesisError: TTS missing or failed
            AudioUploadError: storage missing or upload failed
        """
        if not text or not text.strip():
            raise SpeechSynthesisError("Nothing to say")
        if self.tts is None:
            raise SpeechSynthesisError("No TTS engine configured")
        if self.storage is None:
            raise AudioUploadError("No audio storage configured")

        voice = self.select_voice(tone)
        response = await self.tts.synthesize(TTSRequest(text=text, voice=voice))
        if not response.audio_data:
            raise SpeechSynthesisError("TTS engine returned no audio")

        url = await self.storage.upload_audio(
            text=text,
            audio=response.audio_data,
            voice_id=response.voice_id,
            content_type=response.content_type,
            extension=response.format,
        )
        logger.info(f"SpeechSynthesizer: {len(response.audio_data)} bytes at {url}")
        return url

    async def list_voices(self, language: str = "all") -> List[dict]:
        if self.tts is None:
            raise SpeechSynthesisError("No TTS engine configured")
        return await self.tts.get_available_voices(language)
