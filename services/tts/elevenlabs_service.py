"""
=====================================================
Voice Lead Agent - ElevenLabs TTS Service
=====================================================
Complete-file synthesis through the ElevenLabs REST API.

Twilio plays the result from a URL, so the whole clip is fetched in one
request instead of being streamed.
"""

import asyncio
from typing import List, Optional

import httpx
from elevenlabs.client import ElevenLabs
from loguru import logger

from .tts_base import SpeechSynthesisError, TTSServiceBase, TTSRequest, TTSResponse


ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"

CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "pcm": "audio/wav",
    "ulaw": "audio/basic",
}


class ElevenLabsTTS(TTSServiceBase):
    """ElevenLabs TTS Service"""

    # Well-known voices, addressable by name
    POPULAR_VOICES = {
        "Rachel": {"voice_id": "21m00Tcm4TlvDq8ikWAM", "name": "Rachel", "gender": "F", "accent": "American"},
        "Drew": {"voice_id": "29vD33N1CtxCmqQRPOHJ", "name": "Drew", "gender": "M", "accent": "American"},
        "Clyde": {"voice_id": "2EiwWnXFnvU5JabPnv8n", "name": "Clyde", "gender": "M", "accent": "American"},
        "Adam": {"voice_id": "pNInz6obpgDQGcFmaJgB", "name": "Adam", "gender": "M", "accent": "American"},
        "Bella": {"voice_id": "EXAVITQu4vr4xnSDxMaL", "name": "Bella", "gender": "F", "accent": "American"},
        "Josh": {"voice_id": "TxGEqnHWrfWFTfGW9XjX", "name": "Josh", "gender": "M", "accent": "American"},
    }

    def __init__(
        self,
        api_key: str,
        default_voice_id: str = "Rachel",
        model: str = "eleven_turbo_v2_5",
        output_format: str = "mp3_44100_128",
        timeout: float = 30.0,
    ):
        """
        Initialize ElevenLabs TTS service

        Args:
            api_key: ElevenLabs API key
            default_voice_id: Default voice name (will be mapped to voice_id)
            model: Model to use
            output_format: Audio output format (mp3 plays directly in Twilio <Play>)
            timeout: Request timeout in seconds
        """
        super().__init__(api_key, default_voice_id)

        self.model = model
        self.output_format = output_format
        self.timeout = timeout

        # SDK client for account-level calls (voice catalogue)
        self._client = ElevenLabs(api_key=self.api_key)
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def audio_format(self) -> str:
        return self.output_format.split("_", 1)[0]

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client"""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    def _get_voice_id(self, voice_name: str) -> str:
        """Convert voice name to voice_id"""
        voice_info = self.POPULAR_VOICES.get(voice_name)
        if voice_info:
            return voice_info.get("voice_id", voice_name)
        return voice_name  # Assume it's already a voice_id

    async def synthesize(self, request: TTSRequest) -> TTSResponse:
        """
        Synthesize speech from text

        Args:
            request: TTS request

        Returns:
            TTS response with the full audio clip

        Raises:
            SpeechSynthesisError: HTTP failure or empty audio
        """
        voice_id = self._get_voice_id(request.voice.voice_id or self.default_voice_id)
        url = f"{ELEVENLABS_API_URL}/text-to-speech/{voice_id}"

        headers = {
            "xi-api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": CONTENT_TYPES.get(self.audio_format, "application/octet-stream"),
        }
        params = {"output_format": self.output_format}
        body = {
            "text": request.text,
            "model_id": self.model,
            "voice_settings": request.voice.to_voice_settings(),
        }

        logger.info(f"ElevenLabs: Synthesizing '{request.text[:50]}...' voice={voice_id} model={self.model}")

        try:
            client = await self._get_http_client()
            response = await client.post(url, headers=headers, params=params, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"ElevenLabs: HTTP error {e.response.status_code}: {e.response.text[:200]}")
            raise SpeechSynthesisError(f"ElevenLabs returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"ElevenLabs: Request failed: {e}")
            raise SpeechSynthesisError(f"ElevenLabs request failed: {e}") from e

        audio = response.content
        if not audio:
            raise SpeechSynthesisError("ElevenLabs returned no audio")

        logger.info(f"ElevenLabs: Generated {len(audio)} bytes")
        return TTSResponse(
            audio_data=audio,
            format=self.audio_format,
            content_type=CONTENT_TYPES.get(self.audio_format, "application/octet-stream"),
            text=request.text,
            voice_id=voice_id,
            metadata={"model": self.model},
        )

    async def get_available_voices(self, language: str = "all") -> List[dict]:
        """
        Get list of available voices

        Args:
            language: Filter by language ('all' for no filter)

        Returns:
            List of voice metadata
        """
        try:
            # The SDK client is synchronous
            response = await asyncio.to_thread(self._client.voices.get_all)

            voices_list = []
            if hasattr(response, 'voices'):
                for voice in response.voices:
                    voices_list.append({
                        "voice_id": voice.voice_id,
                        "name": voice.name,
                        "category": getattr(voice, 'category', None),
                        "labels": getattr(voice, 'labels', None) or {},
                    })

            if language != "all":
                return [
                    v for v in voices_list
                    if language in str(v.get("labels", {})).lower()
                ]

            return voices_list

        except Exception as e:
            logger.error(f"ElevenLabs: Error fetching voices: {e}")
            return [
                {"voice_id": v["voice_id"], "name": k, "category": "premade", "labels": {}}
                for k, v in self.POPULAR_VOICES.items()
            ]

    async def close(self) -> None:
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
        self._http_client = None


# Factory function
def create_elevenlabs_tts(config: dict) -> Optional[ElevenLabsTTS]:
    """
    Factory function to create ElevenLabs TTS service from config

    Args:
        config: Configuration dictionary (from Settings)

    Returns:
        Configured ElevenLabsTTS instance or None if not available
    """
    api_key = config.get('elevenlabs_api_key')
    if not api_key:
        logger.warning("ElevenLabs: No API key configured, speech synthesis disabled")
        return None

    try:
        return ElevenLabsTTS(
            api_key=api_key,
            default_voice_id=config.get('elevenlabs_voice_id', 'Rachel'),
            model=config.get('elevenlabs_model', 'eleven_turbo_v2_5'),
            output_format=config.get('elevenlabs_output_format', 'mp3_44100_128'),
        )
    except Exception as e:
        logger.error(f"Failed to initialize ElevenLabs TTS: {e}")
        return None
