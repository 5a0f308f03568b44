"""Tests for voice selection, synthesis and audio publishing."""

import threading
from types import SimpleNamespace

import pytest

from services.lead.lead_base import UrgencyLevel
from services.storage.blob_storage import blob_name_for, create_audio_storage
from services.tts.elevenlabs_service import ElevenLabsTTS, create_elevenlabs_tts
from services.tts.speech_synthesizer import EMERGENCY_STABILITY_BOOST, STYLE_PRESETS, SpeechSynthesizer
from services.tts.tts_base import AudioUploadError, SpeechSynthesisError, ToneContext, VoiceProfile
from tests.conftest import FakeStorage, FakeTTS


class TestVoiceSelection:
    def setup_method(self):
        self.synthesizer = SpeechSynthesizer(FakeTTS(), FakeStorage(), default_voice_id="Rachel")

    def test_default_profile(self):
        profile = self.synthesizer.select_voice()
        assert profile.voice_id == "Rachel"
        assert profile.stability == STYLE_PRESETS["friendly"]["stability"]
        assert profile.speed == 1.0

    def test_emergency_is_faster_and_steadier(self):
        calm = self.synthesizer.select_voice(ToneContext(voice_style="professional"))
        urgent = self.synthesizer.select_voice(
            ToneContext(voice_style="professional", is_emergency=True, urgency=UrgencyLevel.EMERGENCY)
        )
        assert urgent.speed > calm.speed
        assert urgent.stability == pytest.approx(calm.stability + EMERGENCY_STABILITY_BOOST)
        assert urgent.style == 0.0

    def test_emergency_flag_alone_counts(self):
        profile = self.synthesizer.select_voice(ToneContext(is_emergency=True))
        assert profile.speed == 1.1

    def test_high_urgency_is_slightly_faster(self):
        profile = self.synthesizer.select_voice(ToneContext(urgency=UrgencyLevel.HIGH))
        assert profile.speed == 1.05
        assert profile.style == STYLE_PRESETS["friendly"]["style"]

    def test_tenant_voice_name(self):
        profile = self.synthesizer.select_voice(ToneContext(voice_name="Josh"))
        assert profile.voice_id == "Josh"

    def test_unknown_style_uses_friendly(self):
        profile = self.synthesizer.select_voice(ToneContext(voice_style="robotic"))
        assert profile.stability == STYLE_PRESETS["friendly"]["stability"]

    def test_voice_settings_payload(self):
        settings = VoiceProfile(voice_id="x", stability=0.456, speed=1.1).to_voice_settings()
        assert settings["stability"] == 0.46
        assert settings["speed"] == 1.1
        assert settings["use_speaker_boost"] is True


class TestSpeak:
    @pytest.mark.asyncio
    async def test_returns_public_url(self):
        tts = FakeTTS()
        storage = FakeStorage()
        url = await SpeechSynthesizer(tts, storage).speak("Hello there")

        assert url.startswith("https://audio.test/")
        assert storage.uploads == ["Hello there"]
        assert tts.requests[0].text == "Hello there"

    @pytest.mark.asyncio
    async def test_missing_engine(self):
        with pytest.raises(SpeechSynthesisError):
            await SpeechSynthesizer(None, FakeStorage()).speak("Hello")

    @pytest.mark.asyncio
    async def test_missing_storage(self):
        with pytest.raises(AudioUploadError):
            await SpeechSynthesizer(FakeTTS(), None).speak("Hello")

    @pytest.mark.asyncio
    async def test_engine_failure_propagates(self):
        with pytest.raises(SpeechSynthesisError):
            await SpeechSynthesizer(FakeTTS(fail=True), FakeStorage()).speak("Hello")

    @pytest.mark.asyncio
    async def test_upload_failure_propagates(self):
        with pytest.raises(AudioUploadError):
            await SpeechSynthesizer(FakeTTS(), FakeStorage(fail=True)).speak("Hello")

    @pytest.mark.asyncio
    async def test_blank_text(self):
        with pytest.raises(SpeechSynthesisError):
            await SpeechSynthesizer(FakeTTS(), FakeStorage()).speak("  ")

    def test_is_configured(self):
        assert SpeechSynthesizer(FakeTTS(), FakeStorage()).is_configured
        assert not SpeechSynthesizer(FakeTTS(), None).is_configured


class TestElevenLabsFactory:
    def test_no_key(self):
        assert create_elevenlabs_tts({}) is None

    def test_voice_name_maps_to_id(self):
        tts = create_elevenlabs_tts({"elevenlabs_api_key": "sk-test", "elevenlabs_output_format": "mp3_22050_32"})
        assert isinstance(tts, ElevenLabsTTS)
        assert tts._get_voice_id("Rachel") == "21m00Tcm4TlvDq8ikWAM"
        assert tts._get_voice_id("custom-id") == "custom-id"
        assert tts.audio_format == "mp3"


class TestVoiceListing:
    def setup_method(self):
        self.tts = create_elevenlabs_tts({"elevenlabs_api_key": "sk-test"})

    @pytest.mark.asyncio
    async def test_listing_runs_off_the_event_loop(self):
        threads = []

        def get_all():
            threads.append(threading.get_ident())
            voice = SimpleNamespace(voice_id="v1", name="Ada", category="cloned", labels={"accent": "british"})
            return SimpleNamespace(voices=[voice])

        self.tts._client = SimpleNamespace(voices=SimpleNamespace(get_all=get_all))

        voices = await self.tts.get_available_voices()

        assert voices == [{"voice_id": "v1", "name": "Ada", "category": "cloned", "labels": {"accent": "british"}}]
        assert threads and threads[0] != threading.get_ident()

    @pytest.mark.asyncio
    async def test_listing_failure_falls_back_to_popular_voices(self):
        def get_all():
            raise RuntimeError("401 unauthorized")

        self.tts._client = SimpleNamespace(voices=SimpleNamespace(get_all=get_all))

        voices = await self.tts.get_available_voices()

        assert voices[0]["name"] == "Rachel"
        assert voices[0]["category"] == "premade"


class TestBlobNames:
    def test_same_text_same_hash(self):
        first = blob_name_for("Hello", "Rachel", timestamp_ms=1000)
        second = blob_name_for("Hello", "Rachel", timestamp_ms=2000)
        assert first.split("-")[1] == second.split("-")[1]
        assert first != second

    def test_format(self):
        name = blob_name_for("Hello", "21m00Tcm4TlvDq8ikWAM", timestamp_ms=1700000000000)
        prefix, digest, rest = name.split("-")
        assert prefix == "21m00Tcm4TlvDq8ikWAM"
        assert len(digest) == 16
        assert rest == "1700000000000.mp3"

    def test_storage_factory_without_connection_string(self):
        assert create_audio_storage({}) is None
