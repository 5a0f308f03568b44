"""
=====================================================
Voice Lead Agent - TwiML Responses
=====================================================
Every webhook answer is one of these documents: at most one <Play>
and one <Gather>, with a <Redirect> back to the greeting if the
caller says nothing.
"""

from twilio.twiml.voice_response import Gather, VoiceResponse


VOICE_TWIML_PATH = "/api/voice-twiml"
VOICE_STREAM_PATH = "/api/voice-stream"


class TwimlBuilder:
    """Builds the TwiML documents the webhooks return"""

    def __init__(
        self,
        action_url: str = VOICE_STREAM_PATH,
        redirect_url: str = VOICE_TWIML_PATH,
        gather_timeout: int = 30,
        emergency_gather_timeout: int = 15,
        say_voice: str = "Polly.Joanna-Neural",
    ):
        self.action_url = action_url
        self.redirect_url = redirect_url
        self.gather_timeout = gather_timeout
        self.emergency_gather_timeout = emergency_gather_timeout
        self.say_voice = say_voice

    def _gather(self, is_emergency: bool) -> Gather:
        return Gather(
            input="speech",
            action=self.action_url,
            method="POST",
            timeout=self.emergency_gather_timeout if is_emergency else self.gather_timeout,
            speech_timeout="auto",
            language="en-US",
        )

    def play_and_gather(self, audio_url: str, is_emergency: bool = False) -> str:
        """Play synthesized audio, then listen for the next utterance"""
        response = VoiceResponse()
        response.play(audio_url)
        response.append(self._gather(is_emergency))
        response.redirect(self.redirect_url, method="POST")
        return str(response)

    def play_and_hangup(self, audio_url: str) -> str:
        response = VoiceResponse()
        response.play(audio_url)
        response.hangup()
        return str(response)

    def say_and_hangup(self, text: str) -> str:
        """Last-resort answer that needs no synthesis or storage"""
        response = VoiceResponse()
        response.say(text, voice=self.say_voice)
        response.hangup()
        return str(response)
