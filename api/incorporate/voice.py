import logging

from openai import OpenAI, OpenAIError

from . import config
from .errors import GenerationError, ServiceUnavailable

logger = logging.getLogger(__name__)


class VoiceBridge:
    """Text-to-speech and speech-to-text through the OpenAI audio endpoints."""

    available = True

    def __init__(self, client: OpenAI | None = None, tts_model: str | None = None,
                 voice: str | None = None, stt_model: str | None = None):
        self.client = client or OpenAI(api_key=config.LLM_API_KEY, base_url=config.LLM_BASE_URL)
        self.tts_model = tts_model or config.TTS_MODEL
        self.voice = voice or config.TTS_VOICE
        self.stt_model = stt_model or config.STT_MODEL

    def text_to_speech(self, text: str, voice: str | None = None) -> bytes:
        try:
            response = self.client.audio.speech.create(
                model=self.tts_model,
                voice=voice or self.voice,
                input=text,
                response_format="mp3",
            )
            return response.content
        except OpenAIError as e:
            logger.error("TTS error: %s", e)
            raise GenerationError("Text-to-speech failed") from e

    def transcribe(self, filename: str, audio: bytes) -> str:
        try:
            result = self.client.audio.transcriptions.create(
                model=self.stt_model,
                file=(filename, audio),
            )
            return result.text
        except OpenAIError as e:
            logger.error("Transcription error: %s", e)
            raise GenerationError("Speech-to-text failed") from e


class UnavailableVoice:
    available = False

    def text_to_speech(self, text: str, voice: str | None = None) -> bytes:
        raise ServiceUnavailable("Voice service is not configured")

    def transcribe(self, filename: str, audio: bytes) -> str:
        raise ServiceUnavailable("Voice service is not configured")
