import logging
from dataclasses import dataclass

from fastapi import Request

from . import config
from .email import Notifier
from .llm import GenerationService, UnavailableGeneration
from .retrieval import RetrievalIndex, UnavailableRetrieval
from .voice import UnavailableVoice, VoiceBridge

logger = logging.getLogger(__name__)


@dataclass
class Services:
    generation: GenerationService | UnavailableGeneration
    retrieval: RetrievalIndex | UnavailableRetrieval
    notifier: Notifier
    voice: VoiceBridge | UnavailableVoice

    def capabilities(self) -> dict:
        return {
            "generation": self.generation.available,
            "retrieval": self.retrieval.available,
            "email": self.notifier.configured,
            "voice": self.voice.available,
        }


def build_services() -> Services:
    if config.LLM_API_KEY:
        generation = GenerationService()
        voice = VoiceBridge()
    else:
        logger.warning("LLM not configured - LLM_API_KEY missing; generation and voice disabled")
        generation = UnavailableGeneration()
        voice = UnavailableVoice()

    try:
        retrieval = RetrievalIndex()
    except Exception as e:
        logger.warning("Retrieval index unavailable: %s", e)
        retrieval = UnavailableRetrieval()

    notifier = Notifier()
    if not notifier.configured:
        logger.warning("SMTP not configured - emails will be logged instead of sent")
    return Services(generation=generation, retrieval=retrieval, notifier=notifier, voice=voice)


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        services = build_services()
        request.app.state.services = services
    return services
