from fastapi import APIRouter, Depends, File, Response, UploadFile

from ..auth import get_current_user
from ..errors import ValidationProblem
from ..models import User
from ..schemas import TextToSpeech
from ..services import Services, get_services

router = APIRouter()


@router.post("/tts")
def text_to_speech(
    payload: TextToSpeech,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    audio = services.voice.text_to_speech(payload.text, voice=payload.voice)
    return Response(content=audio, media_type="audio/mpeg")


@router.post("/transcribe")
def transcribe(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    audio = file.file.read()
    if not audio:
        raise ValidationProblem("Audio file is empty")
    return {"text": services.voice.transcribe(file.filename or "audio.webm", audio)}
