# mediq/routers/voice.py
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Response

from .. import schemas
from ..config import get_settings
from ..exceptions import ErrorCode, ValidationFailed
from ..services.voice_service import (
    DEFAULT_PITCH_SCALE,
    DEFAULT_SPEED_SCALE,
    DEFAULT_VOLUME_SCALE,
    VoicevoxClient,
    get_voice_client,
)

router = APIRouter(
    prefix="/voice",
    tags=["Voice"],
)


@router.post("/synthesize", response_class=Response)
def synthesize(request: schemas.VoiceSynthesizeRequest, client: VoicevoxClient = Depends(get_voice_client)):
    """
    Render guidance text to WAV through the VOICEVOX engine.
    """
    settings = get_settings()
    if not request.text:
        raise ValidationFailed("Text is required.")
    if len(request.text) > settings.voice_text_max_length:
        raise ValidationFailed(
            f"Text must be {settings.voice_text_max_length} characters or fewer.",
            code=ErrorCode.TEXT_TOO_LONG,
        )

    audio = client.synthesize(
        request.text,
        speaker=request.speaker if request.speaker is not None else settings.voicevox_default_speaker,
        speed_scale=request.speed_scale if request.speed_scale is not None else DEFAULT_SPEED_SCALE,
        volume_scale=request.volume_scale if request.volume_scale is not None else DEFAULT_VOLUME_SCALE,
        pitch_scale=request.pitch_scale if request.pitch_scale is not None else DEFAULT_PITCH_SCALE,
    )
    return Response(
        content=audio,
        media_type="audio/wav",
        headers={"Content-Length": str(len(audio)), "Cache-Control": "no-cache"},
    )


@router.get("/synthesize", response_model=schemas.ApiResponse[schemas.VoiceStatusResponse])
def engine_status(client: VoicevoxClient = Depends(get_voice_client)):
    return schemas.envelope(schemas.VoiceStatusResponse(available=client.is_available(), url=client.base_url))


@router.get("/speakers", response_model=schemas.ApiResponse[List[Dict[str, Any]]])
def speakers(client: VoicevoxClient = Depends(get_voice_client)):
    return schemas.envelope(client.get_speakers())
