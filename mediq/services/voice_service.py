# mediq/services/voice_service.py
"""VOICEVOX speech engine client.

Synthesis is a two-step exchange with the engine: `POST /audio_query` turns
text into an editable query, `POST /synthesis` renders that query to WAV.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import get_settings
from ..exceptions import SynthesisFailed, VoiceEngineUnavailable

logger = logging.getLogger(__name__)

DEFAULT_SPEED_SCALE = 1.0
DEFAULT_VOLUME_SCALE = 1.0
DEFAULT_PITCH_SCALE = 0.0


class VoicevoxClient:
    def __init__(
        self,
        base_url: str,
        *,
        check_timeout: float = 3.0,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.check_timeout = check_timeout
        self.timeout = timeout
        self._transport = transport

    def _http_client(self, timeout: float) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=timeout, transport=self._transport)

    def is_available(self) -> bool:
        """True when the engine answers `GET /version`."""
        try:
            with self._http_client(self.check_timeout) as client:
                response = client.get("/version")
            return response.is_success
        except httpx.HTTPError as exc:
            logger.warning(f"VOICEVOX engine check failed: {exc}")
            return False

    def synthesize(
        self,
        text: str,
        speaker: int,
        speed_scale: float = DEFAULT_SPEED_SCALE,
        volume_scale: float = DEFAULT_VOLUME_SCALE,
        pitch_scale: float = DEFAULT_PITCH_SCALE,
    ) -> bytes:
        """Render `text` to WAV bytes."""
        try:
            with self._http_client(self.timeout) as client:
                query_response = client.post("/audio_query", params={"text": text, "speaker": speaker})
                self._raise_for_status(query_response, "create audio query")
                audio_query: Dict[str, Any] = self._json(query_response, "create audio query")

                if speed_scale != DEFAULT_SPEED_SCALE:
                    audio_query["speedScale"] = speed_scale
                if volume_scale != DEFAULT_VOLUME_SCALE:
                    audio_query["volumeScale"] = volume_scale
                if pitch_scale != DEFAULT_PITCH_SCALE:
                    audio_query["pitchScale"] = pitch_scale

                synthesis_response = client.post("/synthesis", params={"speaker": speaker}, json=audio_query)
                self._raise_for_status(synthesis_response, "synthesize audio")
                return synthesis_response.content
        except httpx.TransportError as exc:
            logger.error(f"VOICEVOX engine unreachable: {exc}")
            raise VoiceEngineUnavailable("The VOICEVOX engine is not running.")

    def get_speakers(self) -> List[Dict[str, Any]]:
        try:
            with self._http_client(self.timeout) as client:
                response = client.get("/speakers")
        except httpx.TransportError as exc:
            logger.error(f"VOICEVOX engine unreachable: {exc}")
            raise VoiceEngineUnavailable("The VOICEVOX engine is not running.")
        self._raise_for_status(response, "get speakers")
        return self._json(response, "get speakers")

    @staticmethod
    def _raise_for_status(response: httpx.Response, step: str) -> None:
        if not response.is_success:
            logger.error(f"VOICEVOX failed to {step}: HTTP {response.status_code}")
            raise SynthesisFailed(f"Failed to {step}: {response.reason_phrase or response.status_code}")

    @staticmethod
    def _json(response: httpx.Response, step: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.error(f"VOICEVOX returned a non-JSON body while trying to {step}: {exc}")
            raise SynthesisFailed(f"Failed to {step}: unexpected response from the engine")


def get_voice_client() -> VoicevoxClient:
    """FastAPI dependency; overridden in tests with a mock transport."""
    settings = get_settings()
    return VoicevoxClient(
        settings.voicevox_api_url,
        check_timeout=settings.voicevox_check_timeout,
        timeout=settings.voicevox_timeout,
    )
