# tests/test_voice_api.py
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from mediq.main import app
from mediq.services.voice_service import VoicevoxClient, get_voice_client

FAKE_WAV = b"RIFF\x24\x00\x00\x00WAVEfmt "


def use_engine(handler):
    client = VoicevoxClient("http://voicevox.test", transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_voice_client] = lambda: client
    return client


@pytest.fixture
def engine_calls():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/version":
            return httpx.Response(200, json="0.14.0")
        if request.url.path == "/audio_query":
            return httpx.Response(200, json={"speedScale": 1.0, "volumeScale": 1.0, "pitchScale": 0.0})
        if request.url.path == "/synthesis":
            return httpx.Response(200, content=FAKE_WAV, headers={"Content-Type": "audio/wav"})
        if request.url.path == "/speakers":
            return httpx.Response(200, json=[{"name": "ずんだもん", "styles": [{"id": 3}]}])
        return httpx.Response(404)

    use_engine(handler)
    return calls


def test_synthesize_returns_wav(client, engine_calls):
    response = client.post("/api/voice/synthesize", json={"text": "ようこそ。"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/wav"
    assert response.headers["cache-control"] == "no-cache"
    assert response.content == FAKE_WAV

    query_call, synthesis_call = engine_calls
    assert query_call.url.params["text"] == "ようこそ。"
    assert query_call.url.params["speaker"] == "3"
    assert json.loads(synthesis_call.content) == {"speedScale": 1.0, "volumeScale": 1.0, "pitchScale": 0.0}


def test_synthesize_applies_custom_scales(client, engine_calls):
    client.post("/api/voice/synthesize", json={"text": "こんにちは", "speaker": 1, "speedScale": 1.2})

    synthesis_call = engine_calls[-1]
    assert synthesis_call.url.params["speaker"] == "1"
    assert json.loads(synthesis_call.content)["speedScale"] == 1.2


def test_missing_text_is_a_validation_error(client, engine_calls):
    for body in ({}, {"text": ""}):
        response = client.post("/api/voice/synthesize", json=body)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert engine_calls == []


def test_text_too_long(client, engine_calls):
    response = client.post("/api/voice/synthesize", json={"text": "あ" * 1001})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "TEXT_TOO_LONG"
    assert engine_calls == []


def test_engine_unreachable(client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    use_engine(handler)

    response = client.post("/api/voice/synthesize", json={"text": "ようこそ。"})

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "VOICEVOX_NOT_AVAILABLE"
    assert client.get("/api/voice/synthesize").json()["data"] == {
        "available": False,
        "url": "http://voicevox.test",
    }


def test_engine_error_is_synthesis_failed(client):
    use_engine(lambda request: httpx.Response(500))

    response = client.post("/api/voice/synthesize", json={"text": "ようこそ。"})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "SYNTHESIS_FAILED"


def test_engine_status_available(client, engine_calls):
    response = client.get("/api/voice/synthesize")

    assert response.json()["data"] == {"available": True, "url": "http://voicevox.test"}


def test_speakers(client, engine_calls):
    response = client.get("/api/voice/speakers")

    assert response.status_code == 200
    assert response.json()["data"][0]["name"] == "ずんだもん"


def test_dropped_connection_is_engine_unavailable(client):
    def handler(request):
        raise httpx.ReadError("connection reset", request=request)

    use_engine(handler)

    response = client.post("/api/voice/synthesize", json={"text": "ようこそ。"})

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "VOICEVOX_NOT_AVAILABLE"
    assert client.get("/api/voice/speakers").status_code == 503


def test_non_json_audio_query_is_synthesis_failed(client):
    use_engine(lambda request: httpx.Response(200, text="<html>proxy error</html>"))

    response = client.post("/api/voice/synthesize", json={"text": "ようこそ。"})

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "SYNTHESIS_FAILED"


def test_non_json_speakers_is_synthesis_failed(client):
    use_engine(lambda request: httpx.Response(200, text="<html>proxy error</html>"))

    response = client.get("/api/voice/speakers")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "SYNTHESIS_FAILED"


def test_unexpected_error_still_uses_error_envelope():
    class BrokenClient(VoicevoxClient):
        def synthesize(self, *args, **kwargs):
            raise RuntimeError("boom")

    app.dependency_overrides[get_voice_client] = lambda: BrokenClient("http://voicevox.test")

    with TestClient(app, raise_server_exceptions=False) as c:
        response = c.post("/api/voice/synthesize", json={"text": "ようこそ。"})

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": {"code": "SYNTHESIS_FAILED", "message": "An unexpected error occurred."},
    }
