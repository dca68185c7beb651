"""Tests for RealtimeClient."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np
import pytest
import websockets
from websockets.frames import Close

from talkback.audio.codec import encode_audio
from talkback.audio.input.errors import MicrophoneError, MicrophoneErrorKind
from talkback.audio.input.types import AudioFrame
from talkback.core.errors import (
    ConnectionClosed,
    ConnectTimeout,
    InvalidCredential,
    RealtimeConnectionError,
    RemoteProtocolError,
)
from talkback.realtime.client import ConnectionState, RealtimeClient
from talkback.realtime.schemas import ResponseDone, ServerEvent

MODULE = "talkback.realtime.client"


class FakeWebSocket:
    """Yields queued messages, then stays open until closed by either side."""

    def __init__(self, messages=()):
        self.sent = []
        self.close_calls = 0
        self.close_code = None
        self.close_reason = ""
        self._messages = list(messages)
        self._closed = asyncio.Event()

    async def send(self, data):
        self.sent.append(data)

    async def close(self, code=1000, reason=""):
        self.close_calls += 1
        self.server_close(code, reason)

    def server_close(self, code, reason=""):
        if self.close_code is None:
            self.close_code = code
            self.close_reason = reason
        self._closed.set()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self._messages:
            yield message
        await self._closed.wait()


class FakeCapture:
    def __init__(self, rate=24000, frames=()):
        self.rate = rate
        self.frames = list(frames)
        self.stopped = False
        self._stop = asyncio.Event()

    async def start(self):
        return self.rate

    async def drain(self, on_frame):
        for frame in self.frames:
            await on_frame(frame)
        await self._stop.wait()

    def stop(self):
        self.stopped = True
        self._stop.set()


def _mock_ws_connect(mock_ws):
    """Patch websockets.connect so it returns mock_ws as an awaitable."""
    return patch(f"{MODULE}.websockets.connect", AsyncMock(return_value=mock_ws))


async def _hang(*args, **kwargs):
    await asyncio.Event().wait()


async def _let_tasks_run():
    for _ in range(5):
        await asyncio.sleep(0.01)


def _sent_events(ws):
    return [json.loads(m) for m in ws.sent]


@pytest.fixture
def playback():
    return MagicMock()


@pytest.fixture
def client(playback):
    return RealtimeClient("ek_test_secret", connect_timeout=1.0, playback=playback)


def test_init_defaults(client, playback):
    assert client.state == ConnectionState.DISCONNECTED
    assert not client.is_connected
    assert client.playback is playback
    assert client.url == (
        "wss://api.openai.com/v1/realtime?model=gpt-4o-realtime-preview&client_secret=ek_test_secret"
    )


def test_playback_always_runs_at_session_rate():
    with patch(f"{MODULE}.AudioPlayback") as playback_cls:
        RealtimeClient("ek_test", capture_rate=48000)
    playback_cls.assert_called_once_with(sample_rate=24000)


def test_url_embeds_model_and_encoded_secret(playback):
    c = RealtimeClient("ek_a/b+c", url="wss://example.com/v1/realtime", model="rt-model", playback=playback)
    assert c.url == "wss://example.com/v1/realtime?model=rt-model&client_secret=ek_a%2Fb%2Bc"


@pytest.mark.asyncio
@pytest.mark.parametrize("secret", ["", None, 123])
async def test_invalid_credential_fails_before_network(secret, playback):
    c = RealtimeClient(secret, playback=playback)
    with patch(f"{MODULE}.websockets.connect", AsyncMock()) as connect:
        with pytest.raises(InvalidCredential):
            await c.connect()
        connect.assert_not_called()
    assert c.state == ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_connect_sets_state(client):
    ws = FakeWebSocket()
    with _mock_ws_connect(ws) as connect:
        await client.connect()
        assert client.state == ConnectionState.CONNECTED
        assert client.is_connected
        assert connect.call_args[0][0] == client.url

    await client.disconnect()


@pytest.mark.asyncio
async def test_connect_twice_is_rejected(client):
    with _mock_ws_connect(FakeWebSocket()):
        await client.connect()
        with pytest.raises(RealtimeConnectionError):
            await client.connect()
    await client.disconnect()


@pytest.mark.asyncio
async def test_connect_timeout(playback):
    c = RealtimeClient("ek_test", connect_timeout=0.05, playback=playback)
    with patch(f"{MODULE}.websockets.connect", new=_hang):
        with pytest.raises(ConnectTimeout) as exc_info:
            await c.connect()

    assert exc_info.value.timeout == 0.05
    assert c.state == ConnectionState.DISCONNECTED
    assert not c.is_connected
    playback.close.assert_called()


@pytest.mark.asyncio
async def test_close_before_open_raises_connection_closed(client):
    rejected = websockets.ConnectionClosed(Close(4001, "invalid secret"), None)
    with patch(f"{MODULE}.websockets.connect", AsyncMock(side_effect=rejected)):
        with pytest.raises(ConnectionClosed) as exc_info:
            await client.connect()

    assert exc_info.value.code == 4001
    assert exc_info.value.reason == "invalid secret"
    assert client.state == ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_error_before_open_raises_connection_error(client):
    with patch(f"{MODULE}.websockets.connect", AsyncMock(side_effect=OSError("connection refused"))):
        with pytest.raises(RealtimeConnectionError) as exc_info:
            await client.connect()

    # The error settles first; the close that follows must not override it.
    assert type(exc_info.value) is RealtimeConnectionError
    assert "connection refused" in str(exc_info.value)
    assert client.state == ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_connect_settles_once_and_closes_late_socket(client):
    ws = FakeWebSocket()

    def fail_then_open(*args, **kwargs):
        client._on_error(OSError("boom"))
        client._on_close(1006, "abnormal")
        return ws

    with patch(f"{MODULE}.websockets.connect", AsyncMock(side_effect=fail_then_open)):
        with pytest.raises(RealtimeConnectionError) as exc_info:
            await client.connect()
        await _let_tasks_run()

    assert type(exc_info.value) is RealtimeConnectionError
    assert ws.close_calls == 1
    assert not client.is_connected


@pytest.mark.asyncio
async def test_disconnect_while_connecting(client):
    with patch(f"{MODULE}.websockets.connect", new=_hang):
        connect_task = asyncio.create_task(client.connect())
        await asyncio.sleep(0.01)
        assert client.state == ConnectionState.CONNECTING

        await client.disconnect()
        with pytest.raises(ConnectionClosed):
            await connect_task

    assert client.state == ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_async_context_manager(client):
    ws = FakeWebSocket()
    with _mock_ws_connect(ws):
        async with client:
            assert client.is_connected
    assert client.state == ConnectionState.DISCONNECTED
    assert ws.close_calls == 1


@pytest.mark.asyncio
async def test_receive_loop_dispatches_events(client, playback):
    transcripts, audio, done, errors, unknown = [], [], [], [], []
    client.on("transcript", transcripts.append)
    client.on("audio", audio.append)
    client.on("done", done.append)
    client.on("error", errors.append)
    client.on("rate_limits.updated", unknown.append)

    ws = FakeWebSocket([
        json.dumps({"type": "session.created", "session": {"id": "sess_1"}}),
        json.dumps({"type": "response.audio_transcript.delta", "delta": "Hel"}),
        json.dumps({"type": "response.audio_transcript.delta", "delta": "lo"}),
        json.dumps({"type": "response.audio.delta", "delta": "AAAA"}),
        json.dumps({"type": "rate_limits.updated", "rate_limits": []}),
        json.dumps({"type": "response.done", "response": {"status": "completed"}}),
    ])
    with _mock_ws_connect(ws):
        await client.connect()
        await _let_tasks_run()

    assert transcripts == ["Hel", "lo"]
    assert audio == ["AAAA"]
    playback.on_audio_delta.assert_called_once_with("AAAA")
    playback.on_response_done.assert_called_once()
    assert len(done) == 1 and isinstance(done[0], ResponseDone)
    assert len(unknown) == 1 and isinstance(unknown[0], ServerEvent)
    assert errors == []

    await client.disconnect()


@pytest.mark.asyncio
async def test_error_event_reaches_error_handlers(client):
    errors = []
    client.on("error", errors.append)
    ws = FakeWebSocket([json.dumps({
        "type": "error",
        "event_id": "evt_1",
        "error": {"type": "invalid_request_error", "code": "invalid_value", "message": "Bad audio"},
    })])
    with _mock_ws_connect(ws):
        await client.connect()
        await _let_tasks_run()

    assert len(errors) == 1
    error = errors[0]
    assert isinstance(error, RemoteProtocolError)
    assert str(error) == "Bad audio"
    assert error.error_type == "invalid_request_error"
    assert error.code == "invalid_value"
    assert error.event_id == "evt_1"
    assert client.is_connected

    await client.disconnect()


@pytest.mark.asyncio
async def test_unparsable_frames_are_dropped(client):
    transcripts = []
    client.on("transcript", transcripts.append)
    ws = FakeWebSocket([
        "not json",
        json.dumps({"type": "response.audio.delta"}),
        b"\x00\x01",
        json.dumps({"type": "response.audio_transcript.delta", "delta": "ok"}),
    ])
    with _mock_ws_connect(ws):
        await client.connect()
        await _let_tasks_run()

    assert transcripts == ["ok"]
    assert client.is_connected
    await client.disconnect()


@pytest.mark.asyncio
async def test_server_close_after_open_releases_resources(client, playback):
    ws = FakeWebSocket()
    with _mock_ws_connect(ws):
        await client.connect()
        ws.server_close(1001, "going away")
        await _let_tasks_run()

    assert client.state == ConnectionState.DISCONNECTED
    assert not client.is_connected
    playback.close.assert_called()


@pytest.mark.asyncio
async def test_send_audio(client):
    ws = FakeWebSocket()
    with _mock_ws_connect(ws):
        await client.connect()
        await client.send_audio("QUJD")

    assert _sent_events(ws) == [{"type": "input_audio_buffer.append", "audio": "QUJD"}]
    await client.disconnect()


@pytest.mark.asyncio
async def test_commit_audio(client):
    ws = FakeWebSocket()
    with _mock_ws_connect(ws):
        await client.connect()
        await client.commit_audio()

    assert _sent_events(ws) == [{"type": "input_audio_buffer.commit"}]
    await client.disconnect()


@pytest.mark.asyncio
async def test_send_and_commit_when_not_connected(client):
    """send_audio and commit_audio are no-ops when not connected."""
    await client.send_audio("QUJD")
    await client.commit_audio()
    # No exception raised


@pytest.mark.asyncio
async def test_disconnect_is_idempotent(client, playback):
    ws = FakeWebSocket()
    with _mock_ws_connect(ws):
        await client.connect()

    await client.disconnect()
    await client.disconnect()

    assert ws.close_calls == 1
    assert client.state == ConnectionState.DISCONNECTED
    playback.close.assert_called()


@pytest.mark.asyncio
async def test_disconnect_without_connect(client, playback):
    await client.disconnect()
    assert client.state == ConnectionState.DISCONNECTED
    playback.close.assert_called_once()


@pytest.mark.asyncio
async def test_on_frame_sends_audio_and_levels(client):
    levels = []
    client.set_waveform_callback(levels.append)
    ws = FakeWebSocket()
    pcm = np.array([0.0, 0.5, -1.0], dtype=np.float32)

    with _mock_ws_connect(ws):
        await client.connect()
        await client._on_frame(AudioFrame(pcm=pcm, sample_rate=24000, timestamp_s=0.0))

    assert _sent_events(ws) == [{"type": "input_audio_buffer.append", "audio": encode_audio(pcm)}]
    assert levels[0].tolist() == [0, 127, 255]
    await client.disconnect()


@pytest.mark.asyncio
async def test_on_frame_resamples_to_session_rate(client):
    ws = FakeWebSocket()
    pcm = np.zeros(4800, dtype=np.float32)

    with _mock_ws_connect(ws):
        await client.connect()
        await client._on_frame(AudioFrame(pcm=pcm, sample_rate=48000, timestamp_s=0.0))

    sent = _sent_events(ws)[0]
    assert sent["audio"] == encode_audio(np.zeros(2400, dtype=np.float32))
    await client.disconnect()


@pytest.mark.asyncio
async def test_frames_after_disconnect_are_dropped(client):
    levels = []
    client.set_waveform_callback(levels.append)
    ws = FakeWebSocket()
    with _mock_ws_connect(ws):
        await client.connect()
    await client.disconnect()

    await client._on_frame(AudioFrame(pcm=np.ones(10, dtype=np.float32), sample_rate=24000, timestamp_s=0.0))
    assert ws.sent == []
    assert levels == []


@pytest.mark.asyncio
async def test_start_microphone_streams_frames(playback):
    frame = AudioFrame(pcm=np.full(4096, 0.25, dtype=np.float32), sample_rate=24000, timestamp_s=0.0)
    capture = FakeCapture(frames=[frame])
    factory = MagicMock(return_value=capture)
    c = RealtimeClient("ek_test", playback=playback, capture_factory=factory)
    ws = FakeWebSocket()

    with _mock_ws_connect(ws):
        await c.connect()
        rate = await c.start_microphone()
        await _let_tasks_run()

    assert rate == 24000
    kwargs = factory.call_args.kwargs
    assert kwargs["audio_format"].sample_rate == 24000
    assert kwargs["frame_cfg"].frame_samples == 4096
    assert _sent_events(ws) == [{"type": "input_audio_buffer.append", "audio": encode_audio(frame.pcm)}]

    await c.disconnect()
    assert capture.stopped


@pytest.mark.asyncio
async def test_start_microphone_failure_propagates(playback):
    capture = FakeCapture()
    capture.start = AsyncMock(side_effect=MicrophoneError(MicrophoneErrorKind.PERMISSION_DENIED, "denied"))
    c = RealtimeClient("ek_test", playback=playback, capture_factory=MagicMock(return_value=capture))

    with _mock_ws_connect(FakeWebSocket()):
        await c.connect()
        with pytest.raises(MicrophoneError) as exc_info:
            await c.start_microphone()

    assert exc_info.value.kind is MicrophoneErrorKind.PERMISSION_DENIED
    assert c.is_connected
    await c.disconnect()


@pytest.mark.asyncio
async def test_capture_rate_is_resampled_to_session_rate(playback):
    frame = AudioFrame(pcm=np.zeros(4800, dtype=np.float32), sample_rate=48000, timestamp_s=0.0)
    capture = FakeCapture(rate=48000, frames=[frame])
    factory = MagicMock(return_value=capture)
    c = RealtimeClient("ek_test", capture_rate=48000, playback=playback, capture_factory=factory)
    ws = FakeWebSocket()

    with _mock_ws_connect(ws):
        await c.connect()
        assert await c.start_microphone() == 48000
        await _let_tasks_run()

    assert factory.call_args.kwargs["audio_format"].sample_rate == 48000
    assert _sent_events(ws) == [
        {"type": "input_audio_buffer.append", "audio": encode_audio(np.zeros(2400, dtype=np.float32))}
    ]
    await c.disconnect()
