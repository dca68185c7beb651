"""Terminal client: realtime voice session or record-and-send round trips."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import numpy as np
import requests
from textual.app import App, ComposeResult
from textual.logging import TextualHandler
from textual.widgets import Footer

from ..audio.input.recorder import Recorder
from ..audio.input.types import AudioFormat
from ..client.chat import ChatClient, DebugInfo
from ..client.credentials import CredentialClient
from ..config.settings import TalkbackConfig
from ..core.errors import RemoteProtocolError, TalkbackError
from ..realtime.client import RealtimeClient
from ..realtime.schemas import ResponseDone
from .ui.conversation import ConversationArea
from .ui.header import SessionTimer, TalkbackHeader
from .waveform import Waveform

logging.basicConfig(
    level="NOTSET",
    handlers=[TextualHandler()],
    format="[%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger("TalkbackApp")

MODES = ("realtime", "roundtrip")

# Failures shown in the conversation log instead of ending the app.
REQUEST_ERRORS = (TalkbackError, requests.RequestException, ValueError)


class TalkbackApp(App):
    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS = [
        ("c", "commit", "Commit speech"),
        ("r", "toggle_record", "Record / send"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, config: TalkbackConfig, mode: str = "realtime", output_dir: Path = Path(".")):
        super().__init__()
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}")
        self._config = config
        self._mode = mode
        self._output_dir = output_dir
        self._credentials = CredentialClient(base_url=config.server_url, auth_token=config.auth_token)
        self._chat = ChatClient(base_url=config.server_url, auth_token=config.auth_token)
        self._realtime: Optional[RealtimeClient] = None
        self._recorder = Recorder(audio_format=AudioFormat(sample_rate=config.sample_rate))
        self._reply_parts: list[str] = []
        self._level_timer = None
        self._tasks: list[asyncio.Task] = []

    def compose(self) -> ComposeResult:
        yield TalkbackHeader()
        yield ConversationArea()
        yield Waveform()
        yield SessionTimer()
        yield Footer()

    async def on_mount(self) -> None:
        self.title = "Talkback"
        self.sub_title = "Realtime conversation" if self._mode == "realtime" else "Record and send"
        self.set_interval(1.0, self.query_one(SessionTimer).tick)
        if self._mode == "realtime":
            task = asyncio.create_task(self._start_realtime())
            task.add_done_callback(self._log_task_failure)
            self._tasks.append(task)
        else:
            self._conversation.write_info("Press 'r' to start recording, 'r' again to send.")

    def _log_task_failure(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task failed", exc_info=task.exception())

    @property
    def _conversation(self) -> ConversationArea:
        return self.query_one(ConversationArea)

    # -- realtime mode --------------------------------------------------------

    async def _start_realtime(self) -> None:
        try:
            credential = await self._credentials.create_session()
            client = RealtimeClient(
                credential.client_secret,
                url=self._config.realtime_url,
                model=self._config.realtime_model,
                connect_timeout=self._config.connect_timeout,
                capture_rate=self._config.sample_rate,
            )
            client.on("transcript", self._on_transcript)
            client.on("done", self._on_response_done)
            client.on("error", self._on_remote_error)
            client.set_waveform_callback(self.query_one(Waveform).update_levels)
            self._realtime = client

            await client.connect()
            self.notify("Connected to realtime session")
            await client.start_microphone()
            self._conversation.write_info("Listening. Press 'c' when you finish speaking.")
        except REQUEST_ERRORS as e:
            logger.error("Realtime session failed: %s", e)
            self._conversation.write_error(str(e))
            if self._realtime is not None:
                await self._realtime.disconnect()

    def _on_transcript(self, delta: str) -> None:
        self._reply_parts.append(delta)

    def _on_response_done(self, event: ResponseDone) -> None:
        text = "".join(self._reply_parts).strip()
        self._reply_parts = []
        if text:
            self._conversation.write_tutor(text)

    def _on_remote_error(self, error: RemoteProtocolError) -> None:
        self._conversation.write_error(f"{error} ({error.code or error.error_type})")

    async def action_commit(self) -> None:
        if self._realtime is not None:
            await self._realtime.commit_audio()

    # -- round-trip mode ------------------------------------------------------

    async def action_toggle_record(self) -> None:
        if self._mode != "roundtrip":
            return
        if not self._recorder.is_recording:
            try:
                await asyncio.to_thread(self._recorder.start)
            except TalkbackError as e:
                self._conversation.write_error(str(e))
                return
            self._level_timer = self.set_interval(0.05, self._poll_levels)
            self._conversation.write_info("Recording...")
            return

        if self._level_timer is not None:
            self._level_timer.stop()
            self._level_timer = None
        self.query_one(Waveform).clear()
        try:
            wav = await asyncio.to_thread(self._recorder.stop)
            reply = await self._chat.send_audio_to_ai(wav, "wav", on_debug=self._on_debug)
        except REQUEST_ERRORS as e:
            logger.error("Round trip failed: %s", e)
            self._conversation.write_error(str(e))
            return

        if reply.user_text:
            self._conversation.write_user(reply.user_text)
        self._conversation.write_tutor(reply.text)
        if reply.audio:
            path = self._save_reply(reply.audio, reply.format)
            self._conversation.write_info(f"Reply audio saved to {path}")

    def _poll_levels(self) -> None:
        levels: Optional[np.ndarray] = self._recorder.levels()
        self.query_one(Waveform).update_levels(levels)

    def _on_debug(self, info: DebugInfo) -> None:
        if info.logs:
            logger.debug("chat: %s", info.logs[-1]["message"])

    def _save_reply(self, audio: bytes, fmt: str) -> Path:
        stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
        path = self._output_dir / f"reply-{stamp}.{fmt}"
        path.write_bytes(audio)
        return path

    # -- shutdown -------------------------------------------------------------

    async def on_unmount(self) -> None:
        for task in self._tasks:
            task.cancel()
        if self._realtime is not None:
            await self._realtime.disconnect()
        self._recorder.cleanup()
        self._chat.close()
        self._credentials.close()
