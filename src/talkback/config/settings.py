import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv
import logging

from ..core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime"
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview"


class TalkbackConfig(BaseModel):
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key (required by the tutor server only)")
    realtime_url: str = Field(default=DEFAULT_REALTIME_URL, description="Realtime WebSocket endpoint")
    realtime_model: str = Field(default=DEFAULT_REALTIME_MODEL, description="Realtime model name embedded in the socket URI")
    realtime_voice: str = Field(default="alloy", description="Voice used for realtime and TTS replies")
    server_url: str = Field(default="http://localhost:8000", description="Base URL of the tutor server")
    auth_token: Optional[str] = Field(default=None, description="Bearer token sent to the tutor server")
    connect_timeout: float = Field(default=10.0, gt=0, description="Realtime handshake timeout in seconds")
    sample_rate: int = Field(default=24000, gt=0, description="Microphone capture rate; audio is resampled to 24 kHz for the realtime session")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"Unknown log level: {value}")
        return value


def load_config(config_path: Optional[Path] = None) -> TalkbackConfig:
    if config_path is None:
        config_path = Path(".env")

    if config_path.exists():
        load_dotenv(config_path)
        logger.info(f"Loaded environment variables from {config_path}")
    else:
        logger.warning(f"Config file {config_path} not found, using environment variables only")

    try:
        return TalkbackConfig(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            realtime_url=os.getenv("REALTIME_URL", DEFAULT_REALTIME_URL),
            realtime_model=os.getenv("REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
            realtime_voice=os.getenv("REALTIME_VOICE", "alloy"),
            server_url=os.getenv("SERVER_URL", "http://localhost:8000"),
            auth_token=os.getenv("AUTH_TOKEN") or None,
            connect_timeout=float(os.getenv("CONNECT_TIMEOUT", "10.0")),
            sample_rate=int(os.getenv("SAMPLE_RATE", "24000")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
    except ValueError as e:
        logger.error(f"Failed to load configuration: {e}")
        raise ConfigurationError(str(e)) from e


def require_api_key(config: TalkbackConfig) -> str:
    """Return the OpenAI key or fail; only the tutor server calls the provider directly."""
    if not config.openai_api_key:
        raise ConfigurationError(
            "OpenAI API key is not configured. Please create a .env file with OPENAI_API_KEY=your_key"
        )
    return config.openai_api_key


def create_example_env_file(path: Path = Path(".env.example")):
    example_content = """# OpenAI API key - needed by talkback-server only
OPENAI_API_KEY=your_api_key_here

# Realtime voice API
REALTIME_URL=wss://api.openai.com/v1/realtime
REALTIME_MODEL=gpt-4o-realtime-preview
REALTIME_VOICE=alloy

# Tutor server used by the terminal client
SERVER_URL=http://localhost:8000
# AUTH_TOKEN=optional_bearer_token

# Realtime handshake timeout in seconds
CONNECT_TIMEOUT=10.0

# Microphone capture rate (realtime audio is always sent and played at 24 kHz)
SAMPLE_RATE=24000

# Logging level
LOG_LEVEL=INFO
"""

    with open(path, "w") as f:
        f.write(example_content)

    logger.info(f"Created example environment file at {path}")


def setup_logging(log_level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
