"""Configuration settings for the spelling drill."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
DICTIONARIES_DIR = DATA_DIR / "dictionaries"

# Session policy
MAX_TRIES = 2  # wrong answers allowed before the word is revealed
STORAGE_KEY = "spelling-trainer-v5"


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        DICTIONARIES_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "")
    return int(value) if value else None


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    dictionaries_dir: Path = DICTIONARIES_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///spelldrill.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    chat_id: Optional[int] = field(default_factory=lambda: _optional_int("TELEGRAM_CHAT_ID"))


@dataclass
class SpeechSettings:
    """Speech provider and announcement timing settings."""
    elevenlabs_api_key: str = os.getenv("ELEVENLABS_API_KEY", "")
    elevenlabs_api_url: str = os.getenv("ELEVENLABS_API_URL", "https://api.elevenlabs.io")
    voice_id: str = os.getenv("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM")  # Rachel
    model_id: str = os.getenv("ELEVENLABS_MODEL_ID", "eleven_multilingual_v2")
    stability: float = 0.35
    similarity_boost: float = 0.9
    style: float = 0.4
    use_speaker_boost: bool = True
    request_timeout: float = float(os.getenv("TTS_TIMEOUT", "15"))
    fallback_lang: str = os.getenv("FALLBACK_TTS_LANG", "en")
    fallback_tld: str = os.getenv("FALLBACK_TTS_TLD", "com")
    intro_pause: float = float(os.getenv("INTRO_PAUSE", "0.35"))  # seconds
    directive_pause: float = float(os.getenv("DIRECTIVE_PAUSE", "0.25"))
    copy_pause: float = float(os.getenv("COPY_PAUSE", "0.25"))


@dataclass
class SessionSettings:
    """Drill session settings."""
    storage_key: str = os.getenv("SESSION_STORAGE_KEY", STORAGE_KEY)
    words_file: Optional[str] = os.getenv("WORDS_FILE", None)


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    port: Optional[int] = field(default_factory=lambda: _optional_int("METRICS_PORT"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_speech_settings() -> SpeechSettings:
    """Get speech settings."""
    return SpeechSettings()


def get_session_settings() -> SessionSettings:
    """Get session settings."""
    return SessionSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    speech: SpeechSettings = field(default_factory=get_speech_settings)
    session: SessionSettings = field(default_factory=get_session_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.bot.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")

        if self.speech.request_timeout <= 0:
            raise ValueError("TTS_TIMEOUT must be positive")

        for name in ("intro_pause", "directive_pause", "copy_pause"):
            if getattr(self.speech, name) < 0:
                raise ValueError(f"{name.upper()} cannot be negative")

        if not self.session.storage_key:
            raise ValueError("SESSION_STORAGE_KEY cannot be empty")


# Create global settings instance
settings = Settings()
