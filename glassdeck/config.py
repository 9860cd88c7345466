from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App identity
    PACKAGE_NAME: str = "com.glassdeck.reader"

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    HTTP_SERVER_TOKEN: Optional[str] = None

    # Glasses display bridge
    DISPLAY_BRIDGE_URL: Optional[str] = None
    DISPLAY_BRIDGE_TOKEN: Optional[str] = None
    REQUEST_TIMEOUT_SECONDS: int = 10
    DISPLAY_NOTICE_MS: int = 2000

    # Media & persistence
    AUDIO_SOURCE_DIR: str = ""
    SETTINGS_DIR: str = "data/settings"

    # Control logic
    COMMAND_TTL_SECONDS: float = 5.0
    DEFAULT_SKIP_SECONDS: float = 10.0
    PAGE_MAX_CHARS: int = 150

    # System
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
