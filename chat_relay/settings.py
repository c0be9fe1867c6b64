from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)

    ENVIRONMENT: str = "development"

    # Server settings
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    # WebSocket endpoint, also served with a trailing slash
    WS_PATH: str = "/send"

    # strftime format of the time stamp in relayed chat messages
    CHAT_TIME_FORMAT: str = "%H:%M"

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/logging_errors.log"
    # Paths to exclude from access logs (e.g., /metrics, /health)
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]

    # Loki settings
    LOKI_ENABLED: bool = False
    LOKI_URL: str = "http://loki:3100"
    LOKI_VERSION: str = "1"

    @field_validator("WS_PATH")
    @classmethod
    def normalize_ws_path(cls, v: str) -> str:
        """Store the path with a leading slash and without a trailing one."""
        return "/" + v.strip("/")

    @property
    def WS_PATHS(self) -> tuple[str, ...]:
        """Both spellings of the WebSocket path that clients may use."""
        return tuple(dict.fromkeys((self.WS_PATH, self.WS_PATH.rstrip("/") + "/")))


app_settings = Settings()
