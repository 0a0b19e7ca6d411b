from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    # App
    APP_NAME: str = "mcp-tcp-gateway"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Listener
    HOST: str = "0.0.0.0"
    PORT: int = 8999
    STREAM_LIMIT_BYTES: int = 16 * 1024 * 1024

    # Routing
    ROUTES_CONFIG_PATH: str | None = None

    # MCP
    PROTOCOL_VERSION: str = "2024-11-05"
    HANDSHAKE_TIMEOUT_SECONDS: float = 20.0
    REQUEST_TIMEOUT_SECONDS: float = 60.0
    EXIT_TIMEOUT_SECONDS: float = 5.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

@lru_cache()
def get_settings() -> Settings:
    return Settings()
