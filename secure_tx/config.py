"""
Configuration management using Pydantic Settings.
Loads configuration from environment variables and .env file.
"""
from typing import List, Optional
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Master Key Configuration
    MASTER_KEY_HEX: SecretStr  # Required - 32 bytes as 64 hex chars, no default for security
    MASTER_KEY_VERSION: int = 1  # Epoch marker stored on every record
    BIND_RECORD_AAD: bool = False  # Authenticate record id + partyId as AAD (hardening option)

    # Application Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    LOG_LEVEL: str = "INFO"

    # CORS Configuration
    CORS_ORIGINS: str = "*"

    # Development/Debug
    DEBUG: bool = False
    RELOAD: bool = False

    # Logging Configuration (Optional - per-module log levels)
    APP_LOG_LEVEL: Optional[str] = None
    UVICORN_LOG_LEVEL: Optional[str] = None
    HTTPX_LOG_LEVEL: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def master_key(self) -> bytes:
        """
        Raw 32-byte master key decoded from MASTER_KEY_HEX.

        Raises:
            InvalidKeyLength: If the value is not exactly 64 hex characters
        """
        from secure_tx.services.envelope_cipher import parse_master_key_hex

        return parse_master_key_hex(self.MASTER_KEY_HEX.get_secret_value())


# Global settings instance
settings = Settings()
