"""
Service configuration.

Values come from the environment or a local .env file.
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # AI vision provider
    AI_PROVIDER: str = "openai"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    AI_TIMEOUT_SECONDS: float = 30.0

    # Uploads
    UPLOAD_DIR: Path = Path("./uploads")
    IMAGE_DIR: Path = Path("./images")
    MAX_FILE_SIZE: int = 10 * 1024 * 1024

    # Per-client report submissions, in "limits" notation
    RATE_LIMIT: str = "50/hour"

    # App
    APP_NAME: str = "Civic Issue Validation API"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def ai_api_key(self) -> Optional[str]:
        """Credential for the selected provider, if any."""
        if self.AI_PROVIDER.lower() == "gemini":
            return self.GEMINI_API_KEY
        return self.OPENAI_API_KEY


settings = Settings()
