from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Role the bearer credential must carry
    CHATRELAY_REQUIRED_ROLE: str = "chatUser"

    # Comma-separated claim names searched for roles, in order
    CHATRELAY_ROLE_CLAIMS: str = "roles,custom:roles"

    # Provider wire defaults
    CHATRELAY_ANTHROPIC_VERSION: str = "2023-06-01"
    CHATRELAY_DEFAULT_MAX_TOKENS: int = 4096

    # Overall execution budgets (seconds)
    CHATRELAY_CHAT_TIMEOUT_SECONDS: float = 120.0
    CHATRELAY_STREAM_TIMEOUT_SECONDS: float = 300.0
    CHATRELAY_CONNECT_TIMEOUT_SECONDS: float = 10.0

    CHATRELAY_CORS_ORIGIN: str = "*"

    # Debug flags
    CHATRELAY_LOG_PAYLOADS: bool = False
    CHATRELAY_LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def role_claims(self) -> List[str]:
        return [c.strip() for c in self.CHATRELAY_ROLE_CLAIMS.split(",") if c.strip()]


settings = Settings()
