"""Application configuration.

Environment variables override all defaults. The AI key is never logged and
never hard-coded; without it the NLI runs on keyword fallbacks only.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# backend/.env for local development; real environment variables win
_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./mogu_erp.db")

    # AI chat-completion service (Groq-compatible endpoint)
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", os.getenv("AI_API_KEY", ""))
    AI_BASE_URL: str = os.getenv("AI_BASE_URL", "")  # empty = SDK default
    AI_MODEL: str = os.getenv("AI_MODEL", "llama-3.3-70b-versatile")

    # Retry policy shared by every AI call site
    AI_MAX_ATTEMPTS: int = int(os.getenv("AI_MAX_ATTEMPTS", "3"))
    AI_RETRY_BASE_DELAY: float = float(os.getenv("AI_RETRY_BASE_DELAY", "1.0"))

    # Timeouts per call mode (seconds)
    AI_INTENT_TIMEOUT: float = float(os.getenv("AI_INTENT_TIMEOUT", "15"))
    AI_COMMAND_TIMEOUT: float = float(os.getenv("AI_COMMAND_TIMEOUT", "20"))
    AI_CHAT_TIMEOUT: float = float(os.getenv("AI_CHAT_TIMEOUT", "25"))
    AI_ANALYSIS_TIMEOUT: float = float(os.getenv("AI_ANALYSIS_TIMEOUT", "60"))
    AI_ORDER_ANALYSIS_TIMEOUT: float = float(os.getenv("AI_ORDER_ANALYSIS_TIMEOUT", "90"))

    # Confirmation gate: how long a pending dangerous command can be replayed
    CONFIRM_TTL_SECONDS: int = int(os.getenv("CONFIRM_TTL_SECONDS", "300"))

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))


settings = Settings()
