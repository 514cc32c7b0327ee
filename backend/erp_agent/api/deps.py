"""FastAPI dependencies: DB session and the shared AI service."""
from typing import Generator

from sqlalchemy.orm import Session

from erp_agent.db.session import SessionLocal
from erp_ai.ai_service import AIService
from erp_ai.ai_service import get_ai_service as _get_ai_service


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_ai() -> AIService:
    return _get_ai_service()
