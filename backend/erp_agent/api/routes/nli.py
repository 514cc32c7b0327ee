"""
Natural-language command endpoint.
Trust: dangerous commands come back with needConfirm and a token; nothing runs
until the operator confirms.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp_agent.agent.nli_service import interpret
from erp_agent.api.deps import get_ai, get_db
from erp_agent.schemas.nli import NLIRequest, NLIResponse
from erp_ai.ai_service import AIService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/parse", response_model=NLIResponse, response_model_by_alias=True)
def parse(request: NLIRequest, db: Session = Depends(get_db), ai: AIService = Depends(get_ai)):
    """Interpret one operator sentence. Always 200; failures are replies."""
    return interpret(db, request.input, request.confirmed, request.confirm_token, ai=ai)
