"""AI endpoints: command parsing alias, business insights and status probes."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp_agent.agent.nli_service import business_insights, interpret
from erp_agent.api.deps import get_ai, get_db
from erp_agent.schemas.nli import InsightRequest, NLIRequest, NLIResponse
from erp_ai.ai_service import AIService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/parse", response_model=NLIResponse, response_model_by_alias=True)
def parse(request: NLIRequest, db: Session = Depends(get_db), ai: AIService = Depends(get_ai)):
    """Same pipeline as /nli/parse."""
    return interpret(db, request.input, request.confirmed, request.confirm_token, ai=ai)


@router.post("/insights", response_model=NLIResponse, response_model_by_alias=True)
def insights(request: InsightRequest, ai: AIService = Depends(get_ai)):
    return business_insights(request.input, request.analysis_type, request.data_context, ai=ai)


@router.get("/status")
def status(ai: AIService = Depends(get_ai)):
    """Configuration plus a live round trip."""
    return ai.service_status()


@router.get("/health")
def health(ai: AIService = Depends(get_ai)):
    healthy = ai.health_check()
    if not healthy:
        logger.warning("⚠️ AI health probe failed")
    return {"healthy": healthy, "status": "UP" if healthy else "DOWN"}
