"""
Mogu ERP Agent Backend: natural-language interface over the ERP core.

ARCHITECTURE:
- FastAPI: NLI endpoint, AI insights and status probes
- SQLAlchemy DB: orders, goods, parked confirmations
- Groq chat completion: intent + command proposal only

SAFETY MODEL:
- The AI proposes a command; validation and execution stay in erp_agent
- delete_order runs only after an explicit confirmation (token replay)
- Every AI call site has a deterministic fallback
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from erp_agent.api.routes import ai, nli
from erp_agent.core.config import settings
from erp_agent.db.init_db import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    logger.info("[*] Initializing database...")
    init_db()
    logger.info(f"[OK] Database initialized ({settings.ENVIRONMENT})")
    yield


app = FastAPI(
    title="Mogu ERP Agent API",
    description="Natural-language order, inventory and finance commands. Dangerous actions need confirmation.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(nli.router, prefix="/nli", tags=["nli"])
app.include_router(ai.router, prefix="/ai", tags=["ai"])


@app.get("/health")
def health():
    return {"status": "ok"}
