"""Create all tables. Run on app startup."""
import logging

from erp_agent.db.base import Base
from erp_agent.db.session import engine
from erp_agent.models import order, goods, pending_command  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(bind=None):
    target = bind if bind is not None else engine
    Base.metadata.create_all(bind=target)
    logger.info("✅ Database tables ready")
