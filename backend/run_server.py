"""Development runner: uvicorn with logging configured from settings.

    python run_server.py
"""
import logging
import signal
import sys

import uvicorn

from erp_agent.core.config import settings

logger = logging.getLogger("run_server")


def _shutdown(signum, _frame):
    logger.info(f"🛑 Signal {signum} received, stopping Mogu ERP Agent")
    sys.exit(0)


def main():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, _shutdown)

    logger.info(f"🚀 Mogu ERP Agent on http://{settings.HOST}:{settings.PORT} (env={settings.ENVIRONMENT})")
    uvicorn.run(
        "erp_agent.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    main()
