# deploy_engine/run_api.py
"""Run the deploy API server."""

import logging

import uvicorn

from deploy_engine.config import settings

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    logger.info(f"Starting deploy API on {settings.api_host}:{settings.api_port}")
    logger.info(f"Provisioning backend: {settings.backend_url}")
    uvicorn.run(
        "deploy_engine.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
    )


if __name__ == "__main__":
    main()
