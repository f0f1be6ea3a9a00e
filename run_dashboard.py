#!/usr/bin/env python
"""
Dashboard API Server Runner.

Usage:
    python run_dashboard.py

Or with PM2:
    pm2 start run_dashboard.py --interpreter python
"""

import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv

load_dotenv()

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)-5s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def main():
    """Run the dashboard API server."""
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", os.getenv("PORT", "8000")))
    reload = os.getenv("ENVIRONMENT", "production") == "development"

    logger.info(f"Starting Dashboard API on {host}:{port}")

    try:
        uvicorn.run(
            "dashboard.api:build_app",
            factory=True,
            host=host,
            port=port,
            reload=reload,
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
            access_log=True,
        )
    except Exception as e:
        logger.error(f"Failed to start dashboard: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
