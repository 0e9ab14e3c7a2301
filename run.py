#!/usr/bin/env python3
"""
Loan Tracker Entry Point

Starts the FastAPI server with settings from LOAN_TRACKER_* environment variables.
"""

import sys

import uvicorn

from loan_tracker.config import get_config
from loan_tracker.logging_config import setup_logging


def run_server(host: str, port: int, debug: bool = False) -> None:
    """Run the FastAPI server"""
    uvicorn.run(
        "loan_tracker.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    logger.info("Starting Loan Tracker API on %s:%d", config.api_host, config.api_port)

    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        logger.info("Shutting down Loan Tracker API")
    except Exception as e:
        logger.error("Error starting server: %s", e)
        sys.exit(1)
