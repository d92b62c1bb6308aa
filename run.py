#!/usr/bin/env python3
"""
Loan Accounting Entry Point

Starts the FastAPI server with host and port from LOANBOOK_* configuration.
"""

import sys

import uvicorn

from loan_accounting.config import get_config
from loan_accounting.logging_config import setup_logging


def main() -> None:
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format)
    logger.info(f"Starting Loan Accounting API on {config.api_host}:{config.api_port} "
                f"({config.environment})")

    try:
        uvicorn.run(
            "loan_accounting.api:create_app",
            factory=True,
            host=config.api_host,
            port=config.api_port,
            log_level=config.log_level.lower()
        )
    except KeyboardInterrupt:
        logger.info("Shutting down Loan Accounting API")
    except Exception as e:
        logger.error(f"Error starting server: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
