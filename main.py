"""
F1Sync entry point
Serves the seasons/races API and runs the current season refresh job
"""

import sys

import uvicorn
from loguru import logger

from f1sync.api import create_app
from f1sync.settings import global_settings


def main() -> None:
    """Main function"""
    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level.upper())

    logger.info("Starting F1Sync...")
    app = create_app(global_settings)

    try:
        uvicorn.run(
            app,
            host=global_settings.api_host,
            port=global_settings.api_port,
            log_level=global_settings.log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
    finally:
        logger.info("F1Sync stopped")


if __name__ == "__main__":
    main()
