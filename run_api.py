#!/usr/bin/env python3
"""
Script to run the Book Review API server.
"""

import uvicorn

from review_api.config import config
from utilities.logger import setup_logging, get_logger


def main():
    """Run the API server."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug,
    )
    logger = get_logger(__name__)
    logger.info(
        "Starting Book Review API server",
        host=config.host,
        port=config.port,
        debug=config.debug,
        database=config.mongodb_database,
    )

    uvicorn.run(
        "review_api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
