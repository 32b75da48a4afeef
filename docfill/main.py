"""Application entry point for the document extraction API server."""

import uvicorn

from docfill.api.app import app
from docfill.utils.config import load_config
from docfill.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main() -> None:
    """Start the FastAPI application server on the configured address."""
    config = load_config()
    setup_logging(config.log_level)
    if not config.enabled_providers():
        logger.warning("No provider has a credential; every run will fail")
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
