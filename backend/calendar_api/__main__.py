"""Serve the API: python -m calendar_api"""

import uvicorn
from loguru import logger

from .config import Settings
from .logging_setup import configure_logging
from .main import create_app


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings)
    app = create_app(settings)
    logger.info("[api] listening on http://{}:{}", settings.host, settings.port)
    # log_config=None keeps uvicorn's records flowing through the intercept handler
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
