from __future__ import annotations

import uvicorn

from marginboard.api.app import create_api_app
from marginboard.core.config import settings
from marginboard.core.logging import setup_logging


setup_logging()

app = create_api_app()


def run() -> None:
    uvicorn.run(
        "marginboard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_config=None,
    )


if __name__ == "__main__":
    run()
