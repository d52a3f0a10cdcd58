"""
ASGI entry point.

    uvicorn pizza_bot.main:app --reload
    python -m pizza_bot.main
"""

import os

from .app_factory import create_app, run
from .logging_config import setup_logging

# Configure logging at module load time
setup_logging()

app = create_app()


if __name__ == "__main__":
    run(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
