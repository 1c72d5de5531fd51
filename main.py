"""
Obligation Tracker - Entry Point.

Single entry point: `python main.py` starts the HTTP API server.
The CLI (`obligations ...`) talks to this server.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

import uvicorn

from src.config import settings


def main() -> None:
    uvicorn.run("src.api.server:app", host=settings.HOST, port=settings.PORT, log_level="info")


if __name__ == "__main__":
    main()
