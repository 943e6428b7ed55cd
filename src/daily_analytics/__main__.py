"""
Run the collector: python -m daily_analytics
"""

import logging

import uvicorn

from .app import create_app
from .config import AnalyticsConfig


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = AnalyticsConfig.from_env()
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
