"""
Entry point: python -m hedge_fund
"""

import logging

from aiohttp import web

from hedge_fund.server.app import create_app
from hedge_fund.utils.config import Config, get_config_summary, validate_config
from hedge_fund.utils.logger import setup_application_logging

logger = logging.getLogger(__name__)


def main() -> None:
    config = Config.load()
    setup_application_logging(config.log_level)

    try:
        validate_config(config)
    except ValueError as e:
        logger.warning(f"Configuration incomplete: {e}")
    logger.info(f"Configuration: {get_config_summary(config)}")

    web.run_app(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
