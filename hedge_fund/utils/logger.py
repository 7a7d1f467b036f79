"""
Logging Configuration
Console logging setup shared by the server, the services and every node.
"""

import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str = __name__, level: str = "INFO") -> logging.Logger:
    """
    Setup a named logger with the application format.

    If the root logger already has handlers (setup_application_logging was
    called), the logger just propagates to it instead of getting its own.

    Args:
        name: Logger name (typically __name__ from calling module)
        level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR')

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger(__name__)
        >>> logger.info("This is a test message")
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid adding handlers multiple times
    if logger.handlers or logging.getLogger().handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger


def get_node_logger(node_name: str, level: str = "INFO") -> logging.Logger:
    """
    Get a logger for a pipeline node.

    Args:
        node_name: Name of the node (e.g., 'warren_buffett_agent')
        level: Logging level

    Returns:
        Logger named hedge_fund.nodes.<node_name>

    Example:
        >>> logger = get_node_logger('risk_management_agent')
        >>> logger.info("Calculating position limits")
    """
    return setup_logger(f"hedge_fund.nodes.{node_name}", level)


def setup_application_logging(level: str = "INFO") -> None:
    """
    Setup logging for the entire application.

    Call this once at application startup.

    Args:
        level: Global logging level
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # Suppress overly verbose third-party loggers
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Application logging configured at {level} level")
