"""
HTTP Application
aiohttp app factory and the JSON error middleware.

Error mapping:
- ValueError (bad JSON body, InvalidRequestError) → 400 {"error": ...}
- Any other failure (engine, cache, provider, market data) → 500 {"error": ...}
"""

import logging
from typing import Optional

from aiohttp import web

from hedge_fund.data.cache import Cache
from hedge_fund.graph.errors import NodeExecutionError
from hedge_fund.server.routes import SERVICE_KEY, routes
from hedge_fund.services.agent_service import AgentService
from hedge_fund.services.hedge_fund_service import HedgeFundService
from hedge_fund.utils.config import Config

logger = logging.getLogger(__name__)


@web.middleware
async def error_middleware(request: web.Request, handler):
    desc = f"{request.method} {request.path}"
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ValueError as e:
        logger.warning(f"{desc} - ValueError: {e}")
        return web.json_response({"error": str(e)}, status=400)
    except NodeExecutionError as e:
        logger.error(f"Error in {desc}: node '{e.node}' failed", exc_info=e)
        return web.json_response({"error": str(e), "node": e.node}, status=500)
    except Exception as e:
        logger.exception(f"Error in {desc}: {e}")
        return web.json_response({"error": str(e)}, status=500)


def create_app(config: Config, cache: Optional[Cache] = None,
               service: Optional[HedgeFundService] = None) -> web.Application:
    """
    Build the web application.

    Args:
        config: Application Config
        cache: Cache for market data (process-wide by default)
        service: Pre-built service, mainly for tests

    Returns:
        aiohttp Application with all routes registered
    """
    app = web.Application(middlewares=[error_middleware])
    if service is None:
        service = HedgeFundService(AgentService(config, cache=cache))
    app[SERVICE_KEY] = service
    app.add_routes(routes)
    logger.info("Hedge fund API application created")
    return app
