"""
HTTP Routes
Thin aiohttp handlers over HedgeFundService.
"""

import logging

from aiohttp import web

from hedge_fund.services.hedge_fund_service import HedgeFundService, InvalidRequestError

logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("hedge_fund_service", HedgeFundService)

routes = web.RouteTableDef()


def _service(request: web.Request) -> HedgeFundService:
    return request.app[SERVICE_KEY]


@routes.get("/")
async def index(request: web.Request) -> web.Response:
    return web.json_response({
        "status": "ok",
        "info": "AI hedge fund API. See /agent/analysts, /agent/models and POST /agent/investment",
        "code": 200,
    })


@routes.get("/agent/analysts")
async def get_analysts(request: web.Request) -> web.Response:
    return web.json_response(_service(request).get_available_analysts())


@routes.get("/agent/models")
async def get_models(request: web.Request) -> web.Response:
    return web.json_response(_service(request).get_available_models())


@routes.post("/agent/investment")
async def run_investment(request: web.Request) -> web.Response:
    """
    Run the hedge fund.

    Body (JSON): tickers, start_date, end_date, initial_cash, margin_requirement,
    show_reasoning, selected_analysts, model_name, model_provider.
    Only tickers is required.
    """
    body = await request.json()
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    result = await _service(request).hedge_fund(
        tickers=body.get("tickers"),
        start_date=body.get("start_date"),
        end_date=body.get("end_date"),
        initial_cash=body.get("initial_cash"),
        margin_requirement=body.get("margin_requirement"),
        show_reasoning=body.get("show_reasoning"),
        selected_analysts=body.get("selected_analysts"),
        model_name=body.get("model_name"),
        model_provider=body.get("model_provider"),
    )
    return web.json_response(result)
