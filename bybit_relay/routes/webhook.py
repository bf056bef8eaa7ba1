# bybit_relay/routes/webhook.py
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from concurrent.futures import ThreadPoolExecutor
from sqlalchemy.orm import Session
from bybit_relay.config import ExchangeConfig
from bybit_relay.database import get_db
from bybit_relay.exceptions import ExchangeError, NotFoundError, TransportError, ValidationError
from bybit_relay.services.bybit import BybitClient
from bybit_relay.services.processor import AlertProcessor
from bybit_relay.services.store import TradeStore
import asyncio
import logging

router = APIRouter(tags=["Webhook"])

executor = ThreadPoolExecutor(max_workers=4)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

OTHER_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "TRACE"]


def cors_json(status_code: int, content: dict) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


def preflight() -> Response:
    return Response(status_code=204, headers=CORS_HEADERS)


def method_not_allowed() -> JSONResponse:
    return cors_json(405, {"error": "Method not allowed"})


def get_exchange_config() -> ExchangeConfig:
    return ExchangeConfig.from_settings()


def get_processor(db: Session = Depends(get_db), config: ExchangeConfig = Depends(get_exchange_config)):
    """Fresh store, client and processor per request; nothing is shared across alerts."""
    return AlertProcessor(TradeStore(db), BybitClient(config))


@router.options("/processAlert/{webhook_token}")
def process_alert_preflight(webhook_token: str):
    return preflight()


@router.api_route("/processAlert/{webhook_token}", methods=OTHER_METHODS)
def process_alert_wrong_method(webhook_token: str):
    return method_not_allowed()


@router.post("/processAlert/{webhook_token}")
async def process_alert(webhook_token: str, request: Request, processor: AlertProcessor = Depends(get_processor)):
    """
    Receives a TradingView alert for the bot bound to ``webhook_token``.

    The body may override any of symbol, side, orderType, quantity, price,
    stopLoss and takeProfit; missing fields fall back to the bot's defaults.
    The blocking pipeline (DB + signed HTTPS calls) runs in a worker thread.
    """
    body = await request.body()
    loop = asyncio.get_running_loop()
    try:
        outcome = await loop.run_in_executor(executor, processor.process, webhook_token, body)
    except NotFoundError as e:
        return cors_json(404, {"error": e.message})
    except ValidationError as e:
        return cors_json(400, {"error": e.message})
    except ExchangeError as e:
        logging.error("Order rejected by Bybit: %s %s", e.code, e.message)
        return cors_json(500, {"error": str(e)})
    except TransportError as e:
        logging.error("Bybit unreachable: %s", e.message)
        return cors_json(500, {"error": f"Failed to execute order: {e.message}"})
    except Exception:
        logging.exception("Error processing alert")
        return cors_json(500, {"error": "Internal server error"})

    logging.info("Alert processed: order_id=%s status=%s test_mode=%s", outcome.order_id, outcome.status, outcome.test_mode)
    return cors_json(200, {
        "success": True,
        "orderId": outcome.order_id,
        "status": outcome.status,
        "testMode": outcome.test_mode,
    })
