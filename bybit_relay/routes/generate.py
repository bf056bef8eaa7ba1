from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import pydantic
import logging
from bybit_relay.config import settings
from bybit_relay.database import get_db
from bybit_relay.exceptions import ValidationError
from bybit_relay.routes.webhook import OTHER_METHODS, cors_json, method_not_allowed, preflight
from bybit_relay.schemas.webhook import GenerateWebhookRequest, GenerateWebhookResponse
from bybit_relay.services.webhooks import generate_webhook, iso_timestamp

router = APIRouter(tags=["Webhook"])


@router.options("/generateWebhook")
def generate_webhook_preflight():
    return preflight()


@router.api_route("/generateWebhook", methods=OTHER_METHODS)
def generate_webhook_wrong_method():
    return method_not_allowed()


@router.post("/generateWebhook")
async def generate_webhook_url(request: Request, db: Session = Depends(get_db)):
    """Mint a webhook URL for one of the user's bots."""
    try:
        payload = GenerateWebhookRequest.model_validate_json(await request.body() or b"{}")
    except pydantic.ValidationError:
        return cors_json(400, {"error": "Invalid request body"})

    if not payload.user_id or not payload.bot_id:
        return cors_json(400, {"error": "Missing required fields"})

    base_url = settings.PUBLIC_BASE_URL or str(request.base_url)
    days = payload.expiration_days or settings.WEBHOOK_EXPIRATION_DAYS
    try:
        url, expires_at = generate_webhook(db, payload.user_id, payload.bot_id, days, base_url)
    except ValidationError as e:
        return cors_json(400, {"error": e.message})
    except Exception:
        logging.exception("Error generating webhook")
        return cors_json(500, {"error": "Internal server error"})

    body = GenerateWebhookResponse(webhookUrl=url, expiresAt=iso_timestamp(expires_at))
    return cors_json(200, body.model_dump())
