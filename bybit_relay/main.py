import logging
from fastapi import FastAPI
from bybit_relay.database import Base, engine
from bybit_relay.routes import webhook
from bybit_relay.routes import generate
from bybit_relay.config import settings
# Import all models to ensure they're registered with SQLAlchemy
from bybit_relay.models.bot import Bot
from bybit_relay.models.webhook import Webhook
from bybit_relay.models.api_key import ApiCredential
from bybit_relay.models.trade import Trade

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.APP_NAME)

# Same routes under the Netlify function path TradingView URLs point at and
# under the /api alias.
for prefix in ("/.netlify/functions", "/api"):
    app.include_router(webhook.router, prefix=prefix)
    app.include_router(generate.router, prefix=prefix)

@app.get("/")
def root():
    return {"message": "TradingView Bybit Relay is running"}
