import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

class Settings:
    APP_NAME = "TradingView Bybit Relay"
    ENV = os.getenv("ENV", "development")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./relay.db")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Exchange connectivity
    BYBIT_API_VERSION = os.getenv("BYBIT_API_VERSION", "v5")
    BYBIT_MAINNET_URL = os.getenv("BYBIT_MAINNET_URL", "https://api.bybit.com")
    BYBIT_TESTNET_URL = os.getenv("BYBIT_TESTNET_URL", "https://api-testnet.bybit.com")
    BYBIT_RECV_WINDOW = int(os.getenv("BYBIT_RECV_WINDOW", "15000"))
    BYBIT_CATEGORY = os.getenv("BYBIT_CATEGORY", "linear")
    BYBIT_REQUEST_TIMEOUT = float(os.getenv("BYBIT_REQUEST_TIMEOUT", "10"))

    # Order defaults (overridable per call)
    BYBIT_MARKET_TIME_IN_FORCE = os.getenv("BYBIT_MARKET_TIME_IN_FORCE", "IOC")
    BYBIT_LIMIT_TIME_IN_FORCE = os.getenv("BYBIT_LIMIT_TIME_IN_FORCE", "PostOnly")

    # Webhook URL generation
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")
    WEBHOOK_EXPIRATION_DAYS = int(os.getenv("WEBHOOK_EXPIRATION_DAYS", "30"))

settings = Settings()


@dataclass(frozen=True)
class ExchangeConfig:
    """Per-invocation exchange settings handed to the client and processor.

    Built fresh for every request from ``Settings`` so no module-level client
    ever holds connection state or credentials.
    """
    api_version: str = "v5"
    mainnet_url: str = "https://api.bybit.com"
    testnet_url: str = "https://api-testnet.bybit.com"
    recv_window: int = 15000
    category: str = "linear"
    timeout: float = 10.0
    market_time_in_force: str = "IOC"
    limit_time_in_force: str = "PostOnly"

    @classmethod
    def from_settings(cls, settings_obj=None) -> "ExchangeConfig":
        s = settings_obj or settings
        return cls(
            api_version=s.BYBIT_API_VERSION,
            mainnet_url=s.BYBIT_MAINNET_URL,
            testnet_url=s.BYBIT_TESTNET_URL,
            recv_window=s.BYBIT_RECV_WINDOW,
            category=s.BYBIT_CATEGORY,
            timeout=s.BYBIT_REQUEST_TIMEOUT,
            market_time_in_force=s.BYBIT_MARKET_TIME_IN_FORCE,
            limit_time_in_force=s.BYBIT_LIMIT_TIME_IN_FORCE,
        )

    def base_url(self, testnet: bool) -> str:
        return self.testnet_url if testnet else self.mainnet_url
