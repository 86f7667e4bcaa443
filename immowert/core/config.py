import os
from pydantic import BaseModel

DAY = 24 * 60 * 60

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    DEFAULT_CURRENCY: str = os.getenv("CURRENCY", "EUR")

    # Advisory (second opinion on the computed value)
    ADVISORY_PROVIDER: str = os.getenv("ADVISORY_PROVIDER", "none")  # none | mock | openai
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    # Data providers
    GEO_PROVIDER: str = os.getenv("GEO_PROVIDER", "mock")                # mock | http
    GEO_BASE_URL: str = os.getenv("GEO_BASE_URL", "https://nominatim.openstreetmap.org")
    GEO_USER_AGENT: str = os.getenv("GEO_USER_AGENT", "immowert/1.0")
    LAND_VALUE_PROVIDER: str = os.getenv("LAND_VALUE_PROVIDER", "mock")  # mock | http
    LAND_VALUE_BASE_URL: str | None = os.getenv("LAND_VALUE_BASE_URL")
    LAND_VALUE_MANUAL_REGIONS: str = os.getenv("LAND_VALUE_MANUAL_REGIONS", "Baden-Württemberg")
    MARKET_PROVIDER: str = os.getenv("MARKET_PROVIDER", "mock")          # mock | http
    MARKET_BASE_URL: str | None = os.getenv("MARKET_BASE_URL")
    PRICE_INDEX_PROVIDER: str = os.getenv("PRICE_INDEX_PROVIDER", "mock")  # mock | http
    PRICE_INDEX_URL: str = os.getenv(
        "PRICE_INDEX_URL",
        "https://api.statistiken.bundesbank.de/rest/data/BBK01/BBSRI",
    )
    COST_INDEX_PROVIDER: str = os.getenv("COST_INDEX_PROVIDER", "mock")  # mock | http
    COST_INDEX_BASE_URL: str | None = os.getenv("COST_INDEX_BASE_URL")
    REFERENCE_VALUE_PROVIDER: str = os.getenv("REFERENCE_VALUE_PROVIDER", "mock")  # mock | http
    REFERENCE_VALUE_BASE_URL: str | None = os.getenv("REFERENCE_VALUE_BASE_URL")
    REFERENCE_VALUE_REGIONS: str = os.getenv("REFERENCE_VALUE_REGIONS", "Nordrhein-Westfalen")

    # Per-source timeouts (seconds)
    GEO_TIMEOUT: float = float(os.getenv("GEO_TIMEOUT", "10"))
    LAND_VALUE_TIMEOUT: float = float(os.getenv("LAND_VALUE_TIMEOUT", "15"))
    MARKET_TIMEOUT: float = float(os.getenv("MARKET_TIMEOUT", "20"))
    PRICE_INDEX_TIMEOUT: float = float(os.getenv("PRICE_INDEX_TIMEOUT", "10"))
    COST_INDEX_TIMEOUT: float = float(os.getenv("COST_INDEX_TIMEOUT", "10"))
    REFERENCE_VALUE_TIMEOUT: float = float(os.getenv("REFERENCE_VALUE_TIMEOUT", "8"))
    ADVISORY_TIMEOUT: float = float(os.getenv("ADVISORY_TIMEOUT", "8"))

    # Cache
    LAND_VALUE_CACHE_PATH: str = os.getenv("LAND_VALUE_CACHE_PATH", "./data/land-value-cache.json")
    MARKET_CACHE_PATH: str = os.getenv("MARKET_CACHE_PATH", "./data/market-cache.json")
    LAND_VALUE_TTL_SECONDS: int = int(os.getenv("LAND_VALUE_TTL_SECONDS", str(180 * DAY)))
    MARKET_TTL_SECONDS: int = int(os.getenv("MARKET_TTL_SECONDS", str(90 * DAY)))
    PRICE_INDEX_TTL_SECONDS: int = int(os.getenv("PRICE_INDEX_TTL_SECONDS", str(30 * DAY)))
    COST_INDEX_TTL_SECONDS: int = int(os.getenv("COST_INDEX_TTL_SECONDS", str(90 * DAY)))
    ADVISORY_TTL_SECONDS: int = int(os.getenv("ADVISORY_TTL_SECONDS", str(DAY)))
    CACHE_FLUSH_DELAY_SECONDS: float = float(os.getenv("CACHE_FLUSH_DELAY_SECONDS", "5"))

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "60"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

    def region_list(self, raw: str) -> list[str]:
        return [r.strip() for r in raw.split(",") if r.strip()]

settings = Settings()
