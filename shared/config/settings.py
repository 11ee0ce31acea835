import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


APP_ENV = os.getenv("APP_ENV", "development")

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "ethioconnect")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
SQL_ECHO = _flag("SQL_ECHO", "false")

# Tracking simulator is demo scaffolding, off in production unless forced on
TRACKING_SIMULATION_ENABLED = _flag(
    "TRACKING_SIMULATION_ENABLED", "false" if APP_ENV == "production" else "true"
)
TRACKING_SIMULATION_INTERVAL = float(os.getenv("TRACKING_SIMULATION_INTERVAL", "60"))
TRACKING_SIMULATION_BATCH = int(os.getenv("TRACKING_SIMULATION_BATCH", "5"))

STRICT_STATUS_TRANSITIONS = _flag("STRICT_STATUS_TRANSITIONS", "true")
EDIT_WINDOW_MINUTES = int(os.getenv("EDIT_WINDOW_MINUTES", "10"))

PAYMENT_GATEWAY_URL = os.getenv("PAYMENT_GATEWAY_URL", "")
PAYMENT_GATEWAY_API_KEY = os.getenv("PAYMENT_GATEWAY_API_KEY", "")
PAYMENT_SIMULATED_DELAY = float(os.getenv("PAYMENT_SIMULATED_DELAY", "1.0"))
PAYMENT_APPROVAL_RATE = float(os.getenv("PAYMENT_APPROVAL_RATE", "0.9"))

TRACK_RATE_LIMIT = os.getenv("TRACK_RATE_LIMIT", "30/minute")
