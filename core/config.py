import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


# Persistence
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "airwise")
MONGODB_TIMEOUT_MS = _env_int("MONGODB_TIMEOUT_MS", 5000)
STORE_BACKEND = os.getenv("STORE_BACKEND", "mongo").strip().lower()

# MQTT
MQTT_ENABLED = _env_bool("MQTT_ENABLED", False)
MQTT_BROKER = os.getenv("MQTT_BROKER", "localhost")
MQTT_PORT = _env_int("MQTT_PORT", 8883)
MQTT_USERNAME = os.getenv("MQTT_USERNAME")
MQTT_PASSWORD = os.getenv("MQTT_PASSWORD")
MQTT_TOPIC = os.getenv("MQTT_TOPIC", "airwise/+/readings")
MQTT_TLS = _env_bool("MQTT_TLS", True)

# Reconciliation
RECONCILIATION_WINDOW_SECONDS = _env_int("RECONCILIATION_WINDOW_SECONDS", 300)
SIMULATION_THRESHOLD = _env_int("SIMULATION_THRESHOLD", 5)
DEFAULT_READINGS_LIMIT = _env_int("DEFAULT_READINGS_LIMIT", 10)
MAX_READINGS_LIMIT = _env_int("MAX_READINGS_LIMIT", 1000)

# HTTP server
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
PORT = _env_int("PORT", 8000)
