from fastapi import APIRouter, Depends
from core import mqtt_client
from core.config import MQTT_BROKER, MQTT_ENABLED, MQTT_PORT, MQTT_TOPIC
from core.ingestion import ReadingService, get_reading_service
from core.utils import utcnow
from core.websocket_manager import active_connections
router = APIRouter(prefix="/health")

@router.get("")
async def health_check(service: ReadingService = Depends(get_reading_service)):
    """Health check endpoint"""
    if not MQTT_ENABLED:
        mqtt_status = "disabled"
    else:
        mqtt_status = "connected" if mqtt_client.is_connected() else "disconnected"
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "mqtt_broker": mqtt_status,
        "store_backend": service.store.backend,
        "active_websockets": len(active_connections),
    }

@router.get("/debug")
async def debug(service: ReadingService = Depends(get_reading_service)):
    """Debug endpoint exposing configuration and in-memory counter sizes"""
    return {
        "mqtt_enabled": MQTT_ENABLED,
        "mqtt_broker_url": f"{MQTT_BROKER}:{MQTT_PORT}",
        "mqtt_topic": MQTT_TOPIC,
        "active_mqtt_connection": mqtt_client.is_connected(),
        "store_backend": service.store.backend,
        "reconciliation_window_seconds": int(service.reconciler.window.total_seconds()),
        "simulation_threshold": service.simulator.threshold,
        "reliability": service.tracker.stats(),
    }
