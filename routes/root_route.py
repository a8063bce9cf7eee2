from fastapi import APIRouter
from core.validation import SENSOR_RANGES

router = APIRouter()

@router.get("/")
async def root():
    """Root endpoint with API overview"""
    return {
        "message": "Welcome to the Airwise API!",
        "version": "1.0.0",
        "status": "running",
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json"
        },
        "endpoints": {
            "readings": {
                "POST /readings": "Submit a reading (reconciled with the device's recent history)",
                "GET /readings/device/{device_id}": "Latest readings, newest first (limit=10, max 1000)"
            },
            "devices": {
                "GET /devices": "List known devices",
                "GET /devices/{device_id}": "Get device metadata",
                "DELETE /devices/{device_id}": "Delete a device and its readings"
            },
            "health": {
                "GET /health": "Health check",
                "GET /health/debug": "Configuration and counter sizes"
            },
            "websocket": {
                "WS /ws": "Live feed of accepted readings"
            }
        },
        "sensor_ranges": {field: list(bounds) for field, bounds in SENSOR_RANGES.items()}
    }
