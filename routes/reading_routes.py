from fastapi import APIRouter, HTTPException, Depends, Body, Query
from typing import Optional
from core.errors import ReadingError, to_http_exception
from core.ingestion import ReadingService, get_reading_service
from core.websocket_manager import broadcast_to_websockets, reading_event
from models.reading_model import ReadingResponse, ReadingSubmission, ReadingsResult
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/readings", tags=["readings"])


@router.post("", status_code=201, response_model=ReadingResponse)
async def create_reading(
    submission: ReadingSubmission = Body(..., examples=[{
        "device_id": "airwise-kitchen-01",
        "client_id": "mobile-app-42",
        "client_timestamp": "2025-04-17T08:15:00Z",
        "temperature": 22.4,
        "humidity": 48.1,
        "pm25": 12.0,
        "pm10": 18.5,
        "co2": 640,
        "tvoc": 120
    }]),
    service: ReadingService = Depends(get_reading_service)
):
    """Submit a sensor reading.

    The reading is range-checked, then merged with the device's latest reading
    if one arrived within the reconciliation window (5 minutes by default).
    Overlapping values are combined as a weighted average, weights being how
    many valid readings each client has contributed.

    **Request Body:**
    - device_id: Device identity key (required)
    - client_id: Submitting client (optional, used for weighting)
    - client_timestamp: Time reported by the client (optional)
    - temperature, humidity, pm25, pm10, co2, tvoc: Quantities, each optional,
      at least one required
    - pm2_5: Legacy alias for pm25

    **Status Codes:**
    - 201: Reading stored, reconciled values returned
    - 400: MissingField, EmptyPayload or OutOfRange
    - 422: Unknown field or non-numeric quantity
    - 500: StoreFailure
    """
    try:
        reading = service.ingest(submission)
    except ReadingError as e:
        logger.warning(f"Rejected reading ({e.kind}): {e.message}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"❌ Error processing /readings POST: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={
            "error": "StoreFailure",
            "message": "Failed to store sensor reading."
        })

    await broadcast_to_websockets(reading_event(reading.model_dump(mode="json")))
    return reading


@router.get("/device/{device_id}", response_model=ReadingsResult)
async def get_device_readings(
    device_id: str,
    limit: Optional[str] = Query(default=None, description="Max records to return (1-1000, default 10)"),
    service: ReadingService = Depends(get_reading_service)
):
    """Get the latest readings for a device, newest first.

    Null quantities inside the batch are filled with the mean of their
    neighbours. While the device has fewer than 5 accepted readings since the
    server started, a simulated reading is returned instead, tagged with
    `"simulated": true`.

    **Parameters:**
    - device_id: The device to query
    - limit: Anything outside 1-1000 (or not a number) falls back to 10

    **Status Codes:**
    - 200: Readings or simulated data
    - 404: NotFound, device has enough history but no stored readings
    - 500: StoreFailure
    """
    try:
        return service.get_readings(device_id, limit)
    except ReadingError as e:
        if e.status_code >= 500:
            logger.error(f"❌ Error processing GET /readings/device/{device_id}: {e.message}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"❌ Error processing GET /readings/device/{device_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={
            "error": "StoreFailure",
            "message": "Failed to retrieve sensor readings."
        })
