from fastapi import APIRouter, HTTPException, Depends
from core.errors import StoreError, to_http_exception
from core.ingestion import ReadingService, get_reading_service
from models.device_model import DeleteDeviceResponse, DeviceListResponse, DeviceResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/devices", tags=["devices"])


@router.get("", response_model=DeviceListResponse)
async def get_devices(service: ReadingService = Depends(get_reading_service)):
    """Get all devices that have ever submitted a reading.

    **Expected Response:**
    ```json
    {
      "count": 1,
      "devices": [
        {
          "device_id": "airwise-kitchen-01",
          "name": null,
          "location_description": null,
          "created_at": "2025-04-17T08:15:00Z",
          "last_seen_at": "2025-04-17T09:40:12Z"
        }
      ]
    }
    ```
    """
    try:
        devices = [DeviceResponse.from_record(d) for d in service.store.list_devices()]
        return {"count": len(devices), "devices": devices}
    except StoreError as e:
        raise to_http_exception(e)


@router.get("/{device_id}", response_model=DeviceResponse)
async def get_device_by_id(device_id: str, service: ReadingService = Depends(get_reading_service)):
    """Get metadata for a single device. Readings live under /readings/device/{device_id}."""
    try:
        device = service.store.get_device(device_id)
    except StoreError as e:
        raise to_http_exception(e)

    if not device:
        raise HTTPException(status_code=404, detail={"error": "NotFound", "message": "Device not found"})
    return DeviceResponse.from_record(device)


@router.delete("/{device_id}", response_model=DeleteDeviceResponse)
async def delete_device(device_id: str, service: ReadingService = Depends(get_reading_service)):
    """Delete a device together with all of its readings.

    Reliability counters are process-local and are left untouched.
    """
    try:
        deleted = service.delete_device(device_id)
    except StoreError as e:
        raise to_http_exception(e)

    if not deleted:
        raise HTTPException(status_code=404, detail={"error": "NotFound", "message": "Device not found"})

    logger.info(f"✅ Device deleted: {device_id}")
    return {"message": "Device deleted successfully", "device_id": device_id}
