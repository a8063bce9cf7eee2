from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


class DeviceRecord(BaseModel):
    """A sensor device as held by the store."""
    id: int = Field(..., description="Internal numeric handle, stable for the device's lifetime")
    device_id: str = Field(..., description="Unique identity key assigned outside the system")
    name: Optional[str] = Field(None, description="Human-readable device name")
    location_description: Optional[str] = Field(None, description="Where the device is installed")
    created_at: datetime = Field(..., description="When the device was first seen")
    last_seen_at: datetime = Field(..., description="When the device last had a reading accepted")


class DeviceResponse(BaseModel):
    """Device metadata response."""
    device_id: str
    name: Optional[str] = None
    location_description: Optional[str] = None
    created_at: datetime
    last_seen_at: datetime

    @classmethod
    def from_record(cls, record: DeviceRecord) -> "DeviceResponse":
        return cls(**record.model_dump(exclude={"id"}))


class DeviceListResponse(BaseModel):
    """Response containing list of devices."""
    count: int = Field(..., description="Number of devices returned")
    devices: List[DeviceResponse] = Field(..., description="Array of device objects")


class DeleteDeviceResponse(BaseModel):
    """Response after deleting device."""
    message: str = Field(..., description="Confirmation message")
    device_id: str = Field(..., description="Deleted device ID")
