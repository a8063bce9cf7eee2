from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Dict, List, Optional, Union

# The six physical quantities every reading may carry, in storage order
QUANTITY_FIELDS = ("temperature", "humidity", "pm25", "pm10", "co2", "tvoc")


class SensorValues(BaseModel):
    """The closed set of quantities a reading carries. Every field is optional."""
    temperature: Optional[float] = Field(None, strict=True, description="Temperature in Celsius (-50 to 50)")
    humidity: Optional[float] = Field(None, strict=True, description="Relative humidity percentage (0-100)")
    pm25: Optional[float] = Field(None, strict=True, description="PM2.5 in µg/m³ (0-500)")
    pm10: Optional[float] = Field(None, strict=True, description="PM10 in µg/m³ (0-500)")
    co2: Optional[float] = Field(None, strict=True, description="CO2 in ppm (0-5000)")
    tvoc: Optional[float] = Field(None, strict=True, description="Total VOC in ppb (0-1000)")

    def quantities(self) -> Dict[str, Optional[float]]:
        return {field: getattr(self, field) for field in QUANTITY_FIELDS}

    def is_empty(self) -> bool:
        return all(value is None for value in self.quantities().values())


class ReadingSubmission(SensorValues):
    """Body accepted by POST /readings and by the MQTT subscriber."""
    model_config = ConfigDict(extra="forbid")

    device_id: Optional[str] = Field(None, description="Device identity key", examples=["airwise-kitchen-01"])
    client_id: Optional[str] = Field(None, description="Submitting client, used for weighting")
    client_timestamp: Optional[datetime] = Field(None, description="Time reported by the client")
    pm2_5: Optional[float] = Field(None, strict=True, description="Legacy alias for pm25")

    def sensor_values(self) -> SensorValues:
        """Quantities with the legacy pm2_5 alias folded into pm25."""
        values = self.quantities()
        if values["pm25"] is None and self.pm2_5 is not None:
            values["pm25"] = self.pm2_5
        return SensorValues(**values)


class NewReading(SensorValues):
    """A reconciled value set ready to be persisted."""
    device_id_ref: int
    client_id: Optional[str] = None
    client_timestamp: Optional[datetime] = None


class Reading(NewReading):
    """A persisted reading; timestamp is the server receipt time."""
    id: int
    timestamp: datetime


class ReadingResponse(SensorValues):
    id: int = Field(..., description="Reading identifier")
    device_id: str = Field(..., description="Device identity key")
    timestamp: datetime = Field(..., description="Server receipt time")
    client_timestamp: Optional[datetime] = Field(None, description="Time reported by the client")
    client_id: Optional[str] = Field(None, description="Client that contributed the reading")

    @classmethod
    def from_reading(cls, reading: Reading, device_id: str) -> "ReadingResponse":
        data = reading.model_dump(exclude={"device_id_ref"})
        return cls(device_id=device_id, **data)


class SimulatedDataResponse(BaseModel):
    """Returned instead of real data while a device has too little history."""
    message: str = Field(..., description="Why simulated data is returned")
    device_id: str = Field(..., description="Device identity key")
    simulated: bool = Field(True, description="Always true for this payload")
    simulated_data: Dict[str, Union[int, float]] = Field(..., description="Synthetic quantities")


ReadingsResult = Union[SimulatedDataResponse, List[ReadingResponse]]
