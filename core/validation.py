"""Physical range checks applied before a reading enters reconciliation."""
import logging
from typing import Dict, Optional, Tuple

from models.reading_model import SensorValues
from .errors import EmptyPayloadError, OutOfRangeError

logger = logging.getLogger(__name__)

# Closed ranges per quantity: (min, max)
SENSOR_RANGES: Dict[str, Tuple[float, float]] = {
    "temperature": (-50, 50),  # °C
    "humidity": (0, 100),      # %
    "pm25": (0, 500),          # µg/m³
    "pm10": (0, 500),          # µg/m³
    "co2": (0, 5000),          # ppm
    "tvoc": (0, 1000),         # ppb
}


class Validator:
    def __init__(self, ranges: Optional[Dict[str, Tuple[float, float]]] = None):
        self.ranges = dict(ranges or SENSOR_RANGES)

    def validate(self, values: SensorValues) -> SensorValues:
        """Raise EmptyPayloadError or OutOfRangeError; the whole submission is rejected on any failure."""
        if values.is_empty():
            raise EmptyPayloadError()

        for field, (minimum, maximum) in self.ranges.items():
            value = getattr(values, field)
            if value is None:
                continue
            # NaN fails both comparisons and is rejected too
            if not (minimum <= value <= maximum):
                raise OutOfRangeError(field, value, minimum, maximum)
        return values

    def is_valid(self, values: SensorValues) -> bool:
        try:
            self.validate(values)
        except (EmptyPayloadError, OutOfRangeError) as e:
            logger.debug(f"Rejected value set: {e.message}")
            return False
        return True
