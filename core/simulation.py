import logging
import random
from typing import Dict, Optional, Tuple, Union

from .config import SIMULATION_THRESHOLD
from .reliability import ReliabilityTracker

logger = logging.getLogger(__name__)

# quantity -> (low, high, decimals); 0 decimals yields whole numbers
SIMULATION_RANGES: Dict[str, Tuple[float, float, int]] = {
    "temperature": (20, 30, 2),   # °C
    "humidity": (40, 70, 2),      # %
    "pm25": (5, 35, 2),           # µg/m³
    "pm10": (10, 50, 2),          # µg/m³
    "co2": (400, 1000, 0),        # ppm
    "tvoc": (50, 300, 0),         # ppb
}


class SimulationFallback:
    """Synthetic readings for devices without enough history to trust.

    Development and demo aid only; the values are not derived from any
    real signal.
    """

    def __init__(self, tracker: ReliabilityTracker, threshold: int = SIMULATION_THRESHOLD,
                 rng: Optional[random.Random] = None):
        self.tracker = tracker
        self.threshold = threshold
        self.rng = rng or random.Random()

    def should_simulate(self, device_key: str) -> bool:
        return self.tracker.total_for(device_key) < self.threshold

    def generate(self) -> Dict[str, Union[int, float]]:
        data = {}
        for field, (low, high, decimals) in SIMULATION_RANGES.items():
            value = self.rng.uniform(low, high)
            data[field] = round(value, decimals) if decimals else int(round(value))
        return data
