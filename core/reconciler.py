"""
Merging of a newly arrived reading with the device's most recent one.

If the device has any reading inside the trailing reconciliation window,
only the newest of those takes part in the merge. Each quantity is merged
independently:

* both sides present: weighted average, weights being the clients'
  reliability counts
* one side present: that value, unmodified
* neither present: None
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Tuple

from models.reading_model import QUANTITY_FIELDS, SensorValues
from .config import RECONCILIATION_WINDOW_SECONDS
from .database import Store
from .reliability import ReliabilityTracker
from .utils import utcnow

logger = logging.getLogger(__name__)


def weighted_average(contributions: Iterable[Tuple[float, int]]) -> Optional[float]:
    """Weighted mean of (value, weight) pairs; None when the total weight is zero"""
    total_weight = 0
    weighted_sum = 0.0
    for value, weight in contributions:
        weighted_sum += value * weight
        total_weight += weight
    return weighted_sum / total_weight if total_weight > 0 else None


def merge_field(latest: Optional[float], incoming: Optional[float],
                latest_weight: int, incoming_weight: int) -> Optional[float]:
    if latest is None:
        return incoming
    if incoming is None:
        return latest
    return weighted_average([(latest, latest_weight), (incoming, incoming_weight)])


class Reconciler:
    def __init__(self, store: Store, tracker: ReliabilityTracker,
                 window: timedelta = timedelta(seconds=RECONCILIATION_WINDOW_SECONDS),
                 clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.tracker = tracker
        self.window = window
        self.clock = clock

    def reconcile(self, device_key: str, client_id: Optional[str], incoming: SensorValues) -> SensorValues:
        """Return the value set to persist for this submission.

        Callers must serialize calls per device; the store read and the
        following insert are not atomic on their own.
        """
        since = self.clock() - self.window
        recent = self.store.find_recent_readings(device_key, since)
        if not recent:
            return incoming

        latest = recent[0]
        latest_weight = self.tracker.weight_of(latest.client_id)
        incoming_weight = self.tracker.weight_of(client_id)

        merged = {
            field: merge_field(getattr(latest, field), getattr(incoming, field), latest_weight, incoming_weight)
            for field in QUANTITY_FIELDS
        }
        logger.debug(
            f"Merged reading for {device_key} with reading {latest.id} "
            f"(weights {latest_weight}/{incoming_weight}, {len(recent)} in window)"
        )
        return SensorValues(**merged)
