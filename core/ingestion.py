"""
Ingestion and retrieval flows for sensor readings.

Ingestion:  validate -> record reliability -> [per-device lock: upsert device
            -> reconcile against recent history -> insert]
Retrieval:  fetch newest-first -> simulation gate -> interpolate
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from models.reading_model import (
    NewReading,
    ReadingResponse,
    ReadingSubmission,
    SimulatedDataResponse,
)
from .config import RECONCILIATION_WINDOW_SECONDS, SIMULATION_THRESHOLD
from .database import Store, get_store
from .errors import MissingFieldError, NotFoundError, StoreError
from .interpolation import SeriesInterpolator
from .reconciler import Reconciler
from .reliability import ReliabilityTracker
from .simulation import SimulationFallback
from .utils import clamp_limit, utcnow
from .validation import Validator

logger = logging.getLogger(__name__)


class DeviceLocks:
    """One lock per device key, so merges for the same device run one at a time.

    Entries are dropped once no caller holds or waits on them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # device key -> [lock, holders and waiters]
        self._locks: Dict[str, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, device_key: str):
        with self._guard:
            entry = self._locks.setdefault(device_key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[device_key]


class ReadingService:
    def __init__(self, store: Store, tracker: Optional[ReliabilityTracker] = None,
                 validator: Optional[Validator] = None,
                 window: timedelta = timedelta(seconds=RECONCILIATION_WINDOW_SECONDS),
                 simulation_threshold: int = SIMULATION_THRESHOLD,
                 simulator: Optional[SimulationFallback] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.tracker = tracker or ReliabilityTracker()
        self.validator = validator or Validator()
        self.reconciler = Reconciler(store, self.tracker, window=window, clock=clock)
        self.interpolator = SeriesInterpolator()
        self.simulator = simulator or SimulationFallback(self.tracker, threshold=simulation_threshold)
        self.locks = DeviceLocks()

    def ingest(self, submission: ReadingSubmission) -> ReadingResponse:
        """Validate, reconcile and persist one submission.

        Raises MissingFieldError, EmptyPayloadError or OutOfRangeError before
        any counter or store interaction, StoreError if persistence fails.
        """
        # The key is opaque: blank keys are rejected but others are kept verbatim
        device_key = submission.device_id
        if not device_key or not device_key.strip():
            raise MissingFieldError("device_id")

        values = self.validator.validate(submission.sensor_values())

        self.tracker.record_client(submission.client_id)
        self.tracker.record_device(device_key)

        with self.locks.hold(device_key):
            try:
                device = self.store.upsert_device(device_key)
                merged = self.reconciler.reconcile(device_key, submission.client_id, values)
                reading = self.store.insert_reading(NewReading(
                    device_id_ref=device.id,
                    client_id=submission.client_id,
                    client_timestamp=submission.client_timestamp,
                    **merged.quantities(),
                ))
            except StoreError:
                raise
            except Exception as e:
                logger.error(f"❌ Unexpected persistence error for {device_key}: {e}", exc_info=True)
                raise StoreError("Failed to store sensor reading.", cause=e) from e

        logger.info(f"✅ Stored reading ID {reading.id} for device {device_key} (PK: {device.id})")
        return ReadingResponse.from_reading(reading, device_key)

    def get_readings(self, device_key: str,
                     limit: Union[int, str, None] = None) -> Union[SimulatedDataResponse, List[ReadingResponse]]:
        """Newest-first readings for a device, or simulated data while its history is too thin"""
        limit = clamp_limit(limit)
        try:
            readings = self.store.find_readings(device_key, limit)
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"❌ Unexpected retrieval error for {device_key}: {e}", exc_info=True)
            raise StoreError("Failed to retrieve sensor readings.", cause=e) from e

        if self.simulator.should_simulate(device_key):
            logger.info(f"Insufficient data for {device_key}, serving simulated reading")
            return SimulatedDataResponse(
                message="Insufficient data. Switching to simulation mode.",
                device_id=device_key,
                simulated_data=self.simulator.generate(),
            )

        if not readings:
            raise NotFoundError()

        interpolated = self.interpolator.interpolate(readings)
        logger.info(f"Found {len(interpolated)} readings for device {device_key}")
        return [ReadingResponse.from_reading(r, device_key) for r in interpolated]

    def delete_device(self, device_key: str) -> bool:
        with self.locks.hold(device_key):
            return self.store.delete_device(device_key)


_service: Optional[ReadingService] = None
_service_lock = threading.Lock()


def get_reading_service() -> ReadingService:
    """FastAPI dependency returning the process-wide service"""
    global _service
    with _service_lock:
        if _service is None:
            _service = ReadingService(get_store())
        return _service
