from abc import ABC, abstractmethod
from datetime import datetime
from functools import wraps
from typing import Callable, Dict, List, Optional
import itertools
import logging
import threading

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from models.device_model import DeviceRecord
from models.reading_model import NewReading, Reading
from .config import MONGODB_URL, MONGODB_DB, MONGODB_TIMEOUT_MS, STORE_BACKEND
from .errors import StoreError
from .utils import as_utc, utcnow

logger = logging.getLogger(__name__)


class Store(ABC):
    """Persistence contract used by the ingestion and retrieval flows.

    Every reading query returns results newest-first by server receipt time.
    """

    backend = "abstract"

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock
        self._timestamp_lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None

    def initialize(self) -> None:
        """Prepare the backend; raises StoreError when it is unreachable"""

    def close(self) -> None:
        pass

    def _receipt_time(self) -> datetime:
        # Receipt times never go backwards in insertion order
        with self._timestamp_lock:
            now = self.clock()
            if self._last_timestamp is not None and now < self._last_timestamp:
                now = self._last_timestamp
            self._last_timestamp = now
            return now

    @abstractmethod
    def upsert_device(self, device_key: str) -> DeviceRecord:
        """Create the device if needed and mark it as seen now"""

    @abstractmethod
    def get_device(self, device_key: str) -> Optional[DeviceRecord]:
        ...

    @abstractmethod
    def list_devices(self) -> List[DeviceRecord]:
        ...

    @abstractmethod
    def delete_device(self, device_key: str) -> bool:
        """Delete the device and all of its readings"""

    @abstractmethod
    def find_recent_readings(self, device_key: str, since: datetime) -> List[Reading]:
        ...

    @abstractmethod
    def insert_reading(self, reading: NewReading) -> Reading:
        ...

    @abstractmethod
    def find_readings(self, device_key: str, limit: int) -> List[Reading]:
        ...


def _driver_errors(action: str):
    """Surface pymongo failures as StoreError"""
    def decorator(method):
        @wraps(method)
        def wrapper(self, *args, **kwargs):
            try:
                return method(self, *args, **kwargs)
            except PyMongoError as e:
                logger.error(f"❌ MongoDB error while trying to {action}: {e}")
                raise StoreError(f"Failed to {action}.", cause=e) from e
        return wrapper
    return decorator


class MongoStore(Store):
    backend = "mongo"

    def __init__(self, url: str = MONGODB_URL, database: str = MONGODB_DB,
                 client: Optional[MongoClient] = None, clock: Callable[[], datetime] = utcnow):
        super().__init__(clock)
        self.MONGODB_URL = url
        self.client = client or MongoClient(url, tz_aware=True, serverSelectionTimeoutMS=MONGODB_TIMEOUT_MS)
        self.db = self.client[database]

        self.devices_collection = self.db.devices
        self.readings_collection = self.db.sensor_readings
        self.counters_collection = self.db.counters

    @_driver_errors("initialize the database")
    def initialize(self) -> None:
        self.client.admin.command("ping")
        self.devices_collection.create_index("device_id", unique=True)
        self.readings_collection.create_index([("device_id_ref", ASCENDING), ("timestamp", DESCENDING)])
        self.readings_collection.create_index("id", unique=True)
        logger.info("✅ Database initialized successfully")

    def close(self) -> None:
        self.client.close()

    def _next_id(self, sequence: str) -> int:
        counter = self.counters_collection.find_one_and_update(
            {"_id": sequence},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["seq"]

    @staticmethod
    def _to_device(document: Dict) -> DeviceRecord:
        document = dict(document)
        document.pop("_id", None)
        return DeviceRecord(**document)

    @staticmethod
    def _to_reading(document: Dict) -> Reading:
        document = dict(document)
        document.pop("_id", None)
        return Reading(**document)

    def _device_ref(self, device_key: str) -> Optional[int]:
        device = self.devices_collection.find_one({"device_id": device_key}, {"id": 1})
        return device["id"] if device else None

    @_driver_errors("upsert device")
    def upsert_device(self, device_key: str) -> DeviceRecord:
        now = self.clock()
        device = self.devices_collection.find_one_and_update(
            {"device_id": device_key},
            {"$set": {"last_seen_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if device is None:
            # A concurrent insert wins via $setOnInsert; the spare sequence value is simply skipped
            device = self.devices_collection.find_one_and_update(
                {"device_id": device_key},
                {
                    "$set": {"last_seen_at": now},
                    "$setOnInsert": {
                        "id": self._next_id("devices"),
                        "name": None,
                        "location_description": None,
                        "created_at": now,
                    },
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
            logger.info(f"✅ Registered new device {device_key} (PK: {device['id']})")
        return self._to_device(device)

    @_driver_errors("fetch device")
    def get_device(self, device_key: str) -> Optional[DeviceRecord]:
        device = self.devices_collection.find_one({"device_id": device_key})
        return self._to_device(device) if device else None

    @_driver_errors("list devices")
    def list_devices(self) -> List[DeviceRecord]:
        return [self._to_device(d) for d in self.devices_collection.find({}).sort("id", ASCENDING)]

    @_driver_errors("delete device")
    def delete_device(self, device_key: str) -> bool:
        device_ref = self._device_ref(device_key)
        if device_ref is None:
            return False
        removed = self.readings_collection.delete_many({"device_id_ref": device_ref})
        self.devices_collection.delete_one({"id": device_ref})
        logger.info(f"✅ Deleted device {device_key} and {removed.deleted_count} readings")
        return True

    @_driver_errors("fetch recent readings")
    def find_recent_readings(self, device_key: str, since: datetime) -> List[Reading]:
        device_ref = self._device_ref(device_key)
        if device_ref is None:
            return []
        cursor = self.readings_collection.find(
            {"device_id_ref": device_ref, "timestamp": {"$gte": since}}
        ).sort([("timestamp", DESCENDING), ("id", DESCENDING)])
        return [self._to_reading(doc) for doc in cursor]

    @_driver_errors("store sensor reading")
    def insert_reading(self, reading: NewReading) -> Reading:
        document = reading.model_dump()
        document["id"] = self._next_id("sensor_readings")
        document["timestamp"] = self._receipt_time()
        self.readings_collection.insert_one(document)
        return self._to_reading(document)

    @_driver_errors("retrieve sensor readings")
    def find_readings(self, device_key: str, limit: int) -> List[Reading]:
        device_ref = self._device_ref(device_key)
        if device_ref is None:
            return []
        cursor = self.readings_collection.find(
            {"device_id_ref": device_ref}
        ).sort([("timestamp", DESCENDING), ("id", DESCENDING)]).limit(limit)
        return [self._to_reading(doc) for doc in cursor]


class InMemoryStore(Store):
    """Process-local store with the same contract, for development and tests"""

    backend = "memory"

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        super().__init__(clock)
        self._lock = threading.RLock()
        self._device_ids = itertools.count(1)
        self._reading_ids = itertools.count(1)
        self.devices: Dict[str, DeviceRecord] = {}
        self.readings: List[Reading] = []

    def upsert_device(self, device_key: str) -> DeviceRecord:
        now = self.clock()
        with self._lock:
            device = self.devices.get(device_key)
            if device is None:
                device = DeviceRecord(id=next(self._device_ids), device_id=device_key,
                                      created_at=now, last_seen_at=now)
            else:
                device = device.model_copy(update={"last_seen_at": now})
            self.devices[device_key] = device
            return device

    def get_device(self, device_key: str) -> Optional[DeviceRecord]:
        with self._lock:
            return self.devices.get(device_key)

    def list_devices(self) -> List[DeviceRecord]:
        with self._lock:
            return sorted(self.devices.values(), key=lambda d: d.id)

    def delete_device(self, device_key: str) -> bool:
        with self._lock:
            device = self.devices.pop(device_key, None)
            if device is None:
                return False
            self.readings = [r for r in self.readings if r.device_id_ref != device.id]
            return True

    def _newest_first(self, device_key: str) -> List[Reading]:
        device = self.devices.get(device_key)
        if device is None:
            return []
        owned = [r for r in self.readings if r.device_id_ref == device.id]
        return sorted(owned, key=lambda r: (r.timestamp, r.id), reverse=True)

    def find_recent_readings(self, device_key: str, since: datetime) -> List[Reading]:
        since = as_utc(since)
        with self._lock:
            return [r for r in self._newest_first(device_key) if r.timestamp >= since]

    def insert_reading(self, reading: NewReading) -> Reading:
        with self._lock:
            stored = Reading(id=next(self._reading_ids), timestamp=self._receipt_time(), **reading.model_dump())
            self.readings.append(stored)
            return stored

    def find_readings(self, device_key: str, limit: int) -> List[Reading]:
        with self._lock:
            return self._newest_first(device_key)[:limit]


_store: Optional[Store] = None
_store_lock = threading.Lock()


def create_store(backend: str = STORE_BACKEND) -> Store:
    if backend == "memory":
        return InMemoryStore()
    if backend == "mongo":
        return MongoStore()
    raise ValueError(f"Unknown STORE_BACKEND '{backend}' (expected 'mongo' or 'memory')")


def get_store() -> Store:
    """Process-wide store, created on first use"""
    global _store
    with _store_lock:
        if _store is None:
            _store = create_store()
            logger.info(f"Using '{_store.backend}' store backend")
        return _store


def close_store() -> None:
    global _store
    with _store_lock:
        if _store is not None:
            _store.close()
            _store = None
