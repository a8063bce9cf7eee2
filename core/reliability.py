"""
Per-client and per-device reliability counters.

Clients get a grow-only counter (G-counter) used as their weight during
reconciliation. Devices get a PN-counter whose value gates whether enough
history exists to serve real data. Both live in process memory only: they
reset on restart and are not shared between server instances.
"""
import threading
from typing import Dict, List, Optional

# Missing or empty client identities share this bucket
ANONYMOUS_CLIENT = ""

DEFAULT_WEIGHT = 1


def _client_key(client_id: Optional[str]) -> str:
    return client_id or ANONYMOUS_CLIENT


class ReliabilityTracker:
    def __init__(self):
        self._lock = threading.Lock()
        self._client_counts: Dict[str, int] = {}
        # device key -> [p, n]
        self._device_counts: Dict[str, List[int]] = {}

    def record_client(self, client_id: Optional[str]) -> int:
        """Increment the client's G-counter and return its new value"""
        key = _client_key(client_id)
        with self._lock:
            count = self._client_counts.get(key, 0) + 1
            self._client_counts[key] = count
            return count

    def record_device(self, device_key: str, is_increment: bool = True) -> int:
        """Bump the device's PN-counter. Ingestion only ever increments."""
        with self._lock:
            counter = self._device_counts.setdefault(device_key, [0, 0])
            if is_increment:
                counter[0] += 1
            else:
                counter[1] += 1
            return counter[0] - counter[1]

    def weight_of(self, client_id: Optional[str]) -> int:
        with self._lock:
            return self._client_counts.get(_client_key(client_id)) or DEFAULT_WEIGHT

    def total_for(self, device_key: str) -> int:
        with self._lock:
            counter = self._device_counts.get(device_key)
            if counter is None:
                return 0
            return counter[0] - counter[1]

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "tracked_clients": len(self._client_counts),
                "tracked_devices": len(self._device_counts),
            }
