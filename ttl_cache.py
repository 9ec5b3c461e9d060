"""In-memory TTL cache used for quotes, price history and stock lists."""
import threading
import time


class TTLCache:
    def __init__(self, ttl, clock=time.time):
        self.ttl = ttl
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, key):
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self.ttl:
                del self._entries[key]
                return None
            return value

    def set(self, key, value):
        with self._lock:
            now = self._clock()
            self._purge(now)
            self._entries[key] = (value, now)

    def _purge(self, now):
        expired = [k for k, (_, stored_at) in self._entries.items() if now - stored_at >= self.ttl]
        for key in expired:
            del self._entries[key]

    def invalidate(self, key=None):
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __contains__(self, key):
        return self.get(key) is not None

    def __len__(self):
        with self._lock:
            return len(self._entries)
