import threading
from contextlib import contextmanager


class RoomLockRegistry:
    """One mutex per room id, shared by every request in the process.

    Held across conflict read, insert and commit so two requests for the same
    room cannot both pass the conflict check. Rooms never contend with each
    other.
    """

    def __init__(self, app=None):
        self._guard = threading.Lock()
        self._locks = {}
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.extensions["room_locks"] = self

    def _lock_for(self, room_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(room_id)
            if lock is None:
                lock = self._locks[room_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *room_ids):
        # sorted so that edits moving between two rooms cannot deadlock
        locks = [self._lock_for(rid) for rid in sorted(set(room_ids))]
        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()
