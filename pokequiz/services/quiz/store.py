"""Session storage with serialized read-modify-write.

``mutate`` is the only way to change a stored session. The callback gets a
private copy of the session; the copy is written back only when the callback
returns normally, so a validation error leaves the stored session untouched.
Calls for the same session id never interleave: each holds that id's lock
from the read until the write.
"""

from contextlib import contextmanager
import json
import logging
import threading
import time
from typing import Callable, Dict, Optional, Set, Tuple, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from pokequiz import db
from pokequiz.errors import ConflictError, NotFoundError, RoomCodeTakenError, SessionBusyError
from pokequiz.models import STATUS_FINISHED, GameSession, RoomCodeRecord, SessionRecord

logger = logging.getLogger(__name__)

R = TypeVar('R')

DEFAULT_TTL_SEC = 3600
DEFAULT_LOCK_TIMEOUT_SEC = 5.0
# Re-runs of a mutation whose row another process wrote first
STALE_WRITE_RETRIES = 5


class KeyedLocks:
    """One lock per key, created on demand and dropped when nobody holds or waits on it."""

    def __init__(self, timeout: float = DEFAULT_LOCK_TIMEOUT_SEC):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._entries: Dict[str, list] = {}  # key -> [lock, users]

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        acquired = entry[0].acquire(timeout=self.timeout)
        try:
            if not acquired:
                logger.warning(f"[store-busy] key={key} timeout={self.timeout}s")
                raise SessionBusyError('Session is busy, try again')
            yield
        finally:
            if acquired:
                entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._entries.pop(key, None)

    def __len__(self):
        with self._guard:
            return len(self._entries)


class SessionStore:
    """Keyed store of ``GameSession`` values with a time-to-live."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SEC, lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SEC,
                 clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.locks = KeyedLocks(lock_timeout)

    def create(self, session: GameSession) -> None:
        with self.locks.hold(session.session_id):
            self._create(session)

    def get(self, session_id: str) -> Optional[GameSession]:
        raise NotImplementedError

    def mutate(self, session_id: str, fn: Callable[[GameSession], R]) -> R:
        with self.locks.hold(session_id):
            return self._mutate(session_id, fn)

    def find_by_room_code(self, code: str) -> Optional[str]:
        raise NotImplementedError

    def active_room_codes(self) -> Set[str]:
        raise NotImplementedError

    def purge_expired(self) -> int:
        raise NotImplementedError

    def _create(self, session: GameSession) -> None:
        raise NotImplementedError

    def _mutate(self, session_id: str, fn: Callable[[GameSession], R]) -> R:
        raise NotImplementedError

    def _expires_at(self) -> float:
        return self.clock() + self.ttl_seconds


class InMemorySessionStore(SessionStore):
    """Process-local store; sessions are kept serialized so callers never share objects."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._index_lock = threading.Lock()
        self._records: Dict[str, Tuple[dict, float]] = {}
        self._room_codes: Dict[str, str] = {}

    def _live_payload(self, session_id: str) -> Optional[dict]:
        entry = self._records.get(session_id)
        if entry is None or entry[1] <= self.clock():
            return None
        return entry[0]

    def get(self, session_id):
        with self._index_lock:
            payload = self._live_payload(session_id)
        return GameSession.from_dict(payload) if payload is not None else None

    def _create(self, session):
        with self._index_lock:
            if self._live_payload(session.session_id) is not None:
                raise ConflictError('Session already exists')
            if session.room_code:
                owner = self._room_codes.get(session.room_code)
                if owner and owner != session.session_id and self._live_payload(owner) is not None:
                    raise RoomCodeTakenError(f'Room code {session.room_code} is in use')
                self._room_codes[session.room_code] = session.session_id
            self._records[session.session_id] = (session.to_dict(), self._expires_at())

    def _mutate(self, session_id, fn):
        with self._index_lock:
            payload = self._live_payload(session_id)
        if payload is None:
            raise NotFoundError('Session not found')
        session = GameSession.from_dict(payload)
        result = fn(session)
        with self._index_lock:
            self._records[session_id] = (session.to_dict(), self._expires_at())
            if session.status == STATUS_FINISHED and self._room_codes.get(session.room_code) == session_id:
                del self._room_codes[session.room_code]
        return result

    def find_by_room_code(self, code):
        with self._index_lock:
            session_id = self._room_codes.get(code)
            if session_id and self._live_payload(session_id) is not None:
                return session_id
        return None

    def active_room_codes(self):
        with self._index_lock:
            return {code for code, sid in self._room_codes.items() if self._live_payload(sid) is not None}

    def purge_expired(self):
        now = self.clock()
        with self._index_lock:
            expired = [sid for sid, (_, exp) in self._records.items() if exp <= now]
            for sid in expired:
                del self._records[sid]
            for code in [c for c, sid in self._room_codes.items() if sid not in self._records]:
                del self._room_codes[code]
        return len(expired)


class SqlSessionStore(SessionStore):
    """Store backed by the ``quiz_session`` and ``room_code`` tables.

    Needs an application context. Besides the in-process lock, ``mutate`` reads
    the row with ``SELECT ... FOR UPDATE`` so that workers in other processes
    are serialized too on databases that support row locks. Where the row lock
    is a no-op (SQLite), the ``version`` column catches a write that raced ours:
    the stale attempt is rolled back and ``fn`` re-runs on a fresh read.
    """

    def get(self, session_id):
        record = SessionRecord.query.filter_by(session_id=session_id).first()
        if record is None or record.expires_at <= self.clock():
            return None
        return GameSession.from_dict(json.loads(record.payload))

    def _create(self, session):
        now = self.clock()
        existing = db.session.get(SessionRecord, session.session_id)
        if existing is not None:
            if existing.expires_at > now:
                raise ConflictError('Session already exists')
            db.session.delete(existing)
        expires_at = now + self.ttl_seconds
        db.session.add(SessionRecord(
            session_id=session.session_id,
            room_code=session.room_code,
            status=session.status,
            payload=json.dumps(session.to_dict()),
            created_at=session.created_at,
            expires_at=expires_at,
        ))
        if session.room_code:
            # An expired holder of the same code does not block reuse
            RoomCodeRecord.query.filter(
                RoomCodeRecord.code == session.room_code,
                RoomCodeRecord.expires_at <= now,
            ).delete(synchronize_session=False)
            db.session.add(RoomCodeRecord(code=session.room_code, session_id=session.session_id, expires_at=expires_at))
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise RoomCodeTakenError(f'Room code {session.room_code} is in use') from exc

    def _mutate(self, session_id, fn):
        for attempt in range(1, STALE_WRITE_RETRIES + 1):
            try:
                return self._mutate_once(session_id, fn)
            except StaleDataError:
                logger.info(f"[store-stale] session={session_id} attempt={attempt}")
        logger.warning(f"[store-busy] session={session_id} stale_retries={STALE_WRITE_RETRIES}")
        raise SessionBusyError('Session is busy, try again')

    def _mutate_once(self, session_id, fn):
        try:
            record = (
                SessionRecord.query.filter_by(session_id=session_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if record is None or record.expires_at <= self.clock():
                raise NotFoundError('Session not found')
            session = GameSession.from_dict(json.loads(record.payload))
            result = fn(session)

            expires_at = self._expires_at()
            record.payload = json.dumps(session.to_dict())
            record.status = session.status
            record.expires_at = expires_at
            # Raises StaleDataError when another process wrote the row since our read
            db.session.flush()
            if session.room_code:
                code_query = RoomCodeRecord.query.filter_by(code=session.room_code, session_id=session_id)
                if session.status == STATUS_FINISHED:
                    code_query.delete(synchronize_session=False)
                else:
                    code_query.update({'expires_at': expires_at}, synchronize_session=False)
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    def find_by_room_code(self, code):
        entry = RoomCodeRecord.query.filter(
            RoomCodeRecord.code == code,
            RoomCodeRecord.expires_at > self.clock(),
        ).first()
        return entry.session_id if entry else None

    def active_room_codes(self):
        rows = RoomCodeRecord.query.filter(RoomCodeRecord.expires_at > self.clock()).all()
        return {row.code for row in rows}

    def purge_expired(self):
        now = self.clock()
        removed = SessionRecord.query.filter(SessionRecord.expires_at <= now).delete(synchronize_session=False)
        RoomCodeRecord.query.filter(RoomCodeRecord.expires_at <= now).delete(synchronize_session=False)
        db.session.commit()
        return removed
