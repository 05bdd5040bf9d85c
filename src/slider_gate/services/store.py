"""Dual-tier challenge storage.

The in-memory tier is authoritative while the process runs. A durable tier
(JSON files or SQL rows) receives a best-effort copy of every mutation on a
background thread so challenges survive a restart. `TieredChallengeStore`
composes the two and is the only store the lifecycle manager talks to.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Final, Protocol

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from slider_gate.core.challenge import Challenge
from slider_gate.db.session import build_sessionmaker, create_tables
from slider_gate.models import ChallengeRecord

logger = logging.getLogger(__name__)

_ID_PATTERN: Final = re.compile(r"[0-9a-f]{16,128}")
_FILE_PREFIX: Final[str] = "challenge_"
_FILE_SUFFIX: Final[str] = ".json"


class StorageError(RuntimeError):
    """Raised when the durable tier cannot complete an I/O operation."""


class DurableChallengeStore(Protocol):
    """Interface implemented by restart-surviving challenge stores."""

    def get(self, challenge_id: str) -> Challenge | None: ...

    def put(self, challenge: Challenge) -> None: ...

    def delete(self, challenge_id: str) -> None: ...

    def sweep(self, cutoff: float) -> int:
        """Delete records created before `cutoff`; return how many were removed."""
        ...


class MemoryChallengeStore:
    """Thread-safe in-process map of challenge id to record."""

    def __init__(self) -> None:
        self._records: dict[str, Challenge] = {}
        self._lock = threading.Lock()

    def get(self, challenge_id: str) -> Challenge | None:
        with self._lock:
            return self._records.get(challenge_id)

    def put(self, challenge: Challenge) -> None:
        with self._lock:
            self._records[challenge.id] = challenge

    def delete(self, challenge_id: str) -> bool:
        with self._lock:
            return self._records.pop(challenge_id, None) is not None

    def snapshot(self) -> list[Challenge]:
        """Return a point-in-time copy of every stored record."""
        with self._lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class FileChallengeStore:
    """One JSON document per challenge, named `challenge_<id>.json`."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)
        try:
            self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as err:
            raise StorageError(f"cannot create session directory {self.directory}") from err

    def _path(self, challenge_id: str) -> Path | None:
        # Ids end up in file names; anything but lowercase hex is never stored.
        if not _ID_PATTERN.fullmatch(challenge_id):
            return None
        return self.directory / f"{_FILE_PREFIX}{challenge_id}{_FILE_SUFFIX}"

    @staticmethod
    def _read(path: Path) -> Challenge:
        return Challenge.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def get(self, challenge_id: str) -> Challenge | None:
        path = self._path(challenge_id)
        if path is None or not path.exists():
            return None
        try:
            return self._read(path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as err:
            raise StorageError(f"unreadable challenge file {path.name}") from err

    def put(self, challenge: Challenge) -> None:
        path = self._path(challenge.id)
        if path is None:
            raise StorageError(f"refusing to persist malformed id {challenge.id!r}")
        payload = json.dumps(challenge.to_dict())
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp_", suffix=_FILE_SUFFIX)
        except OSError as err:
            raise StorageError(f"cannot write {path.name}") from err
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except OSError as err:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"cannot write {path.name}") from err

    def delete(self, challenge_id: str) -> None:
        path = self._path(challenge_id)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as err:
            raise StorageError(f"cannot delete {path.name}") from err

    def sweep(self, cutoff: float) -> int:
        cleaned = 0
        for path in self.directory.glob(f"{_FILE_PREFIX}*{_FILE_SUFFIX}"):
            try:
                challenge = self._read(path)
            except FileNotFoundError:
                continue
            except (OSError, ValueError, KeyError, TypeError) as err:
                logger.warning("Skipping corrupt challenge file %s: %s", path.name, err)
                continue
            if challenge.created_at >= cutoff:
                continue
            try:
                path.unlink(missing_ok=True)
            except OSError as err:
                logger.warning("Cannot delete expired challenge file %s: %s", path.name, err)
                continue
            cleaned += 1
        return cleaned


class SqlChallengeStore:
    """Challenge rows in the `captcha_challenges` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        try:
            create_tables(engine)
        except SQLAlchemyError as err:
            raise StorageError("cannot create challenge table") from err
        self._sessions = build_sessionmaker(engine)

    def get(self, challenge_id: str) -> Challenge | None:
        try:
            with self._sessions() as session:
                row = session.get(ChallengeRecord, challenge_id)
                if row is None:
                    return None
                return _record_to_challenge(row)
        except SQLAlchemyError as err:
            raise StorageError(f"cannot load challenge {challenge_id}") from err
        except (ValueError, KeyError, TypeError) as err:
            raise StorageError(f"corrupt challenge row {challenge_id}") from err

    def put(self, challenge: Challenge) -> None:
        try:
            with self._sessions() as session:
                session.merge(_challenge_to_record(challenge))
                session.commit()
        except SQLAlchemyError as err:
            raise StorageError(f"cannot persist challenge {challenge.id}") from err

    def delete(self, challenge_id: str) -> None:
        try:
            with self._sessions() as session:
                session.execute(delete(ChallengeRecord).where(ChallengeRecord.id == challenge_id))
                session.commit()
        except SQLAlchemyError as err:
            raise StorageError(f"cannot delete challenge {challenge_id}") from err

    def sweep(self, cutoff: float) -> int:
        try:
            with self._sessions() as session:
                expired_ids = session.scalars(
                    select(ChallengeRecord.id).where(ChallengeRecord.created_at < cutoff)
                ).all()
                if expired_ids:
                    session.execute(
                        delete(ChallengeRecord).where(ChallengeRecord.id.in_(expired_ids))
                    )
                    session.commit()
                return len(expired_ids)
        except SQLAlchemyError as err:
            raise StorageError("cannot sweep challenge table") from err


def _challenge_to_record(challenge: Challenge) -> ChallengeRecord:
    return ChallengeRecord(**challenge.to_dict())


def _record_to_challenge(row: ChallengeRecord) -> Challenge:
    return Challenge.from_dict(
        {
            "id": row.id,
            "mode": row.mode,
            "target_x": row.target_x,
            "target_y": row.target_y,
            "target_slider_x": row.target_slider_x,
            "created_at": row.created_at,
            "attempts": row.attempts,
            "solved": row.solved,
            "client_fingerprint": row.client_fingerprint,
        }
    )


class TieredChallengeStore:
    """Memory-first store with an asynchronously written durable copy.

    Durable writes run on a single background thread, so writes for the
    same id land in the order they were issued. Deleted ids are tombstoned
    for `tombstone_seconds` so a lagging durable copy cannot be loaded back.
    """

    def __init__(
        self,
        memory: MemoryChallengeStore | None = None,
        durable: DurableChallengeStore | None = None,
        *,
        tombstone_seconds: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.memory = memory or MemoryChallengeStore()
        self.durable = durable
        self._tombstone_seconds = tombstone_seconds
        self._clock = clock
        self._tombstones: dict[str, float] = {}
        self._tombstone_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        if durable is not None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="durable-writer")

    def load(self, challenge_id: str) -> Challenge | None:
        """Return the record from memory, falling back to the durable tier.

        A durable hit is returned as-is and not promoted into memory.
        """
        challenge = self.memory.get(challenge_id)
        if challenge is not None or self.durable is None:
            return challenge
        with self._tombstone_lock:
            if challenge_id in self._tombstones:
                return None
        try:
            return self.durable.get(challenge_id)
        except StorageError as err:
            logger.warning("Durable read failed for challenge %s: %s", challenge_id, err)
            return None

    def put(self, challenge: Challenge) -> None:
        self.memory.put(challenge)
        if self.durable is not None:
            self._submit("put", self.durable.put, challenge)

    def delete(self, challenge_id: str) -> None:
        self.memory.delete(challenge_id)
        if self.durable is None:
            return
        with self._tombstone_lock:
            self._tombstones[challenge_id] = self._clock()
        self._submit("delete", self.durable.delete, challenge_id)

    def sweep_durable(self, cutoff: float) -> int:
        """Remove durable records created before `cutoff`."""
        if self.durable is None:
            return 0
        try:
            return self.durable.sweep(cutoff)
        except StorageError as err:
            logger.warning("Durable sweep failed: %s", err)
            return 0

    def purge_tombstones(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        horizon = now - self._tombstone_seconds
        with self._tombstone_lock:
            stale = [cid for cid, deleted_at in self._tombstones.items() if deleted_at < horizon]
            for cid in stale:
                del self._tombstones[cid]
        return len(stale)

    def flush(self, timeout: float | None = None) -> None:
        """Block until every durable write queued so far has run."""
        if self._executor is not None:
            self._executor.submit(lambda: None).result(timeout)

    def close(self, *, cancel_pending: bool = False) -> None:
        """Stop the writer thread, draining queued writes unless told otherwise."""
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=cancel_pending)
            self._executor = None

    def __len__(self) -> int:
        return len(self.memory)

    def _submit(self, operation: str, func: Callable[..., None], arg: object) -> None:
        if self._executor is None:
            logger.warning("Durable %s dropped: store is closed", operation)
            return
        future = self._executor.submit(_run_durable, operation, func, arg)
        future.add_done_callback(_log_unexpected_failure)


def _run_durable(operation: str, func: Callable[..., None], arg: object) -> None:
    try:
        func(arg)
    except StorageError as err:
        logger.warning("Durable %s failed: %s", operation, err)


def _log_unexpected_failure(future: Future[None]) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Durable write crashed: %s", exc, exc_info=exc)
