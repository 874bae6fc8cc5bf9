"""Key-value persistence for the stockroom collections.

State is kept as three named collections (``items``, ``categories`` and
``withdrawals``).  Each collection is stored whole as a JSON document::

    {"version": 1, "records": [...]}

and every ledger operation reads the entire collection, mutates it in memory
and writes it back.  Writes go through :meth:`InventoryStore.transaction`,
which stages them in a :class:`StoreSession` and commits every staged
collection together when the block exits cleanly.  An exception inside the
block discards the staged writes.

Reads favour availability: a missing, corrupt or unreadable collection loads
as the caller's default.  Writes favour consistency: a failed commit raises
:class:`~stockroom.errors.StorageError`.
"""

from __future__ import annotations

from contextlib import contextmanager
import copy
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import sqlite3
from typing import Any, Iterator, Mapping

from .errors import StorageError

__all__ = [
    "CATEGORIES",
    "ITEMS",
    "SCHEMA_VERSION",
    "WITHDRAWALS",
    "InventoryStore",
    "MemoryStore",
    "SQLiteStore",
    "StoreSession",
]

logger = logging.getLogger(__name__)

ITEMS = "items"
CATEGORIES = "categories"
WITHDRAWALS = "withdrawals"
COLLECTIONS = (ITEMS, CATEGORIES, WITHDRAWALS)

SCHEMA_VERSION = 1

_CROCKFORD_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


def _now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace(
        "+00:00", "Z"
    )


def _encode_ulid(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    digits: list[str] = []
    base = len(_CROCKFORD_ALPHABET)
    number = value
    while number:
        number, remainder = divmod(number, base)
        digits.append(_CROCKFORD_ALPHABET[remainder])
    if not digits:
        digits.append("0")
    encoded = "".join(reversed(digits))
    return encoded.rjust(26, "0")


def encode_payload(records: list[Any]) -> str:
    return json.dumps(
        {"version": SCHEMA_VERSION, "records": records},
        ensure_ascii=False,
        sort_keys=True,
    )


def decode_payload(name: str, payload: str | None, default: Any) -> Any:
    """Return the records held in ``payload`` or a copy of ``default``."""

    if payload is None:
        return copy.deepcopy(default)
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("Collection %s holds invalid JSON; using default", name)
        return copy.deepcopy(default)
    # Unversioned documents are bare lists.
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, dict) or not isinstance(raw.get("records"), list):
        logger.warning("Collection %s has an unexpected shape; using default", name)
        return copy.deepcopy(default)
    version = raw.get("version")
    if isinstance(version, int) and version > SCHEMA_VERSION:
        logger.info(
            "Collection %s was written by schema version %s (current %s)",
            name,
            version,
            SCHEMA_VERSION,
        )
    return raw["records"]


class StoreSession:
    """Staged view of the store inside one transaction."""

    def __init__(self, store: "InventoryStore", handle: Any) -> None:
        self._store = store
        self._handle = handle
        self._staged: dict[str, list[Any]] = {}
        self._sequences: dict[str, int] = {}

    @property
    def dirty(self) -> bool:
        return bool(self._staged or self._sequences)

    def load(self, name: str, default: Any = None) -> Any:
        if name in self._staged:
            return copy.deepcopy(self._staged[name])
        payload = self._store._read(self._handle, name)
        return decode_payload(name, payload, default)

    def save(self, name: str, records: list[Any]) -> None:
        if not isinstance(records, list):
            raise TypeError("records must be a list")
        self._staged[name] = copy.deepcopy(records)

    def next_id(self, sequence: str, prefix: str) -> str:
        current = self._sequences.get(sequence)
        if current is None:
            current = self._store._read_sequence(self._handle, sequence)
        next_value = current + 1
        self._sequences[sequence] = next_value
        return f"{prefix}_{_encode_ulid(next_value)}"

    def _payloads(self) -> dict[str, str]:
        return {name: encode_payload(records) for name, records in self._staged.items()}


class InventoryStore:
    """Storage capability handed to each ledger component.

    Subclasses implement the backend hooks (``_begin``, ``_read``,
    ``_read_sequence``, ``_commit``, ``_rollback`` and ``_close``).
    """

    @contextmanager
    def transaction(self) -> Iterator[StoreSession]:
        handle = self._begin()
        session = StoreSession(self, handle)
        try:
            yield session
            if session.dirty:
                self._commit(handle, session._payloads(), dict(session._sequences))
        except BaseException:
            self._rollback(handle)
            raise
        finally:
            self._close(handle)

    def load(self, name: str, default: Any = None) -> Any:
        try:
            with self.transaction() as session:
                return session.load(name, default)
        except StorageError as exc:
            logger.warning("Could not read collection %s: %s", name, exc)
            return copy.deepcopy(default)

    def save(self, name: str, records: list[Any]) -> None:
        with self.transaction() as session:
            session.save(name, records)

    def reset(self) -> None:
        raise NotImplementedError

    # Backend hooks -------------------------------------------------------

    def _begin(self) -> Any:
        raise NotImplementedError

    def _read(self, handle: Any, name: str) -> str | None:
        raise NotImplementedError

    def _read_sequence(self, handle: Any, sequence: str) -> int:
        raise NotImplementedError

    def _commit(
        self, handle: Any, payloads: Mapping[str, str], sequences: Mapping[str, int]
    ) -> None:
        raise NotImplementedError

    def _rollback(self, handle: Any) -> None:
        pass

    def _close(self, handle: Any) -> None:
        pass


class MemoryStore(InventoryStore):
    """In-process store with the same transactional semantics as SQLite."""

    def __init__(self) -> None:
        self._payloads: dict[str, str] = {}
        self._sequences: dict[str, int] = {}

    def put_raw(self, name: str, payload: str) -> None:
        """Store ``payload`` verbatim, bypassing encoding."""

        self._payloads[name] = payload

    def get_raw(self, name: str) -> str | None:
        return self._payloads.get(name)

    def reset(self) -> None:
        self._payloads.clear()
        self._sequences.clear()

    def _begin(self) -> None:
        return None

    def _read(self, handle: None, name: str) -> str | None:
        return self._payloads.get(name)

    def _read_sequence(self, handle: None, sequence: str) -> int:
        return self._sequences.get(sequence, 0)

    def _commit(
        self, handle: None, payloads: Mapping[str, str], sequences: Mapping[str, int]
    ) -> None:
        merged_payloads = {**self._payloads, **payloads}
        merged_sequences = {**self._sequences, **sequences}
        self._payloads = merged_payloads
        self._sequences = merged_sequences


class SQLiteStore(InventoryStore):
    """Store backed by a single SQLite file.

    Each transaction opens its own connection; all staged collections and
    sequence counters are written inside one SQLite transaction.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def reset(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def _begin(self) -> sqlite3.Connection:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path)
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"cannot open inventory database {self.path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            _ensure_schema(conn)
        except sqlite3.Error as exc:
            conn.close()
            raise StorageError(f"cannot open inventory database {self.path}: {exc}") from exc
        return conn

    def _read(self, conn: sqlite3.Connection, name: str) -> str | None:
        try:
            row = conn.execute(
                "SELECT payload FROM collections WHERE name = ?",
                (name,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"cannot read collection {name}: {exc}") from exc
        return None if row is None else row["payload"]

    def _read_sequence(self, conn: sqlite3.Connection, sequence: str) -> int:
        try:
            row = conn.execute(
                "SELECT last_value FROM id_sequences WHERE name = ?",
                (sequence,),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"cannot read sequence {sequence}: {exc}") from exc
        return 0 if row is None else int(row["last_value"])

    def _commit(
        self,
        conn: sqlite3.Connection,
        payloads: Mapping[str, str],
        sequences: Mapping[str, int],
    ) -> None:
        now = _now()
        try:
            for name, payload in payloads.items():
                conn.execute(
                    "INSERT INTO collections(name, payload, updated_at) VALUES(?, ?, ?)"
                    " ON CONFLICT(name) DO UPDATE SET payload = excluded.payload,"
                    " updated_at = excluded.updated_at",
                    (name, payload, now),
                )
            for sequence, value in sequences.items():
                conn.execute(
                    "INSERT INTO id_sequences(name, last_value) VALUES(?, ?)"
                    " ON CONFLICT(name) DO UPDATE SET last_value = excluded.last_value",
                    (sequence, value),
                )
            conn.commit()
        except sqlite3.Error as exc:
            logger.error("Failed to commit inventory changes to %s: %s", self.path, exc)
            raise StorageError(f"cannot write inventory database {self.path}: {exc}") from exc

    def _rollback(self, conn: sqlite3.Connection) -> None:
        try:
            conn.rollback()
        except sqlite3.Error as exc:
            logger.warning("Rollback failed on %s: %s", self.path, exc)

    def _close(self, conn: sqlite3.Connection) -> None:
        conn.close()


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS collections (
            name TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS id_sequences (
            name TEXT PRIMARY KEY,
            last_value INTEGER NOT NULL
        );
        """
    )
