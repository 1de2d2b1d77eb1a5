"""
storage/record_store.py

Tiny record-store layer standing in for the browser's localStorage.

A RecordStore holds one named collection of plain dicts and exposes only
two operations: read the whole collection and replace the whole
collection.  The account directory builds its read-modify-write logic on
top of that.

- InMemoryRecordStore           — for tests and throwaway sessions
- JsonFileRecordStore           — ./data/medilens_store.json, atomic writes
- EncryptedJsonFileRecordStore  — same document, Fernet-encrypted at rest

Absent files and absent or empty collections all read as "no records".
Any I/O or decoding problem surfaces as RecordStoreError.
There is no locking or versioning: two writers sharing a file can lose
updates.

NOT for real PHI usage.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "medilens-users"
DEFAULT_STORE_PATH = Path("data") / "medilens_store.json"

DATA_KEY_ENV = "APP_DATA_KEY"


class RecordStoreError(RuntimeError):
    """Raised when the persisted document cannot be read or written."""


class RecordStore(Protocol):
    collection: str

    def get_all(self) -> list[dict[str, Any]]: ...

    def put_all(self, records: list[dict[str, Any]]) -> None: ...


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Cannot read record store %s: %s", path, exc)
        raise RecordStoreError(f"{path}: cannot read record store") from exc


def _atomic_write_text(path: Path, text: str) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)
    except OSError as exc:
        logger.error("Cannot write record store %s: %s", path, exc)
        raise RecordStoreError(f"{path}: cannot write record store") from exc


def _collection_from(document: Any, collection: str, path: Path) -> list[dict[str, Any]]:
    if not isinstance(document, dict):
        raise RecordStoreError(f"{path}: expected a JSON object at top level")
    records = document.get(collection) or []
    if not isinstance(records, list):
        raise RecordStoreError(f"{path}: collection '{collection}' is not a list")
    kept: list[dict[str, Any]] = []
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning(
                "Skipping entry %d in %s[%s]: expected an object, got %s",
                position, path, collection, type(record).__name__,
            )
            continue
        kept.append(dict(record))
    return kept


class InMemoryRecordStore:
    def __init__(self, records: list[dict[str, Any]] | None = None, collection: str = DEFAULT_COLLECTION):
        self.collection = collection
        self._records: list[dict[str, Any]] = [dict(r) for r in records or []]

    def get_all(self) -> list[dict[str, Any]]:
        # copies, so callers cannot mutate the stored state in place
        return [dict(r) for r in self._records]

    def put_all(self, records: list[dict[str, Any]]) -> None:
        self._records = [dict(r) for r in records]


class JsonFileRecordStore:
    """
    Stores ``{collection: [...]}`` as pretty-printed JSON.

    Other top-level keys already present in the file are preserved on write.
    """

    def __init__(self, path: Path = DEFAULT_STORE_PATH, collection: str = DEFAULT_COLLECTION):
        self.path = Path(path)
        self.collection = collection

    def _decode(self, raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Record store %s is not valid JSON: %s", self.path, exc)
            raise RecordStoreError(f"{self.path}: invalid JSON") from exc

    def _encode(self, document: dict[str, Any]) -> str:
        return json.dumps(document, indent=2, default=str)

    def _read_document(self) -> Any:
        if not self.path.exists():
            return {}
        raw = _read_text(self.path)
        if not raw.strip():
            return {}
        return self._decode(raw)

    def get_all(self) -> list[dict[str, Any]]:
        return _collection_from(self._read_document(), self.collection, self.path)

    def put_all(self, records: list[dict[str, Any]]) -> None:
        document = self._read_document()
        if not isinstance(document, dict):
            document = {}
        document[self.collection] = list(records)
        _atomic_write_text(self.path, self._encode(document))
        logger.debug("Persisted %d record(s) to %s[%s]", len(records), self.path, self.collection)


# ---------------------------------------------------------------------------
# Fernet at rest
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _process_fernet() -> Fernet:
    """
    Fernet built from APP_DATA_KEY, or a one-off in-memory key when unset.

    The fallback key dies with the process, so an encrypted store written
    under it cannot be read after a restart.
    """
    raw_key = os.environ.get(DATA_KEY_ENV)
    if raw_key:
        return Fernet(raw_key.encode())
    logger.warning(
        "%s is not set; using a temporary key. The encrypted account store "
        "will not be readable after a restart.",
        DATA_KEY_ENV,
    )
    return Fernet(Fernet.generate_key())


class EncryptedJsonFileRecordStore(JsonFileRecordStore):
    """
    Same document as :class:`JsonFileRecordStore`, but the whole file is a
    single Fernet token.  ``key`` overrides the process key from APP_DATA_KEY.
    """

    def __init__(
        self,
        path: Path = DEFAULT_STORE_PATH.with_suffix(".enc"),
        collection: str = DEFAULT_COLLECTION,
        key: Optional[bytes] = None,
    ):
        super().__init__(path, collection)
        self._fernet = Fernet(key) if key is not None else _process_fernet()

    def _decode(self, raw: str) -> Any:
        try:
            plaintext = self._fernet.decrypt(raw.strip().encode("utf-8"))
        except InvalidToken as exc:
            logger.error("Cannot decrypt record store %s: wrong key or corrupted token", self.path)
            raise RecordStoreError(f"{self.path}: cannot decrypt record store") from exc
        return super()._decode(plaintext.decode("utf-8", errors="replace"))

    def _encode(self, document: dict[str, Any]) -> str:
        plaintext = json.dumps(document, ensure_ascii=False, default=str).encode("utf-8")
        return self._fernet.encrypt(plaintext).decode("utf-8")
