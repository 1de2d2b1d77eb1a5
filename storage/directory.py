"""
storage/directory.py

Account directory for the MediLens portal.

Responsibilities
----------------
- Registering accounts, unique by case-insensitive email.
- Looking accounts up and verifying candidate passwords.
- Replacing an account's credential on password reset.

Every mutating call reads the whole collection from the RecordStore,
modifies it, and writes the whole collection back.  Nothing is cached
between calls, so several directories may share one store; they are NOT
protected against each other (last writer wins).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError as SchemaError

from config.settings import Settings, get_settings
from pipelines.errors import DuplicateAccount, NotFound
from storage.models import AccountRecord, normalize_email
from storage.passwords import CredentialHasher, Pbkdf2Hasher, get_hasher
from storage.record_store import EncryptedJsonFileRecordStore, JsonFileRecordStore, RecordStore

logger = logging.getLogger(__name__)


class AccountDirectory:
    def __init__(self, store: RecordStore, hasher: CredentialHasher | None = None):
        self.store = store
        self.hasher: CredentialHasher = hasher or Pbkdf2Hasher()

    # -------------------------
    # Internal helpers
    # -------------------------
    def _load(self) -> list[dict[str, Any]]:
        return self.store.get_all()

    @staticmethod
    def _index_of(records: list[dict[str, Any]], email: str) -> int | None:
        key = normalize_email(email)
        for i, r in enumerate(records):
            if normalize_email(str(r.get("email", ""))) == key:
                return i
        return None

    @staticmethod
    def _to_record(raw: dict[str, Any]) -> AccountRecord | None:
        try:
            return AccountRecord(**raw)
        except SchemaError as exc:
            logger.warning("Skipping malformed account record for '%s': %s", raw.get("email"), exc)
            return None

    # -------------------------
    # Queries
    # -------------------------
    def find(self, email: str) -> AccountRecord | None:
        """Case-insensitive lookup; ``None`` if no account matches."""
        records = self._load()
        idx = self._index_of(records, email)
        if idx is None:
            return None
        return self._to_record(records[idx])

    def list_accounts(self) -> list[AccountRecord]:
        out: list[AccountRecord] = []
        for raw in self._load():
            record = self._to_record(raw)
            if record is not None:
                out.append(record)
        return out

    def __len__(self) -> int:
        return len(self._load())

    def verify(self, email: str, password: str) -> AccountRecord | None:
        """
        Return the account if *password* matches its stored credential,
        else ``None``.  Does not say which of the two checks failed.
        """
        record = self.find(email)
        if record is None:
            logger.debug("verify: unknown email '%s'", email)
            return None
        if not self.hasher.verify(password, record.credential):
            logger.debug("verify: wrong password for '%s'", email)
            return None
        return record

    # -------------------------
    # Mutations
    # -------------------------
    def register(self, email: str, name: str, credential: str) -> AccountRecord:
        """
        Create and persist a new account.

        Args:
            email:      Login identifier (case-insensitive).
            name:       Display name.
            credential: Plaintext password; stored through ``self.hasher``.

        Raises:
            DuplicateAccount: If the email is already registered.
        """
        records = self._load()
        if self._index_of(records, email) is not None:
            raise DuplicateAccount()

        record = AccountRecord(email=email, name=name, credential=self.hasher.hash(credential))
        records.append(record.model_dump())
        self.store.put_all(records)

        logger.info("Registered account '%s' (scheme=%s)", record.email, self.hasher.scheme)
        return record

    def update_credential(self, email: str, new_credential: str) -> None:
        """
        Replace the stored credential of the account matching *email*.

        Raises:
            NotFound: If no account matches.
        """
        records = self._load()
        idx = self._index_of(records, email)
        if idx is None:
            raise NotFound()

        records[idx]["credential"] = self.hasher.hash(new_credential)
        self.store.put_all(records)
        logger.info("Updated credential for '%s'", records[idx].get("email"))


def build_store(settings: Settings) -> RecordStore:
    if settings.store_backend == "encrypted":
        return EncryptedJsonFileRecordStore(settings.store_path, settings.store_collection)
    return JsonFileRecordStore(settings.store_path, settings.store_collection)


_DIRECTORY_SINGLETON: Optional[AccountDirectory] = None


def get_directory() -> AccountDirectory:
    global _DIRECTORY_SINGLETON
    if _DIRECTORY_SINGLETON is None:
        settings = get_settings()
        _DIRECTORY_SINGLETON = AccountDirectory(build_store(settings), get_hasher(settings.hash_scheme))
        logger.info(
            "Account directory ready (store=%s, scheme=%s)", settings.store_path, settings.hash_scheme
        )
    return _DIRECTORY_SINGLETON
