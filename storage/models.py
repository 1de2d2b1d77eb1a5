"""
storage/models.py

Pydantic v2 data models for the MediLens account directory.

These models describe the shape of account data flowing between the
directory (directory.py) and the auth flow.  They are NOT ORM models;
persistence is handled entirely by a RecordStore (record_store.py).
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class AccountRecord(BaseModel):
    """A registered account as stored in the ``medilens-users`` collection."""

    email: str = Field(description="Login identifier; unique case-insensitively.")
    name: str = Field(min_length=2, description="Display name shown in the UI.")
    credential: str = Field(
        description="Stored credential material, as produced by the directory's hasher."
    )

    @field_validator("email", "name", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def _email_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("email must not be empty")
        return value


def normalize_email(email: str) -> str:
    """Return the case-insensitive lookup form of *email*."""
    return (email or "").strip().lower()
