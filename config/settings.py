from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, PositiveInt, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from ``MEDILENS_*`` environment variables.

    Keep all storage, credential and model config centralized here.
    Secrets (APP_DATA_KEY, HF_TOKEN) are read where they are used.
    Invalid values fail at construction with a pydantic ValidationError.
    """

    model_config = SettingsConfigDict(env_prefix="MEDILENS_", populate_by_name=True, extra="ignore")

    data_dir: Path = Path("data")
    store_backend: Literal["json", "encrypted"] = Field(
        "json", validation_alias=AliasChoices("store_backend", "MEDILENS_STORE")
    )
    store_collection: str = Field(
        "medilens-users", min_length=1, validation_alias=AliasChoices("store_collection", "MEDILENS_COLLECTION")
    )
    hash_scheme: Literal["pbkdf2", "plaintext"] = "pbkdf2"

    # simulated latency, seconds
    submit_delay: float = Field(1.0, ge=0)
    login_handoff_delay: float = Field(1.0, ge=0)
    signup_handoff_delay: float = Field(1.5, ge=0)
    reset_revert_delay: float = Field(2.0, ge=0)
    reply_latency_min: float = Field(1.5, ge=0)
    reply_latency_max: float = Field(2.5, ge=0)

    model_name: str = "google/medgemma-4b-it"
    max_new_tokens: PositiveInt = 384

    @model_validator(mode="after")
    def _latency_range(self) -> "Settings":
        if self.reply_latency_max < self.reply_latency_min:
            raise ValueError("reply_latency_max must not be below reply_latency_min")
        return self

    @property
    def store_path(self) -> Path:
        suffix = ".enc" if self.store_backend == "encrypted" else ".json"
        return self.data_dir / f"medilens_store{suffix}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
