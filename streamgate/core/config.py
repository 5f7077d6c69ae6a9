# streamgate/core/config.py
from __future__ import annotations

"""
# StreamGate — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; imports never crash without an object store.
- CSV → list helpers for allow-lists.
- Bounded signed-URL TTLs and cache lifetimes.

## Usage
    from streamgate.core.config import settings
"""

from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def _normalize_url_like(v: str | None, *, require_scheme: bool = True) -> str:
    """Normalize to a string URL without trailing slash."""
    s = (v or "").strip()
    if not s:
        return ""
    if require_scheme and not (s.startswith("http://") or s.startswith("https://")):
        s = "https://" + s
    return s.rstrip("/")


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global gateway settings sourced from environment.

    Object store:
        - Any S3-compatible endpoint. When `CLOUDFLARE_ACCOUNT_ID` is set and
          no explicit endpoint is given, the R2 endpoint is derived from it.

    Delivery:
        - `SIGNED_URL_TTL_SECONDS` applies to every signed playlist/segment reference.
        - Cache lifetimes are emitted as `private, max-age=<n>`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "StreamGate"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Object store (S3 / R2) ────────────────────────────────
    S3_BUCKET_NAME: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None
    S3_REGION: str = "auto"
    CLOUDFLARE_ACCOUNT_ID: Optional[str] = None
    S3_ACCESS_KEY_ID: Optional[str] = None
    S3_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    S3_CONNECT_TIMEOUT: int = Field(3, ge=1, le=60)
    S3_READ_TIMEOUT: int = Field(10, ge=1, le=300)
    S3_MAX_ATTEMPTS: int = Field(3, ge=1, le=10)

    # ── Delivery ──────────────────────────────────────────────
    SIGNED_URL_TTL_SECONDS: int = Field(3600, ge=60, le=24 * 60 * 60)
    PLAYLIST_CACHE_SECONDS: int = Field(3600, ge=0, le=24 * 60 * 60)
    SEGMENT_CACHE_SECONDS: int = Field(86400, ge=0, le=7 * 24 * 60 * 60)
    SEGMENT_EXTENSION: str = ".ts"
    SEGMENT_FALLBACK_CONTENT_TYPE: str = "video/MP2T"
    SEGMENT_CORS_ORIGIN: str = "*"
    STREAM_CHUNK_SIZE: int = Field(64 * 1024, ge=1024, le=8 * 1024 * 1024)
    PROXY_BASE_URL: str = ""  # empty → same-origin relative URLs
    QUALITY_ALLOWLIST: Optional[str] = None  # CSV, e.g. "360p,480p,720p,1080p"
    CATALOG_ID_PATTERN: str = r"^[0-9a-fA-F]{24}$"
    UNIFIED_SEGMENT_DELIVERY: Literal["proxy", "redirect"] = "proxy"

    # ── Catalog (dev seed) ────────────────────────────────────
    CATALOG_FILE: Optional[str] = None

    # ── CORS ─────────────────────────────────────────────────
    FRONTEND_ORIGINS: Optional[str] = None  # CSV

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("S3_ENDPOINT_URL", mode="before")
    @classmethod
    def _normalize_endpoint(cls, v: str | None) -> str | None:
        s = (v or "").strip()
        if not s:
            return None
        return _normalize_url_like(s)

    @field_validator("PROXY_BASE_URL", mode="before")
    @classmethod
    def _normalize_proxy_base(cls, v: str | None) -> str:
        s = (v or "").strip()
        if not s:
            return ""
        return _normalize_url_like(s)

    @field_validator("SEGMENT_EXTENSION", mode="before")
    @classmethod
    def _normalize_extension(cls, v: str | None) -> str:
        s = (v or ".ts").strip()
        return s if s.startswith(".") else f".{s}"

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def s3_endpoint(self) -> Optional[str]:
        """Explicit endpoint, else the R2 endpoint for `CLOUDFLARE_ACCOUNT_ID`."""
        if self.S3_ENDPOINT_URL:
            return self.S3_ENDPOINT_URL
        if self.CLOUDFLARE_ACCOUNT_ID:
            return f"https://{self.CLOUDFLARE_ACCOUNT_ID}.r2.cloudflarestorage.com"
        return None

    @property
    def quality_allowlist(self) -> List[str]:
        """List form of `QUALITY_ALLOWLIST` (empty → no allow-list check)."""
        return _split_csv(self.QUALITY_ALLOWLIST)

    @property
    def frontend_origins_list(self) -> List[str]:
        return _split_csv(self.FRONTEND_ORIGINS)


# Singleton instance
settings = Settings()
