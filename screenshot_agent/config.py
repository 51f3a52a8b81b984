from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


SCREENSHOT_FOLDER_NAME = "screenshots"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return int(raw)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return float(raw)


def _csv_env(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass(frozen=True)
class CloudinaryCredentials:
    cloud_name: str | None = None
    api_key: str | None = None
    api_secret: str | None = None

    @property
    def complete(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)


@dataclass(frozen=True)
class Settings:
    """Process configuration, read once at startup and never mutated."""

    image_dir: Path = field(default_factory=lambda: Path.cwd() / SCREENSHOT_FOLDER_NAME)
    site_url: str = "http://localhost:3000"
    host: str = "0.0.0.0"
    port: int = 3000
    navigation_timeout_ms: int = 60000
    upload_timeout_s: float = 30.0
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = ("*",)
    cloudinary: CloudinaryCredentials = field(default_factory=CloudinaryCredentials)

    @classmethod
    def from_env(cls) -> "Settings":
        image_dir = os.getenv("IMG_DIRECTORY", "").strip()
        return cls(
            image_dir=Path(image_dir).resolve() if image_dir else Path.cwd() / SCREENSHOT_FOLDER_NAME,
            site_url=(os.getenv("SITE_URL", "").strip() or "http://localhost:3000").rstrip("/"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_int_env("PORT", 3000),
            navigation_timeout_ms=_int_env("NAVIGATION_TIMEOUT_MS", 60000),
            upload_timeout_s=_float_env("UPLOAD_TIMEOUT_S", 30.0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=tuple(_csv_env("CORS_ORIGINS", ["*"])),
            cloudinary=CloudinaryCredentials(
                cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME") or None,
                api_key=os.getenv("CLOUDINARY_API_KEY") or None,
                api_secret=os.getenv("CLOUDINARY_API_SECRET") or None,
            ),
        )
