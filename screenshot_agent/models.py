from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

FileType = Literal["png", "jpeg"]

SUPPORTED_FILE_TYPES: tuple[str, ...] = ("png", "jpeg")
DEFAULT_FILE_TYPE = "png"


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _as_positive_int(value: Any) -> int | None:
    number = _as_number(value)
    if number is None or number <= 0 or not number.is_integer():
        return None
    return int(number)


def _as_optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


class Clip(BaseModel):
    """Capture rectangle in CSS pixels. Fields that are not numbers stay unset."""

    x: float | None = None
    y: float | None = None
    width: float | None = None
    height: float | None = None

    @field_validator("x", "y", "width", "height", mode="before")
    @classmethod
    def _coerce_number(cls, v: Any) -> float | None:
        return _as_number(v)

    def as_dict(self) -> dict[str, float]:
        return self.model_dump(exclude_none=True)


class ScreenshotRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    target_url: str | None = Field(None, alias="url")
    file_type: FileType = Field(DEFAULT_FILE_TYPE, alias="fileType")
    width: int | None = None
    height: int | None = None
    clip: Clip | None = None
    storage_service: str | None = Field(None, alias="storageService")
    image_id: str | None = Field(None, alias="imageId")
    workspace: str | None = None
    folder: str | None = None

    @field_validator("target_url", mode="before")
    @classmethod
    def _url_as_str(cls, v: Any) -> str | None:
        return v.strip() if isinstance(v, str) else None

    @field_validator("file_type", mode="before")
    @classmethod
    def _supported_file_type(cls, v: Any) -> str:
        if v is None or v == "":
            return DEFAULT_FILE_TYPE
        # Exact match only: "JPEG" or "jpg" fall back like any other unsupported value.
        if v not in SUPPORTED_FILE_TYPES:
            logger.warning(
                "Requested file type %r is not supported. Creating default type instead: %s",
                v,
                DEFAULT_FILE_TYPE,
            )
            return DEFAULT_FILE_TYPE
        return v

    @field_validator("width", "height", mode="before")
    @classmethod
    def _dimension(cls, v: Any) -> int | None:
        return _as_positive_int(v)

    @field_validator("clip", mode="before")
    @classmethod
    def _clip_mapping(cls, v: Any) -> Any:
        # URL-encoded bodies can only carry the clip as a JSON string.
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except ValueError:
                return None
        if isinstance(v, (dict, Clip)):
            return v
        return None

    @field_validator("storage_service", "image_id", "workspace", "folder", mode="before")
    @classmethod
    def _optional_str(cls, v: Any) -> str | None:
        return _as_optional_str(v)

    @property
    def viewport(self) -> dict[str, int] | None:
        if self.width and self.height:
            return {"width": self.width, "height": self.height}
        return None


@dataclass(frozen=True)
class StoredArtifact:
    local_path: Path
    file_type: str
    workspace: str
    folder: str = ""


@dataclass(frozen=True)
class UploadResult:
    permalink: str
    provider_metadata: dict[str, Any] = field(default_factory=dict)


class ScreenshotResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    screenshot: str
    file_type: str = Field(..., alias="fileType")
    source: str
    upload_info: dict[str, Any] | None = Field(None, alias="uploadInfo")
    workspace: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
