from __future__ import annotations

import glob
import time
from pathlib import Path
from urllib.parse import urlsplit

PUBLIC_ROUTE = "/screenshot"


def _segments(value: str | None) -> list[str]:
    if not value:
        return []
    parts = value.replace("\\", "/").split("/")
    return [p.strip() for p in parts if p.strip() not in ("", ".", "..")]


def normalize_segments(value: str | None) -> str:
    """Namespace with separators unified and ``.``/``..``/empty parts removed."""
    return "/".join(_segments(value))


def timestamp_stem() -> str:
    return str(time.time_ns())


def default_workspace(url: str) -> str:
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


class PathResolver:
    """Maps artifacts to local paths and public retrieval URLs.

    Writes are namespaced as ``{image_dir}/{workspace}/{folder}/{stem}.{type}``
    while the public URL only carries the basename, so reads go through
    :meth:`locate` instead of joining the URL back onto ``image_dir``.
    """

    def __init__(self, image_dir: Path, site_url: str):
        self.image_dir = Path(image_dir)
        self.site_url = site_url.rstrip("/")

    def artifact_path(self, workspace: str | None, folder: str | None, stem: str, file_type: str) -> Path:
        directory = self.image_dir.joinpath(*_segments(workspace), *_segments(folder))
        return (directory / f"{stem}.{file_type}").absolute()

    def public_url(self, path: Path | str) -> str:
        return f"{self.site_url}{PUBLIC_ROUTE}/{Path(path).name}"

    def locate(self, filename: str) -> Path | None:
        if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
            return None
        flat = self.image_dir / filename
        if flat.is_file():
            return flat
        if not self.image_dir.is_dir():
            return None
        for candidate in sorted(self.image_dir.rglob(glob.escape(filename))):
            if candidate.is_file():
                return candidate
        return None
