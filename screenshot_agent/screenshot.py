from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .errors import RenderError
from .models import ScreenshotRequest

logger = logging.getLogger(__name__)

_CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


@dataclass(frozen=True)
class RenderOptions:
    file_type: str
    viewport: dict[str, int] | None = None
    clip: dict[str, float] | None = None

    @property
    def full_page(self) -> bool:
        return self.clip is None


def render_options_for(request: ScreenshotRequest) -> RenderOptions:
    """Derive the viewport and clip actually handed to the browser.

    An explicit clip is passed through as given, even when partial. When a
    viewport was requested and the clip has no width, the clip becomes the
    viewport rectangle so nothing beyond the viewport is captured. With
    neither, the whole scrollable page is captured.
    """
    viewport = request.viewport
    clip = request.clip.as_dict() if request.clip else None
    if viewport and not (clip or {}).get("width"):
        clip = {
            "x": (clip or {}).get("x", 0),
            "y": (clip or {}).get("y", 0),
            "width": viewport["width"],
            "height": viewport["height"],
        }
    return RenderOptions(file_type=request.file_type, viewport=viewport, clip=clip)


class ScreenshotRenderer:
    """Runs one isolated headless Chromium session per capture."""

    def __init__(self, navigation_timeout_ms: int = 60000):
        self.navigation_timeout_ms = navigation_timeout_ms

    async def capture(self, url: str, options: RenderOptions, path: Path) -> bytes:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            data = await self._capture(url, options, path)
            if not data:
                raise RenderError("Image not created")
        except PlaywrightTimeoutError as e:
            path.unlink(missing_ok=True)
            raise RenderError(f"Navigation timed out after {self.navigation_timeout_ms} ms") from e
        except PlaywrightError as e:
            path.unlink(missing_ok=True)
            raise RenderError("Browser failed to render the page") from e
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        logger.info("Captured %s into %s", url, path)
        return data

    async def _capture(self, url: str, options: RenderOptions, path: Path) -> bytes:
        async with async_playwright() as p:
            try:
                browser = await p.chromium.launch(headless=True, args=_CHROMIUM_ARGS)
            except PlaywrightError as e:
                raise RenderError("Browser failed to launch") from e
            try:
                context_kwargs = {}
                if options.viewport:
                    context_kwargs["viewport"] = options.viewport
                context = await browser.new_context(**context_kwargs)
                page = await context.new_page()
                await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)

                shot_kwargs = {
                    "path": str(path),
                    "type": options.file_type,
                    "scale": "css",
                }
                if options.clip is not None:
                    shot_kwargs["clip"] = options.clip
                else:
                    shot_kwargs["full_page"] = True
                logger.debug("Capturing %s into %s (%s)", url, path, shot_kwargs)
                return await page.screenshot(**shot_kwargs)
            finally:
                await browser.close()
