from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from .body import parse_body, parse_url_query_params
from .config import Settings
from .errors import RenderError, ValidationError
from .models import ScreenshotRequest
from .pipeline import ScreenshotPipeline
from .validation import is_valid_url


# Load environment variables from the project root .env, then the working directory's.
_HERE = Path(__file__).resolve()
_PROJECT_ROOT = _HERE.parents[1]
load_dotenv(_PROJECT_ROOT / ".env", override=False)
load_dotenv(Path.cwd() / ".env", override=False)

settings = Settings.from_env()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

GENERIC_ERROR = "Unexpected error. Contact admin."
NOT_FOUND_ERROR = "404 Not Found"

_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}


def _bad_request() -> Response:
    return Response(status_code=400, headers={"Location": "/"})


def create_app(settings: Settings, pipeline: ScreenshotPipeline | None = None) -> FastAPI:
    app = FastAPI(title="Screenshot Agent", version="0.1.0")
    pipeline = pipeline or ScreenshotPipeline(settings)
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.post("/screenshot")
    async def screenshot_endpoint(request: Request):
        raw = await request.body()
        logger.info("Request to create screenshot for: %s", raw[:200].decode("utf-8", errors="replace"))

        # Body fields win over query parameters.
        fields = parse_url_query_params(str(request.url)) or {}
        fields.update(parse_body(raw))

        try:
            req = ScreenshotRequest.model_validate(fields)
        except PydanticValidationError as e:
            logger.info("Rejected screenshot request: %s", e)
            return _bad_request()
        if not is_valid_url(req.target_url):
            return _bad_request()

        try:
            result = await pipeline.generate(req)
        except ValidationError:
            return _bad_request()
        except RenderError as e:
            logger.error("Screenshot of %s failed: %s", req.target_url, e, exc_info=e.__cause__ is not None)
            return JSONResponse({"error": str(e)}, status_code=500)
        except Exception:
            logger.exception("Screenshot of %s failed", req.target_url)
            return JSONResponse({"error": GENERIC_ERROR}, status_code=500)
        return JSONResponse(result.to_wire())

    @app.get("/screenshot/{filename}")
    async def serve_screenshot(filename: str):
        path = pipeline.resolver.locate(filename)
        if path is None:
            return JSONResponse({"error": NOT_FOUND_ERROR}, status_code=404)
        media_type = _CONTENT_TYPES.get(path.suffix.lower(), "application/octet-stream")
        return FileResponse(path, media_type=media_type)

    return app


app = create_app(settings)


def run() -> None:
    import uvicorn

    logger.info("Server is running. Get screenshot by: POST http://localhost:%s/screenshot", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
