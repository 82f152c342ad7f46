"""Photo Gallery API — FastAPI Application.

This module is the single entry point for the web application.  It defines
the application factory, the module-level ``app`` instance, all REST API
routes, the error handlers, and the ``main()`` CLI function that launches
the uvicorn server.

Architecture
------------
The application is a thin HTTP layer over three core services, built once
per application in the lifespan handler and stored on ``app.state``:

- :class:`~photogallery.core.ranking.RankingEngine` — ranked, paginated
  listing of the catalog.
- :class:`~photogallery.core.clicks.ClickRecorder` — per-photo click
  counters.
- :class:`~photogallery.core.blobs.ImageService` — image passthrough from
  the blob store.

All durable state lives in the key-value and blob stores; route handlers
keep nothing between requests.

Endpoints
---------
========  ================================  ================================
Method    Path                              Purpose
========  ================================  ================================
GET       ``/api/photos``                   Ranked, paginated photo listing
POST      ``/api/click``                    Record one click on a photo
GET       ``/api/image/{kind}/{filename}``  Raw thumbnail or full-size image
OPTIONS   ``/api/*``                        CORS preflight (middleware)
========  ================================  ================================

Errors
------
Every error response is a JSON object with an ``error`` key.  Responses
from ``/api/click`` additionally carry ``"success": false``.  Store failures
are logged in full and reported to the client as a generic 500.

Usage
-----
CLI (installed entry point)::

    photogallery

Direct invocation::

    python -m photogallery.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from photogallery import __version__
from photogallery.api.models import ClickRequest
from photogallery.core.blobs import CACHE_CONTROL, BlobStore, ImageService, create_blob_store
from photogallery.core.clicks import ClickRecorder
from photogallery.core.config import GalleryConfig, config
from photogallery.core.errors import GalleryError, InvalidArgument
from photogallery.core.kv import KeyValueStore, create_kv_store
from photogallery.core.ranking import RankingEngine
from photogallery.core.store import MetadataStore, load_catalog_file

logger = logging.getLogger(__name__)

CLICK_PATH = "/api/click"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


# ---------------------------------------------------------------------------
# Query parsing helpers.
# ---------------------------------------------------------------------------


def _positive_int(raw: str | None, default: int) -> int:
    """Parse a positive integer query value, falling back to *default*.

    The listing endpoint never rejects pagination input: missing values,
    non-numeric text and values below 1 all resolve to the default.
    """
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value >= 1 else default


# ---------------------------------------------------------------------------
# Error responses.
# ---------------------------------------------------------------------------


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body: dict = {"error": message}
    if request.url.path == CLICK_PATH:
        body = {"success": False, **body}
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def gallery_error_handler(request: Request, exc: GalleryError) -> JSONResponse:
    """Translate core errors into JSON error responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return _error_response(request, exc.status_code, exc.client_message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unmatched routes (404) and wrong methods (405) get JSON bodies too."""
    return _error_response(request, exc.status_code, str(exc.detail), headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug(f"Rejected request to {request.url.path}: {exc.errors()}")
    return _error_response(request, 400, "Invalid request body")


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort 500.

    This handler runs outside ``CORSMiddleware``, so it sets the CORS
    headers itself.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(request, 500, "Internal Server Error", headers=CORS_HEADERS)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------

router = APIRouter(prefix="/api")


@router.get("/photos")
async def list_photos(
    request: Request,
    category: str | None = None,
    page: str | None = None,
    per_page: str | None = Query(default=None, alias="perPage"),
) -> dict:
    """Return one page of photos ranked by click count.

    Args:
        category: Category to filter by.  Omitted or ``"all"`` lists every
            category.
        page: One-based page number (default 1).
        per_page: Page size (``perPage``, default 30).

    Returns:
        Dictionary with keys ``photos``, ``totalCount``, ``page``,
        ``perPage``, and ``totalPages``.
    """
    cfg: GalleryConfig = request.app.state.config
    ranking: RankingEngine = request.app.state.ranking

    result = await ranking.list_photos(
        category,
        page=_positive_int(page, 1),
        per_page=_positive_int(per_page, cfg.default_per_page),
    )
    return result.to_response()


@router.post("/click")
async def track_click(request: Request, req: ClickRequest | None = Body(default=None)) -> dict:
    """Record a click on a photo.

    Args:
        req: Validated :class:`ClickRequest` payload.

    Returns:
        Dictionary with ``success`` and the photo's new ``clicks`` count.

    Raises:
        InvalidArgument: 400 if ``photoId`` is missing or empty.
    """
    recorder: ClickRecorder = request.app.state.recorder
    clicks = await recorder.record_click(req.photo_id if req else None)
    return {"success": True, "clicks": clicks}


@router.get("/image/{kind}/{filename}")
async def get_image(request: Request, kind: str, filename: str) -> Response:
    """Serve a stored image.

    Args:
        kind: ``thumbnails`` or ``photos``.
        filename: Stored image filename (e.g. ``travel-1.jpg``).

    Returns:
        The raw image bytes with a long-lived public cache header.

    Raises:
        InvalidArgument: 400 for an unknown kind.
        NotFound: 404 if the image is not stored.
    """
    images: ImageService = request.app.state.images
    obj = await images.get_image(kind, filename)
    return Response(
        content=obj.body,
        media_type=obj.content_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.get("/image/{rest:path}")
async def invalid_image_path(rest: str) -> Response:
    """Any image path that is not exactly ``{kind}/{filename}``."""
    raise InvalidArgument("Invalid image path")


async def answer_options(request: Request, call_next) -> Response:
    """Answer OPTIONS for any API path with an empty CORS response.

    Other methods on unknown ``/api`` paths still resolve to 404.
    """
    if request.method == "OPTIONS" and request.url.path.startswith("/api/"):
        return Response(status_code=200, headers=CORS_HEADERS)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    cfg: GalleryConfig | None = None,
    *,
    kv: KeyValueStore | None = None,
    blobs: BlobStore | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        cfg: Configuration to use.  Defaults to the global ``config``.
        kv: Key-value backend override.  Built from *cfg* when omitted.
        blobs: Blob backend override.  Built from *cfg* when omitted.

    Returns:
        A configured :class:`FastAPI` instance.
    """
    cfg = cfg or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Wire the core services on startup and release the store on shutdown.

        When ``catalog_file`` is configured, its entries are written to the
        catalog key before the first request is served.
        """
        # --- Startup -----------------------------------------------------------
        kv_store = kv if kv is not None else create_kv_store(cfg)
        blob_store = blobs if blobs is not None else create_blob_store(cfg)

        store = MetadataStore.from_config(kv_store, cfg)
        if cfg.catalog_file is not None:
            photos = load_catalog_file(cfg.catalog_file)
            await store.put_catalog(photos)
            logger.info(f"Seeded catalog from {cfg.catalog_file}")

        app.state.config = cfg
        app.state.store = store
        app.state.ranking = RankingEngine(store)
        app.state.recorder = ClickRecorder(store, require_known_photo=cfg.require_known_photo)
        app.state.images = ImageService(blob_store)
        logger.info("Photo gallery services initialised.")

        yield  # Application runs here.

        # --- Shutdown ----------------------------------------------------------
        await kv_store.close()
        logger.info("Key-value store closed on shutdown.")

    app = FastAPI(
        title="Photo Gallery API",
        description="Ranked, paginated photo listing with click tracking.",
        version=__version__,
        lifespan=lifespan,
    )

    app.middleware("http")(answer_options)

    # Allow cross-origin requests from any origin; the gallery front-end may be
    # served from a different host than the API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.add_exception_handler(GalleryError, gallery_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(router)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~photogallery.core.config.config` (which
    loads from ``PHOTOGALLERY_SERVER_HOST`` and ``PHOTOGALLERY_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:8787``.

    This function is registered as the ``photogallery`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "photogallery.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
