from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from file_browser.api.pages import listing_href, render_listing
from file_browser.config import Settings
from file_browser.services.file_catalog import (
    DirectoryNotFoundError,
    DirectoryUnreadableError,
    DownloadIsDirectory,
    FileCatalog,
    ListingRequest,
)
from file_browser.services.paths import InvalidPathError

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

logger = logging.getLogger("file_browser.api")


def create_app(settings: Settings) -> FastAPI:
    """Build an app serving ``settings.root_dir``; each app owns its own catalog."""

    catalog = FileCatalog(settings.root_dir, confine_symlinks=settings.confine_symlinks)

    app = FastAPI(
        title="File Browser",
        description="Directory browser and downloader confined to a single root.",
        version="0.1.0",
    )
    app.state.catalog = catalog
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.middleware("http")
    async def add_csp_header(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; style-src 'self' 'unsafe-inline';",
        )
        return response

    @app.get("/", response_class=HTMLResponse)
    def browse(
        path: str = Query(default="", description="Relative path to browse"),
        q: str = Query(default="", description="Case-insensitive name filter"),
        sort: str = Query(default="name", description="Sort key: name, size or mod"),
        order: str = Query(default="asc", description="Sort order: asc or desc"),
    ):
        listing_request = ListingRequest.from_query({"path": path, "q": q, "sort": sort, "order": order})
        try:
            result = catalog.build_listing(listing_request)
        except InvalidPathError as exc:
            raise HTTPException(status_code=400, detail="invalid path") from exc
        except DirectoryNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except DirectoryUnreadableError as exc:
            logger.warning("Listing failed for %r: %s", listing_request.path, exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc

        return HTMLResponse(content=render_listing(result))

    @app.get("/download")
    def download(path: str = Query(default="", description="Relative path of the file")):
        try:
            absolute = catalog.resolve_download(path)
        except InvalidPathError as exc:
            raise HTTPException(status_code=400, detail="invalid path") from exc
        except DownloadIsDirectory as exc:
            return RedirectResponse(url=listing_href(exc.relative_path), status_code=303)
        except FileNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except DirectoryUnreadableError as exc:
            logger.warning("Download failed for %r: %s", path, exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc

        return FileResponse(path=absolute, filename=absolute.name)

    return app
