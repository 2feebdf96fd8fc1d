"""
Main API module for LinkTrack.

Responsibilities:
    - Expose REST endpoints for creating short links and redirecting
    - Record a visit (with classified device details) on every redirect
    - Remember who created each link (address and classified device)
    - Provide per-link analytics reports

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - Storage chosen once from configuration (memory by default, PostgreSQL optional).
    - LinkManager orchestrates validation, redirects, visit recording and analytics.

LLM Prompt Example:
    "Explain how to structure a FastAPI service with an application factory,
    injected dependencies, and a clean separation between API and business logic."
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from linktrack.analytics.analytics import AnalyticsAggregator
from linktrack.analytics.recorder import VisitRecorder
from linktrack.config import load_settings
from linktrack.errors import NotFoundError, StoreError, ValidationError
from linktrack.manager.link_manager import LinkManager
from linktrack.models import AnalyticsReport, CreatorInfo, RequestMetadata, VisitEvent
from linktrack.storage.base import BaseStorage
from linktrack.storage.storage_factory import get_storage


class ShortenRequest(BaseModel):
    """
    Request payload for creating a new short link.

    `originalUrl` is left untyped so a missing or non-string value reaches
    the storage validation and comes back as a 400, not a schema 422.
    """
    originalUrl: Any = None


def _screen_resolution(headers) -> Optional[str]:
    """`<width>x<height>` from the viewport client hints, or None when absent."""
    width = headers.get("sec-ch-viewport-width")
    if not width:
        return None
    height = headers.get("sec-ch-viewport-height")
    return f"{width}x{height}" if height else width


def _request_metadata(request: Request) -> RequestMetadata:
    """Collect the client details the visit recorder needs."""
    headers = request.headers
    platform = headers.get("sec-ch-ua-platform")
    return RequestMetadata(
        ip=request.client.host if request.client else None,
        user_agent=headers.get("user-agent"),
        referrer=headers.get("referer") or headers.get("referrer"),
        language=headers.get("accept-language"),
        platform=platform.strip('"') if platform else None,  # sent as a quoted string
        screen_resolution=_screen_resolution(headers),
    )


def _creator_json(creator: Optional[CreatorInfo]) -> Optional[Dict[str, Any]]:
    if creator is None:
        return None
    return {
        "ip": creator.ip,
        "userAgent": creator.user_agent,
        "browser": creator.browser,
        "os": creator.os,
        "device": creator.device_type,
        "isMobile": creator.is_mobile,
    }


def _visitor_json(event: VisitEvent) -> Dict[str, Any]:
    return {
        "ip": event.ip,
        "userAgent": event.user_agent,
        "referrer": event.referrer,
        "language": event.language,
        "platform": event.platform,
        "screenResolution": event.screen_resolution,
        "browser": event.browser,
        "os": event.os,
        "device": event.device_type,
        "isMobile": event.is_mobile,
        "timestamp": event.timestamp.isoformat(),
    }


def _report_json(report: AnalyticsReport, short_url: str) -> Dict[str, Any]:
    return {
        "urlInfo": {
            "originalUrl": report.original_url,
            "shortId": report.short_id,
            "shortUrl": short_url,
            "createdAt": report.created_at.isoformat(),
            "createdBy": _creator_json(report.created_by),
        },
        "totals": {
            "clickCount": report.click_count,
            "uniqueVisitorCount": report.unique_visitor_count,
        },
        "browsers": report.browsers,
        "operatingSystems": report.operating_systems,
        "devices": report.devices,
        "hourlyClicks": {str(hour): count for hour, count in sorted(report.hourly_clicks.items())},
        "recentVisitors": [_visitor_json(v) for v in report.recent_visitors],
    }


def create_app(storage: Optional[BaseStorage] = None, settings=None) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        storage (Optional[BaseStorage]): Pre-built backend (tests inject one);
            otherwise chosen from settings.
        settings: Settings object; read from the environment when omitted.

    Returns:
        FastAPI: A fully configured application instance with its own storage.
    """
    cfg = settings or load_settings()

    log = logging.getLogger("linktrack.app")
    if not logging.getLogger().handlers:
        logging.basicConfig(level=cfg.LOG_LEVEL)

    app = FastAPI(
        title="LinkTrack",
        description="URL shortener with per-link click analytics",
        docs_url="/docs",
    )

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    storage = storage or get_storage(settings=cfg)
    backend = type(storage).__name__
    log.info("LinkTrack storage backend: %s", backend)
    if cfg.DB_AUTO_MIGRATE and hasattr(storage, "create_schema"):
        storage.create_schema()

    manager = LinkManager(
        storage=storage,
        recorder=VisitRecorder(storage, visitor_key_mode=cfg.VISITOR_KEY),
        aggregator=AnalyticsAggregator(storage, recent_limit=cfg.RECENT_LIMIT),
    )
    app.state.storage = storage
    app.state.manager = manager

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    # Fixed GET paths shadow "/{short_id}"; their names are in storage.base.RESERVED_IDS.
    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok", "backend": backend}

    @app.post("/shorten")
    def shorten(request: Request, req: Optional[ShortenRequest] = Body(None)) -> Dict[str, Any]:
        """
        Create a short link for a given URL.

        Returns:
            dict: shortUrl (absolute), shortId, originalUrl, createdAt.

        Raises:
            HTTPException: 400 if the body or originalUrl is missing, empty or not a
                string; 500 on store failure.
        """
        original_url = req.originalUrl if req is not None else None
        try:
            record = manager.shorten(original_url, _request_metadata(request))
        except ValidationError as ve:
            raise HTTPException(status_code=400, detail=str(ve))
        except StoreError as se:
            log.error("Shorten failed: %s", se)
            raise HTTPException(status_code=500, detail="Could not create short URL")

        return {
            "shortUrl": str(request.url_for("redirect_short_id", short_id=record.short_id)),
            "shortId": record.short_id,
            "originalUrl": record.original_url,
            "createdAt": record.created_at.isoformat(),
        }

    @app.get("/analytics/{short_id}")
    def analytics(short_id: str, request: Request) -> Dict[str, Any]:
        """
        Analytics report for one short link.

        Raises:
            HTTPException: 404 for unknown ids, 500 on store failure.
        """
        try:
            report = manager.summarize(short_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="URL not found")
        except StoreError as se:
            log.error("Analytics failed for %s: %s", short_id, se)
            raise HTTPException(status_code=500, detail="Could not load analytics")

        short_url = str(request.url_for("redirect_short_id", short_id=short_id))
        return _report_json(report, short_url)

    @app.get("/{short_id}", name="redirect_short_id")
    def redirect(short_id: str, request: Request) -> RedirectResponse:
        """
        Redirect to the original URL, recording the visit first.

        Notes:
            - Visit recording is best-effort: a failing store is logged and the
              redirect still goes out.
            - 500 only when the lookup itself fails.
        """
        try:
            original_url = manager.resolve(short_id, _request_metadata(request))
        except NotFoundError:
            raise HTTPException(status_code=404, detail="URL not found")
        except StoreError as se:
            log.error("Redirect lookup failed for %s: %s", short_id, se)
            raise HTTPException(status_code=500, detail="Could not resolve short URL")
        return RedirectResponse(url=original_url, status_code=302)

    return app


# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()
