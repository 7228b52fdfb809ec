from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import EnterCategoryRequest, UpdateFieldRequest
from core.cache import RowCache
from core.config import Settings, load_settings
from core.dashboard import DashboardService
from core.errors import DashboardError
from core.filters import normalize_query
from core.report import build_report, records_frame
from core.sources import build_source

logger = logging.getLogger(__name__)

# Older clients address the first sheet as "default".
CATEGORY_ALIASES = {"default": "nbot"}


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: DashboardError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "message": exc.message, "type": type(exc).__name__},
    )


def _internal_error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _category(category_id: str) -> str:
    return CATEGORY_ALIASES.get(category_id, category_id)


def create_app(service: Optional[DashboardService] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    if service is None:
        service = DashboardService(
            build_source(settings),
            RowCache(ttl_seconds=settings.cache_ttl_seconds),
            settings.categories,
        )

    app = FastAPI(title="Occupancy Dashboard API", version="0.1.0")
    app.state.service = service
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.debug("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/dashboard/init")
    def dashboard_init():
        try:
            rooms = service.init_dashboard()
            return _json(
                {
                    "rooms": [r.to_dict() for r in rooms],
                    "config": {"polling_interval_seconds": settings.polling_interval_seconds},
                }
            )
        except DashboardError as exc:
            return _error(exc)
        except Exception as exc:
            logger.exception("dashboard_init failed")
            return _internal_error(exc)

    @app.post("/api/rooms/{room_id}/enter")
    def enter_room(room_id: str, body: EnterCategoryRequest):
        category_id = _category(room_id)
        try:
            query = normalize_query(body.model_dump(), default_page_size=settings.default_page_size)
            result = service.enter_category(category_id, query)
            return _json({"room_id": category_id, **result.to_dict()})
        except DashboardError as exc:
            return _error(exc)
        except Exception as exc:
            logger.exception("enter_room failed")
            return _internal_error(exc)

    @app.put("/api/records/{row_ref}/user-input")
    def update_record(row_ref: str, body: UpdateFieldRequest):
        category_id = _category(body.room_id)
        try:
            result = service.update_field(category_id, row_ref, body.new_value, field=body.field)
            return _json(result.to_dict())
        except DashboardError as exc:
            logger.warning("update %s row %s refused: %s", category_id, row_ref, exc.message)
            return _error(exc)
        except Exception as exc:
            logger.exception("update_record failed")
            return _internal_error(exc)

    @app.get("/api/records")
    def list_records(room_id: str = Query(default="nbot")):
        try:
            records = service.list_all_records(_category(room_id))
            return _json({"records": [r.to_dict() for r in records]})
        except DashboardError as exc:
            return _error(exc)
        except Exception as exc:
            logger.exception("list_records failed")
            return _internal_error(exc)

    @app.get("/api/reports/{room_id}")
    def report(room_id: str, period: str = Query(default="daily")):
        try:
            records = service.list_all_records(_category(room_id))
            return _json(build_report(records, period))
        except DashboardError as exc:
            return _error(exc)
        except ValueError as exc:
            return JSONResponse(status_code=422, content={"error": str(exc), "type": type(exc).__name__})
        except Exception as exc:
            logger.exception("report failed")
            return _internal_error(exc)

    @app.get("/api/export/{room_id}")
    def export_records(room_id: str):
        category_id = _category(room_id)
        try:
            records = service.list_all_records(category_id)
            csv_bytes = records_frame(records).to_csv(index=False).encode("utf-8")
        except DashboardError as exc:
            return _error(exc)
        except Exception as exc:
            logger.exception("export_records failed")
            return _internal_error(exc)
        return Response(
            content=csv_bytes,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={category_id}.csv"},
        )

    return app


app = create_app()
