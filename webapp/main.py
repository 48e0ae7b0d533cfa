from __future__ import annotations

import csv
import io
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from waterdata.cache import Snapshot, SnapshotCache
from waterdata.classify import BUCKET_COLORS, BUCKET_LABELS, BUCKET_ORDER, bucket_distribution, color_for
from waterdata.job import WaterDataFetcher, start_refresh_task, stop_refresh_task
from waterdata.parser import parse_record
from waterdata.render import build_markers, build_station_list, filter_stations
from waterdata.settings import Settings, load_settings

logger = logging.getLogger(__name__)

WEBAPP_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(WEBAPP_DIR / "templates"))
router = APIRouter()

EXPORT_COLUMNS = [
    ("station_name", "站名"),
    ("latitude", "緯度"),
    ("longitude", "經度"),
    ("ph", "pH值"),
    ("turbidity_ntu", "濁度(NTU)"),
    ("residual_chlorine_mg_l", "殘餘氯(mg/L)"),
]

NOT_READY = {
    "error": "Data not available yet",
    "message": "Please wait for the first data fetch to complete",
}
REFRESH_FAILED = {
    "error": "Failed to fetch data",
    "message": "Could not retrieve water quality data from the server",
}


def _cache(request: Request) -> SnapshotCache:
    return request.app.state.cache


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _now(request: Request) -> datetime:
    return datetime.now(request.app.state.fetcher.tz)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _not_ready() -> JSONResponse:
    return JSONResponse(status_code=500, content=NOT_READY)


def _snapshot_payload(snapshot: Snapshot) -> Dict[str, Any]:
    return {
        "data": list(snapshot.records),
        "lastUpdated": _isoformat(snapshot.fetched_at),
        "count": snapshot.count,
    }


@router.get("/", response_class=HTMLResponse)
def index(request: Request):
    settings = _settings(request)
    map_config = {
        "center": settings.map.center,
        "zoom": settings.map.zoom,
        "selectZoom": settings.map.select_zoom,
        "refreshMs": settings.map.client_refresh_seconds * 1000,
    }
    legend = [
        {"label": BUCKET_LABELS[bucket], "color": BUCKET_COLORS[bucket]}
        for bucket in BUCKET_ORDER
    ]
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "map_config_json": json.dumps(map_config),
            "legend": legend,
        },
    )


@router.get("/api/water-data")
def water_data(request: Request):
    snapshot = _cache(request).get()
    if snapshot is None:
        return _not_ready()
    return _snapshot_payload(snapshot)


@router.post("/api/water-data/refresh")
async def refresh_water_data(request: Request):
    logger.info("Manual refresh requested")
    success = await request.app.state.fetcher.fetch_and_cache()
    snapshot = _cache(request).get()
    if not success or snapshot is None:
        return JSONResponse(status_code=500, content=REFRESH_FAILED)

    payload = _snapshot_payload(snapshot)
    payload["message"] = "Data refreshed successfully"
    return payload


@router.get("/api/water-data/summary")
def water_data_summary(request: Request):
    snapshot = _cache(request).get()
    if snapshot is None:
        return _not_ready()
    distribution, total = bucket_distribution(snapshot.records)
    return {
        "lastUpdated": _isoformat(snapshot.fetched_at),
        "count": total,
        "distribution": distribution,
    }


@router.get("/api/markers")
def markers(
    request: Request,
    selected: Optional[str] = Query(default=None, description="目前選取的站名"),
):
    snapshot = _cache(request).get()
    if snapshot is None:
        return _not_ready()

    tolerance = _settings(request).map.marker_tolerance
    marker_list = build_markers(snapshot.records)
    stations = build_station_list(snapshot.records, marker_list, selected, tolerance)
    return {
        "markers": [marker.to_dict() for marker in marker_list],
        "stations": [entry.to_dict() for entry in stations],
        "lastUpdated": _isoformat(snapshot.fetched_at),
        "count": snapshot.count,
    }


@router.get("/api/stations")
def stations(
    request: Request,
    station_keyword: Optional[str] = Query(default=None, description="站名關鍵字"),
):
    snapshot = _cache(request).get()
    if snapshot is None:
        return _not_ready()

    tolerance = _settings(request).map.marker_tolerance
    marker_list = build_markers(snapshot.records)
    entries = build_station_list(snapshot.records, marker_list, tolerance=tolerance)
    matched = filter_stations(entries, station_keyword)
    return {
        "stations": [entry.to_dict() for entry in matched],
        "count": len(matched),
        "total": len(entries),
    }


@router.get("/api/status")
def status(request: Request):
    cache = _cache(request)
    return {
        "lastUpdated": _isoformat(cache.last_updated),
        "dataCount": cache.count,
        "serverTime": _isoformat(_now(request)),
    }


@router.get("/health")
def health(request: Request):
    return {"status": "ok", "timestamp": _isoformat(_now(request))}


@router.get("/export")
def export_csv(request: Request):
    snapshot = _cache(request).get()
    if snapshot is None:
        return _not_ready()

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([label for _, label in EXPORT_COLUMNS] + ["水質分級"])
    for record in snapshot.records:
        reading = parse_record(record)
        row_values = [reading.station_name]
        for key, _ in EXPORT_COLUMNS[1:]:
            row_values.append(reading.raw.get(key, ""))
        row_values.append(color_for(record))
        writer.writerow(row_values)

    output.seek(0)
    filename = "water_quality_export.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    schedule_refresh: bool = True,
) -> FastAPI:
    """
    Build the application around a fresh cache.

    With `schedule_refresh` the lifespan starts the periodic fetch (first run
    immediately) and cancels it on shutdown.
    """
    settings = settings or load_settings()
    cache = SnapshotCache()
    fetcher = WaterDataFetcher(settings, cache, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = start_refresh_task(fetcher) if schedule_refresh else None
        try:
            yield
        finally:
            await stop_refresh_task(task)

    app = FastAPI(title="Water Quality Map", lifespan=lifespan)
    app.state.settings = settings
    app.state.cache = cache
    app.state.fetcher = fetcher
    app.mount("/static", StaticFiles(directory=str(WEBAPP_DIR / "static")), name="static")
    app.include_router(router)
    return app


app = create_app()
