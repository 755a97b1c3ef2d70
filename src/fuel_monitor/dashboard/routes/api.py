"""REST API endpoints returning JSON data."""

from __future__ import annotations

import logging
from datetime import date
from typing import Literal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from fuel_monitor.capture.orchestrator import CaptureAbortedError
from fuel_monitor.dashboard.auth import current_user, is_admin, require_admin
from fuel_monitor.dashboard.views import VIEW_CLOSING
from fuel_monitor.timezone_utils import parse_date

router = APIRouter()
logger = logging.getLogger(__name__)


# ── Request models ───────────────────────────────────

class ViewModeRequest(BaseModel):
    view_mode: Literal["closing", "realtime"]


class CaptureRequest(BaseModel):
    date: str | None = None  # YYYY-MM-DD or DD/MM/YYYY; default today


def _bad_date(value: str) -> JSONResponse:
    return JSONResponse(
        {"error": f"Invalid date {value!r}; use YYYY-MM-DD or DD/MM/YYYY"},
        status_code=400,
    )


# ── Health ───────────────────────────────────────────

@router.get("/health")
async def health(request: Request) -> dict:
    scheduler = request.app.state.scheduler
    return {
        "status": "ok",
        "health": request.app.state.health.to_dict(),
        "scheduler": {
            "running": scheduler.state.is_running,
            "next_run_at": scheduler.state.next_run_at.isoformat()
            if scheduler.state.next_run_at else None,
            "last_error": scheduler.state.last_error,
        } if scheduler else None,
    }


# ── Dashboard ────────────────────────────────────────

async def _view_mode_for(request: Request) -> str:
    username, _ = current_user(request)
    stored = await request.app.state.repo.get_view_mode(username)
    return stored or VIEW_CLOSING


@router.get("/dashboard")
async def dashboard(request: Request) -> dict:
    privileged = is_admin(request)
    view_mode = await _view_mode_for(request) if privileged else VIEW_CLOSING
    return await request.app.state.views.build_dashboard(view_mode, privileged=privileged)


# ── Admin ────────────────────────────────────────────

@router.get("/admin/view-mode")
async def get_view_mode(request: Request):
    denied = require_admin(request)
    if denied:
        return denied
    return {"view_mode": await _view_mode_for(request)}


@router.put("/admin/view-mode")
async def set_view_mode(request: Request, body: ViewModeRequest):
    denied = require_admin(request)
    if denied:
        return denied
    username, _ = current_user(request)
    await request.app.state.repo.set_view_mode(username, body.view_mode)
    logger.info("View mode for '%s' set to %s", username, body.view_mode)
    return {"ok": True, "view_mode": body.view_mode}


@router.post("/admin/capture-daily-closing")
async def capture_daily_closing(request: Request, body: CaptureRequest | None = None):
    """Manually run the daily capture for today or a historical date."""
    denied = require_admin(request)
    if denied:
        return denied

    target: date | None = None
    if body is not None and body.date:
        try:
            target = parse_date(body.date)
        except ValueError:
            return _bad_date(body.date)

    orchestrator = request.app.state.orchestrator
    try:
        report = await orchestrator.run_daily_capture(target, trigger="manual")
    except CaptureAbortedError as e:
        return JSONResponse({"error": f"Capture aborted: {e}"}, status_code=503)
    except (ValueError, OverflowError) as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return report.to_dict()


# ── Cumulative readings ──────────────────────────────

@router.get("/cumulative-readings")
async def cumulative_readings(
    request: Request,
    start_date: str | None = None,
    end_date: str | None = None,
    device_id: str | None = None,
):
    """Daily fuel and power totals per device over a date range."""
    metrics = request.app.state.metrics
    repo = request.app.state.repo

    try:
        end = parse_date(end_date) if end_date else metrics.today()
    except ValueError:
        return _bad_date(end_date or "")
    try:
        start = parse_date(start_date) if start_date else end
    except ValueError:
        return _bad_date(start_date or "")
    try:
        metrics.check_range(start, end)
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    if device_id:
        site = await repo.get_site_by_device(device_id)
        targets = [(device_id, site.name if site else device_id)]
    else:
        targets = [(s.device_id, s.name) for s in await repo.list_sites(active_only=True)]

    devices = []
    totals = {
        "fuel_consumed_l": 0.0,
        "fuel_topped_l": 0.0,
        "generator_hours": 0.0,
        "grid_hours": 0.0,
        "offline_hours": 0.0,
    }
    for dev, name in targets:
        try:
            days = await metrics.compute_fuel_and_power_for_range(dev, start, end)
        except (ValueError, OverflowError) as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        for d in days:
            totals["fuel_consumed_l"] += d.fuel.consumed_volume
            totals["fuel_topped_l"] += d.fuel.topped_volume
            totals["generator_hours"] += d.power.generator_hours
            totals["grid_hours"] += d.power.grid_hours
            totals["offline_hours"] += d.power.offline_hours
        devices.append({
            "device_id": dev,
            "site_name": name,
            "days": [d.to_dict() for d in days],
        })

    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "devices": devices,
        "summary": {
            "devices": len(devices),
            "fuel_consumed_l": round(totals["fuel_consumed_l"], 1),
            "fuel_topped_l": round(totals["fuel_topped_l"], 1),
            "generator_hours": round(totals["generator_hours"], 2),
            "grid_hours": round(totals["grid_hours"], 2),
            "offline_hours": round(totals["offline_hours"], 2),
        },
    }
