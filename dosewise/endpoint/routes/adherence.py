"""
Adherence Routes - read-only views over the persisted adherence document.

Provides:
- GET /api/stats  - streak, totals and adherence rate
- GET /api/today  - today's morning/evening slots
- GET /api/week   - 7-day status calendar (full / partial / none)
- GET /api/log    - full day-by-day history, newest first

The running session owns all writes; these handlers rebuild a ledger view
from the stored blob on every request.
"""

import json
from typing import Any, Dict, List

from fastapi import APIRouter, Query
from fastapi.concurrency import run_in_threadpool

from dosewise.adherence.AdherenceLedger import AdherenceLedger
from dosewise.config.adherence_config import AdherenceConfig
from dosewise.adherence.SchedulePolicy import SchedulePolicy
from dosewise.constants import adherence_data_key
from dosewise.endpoint.shared import get_db
from dosewise.utils.AppLogging import logger

router = APIRouter(tags=["adherence"])

_policy = SchedulePolicy(AdherenceConfig().schedules)


def _load_ledger() -> AdherenceLedger:
    raw = get_db().get_blob(adherence_data_key)
    if not raw:
        return AdherenceLedger.from_document({}, _policy)
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"[AdherenceRoutes] Stored adherence document unreadable: {e}")
        document = {}
    return AdherenceLedger.from_document(document, _policy)


@router.get("/api/stats")
async def api_stats() -> Dict[str, Any]:
    ledger = await run_in_threadpool(_load_ledger)
    return ledger.stats.to_dict()


@router.get("/api/today")
async def api_today() -> Dict[str, Any]:
    """Today's slots; a placeholder day when nothing has been recorded yet."""
    ledger = await run_in_threadpool(_load_ledger)
    return ledger.today().to_dict()


@router.get("/api/week")
async def api_week(days: int = Query(7, ge=1, le=31)) -> List[Dict[str, Any]]:
    ledger = await run_in_threadpool(_load_ledger)
    return ledger.week_view(days)


@router.get("/api/log")
async def api_log(limit: int = Query(30, ge=1, le=366)) -> List[Dict[str, Any]]:
    ledger = await run_in_threadpool(_load_ledger)
    day_logs = ledger.day_logs()
    return [day.to_dict() for day in reversed(day_logs[-limit:])]
