# src/area_client/aggregation.py

import asyncio
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .api import AreaApi
from .config import Settings, settings as default_settings

SOURCE_NAME_KEY = "areaName"
TIMESTAMP_KEY = "executedAt"
ALL_STATUSES = "ALL"


class AggregatedLogs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    logs: List[Dict[str, Any]] = []
    total: int = 0
    page: int = 0
    page_size: int = Field(0, alias="pageSize")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO-8601 string (``Z`` accepted, date-only allowed) or epoch millis to an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
            except ValueError:
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def coerce_int(value: Any, default: int, minimum: int = 0) -> int:
    """``int(value)``, falling back to ``default`` when unparseable or below ``minimum``."""
    try:
        result = int(value)
    except (TypeError, ValueError):
        return default
    return result if result >= minimum else default


def source_name(source: Mapping[str, Any]) -> str:
    return source.get("name") or f"Area #{source.get('id')}"


class LogAggregator:
    """
    Execution logs across every area, merged into one newest-first list.

    Areas are fetched first; then one log request per area runs
    concurrently. A failing area contributes nothing instead of failing the
    whole query. Filters and pagination apply to the merged list.
    """

    def __init__(self, api: AreaApi, settings: Settings = default_settings):
        self.api = api
        self.settings = settings

    async def _fetch_branch(self, area: Mapping[str, Any]) -> List[Dict[str, Any]]:
        name = source_name(area)
        try:
            result = await self.api.get_logs(area.get("id"))
            logs = (result.get("logs") if isinstance(result, Mapping) else result) or []
            if not isinstance(logs, list):
                raise TypeError(f"expected a list of logs, got {type(logs).__name__}")
            return [{**log, SOURCE_NAME_KEY: name} for log in logs]
        except Exception as e:
            logger.error("Failed to fetch logs for area {}: {}", area.get("id"), e)
            return []

    async def get_all_logs(self, filters: Optional[Mapping[str, Any]] = None) -> AggregatedLogs:
        filters = filters or {}
        areas = await self.api.get_areas()
        if not areas:
            return AggregatedLogs()

        branches = await asyncio.gather(*(self._fetch_branch(area) for area in areas))
        merged = [log for branch in branches for log in branch]
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        merged.sort(key=lambda log: parse_timestamp(log.get(TIMESTAMP_KEY)) or oldest, reverse=True)

        filtered = apply_filters(merged, filters)

        limit = coerce_int(filters.get("limit"), self.settings.AREA_LOGS_DEFAULT_LIMIT, minimum=1)
        offset = coerce_int(filters.get("offset"), 0)
        return AggregatedLogs(
            logs=filtered[offset:offset + limit],
            total=len(filtered),
            page=offset // limit,
            page_size=limit,
        )


def apply_filters(logs: List[Dict[str, Any]], filters: Mapping[str, Any]) -> List[Dict[str, Any]]:
    status = filters.get("status")
    if status and status != ALL_STATUSES:
        logs = [log for log in logs if log.get("status") == status]

    from_date = parse_timestamp(filters.get("fromDate"))
    if from_date is not None:
        logs = [log for log in logs if _at_or_after(log, from_date)]

    to_date = parse_timestamp(filters.get("toDate"))
    if to_date is not None:
        logs = [log for log in logs if _at_or_before(log, to_date)]
    return logs


def _at_or_after(log: Mapping[str, Any], bound: datetime) -> bool:
    executed_at = parse_timestamp(log.get(TIMESTAMP_KEY))
    return executed_at is not None and executed_at >= bound


def _at_or_before(log: Mapping[str, Any], bound: datetime) -> bool:
    executed_at = parse_timestamp(log.get(TIMESTAMP_KEY))
    return executed_at is not None and executed_at <= bound
