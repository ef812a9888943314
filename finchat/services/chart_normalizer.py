from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from finchat.models.chart import CHART_PALETTE, ChartDescription, Trend
from finchat.utils.logger import logger

UNKNOWN_SEGMENT = "Unknown"

# Optional config fields rendered as plain text
TEXT_CONFIG_FIELDS = ("title", "description", "footer", "totalLabel", "xAxisKey")


@dataclass(frozen=True)
class ChartResult:
    """Outcome of normalizing a tool payload: a chart or the reason it was rejected."""

    chart: Optional[ChartDescription] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.chart is not None


def _structural_error(payload: Any) -> Optional[str]:
    if payload is None:
        return "payload is missing"
    if not isinstance(payload, Mapping):
        return f"payload is {type(payload).__name__}, expected an object"
    if not payload.get("chartType"):
        return "chartType is missing"
    if not isinstance(payload.get("data"), list):
        return "data must be an array"
    if not isinstance(payload.get("config"), Mapping):
        return "config must be an object"
    if not isinstance(payload.get("chartConfig"), Mapping):
        return "chartConfig must be an object"
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _first_truthy(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate:
            return candidate
    return candidates[-1]


def _pie_records(
    records: List[Any], segment_key: str, value_key: str
) -> List[Dict[str, Any]]:
    """Reshape records to ``{segment, value}``, dropping unlabeled or non-numeric ones."""
    reshaped: List[Dict[str, Any]] = []
    for record in records:
        item = record if isinstance(record, Mapping) else {}
        segment = _first_truthy(
            item.get(segment_key),
            item.get("segment"),
            item.get("category"),
            item.get("name"),
            UNKNOWN_SEGMENT,
        )
        value = _first_truthy(item.get(value_key), item.get("value"), 0)
        if segment == UNKNOWN_SEGMENT or not _is_number(value):
            continue
        reshaped.append({"segment": str(segment), "value": value})
    return reshaped


def _series_config(chart_config: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    series: Dict[str, Dict[str, Any]] = {}
    for index, (key, entry) in enumerate(chart_config.items()):
        current = dict(entry) if isinstance(entry, Mapping) else {"label": key}
        current["label"] = str(current.get("label") or key)
        current["color"] = CHART_PALETTE[index % len(CHART_PALETTE)]
        series[key] = current
    return series


def _clean_config(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Coerce or drop optional config fields so they never sink the chart."""
    config = {k: v for k, v in raw.items() if v is not None}
    for key in TEXT_CONFIG_FIELDS:
        if key not in config:
            continue
        value = config[key]
        if isinstance(value, str) or _is_number(value):
            config[key] = str(value)
        else:
            del config[key]
    if "trend" in config:
        try:
            config["trend"] = Trend.model_validate(config["trend"]).model_dump()
        except PydanticValidationError:
            logger.debug("Dropping unusable trend: %r", config["trend"])
            del config["trend"]
    return config


def _transform(payload: Mapping[str, Any]) -> ChartDescription:
    chart_type = payload["chartType"]
    config = _clean_config(payload["config"])
    chart_config = payload["chartConfig"]
    data = list(payload["data"])

    if chart_type == "pie":
        segment_key = config.get("xAxisKey") or "segment"
        value_key = next(iter(chart_config), "value")
        data = _pie_records(data, segment_key, value_key)
        config["xAxisKey"] = "segment"
        if not config.get("totalLabel"):
            config["totalLabel"] = "Total"

    return ChartDescription.model_validate(
        {
            "chartType": chart_type,
            "config": config,
            "data": data,
            "seriesConfig": _series_config(chart_config),
        }
    )


def validate_chart_payload(payload: Any) -> ChartResult:
    """Validate a raw ``generate_graph_data`` payload and build the canonical chart.

    Never raises: any structural problem, type mismatch or unexpected error
    while transforming is reported through ``ChartResult.error``.
    """
    error = _structural_error(payload)
    if error:
        return ChartResult(error=error)
    try:
        return ChartResult(chart=_transform(payload))
    except PydanticValidationError as exc:
        return ChartResult(error=f"chart failed type checks: {exc}")
    except Exception as exc:  # noqa: BLE001
        return ChartResult(error=f"chart transform failed: {exc!r}")


def normalize_chart(payload: Any) -> Optional[ChartDescription]:
    result = validate_chart_payload(payload)
    if not result.ok:
        logger.warning("Invalid chart data structure received from tool: %s", result.error)
        return None
    return result.chart
