from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ChartType = Literal["bar", "multiBar", "line", "pie", "area", "stackedArea"]

CHART_TYPES = ("bar", "multiBar", "line", "pie", "area", "stackedArea")

# Theme slots understood by the chart renderer, cycled by series index.
CHART_PALETTE = (
    "hsl(var(--chart-1))",
    "hsl(var(--chart-2))",
    "hsl(var(--chart-3))",
    "hsl(var(--chart-4))",
    "hsl(var(--chart-5))",
)


class _ChartModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )


class Trend(BaseModel):
    percentage: float
    direction: Literal["up", "down"]


class ChartConfig(_ChartModel):
    title: str = ""
    description: str = ""
    x_axis_key: Optional[str] = None
    total_label: Optional[str] = None
    footer: Optional[str] = None
    trend: Optional[Trend] = None


class SeriesConfig(_ChartModel):
    label: str = Field(..., min_length=1)
    stacked: Optional[bool] = None
    color: str


class ChartDescription(_ChartModel):
    """Canonical, renderer-ready chart produced by the chart normalizer."""

    chart_type: ChartType
    config: ChartConfig
    data: List[Dict[str, Any]]
    series_config: Dict[str, SeriesConfig]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with wire names, leaving out unset optional fields."""
        payload = self.model_dump(by_alias=True)
        payload["config"] = _drop_none(payload["config"])
        payload["seriesConfig"] = {
            key: _drop_none(entry) for key, entry in payload["seriesConfig"].items()
        }
        return payload


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}
