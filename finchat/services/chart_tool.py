from __future__ import annotations

from typing import Any, Dict

from finchat.models.chart import CHART_TYPES

CHART_TOOL_NAME = "generate_graph_data"

# Anthropic tool definition; the OpenAI path wraps it as a function tool.
CHART_TOOL: Dict[str, Any] = {
    "name": CHART_TOOL_NAME,
    "description": "Generate structured JSON data for creating financial charts and graphs.",
    "input_schema": {
        "type": "object",
        "properties": {
            "chartType": {
                "type": "string",
                "enum": list(CHART_TYPES),
                "description": "The type of chart to generate",
            },
            "config": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "trend": {
                        "type": "object",
                        "properties": {
                            "percentage": {"type": "number"},
                            "direction": {"type": "string", "enum": ["up", "down"]},
                        },
                    },
                    "footer": {"type": "string"},
                    "totalLabel": {"type": "string"},
                    "xAxisKey": {"type": "string"},
                },
                "required": ["title", "description"],
            },
            "data": {
                "type": "array",
                "items": {"type": "object", "additionalProperties": True},
            },
            "chartConfig": {
                "type": "object",
                "additionalProperties": {
                    "type": "object",
                    "properties": {
                        "label": {"type": "string"},
                        "stacked": {"type": "boolean"},
                    },
                    "required": ["label"],
                },
                "description": "Configuration for chart series (lines, bars, pie slices)",
            },
        },
        "required": ["chartType", "config", "data", "chartConfig"],
    },
}


def as_openai_tool(tool: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool["name"],
            "description": tool["description"],
            "parameters": tool["input_schema"],
        },
    }


SYSTEM_PROMPT = (
    "You are a financial data visualization expert. Analyze the user's financial data "
    f"and create clear, meaningful visualizations with the {CHART_TOOL_NAME} tool.\n\n"
    "Chart types and when to use them:\n"
    '- "line": time series, financial metrics over time, market performance.\n'
    '- "bar": single metric comparisons, period-over-period analysis, category performance.\n'
    '- "multiBar": several metrics side by side, cross-category comparisons.\n'
    '- "area": volume or quantity over time, cumulative trends.\n'
    '- "stackedArea": component breakdowns over time, portfolio composition, market share.\n'
    '- "pie": distributions, market share breakdown, portfolio allocation.\n\n'
    "When generating a chart:\n"
    "1. Structure data for the chosen chart type; every record shares the keys named in "
    "config.xAxisKey and chartConfig.\n"
    "2. Give a descriptive title and description.\n"
    "3. Add trend information (percentage and direction) when relevant.\n"
    "4. Add a short contextual footer.\n"
    "5. Use data keys that reflect the actual metrics.\n\n"
    "Time series example:\n"
    '{"data": [{"period": "Q1 2024", "revenue": 1250000}, {"period": "Q2 2024", "revenue": 1450000}], '
    '"config": {"xAxisKey": "period", "title": "Quarterly Revenue", "description": "Revenue growth over time"}, '
    '"chartConfig": {"revenue": {"label": "Revenue ($)"}}}\n\n'
    "Comparison example (multiBar):\n"
    '{"data": [{"category": "Product A", "sales": 450000, "costs": 280000}], '
    '"config": {"xAxisKey": "category", "title": "Product Performance", "description": "Sales vs Costs"}, '
    '"chartConfig": {"sales": {"label": "Sales ($)"}, "costs": {"label": "Costs ($)"}}}\n\n'
    "Distribution example (pie):\n"
    '{"data": [{"segment": "Equities", "value": 5500000}, {"segment": "Bonds", "value": 3200000}], '
    '"config": {"xAxisKey": "segment", "title": "Portfolio Allocation", '
    '"description": "Current investment distribution", "totalLabel": "Total Assets"}, '
    '"chartConfig": {"equities": {"label": "Equities"}, "bonds": {"label": "Bonds"}}}\n\n'
    "Always use real, contextually appropriate data taken from the conversation or the "
    "attached document, with proper financial formatting. Never use placeholder data, "
    "never describe implementation details, and never announce that you are calling the "
    "tool: just call it when a chart helps."
)
