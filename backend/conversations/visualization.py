# backend/conversations/visualization.py
"""
Chart specs attached to assistant messages.

A spec is plain data (chart type, axis key, series keys, rows); the front
end renders it with its own chart components.
"""
import re
import uuid

from django.utils import timezone

VISUALIZATION_KEYWORDS = (
    "visualize", "chart", "graph", "dashboard", "plot", "show data",
    "create chart", "display data", "bar chart", "line chart", "pie chart",
    "scatter plot", "histogram", "heatmap", "analytics", "metrics",
    "gantt", "timeline", "schedule", "project", "visual",
)

CHART_TYPES = ("line", "bar", "pie", "area", "scatter")
DEFAULT_TITLE = "Data Visualization"

TITLE_RE = re.compile(r"(?:title|called|named)\s+[\"']([^\"']+)[\"']", re.IGNORECASE)

SAMPLE_DATA = (
    (("project", "gantt", "timeline", "schedule"), [
        {"task": "Site Layout & General Arrangement", "duration": 83, "progress": 100},
        {"task": "Structural Calculations & Foundation", "duration": 7, "progress": 80},
        {"task": "Civil Works Specifications", "duration": 56, "progress": 60},
        {"task": "Pipeline Route & Profile", "duration": 84, "progress": 40},
        {"task": "Process Flow Diagrams", "duration": 56, "progress": 30},
        {"task": "Equipment Specifications", "duration": 42, "progress": 20},
    ]),
    (("sales", "revenue"), [
        {"month": "Jan", "sales": 4000, "revenue": 2400},
        {"month": "Feb", "sales": 3000, "revenue": 1398},
        {"month": "Mar", "sales": 2000, "revenue": 9800},
        {"month": "Apr", "sales": 2780, "revenue": 3908},
        {"month": "May", "sales": 1890, "revenue": 4800},
        {"month": "Jun", "sales": 2390, "revenue": 3800},
    ]),
    (("user", "engagement"), [
        {"day": "Mon", "users": 120, "sessions": 180},
        {"day": "Tue", "users": 150, "sessions": 220},
        {"day": "Wed", "users": 180, "sessions": 280},
        {"day": "Thu", "users": 200, "sessions": 320},
        {"day": "Fri", "users": 250, "sessions": 400},
        {"day": "Sat", "users": 180, "sessions": 250},
        {"day": "Sun", "users": 140, "sessions": 200},
    ]),
    (("performance", "metric"), [
        {"metric": "Load Time", "value": 2.3, "target": 2.0},
        {"metric": "Uptime", "value": 99.9, "target": 99.5},
        {"metric": "Error Rate", "value": 0.1, "target": 0.5},
        {"metric": "Throughput", "value": 1200, "target": 1000},
    ]),
)

DEFAULT_DATA = [
    {"name": "Category A", "value": 400, "growth": 12},
    {"name": "Category B", "value": 300, "growth": 8},
    {"name": "Category C", "value": 200, "growth": -3},
    {"name": "Category D", "value": 278, "growth": 15},
    {"name": "Category E", "value": 189, "growth": 5},
]


def wants_visualization(message: str) -> bool:
    lowered = (message or "").lower()
    return any(k in lowered for k in VISUALIZATION_KEYWORDS)


def detect_chart_type(message: str) -> str:
    lowered = message.lower()
    for chart_type in CHART_TYPES:
        if chart_type in lowered:
            return chart_type
    return "bar"


def extract_title(message: str) -> str:
    match = TITLE_RE.search(message)
    return match.group(1) if match else DEFAULT_TITLE


def sample_data(message: str) -> list[dict]:
    lowered = message.lower()
    for keywords, rows in SAMPLE_DATA:
        if any(k in lowered for k in keywords):
            return [dict(r) for r in rows]
    return [dict(r) for r in DEFAULT_DATA]


def create_chart_spec(user_message: str) -> dict | None:
    if not wants_visualization(user_message):
        return None

    data = sample_data(user_message)
    keys = list(data[0].keys()) if data else []
    return {
        "id": str(uuid.uuid4()),
        "title": extract_title(user_message),
        "type": "chart",
        "chart_type": detect_chart_type(user_message),
        "x_key": keys[0] if keys else None,
        "series": keys[1:],
        "data": data,
        "created_at": timezone.now().isoformat(),
    }
