"""Prompt construction for agronomic recommendations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

LANGUAGES = {"kk": "Kazakh", "ru": "Russian"}
DEFAULT_LANGUAGE = "Russian"


def interpret_ndvi(ndvi: float) -> str:
    if ndvi < 0.2:
        return "very low plant health or bare soil."
    if ndvi < 0.4:
        return (
            "moderate plant health, potentially under stress or in early "
            "growth."
        )
    if ndvi < 0.6:
        return "good plant health."
    return "very high plant health and dense canopy."


def _column(daily: Mapping[str, Any], name: str, index: int) -> Any:
    values = daily.get(name)
    if not isinstance(values, Sequence) or index >= len(values):
        return "n/a"
    return values[index]


def format_daily_forecast(daily: Mapping[str, Any]) -> str:
    lines = ["16-Day Forecast Details:"]
    for i, day in enumerate(daily.get("time") or []):
        lines.append(
            f"- {day}: "
            f"Max Temp: {_column(daily, 'temperature_2m_max', i)}°C, "
            f"Min Temp: {_column(daily, 'temperature_2m_min', i)}°C, "
            f"Precipitation: {_column(daily, 'precipitation_sum', i)}mm, "
            f"Max Wind: {_column(daily, 'wind_speed_10m_max', i)}km/h, "
            "Avg Humidity: "
            f"{_column(daily, 'relative_humidity_2m_mean', i)}%"
        )
    return "\n".join(lines) + "\n"


def create_prompt_for_agronomist(
    *,
    lat: float,
    lon: float,
    ndvi: float,
    weather: Mapping[str, Any],
    lang: str | None = None,
) -> str:
    """Build the single-turn prompt sent to the text-generation backend.

    `weather` follows the Open-Meteo layout: a `current` block with
    temperature/humidity/wind and a `daily` block of parallel arrays keyed
    by `time`.
    """

    language = LANGUAGES["kk"] if lang == "kk" else DEFAULT_LANGUAGE
    current = weather.get("current") or {}
    daily = weather.get("daily") or {}

    context = (
        "You are an expert agronomist AI assistant specializing in wheat "
        "cultivation in Kazakhstan. Your task is to provide practical, "
        "actionable recommendations for a specific field. The "
        f"recommendations must be in the {language} language, "
        "well-structured with Markdown formatting (using headers like "
        "**Header**), and easy to understand for a farmer."
    )

    analysis = (
        f"- Location (Latitude, Longitude): {lat:.4f}, {lon:.4f}\n"
        f"- Current NDVI (Vegetation Index): {ndvi}\n"
        f"- NDVI Interpretation: An NDVI of {ndvi} suggests "
        f"{interpret_ndvi(ndvi)}\n"
        f"- Current Weather: Temp: {current.get('temperature_2m')}°C, "
        f"Humidity: {current.get('relative_humidity_2m')}%, "
        f"Wind: {current.get('wind_speed_10m')} km/h\n"
        f"- {format_daily_forecast(daily)}"
    )

    return (
        f"{context}\n\n"
        f"DATA:\n\n{analysis}\n\n"
        "TASK:\n"
        "Based on this comprehensive data, provide recommendations for a "
        "wheat grower for the next 2 weeks. Focus on:\n"
        "1.  **Current Status & Immediate Actions:** Analyze the NDVI and "
        "current weather.\n"
        "2.  **Irrigation Plan:** Based on the full forecast, is irrigation "
        "needed? When and how much?\n"
        "3.  **Fertilization Strategy:** Does the NDVI suggest nutrient "
        "needs? What fertilizers might be required?\n"
        "4.  **Pest & Disease Outlook:** Does the weather forecast "
        "(humidity, rain) indicate high risks? What should the farmer "
        "scout for?\n"
        "5.  **General Management:** Any other critical advice based on "
        "the 16-day outlook.\n\n"
        "Format the response clearly with Markdown headings."
    )
