"""
Weather handler backed by weatherapi.com.

Fetches current conditions + astronomy (forecast.json) and active alerts
(alerts.json) concurrently. Alerts are auxiliary: any failure there yields
no alerts section. The reply always renders the same set of fields; values
missing upstream show as "unavailable" or "N/A".
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from ..config import RouterConfig
from .base import LocationNotFoundError, UpstreamError, as_dict, as_text, fetch_json

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "Weather service is not configured yet. Please add WEATHER_API_KEY."
ASK_LOCATION_MESSAGE = "Please provide a location so I can look up the weather for you."
DEGRADED_MESSAGE = "Sorry, I ran into an issue retrieving the weather right now."

UNAVAILABLE = "unavailable"
NOT_AVAILABLE = "N/A"


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _with_unit(value: Any, unit: str) -> str:
    number = _number(value)
    return f"{number}{unit}" if number is not None else UNAVAILABLE


def _parse_local_time(value: Any) -> Optional[datetime]:
    # weatherapi.com localtime looks like "2025-10-18 14:30" (hour may be unpadded)
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d %H:%M")
    except ValueError:
        return None


def _location_warning(requested: str, returned_name: Optional[str], display_name: str) -> str:
    if not requested or not returned_name:
        return ""
    wanted = "".join(requested.lower().split())
    got = "".join(returned_name.lower().split())
    if got in wanted or wanted in got:
        return ""
    return f'\n⚠️ Note: Showing weather for "{display_name}" (closest match to your request: "{requested}")'


def format_alerts(alerts_data: Optional[Dict[str, Any]]) -> str:
    alerts = as_dict(as_dict(alerts_data).get("alerts")).get("alert")
    if not isinstance(alerts, list):
        return ""

    lines: List[str] = []
    for alert in (a for a in alerts if isinstance(a, dict)):
        headline = as_text(alert.get("headline")) or "Unnamed alert"
        details = ""
        for label, key in (("Severity", "severity"), ("Urgency", "urgency"), ("Areas", "areas"), ("Expires", "expires")):
            value = as_text(alert.get(key))
            if value:
                details += f" {label}: {value}."
        lines.append(f"{len(lines) + 1}. {headline}{details}".strip())

    if not lines:
        return ""
    return "\n\n**⚠️ Active Weather Alerts:**\n" + "\n".join(lines)


def format_weather(requested_location: str, data: Dict[str, Any], alerts_data: Optional[Dict[str, Any]] = None) -> str:
    """
    Render forecast.json (+ optional alerts.json) into the display template.

    Fields missing or of the wrong shape render as placeholders; this never
    raises on malformed upstream data.
    """
    data = as_dict(data)
    location = as_dict(data.get("location"))
    current = as_dict(data.get("current"))
    forecast_days = as_dict(data.get("forecast")).get("forecastday")
    first_day = forecast_days[0] if isinstance(forecast_days, list) and forecast_days else {}
    astro = as_dict(as_dict(first_day).get("astro"))

    name_parts = [as_text(location.get(key)) for key in ("name", "region", "country")]
    display_name = ", ".join(part for part in name_parts if part) or requested_location
    warning = _location_warning(requested_location, name_parts[0], display_name)

    local_time = _parse_local_time(location.get("localtime"))
    if local_time is not None:
        day_name = local_time.strftime("%A")
        date_text = f"{local_time.strftime('%B')} {local_time.day}, {local_time.year}"
        time_text = local_time.strftime("%I:%M %p")
    else:
        day_name = date_text = time_text = NOT_AVAILABLE

    condition = as_text(as_dict(current.get("condition")).get("text")) or UNAVAILABLE

    response = f"**Weather for {display_name}**{warning}\n"
    response += f"📅 {day_name}, {date_text}\n"
    response += f"🕐 Local Time: {time_text}\n\n"
    response += f"**Current Conditions:** {condition}\n"
    response += (
        f"🌡️ **Temperature:** {_with_unit(current.get('temp_c'), '°C')} "
        f"(feels like {_with_unit(current.get('feelslike_c'), '°C')})\n"
    )
    response += f"💧 **Humidity:** {_with_unit(current.get('humidity'), '%')}\n"
    response += f"💨 **Wind Speed:** {_with_unit(current.get('wind_kph'), ' km/h')}\n"
    response += f"🌅 **Sunrise:** {as_text(astro.get('sunrise')) or UNAVAILABLE}\n"
    response += f"🌇 **Sunset:** {as_text(astro.get('sunset')) or UNAVAILABLE}"
    response += format_alerts(alerts_data)

    return response


class WeatherHandler:
    """Answers weather intents for a location slot."""

    def __init__(self, config: RouterConfig, client: httpx.AsyncClient):
        self.config = config
        self.client = client

    async def handle(self, location: str) -> str:
        if not self.config.weather_configured:
            return NOT_CONFIGURED_MESSAGE

        location = (location or "").strip()
        if not location:
            return ASK_LOCATION_MESSAGE

        forecast, alerts = await asyncio.gather(
            self._fetch_forecast(location),
            self._fetch_alerts(location),
            return_exceptions=True,
        )

        if isinstance(forecast, LocationNotFoundError):
            logger.info(f"Weather location not recognised: {location!r}")
            return f'I couldn\'t find weather information for "{location}". Please double-check the location name.'
        if isinstance(forecast, UpstreamError):
            logger.error(f"❌ Weather API error (status={forecast.status}): {forecast}")
            return DEGRADED_MESSAGE
        if isinstance(forecast, BaseException):
            raise forecast

        if isinstance(alerts, BaseException):
            logger.warning(f"⚠️ Weather alerts fetch issue: {alerts}")
            alerts = None

        return format_weather(location, forecast, alerts)

    async def _fetch_forecast(self, location: str) -> Dict[str, Any]:
        try:
            return await fetch_json(
                self.client,
                "weather",
                f"{self.config.weather_base_url}/forecast.json",
                params={"key": self.config.weather_api_key, "q": location, "days": 1, "aqi": "no", "alerts": "no"},
            )
        except UpstreamError as e:
            if e.status == 400:
                raise LocationNotFoundError("weather", f"no matching location for {location!r}", status=400) from e
            raise

    async def _fetch_alerts(self, location: str) -> Optional[Dict[str, Any]]:
        try:
            return await fetch_json(
                self.client,
                "weather-alerts",
                f"{self.config.weather_base_url}/alerts.json",
                params={"key": self.config.weather_api_key, "q": location},
            )
        except UpstreamError as e:
            # 400 here just mirrors an unknown location, already reported by the forecast call
            if e.status != 400:
                logger.warning(f"⚠️ Weather alerts fetch issue: {e}")
            return None
