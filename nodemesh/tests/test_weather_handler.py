"""
Tests for WeatherHandler against a mocked weatherapi.com.
"""

import httpx
import pytest

from nodemesh.config import RouterConfig
from nodemesh.handlers.weather import (
    ASK_LOCATION_MESSAGE,
    DEGRADED_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    WeatherHandler,
    format_weather,
)
from nodemesh.tests.conftest import mock_client

TOKYO_FORECAST = {
    "location": {"name": "Tokyo", "region": "Tokyo", "country": "Japan", "localtime": "2025-10-18 14:30"},
    "current": {
        "temp_c": 21.0,
        "feelslike_c": 20.4,
        "humidity": 64,
        "wind_kph": 11.2,
        "condition": {"text": "Partly cloudy"},
    },
    "forecast": {"forecastday": [{"astro": {"sunrise": "05:49 AM", "sunset": "05:07 PM"}}]},
}

NO_ALERTS = {"alerts": {"alert": []}}


def _router(forecast=None, forecast_status=200, alerts=None, alerts_status=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.url.path.endswith("/forecast.json"):
            return httpx.Response(forecast_status, json=forecast if forecast is not None else {"error": {}})
        if request.url.path.endswith("/alerts.json"):
            return httpx.Response(alerts_status, json=alerts if alerts is not None else NO_ALERTS)
        return httpx.Response(404)

    return handler


@pytest.mark.asyncio
async def test_not_configured_makes_no_request():
    seen = []
    handler = WeatherHandler(RouterConfig(log_classifications=False), mock_client(_router(seen=seen)))

    assert await handler.handle("Tokyo") == NOT_CONFIGURED_MESSAGE
    assert seen == []


@pytest.mark.asyncio
async def test_missing_location_asks_for_one(test_config):
    seen = []
    handler = WeatherHandler(test_config, mock_client(_router(seen=seen)))

    assert await handler.handle("   ") == ASK_LOCATION_MESSAGE
    assert seen == []


@pytest.mark.asyncio
async def test_successful_lookup(test_config):
    seen = []
    handler = WeatherHandler(test_config, mock_client(_router(forecast=TOKYO_FORECAST, seen=seen)))

    reply = await handler.handle("Tokyo")

    assert reply.startswith("**Weather for Tokyo, Tokyo, Japan**\n")
    assert "📅 Saturday, October 18, 2025" in reply
    assert "🕐 Local Time: 02:30 PM" in reply
    assert "**Current Conditions:** Partly cloudy" in reply
    assert "21.0°C (feels like 20.4°C)" in reply
    assert "💧 **Humidity:** 64%" in reply
    assert "💨 **Wind Speed:** 11.2 km/h" in reply
    assert "🌅 **Sunrise:** 05:49 AM" in reply
    assert "Note:" not in reply
    assert "Active Weather Alerts" not in reply

    forecast_request = next(r for r in seen if r.url.path.endswith("/forecast.json"))
    assert forecast_request.url.params["q"] == "Tokyo"
    assert forecast_request.url.params["key"] == "test-weather-key"


@pytest.mark.asyncio
async def test_unknown_location_mentions_it(test_config):
    handler = WeatherHandler(test_config, mock_client(_router(forecast_status=400, alerts_status=400)))

    reply = await handler.handle("Atlantis")

    assert '"Atlantis"' in reply
    assert "double-check" in reply


@pytest.mark.asyncio
async def test_forecast_server_error_degrades(test_config):
    handler = WeatherHandler(test_config, mock_client(_router(forecast_status=500)))

    assert await handler.handle("Tokyo") == DEGRADED_MESSAGE


@pytest.mark.asyncio
async def test_transport_failure_degrades(test_config):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    weather = WeatherHandler(test_config, mock_client(handler))

    assert await weather.handle("Tokyo") == DEGRADED_MESSAGE


@pytest.mark.asyncio
async def test_alerts_failure_is_not_fatal(test_config):
    handler = WeatherHandler(test_config, mock_client(_router(forecast=TOKYO_FORECAST, alerts_status=500)))

    reply = await handler.handle("Tokyo")

    assert reply.startswith("**Weather for Tokyo")
    assert "Active Weather Alerts" not in reply


@pytest.mark.asyncio
async def test_alerts_section_rendered(test_config):
    alerts = {"alerts": {"alert": [
        {"headline": "Heavy rain warning", "severity": "Moderate", "areas": "Kanto", "expires": "2025-10-19T06:00"},
        {"headline": "Strong wind advisory"},
    ]}}
    handler = WeatherHandler(test_config, mock_client(_router(forecast=TOKYO_FORECAST, alerts=alerts)))

    reply = await handler.handle("Tokyo")

    assert "**⚠️ Active Weather Alerts:**" in reply
    assert "1. Heavy rain warning Severity: Moderate. Areas: Kanto. Expires: 2025-10-19T06:00." in reply
    assert "2. Strong wind advisory" in reply


# ============================================================================
# Formatting
# ============================================================================

def test_missing_fields_render_placeholders():
    reply = format_weather("Nowhere", {"location": {"name": "Nowhere"}})

    assert reply.startswith("**Weather for Nowhere**\n")
    assert "📅 N/A, N/A" in reply
    assert "🕐 Local Time: N/A" in reply
    assert "**Current Conditions:** unavailable" in reply
    assert "unavailable (feels like unavailable)" in reply
    assert "🌇 **Sunset:** unavailable" in reply


def test_unpadded_local_time_is_parsed():
    data = {"location": {"name": "Tokyo", "localtime": "2025-10-18 9:05"}}

    assert "🕐 Local Time: 09:05 AM" in format_weather("Tokyo", data)


def test_closest_match_warning():
    data = {"location": {"name": "Paris", "region": "Texas", "country": "USA"}}

    reply = format_weather("Springfield", data)

    assert '⚠️ Note: Showing weather for "Paris, Texas, USA"' in reply
    assert '"Springfield"' in reply


def test_no_warning_for_partial_match():
    data = {"location": {"name": "New York", "country": "United States of America"}}

    assert "Note:" not in format_weather("new york city", data)


@pytest.mark.parametrize("data", [
    {"location": "x", "current": {}},
    {"current": {"condition": "Sunny"}},
    {"location": {"name": 42, "localtime": 1700000000}, "current": ["21"], "forecast": {"forecastday": "today"}},
    {"forecast": {"forecastday": [None]}, "current": {"temp_c": "21", "condition": None}},
])
def test_malformed_forecast_renders_placeholders(data):
    reply = format_weather("Paris", data)

    assert reply.startswith("**Weather for Paris**\n")
    assert "**Current Conditions:** unavailable" in reply
    assert "🌅 **Sunrise:** unavailable" in reply


@pytest.mark.parametrize("alerts", [
    {"alerts": "none"},
    {"alerts": {"alert": "Flood watch"}},
    {"alerts": {"alert": ["Flood watch", None]}},
])
def test_malformed_alerts_are_ignored(alerts):
    reply = format_weather("Tokyo", TOKYO_FORECAST, alerts)

    assert "Active Weather Alerts" not in reply


@pytest.mark.asyncio
async def test_malformed_upstream_body_still_replies(test_config):
    forecast = {"location": "Paris", "current": {"condition": "Sunny"}, "forecast": []}
    alerts = {"alerts": {"alert": [{"headline": ["not", "text"], "severity": 3}]}}
    handler = WeatherHandler(test_config, mock_client(_router(forecast=forecast, alerts=alerts)))

    reply = await handler.handle("Paris")

    assert reply.startswith("**Weather for Paris**")
    assert "1. Unnamed alert" in reply
