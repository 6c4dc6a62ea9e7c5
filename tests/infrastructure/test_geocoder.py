"""Tests for the Nominatim geocoder."""

import httpx
import pytest

from checkout_engine.domain import Address
from checkout_engine.infrastructure.geocoder import GeocodeResult, NominatimGeocoder

ADDRESS = Address(line1="4 Broad Street", city="Lagos Island", state="Lagos", country="")


def make_geocoder(handler) -> NominatimGeocoder:
    return NominatimGeocoder(
        url="https://geo.test/search",
        user_agent="test-agent",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_best_match() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"lat": "6.4550", "lon": "3.3941"}])

    result = await make_geocoder(handler).geocode(ADDRESS)

    assert result == GeocodeResult(latitude=6.455, longitude=3.3941)
    params = seen[0].url.params
    assert params["q"] == "4 Broad Street, Lagos Island, Lagos, Nigeria"
    assert params["limit"] == "1"
    assert params["format"] == "json"
    assert seen[0].headers["User-Agent"] == "test-agent"


@pytest.mark.asyncio
async def test_no_match() -> None:
    geocoder = make_geocoder(lambda request: httpx.Response(200, json=[]))
    assert await geocoder.geocode(ADDRESS) is None


@pytest.mark.asyncio
async def test_rejected_request() -> None:
    geocoder = make_geocoder(lambda request: httpx.Response(429, text="slow down"))
    assert await geocoder.geocode(ADDRESS) is None


@pytest.mark.asyncio
async def test_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    assert await make_geocoder(handler).geocode(ADDRESS) is None


@pytest.mark.asyncio
async def test_malformed_coordinates() -> None:
    geocoder = make_geocoder(
        lambda request: httpx.Response(200, json=[{"lat": "north", "lon": "3.39"}])
    )
    assert await geocoder.geocode(ADDRESS) is None
