"""
Tests for the geocoding client against a mocked Nominatim endpoint.
"""

import httpx
import pytest

from routeoptima.config import Settings
from routeoptima.core.errors import UpstreamUnavailable
from routeoptima.services.geo import Coordinate
from routeoptima.services.geocoding import GeocodingClient, resolve_drop_location


def client_for(handler, **kwargs) -> GeocodingClient:
    return GeocodingClient(
        base_url="https://geocoder.test/search",
        country_suffix=", India",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def respond_with(status_code=200, **kwargs):
    def handler(request):
        return httpx.Response(status_code, **kwargs)
    return handler


class TestGeocodingClient:

    @pytest.mark.asyncio
    async def test_first_match_is_used(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[
                {"lat": "19.2183", "lon": "72.9781", "display_name": "Thane"},
                {"lat": "0", "lon": "0"},
            ])

        result = await client_for(handler, user_agent="routeoptima-tests").geocode("Thane West")

        assert result == Coordinate(19.2183, 72.9781)
        params = seen[0].url.params
        assert params["q"] == "Thane West, India"
        assert params["format"] == "json"
        assert params["limit"] == "1"
        assert seen[0].headers["User-Agent"] == "routeoptima-tests"

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self):
        assert await client_for(respond_with(json=[])).geocode("Atlantis") is None

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        with pytest.raises(UpstreamUnavailable):
            await client_for(respond_with(503, text="busy")).geocode("Thane")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamUnavailable):
            await client_for(handler).geocode("Thane")

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        with pytest.raises(UpstreamUnavailable):
            await client_for(respond_with(text="<html>oops</html>")).geocode("Thane")

    @pytest.mark.asyncio
    async def test_unexpected_payload_raises(self):
        with pytest.raises(UpstreamUnavailable):
            await client_for(respond_with(json={"error": "rate limited"})).geocode("Thane")

    @pytest.mark.asyncio
    async def test_malformed_result_raises(self):
        with pytest.raises(UpstreamUnavailable):
            await client_for(respond_with(json=[{"lat": "north"}])).geocode("Thane")

    @pytest.mark.asyncio
    async def test_disabled_or_blank_skips_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert await client_for(handler, enabled=False).geocode("Thane") is None
        assert await client_for(handler).geocode("   ") is None

    def test_from_settings(self):
        settings = Settings(
            geocoding_url="https://nominatim.example/search",
            geocoding_country_suffix="",
            geocoding_enabled=False,
        )
        client = GeocodingClient.from_settings(settings)
        assert client.base_url == "https://nominatim.example/search"
        assert client.country_suffix == ""
        assert client.enabled is False


class TestResolveDropLocation:

    @pytest.mark.asyncio
    async def test_failure_degrades_to_none(self):
        assert await resolve_drop_location(client_for(respond_with(500)), "Thane") is None

    @pytest.mark.asyncio
    async def test_success_passes_through(self):
        handler = respond_with(json=[{"lat": "19.0", "lon": "73.0"}])
        assert await resolve_drop_location(client_for(handler), "Thane") == Coordinate(19.0, 73.0)
