"""Tests for the lyrics provider client."""

import asyncio

import httpx
import pytest

from lyricsvault.services.lyrics_provider import (
    LyricsProviderClient,
    NoLyricsFoundError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    clean_lyrics,
)

BASE_URL = "https://lyrics.test/v1"


def client_for(handler, timeout: float = 5.0) -> LyricsProviderClient:
    return LyricsProviderClient(BASE_URL, timeout=timeout, transport=httpx.MockTransport(handler))


class TestCleanLyrics:
    """Tests for clean_lyrics."""

    def test_strips_boilerplate_prefix(self):
        """Test removal of the provider's French title line."""
        raw = "Paroles de la chanson Amazing Grace par John Newton\r\n\nAmazing grace\nHow sweet"
        assert clean_lyrics(raw) == "Amazing grace\nHow sweet"

    def test_trims_whitespace(self):
        """Test trimming without a prefix."""
        assert clean_lyrics("\n  words \n") == "words"

    def test_prefix_only_is_empty(self):
        """Test that boilerplate alone cleans to nothing."""
        assert clean_lyrics("Paroles de la chanson X par Y\n\n   ") == ""


class TestFetchLyrics:
    """Tests for LyricsProviderClient.fetch_lyrics."""

    async def test_success(self):
        """Test a successful lookup with a path-quoted URL."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.raw_path.decode()
            return httpx.Response(200, json={"lyrics": "Amazing grace\nHow sweet"})

        lyrics = await client_for(handler).fetch_lyrics("AC/DC", "Back in Black")

        assert lyrics == "Amazing grace\nHow sweet"
        assert seen["path"] == "/v1/AC%2FDC/Back%20in%20Black"

    async def test_not_found_status(self):
        """Test that 404 means no lyrics."""
        client = client_for(lambda request: httpx.Response(404, json={"error": "No lyrics found"}))

        with pytest.raises(NoLyricsFoundError):
            await client.fetch_lyrics("Nobody", "Nothing")

    async def test_error_field(self):
        """Test that an error body means no lyrics."""
        client = client_for(lambda request: httpx.Response(200, json={"error": "No lyrics found"}))

        with pytest.raises(NoLyricsFoundError):
            await client.fetch_lyrics("a", "b")

    async def test_empty_lyrics(self):
        """Test that an empty lyrics field means no lyrics."""
        client = client_for(lambda request: httpx.Response(200, json={"lyrics": ""}))

        with pytest.raises(NoLyricsFoundError):
            await client.fetch_lyrics("a", "b")

    @pytest.mark.parametrize("status", [500, 502, 503, 429, 408])
    async def test_transient_statuses(self, status):
        """Test that server errors and throttling are retryable."""
        client = client_for(lambda request: httpx.Response(status))

        with pytest.raises(ProviderUnavailableError):
            await client.fetch_lyrics("a", "b")

    async def test_malformed_body(self):
        """Test that a non-JSON body is treated as a provider fault."""
        client = client_for(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(ProviderUnavailableError):
            await client.fetch_lyrics("a", "b")

    async def test_connection_error(self):
        """Test that transport errors are retryable."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderUnavailableError):
            await client_for(handler).fetch_lyrics("a", "b")

    async def test_httpx_timeout(self):
        """Test that httpx timeouts map to ProviderTimeoutError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(ProviderTimeoutError):
            await client_for(handler).fetch_lyrics("a", "b")

    async def test_hard_timeout(self):
        """Test that a slow provider is cut off at the client timeout."""

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, json={"lyrics": "late"})

        with pytest.raises(ProviderTimeoutError):
            await client_for(handler, timeout=0.05).fetch_lyrics("a", "b")
