import json

import httpx
import pytest

from src.exceptions import DeserializationError, UpstreamUnavailableError
from src.news.schemas.articles import UNKNOWN_AUTHOR, UNKNOWN_AUTHORS
from src.news.services.upstream_client import UpstreamNewsClient

BASE_URL = "https://news.test/api/search"


def make_client(handler, clock):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UpstreamNewsClient(BASE_URL, "secret-token", http_client=http_client, clock=clock)


class TestFetchArticles:
    @pytest.mark.asyncio
    async def test_builds_search_request(self, clock, articles_envelope, sample_articles):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(200, text=articles_envelope(sample_articles))

        client = make_client(handler, clock)
        articles = await client.fetch_articles(["Tech", "Sports"])

        request = captured["request"]
        assert str(request.url).startswith(BASE_URL + "?")
        assert request.url.params["q"] == "Tech OR Sports"
        assert request.url.params["from_"] == "2024-05-22"
        assert request.url.params["to_"] == "2024-06-01"
        assert request.url.params["lang"] == "en"
        assert request.url.params["countries"] == "us,EG,CA,FR,GB,DE"
        assert request.url.params["page_size"] == "100"
        assert request.url.params["page"] == "1"
        assert request.headers["x-api-token"] == "secret-token"
        assert request.headers["accept"] == "application/json"
        assert articles == sample_articles

    @pytest.mark.asyncio
    async def test_caller_country_is_not_repeated(self, clock):
        client = make_client(lambda request: httpx.Response(200, json={"articles": []}), clock)

        assert client.build_countries("GB") == "GB,EG,CA,FR,DE"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_upstream_unavailable(self, clock):
        client = make_client(lambda request: httpx.Response(429, json={"message": "rate limited"}), clock)

        with pytest.raises(UpstreamUnavailableError):
            await client.fetch_articles(["Tech"])

    @pytest.mark.asyncio
    async def test_network_error_raises_upstream_unavailable(self, clock):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, clock)

        with pytest.raises(UpstreamUnavailableError):
            await client.fetch_articles(["Tech"])

    @pytest.mark.asyncio
    async def test_undecodable_body_raises_deserialization_error(self, clock):
        client = make_client(lambda request: httpx.Response(200, text="<html>maintenance</html>"), clock)

        with pytest.raises(DeserializationError) as exc_info:
            await client.fetch_articles(["Tech"])

        assert exc_info.value.raw_payload == "<html>maintenance</html>"

    @pytest.mark.asyncio
    async def test_null_article_list_is_empty(self, clock):
        client = make_client(lambda request: httpx.Response(200, json={"status": "No matches", "articles": None}), clock)

        assert await client.fetch_articles(["Tech"]) == []


class TestFetchById:
    @pytest.mark.asyncio
    async def test_uses_by_link_endpoint_and_normalizes_authors(self, clock):
        captured = {}

        def handler(request):
            captured["request"] = request
            payload = {"Articles": [{"_ID": "abc", "Title": "Headline", "Author": None, "Authors": []}]}
            return httpx.Response(200, text=json.dumps(payload))

        client = make_client(handler, clock)
        article = await client.fetch_by_id("abc")

        assert captured["request"].url.path == "/api/search_by_link"
        assert captured["request"].url.params["ids"] == "abc"
        assert article.id == "abc"
        assert article.title == "Headline"
        assert article.author == UNKNOWN_AUTHOR
        assert article.authors == (UNKNOWN_AUTHORS,)

    @pytest.mark.asyncio
    async def test_not_found_returns_none(self, clock):
        client = make_client(lambda request: httpx.Response(200, json={"articles": []}), clock)

        assert await client.fetch_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_errors_return_none(self, clock):
        client = make_client(lambda request: httpx.Response(500), clock)

        assert await client.fetch_by_id("abc") is None
