import asyncio

import pytest

from econ_assist.services import url_reader
from econ_assist.services.economics_tools import ECONOMICS_TOOLS
from econ_assist.services.url_reader import is_text_like, read_text_from_url


class DummyContent:
    def __init__(self, chunks):
        self._chunks = chunks

    async def iter_chunked(self, size):
        for chunk in self._chunks:
            yield chunk


class DummyResponse:
    def __init__(self, status=200, chunks=(), content_type="text/plain"):
        self.status = status
        self.headers = {"Content-Type": content_type} if content_type else {}
        self.content = DummyContent(list(chunks))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class DummySession:
    closed = False

    def __init__(self, response=None, error=None, delay=0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.requests = []

    def get(self, url, allow_redirects=True):
        self.requests.append(url)
        if self.error is not None:
            raise self.error
        if self.delay:
            return _SlowResponse(self.response, self.delay)
        return self.response


class _SlowResponse:
    def __init__(self, response, delay):
        self.response = response
        self.delay = delay

    async def __aenter__(self):
        await asyncio.sleep(self.delay)
        return self.response

    async def __aexit__(self, exc_type, exc, tb):
        return False


class TestIsTextLike:
    @pytest.mark.parametrize(
        "ctype",
        ["text/plain", "text/csv; charset=utf-8", "application/json", "application/ld+json", "application/atom+xml"],
    )
    def test_accepts_text_like(self, ctype):
        assert is_text_like(ctype)

    @pytest.mark.parametrize("ctype", ["application/pdf", "image/png", ""])
    def test_rejects_binary(self, ctype):
        assert not is_text_like(ctype)


class TestReadTextFromUrl:
    @pytest.mark.asyncio
    async def test_reads_and_decodes_chunks(self):
        session = DummySession(DummyResponse(chunks=[b"GDP,", b"2.1%"]))

        text = await read_text_from_url("https://data.test/gdp.csv", session=session)

        assert text == "GDP,2.1%"
        assert session.requests == ["https://data.test/gdp.csv"]

    @pytest.mark.asyncio
    async def test_uses_given_charset(self):
        session = DummySession(DummyResponse(chunks=["café".encode("latin-1")]))

        text = await read_text_from_url("https://data.test/a.txt", charset="latin-1", session=session)

        assert text == "café"

    @pytest.mark.asyncio
    async def test_bad_status_reported(self):
        session = DummySession(DummyResponse(status=404))

        text = await read_text_from_url("https://data.test/missing.txt", session=session)

        assert text == "Failed to fetch URL (status 404)"

    @pytest.mark.asyncio
    async def test_unsupported_content_type_reported(self):
        session = DummySession(DummyResponse(chunks=[b"%PDF"], content_type="application/pdf"))

        text = await read_text_from_url("https://data.test/report.pdf", session=session)

        assert text == "Unsupported content-type for read_text_from_url: application/pdf"

    @pytest.mark.asyncio
    async def test_oversized_body_rejected(self):
        session = DummySession(DummyResponse(chunks=[b"x" * 1024, b"x" * 1024]))

        text = await read_text_from_url("https://data.test/big.txt", max_bytes=1500, session=session)

        assert text == "File exceeds max_bytes limit (1500 bytes)"

    @pytest.mark.asyncio
    async def test_invalid_url_rejected_before_fetch(self):
        session = DummySession(DummyResponse(chunks=[b"x"]))

        text = await read_text_from_url("ftp://data.test/a.txt", session=session)

        assert text.startswith("Invalid arguments for read_text_from_url")
        assert session.requests == []

    @pytest.mark.asyncio
    async def test_timeout_uses_fetch_timeout(self, monkeypatch):
        monkeypatch.setattr(url_reader, "FETCH_TIMEOUT_MS", 10)
        session = DummySession(DummyResponse(chunks=[b"late"]), delay=0.05)

        text = await read_text_from_url("https://data.test/slow.txt", session=session)

        assert text == "Timeout fetching the URL (0.01s)."
        assert session.requests == ["https://data.test/slow.txt"]
        await asyncio.sleep(0.1)

    @pytest.mark.asyncio
    async def test_single_attempt_on_connection_error(self):
        session = DummySession(error=RuntimeError("connection dropped"))

        text = await read_text_from_url("https://data.test/a.txt", session=session)

        assert text == "Error fetching text: connection dropped"
        assert len(session.requests) == 1

    def test_registered_as_tool(self):
        assert ECONOMICS_TOOLS["read_text_from_url"] is read_text_from_url
