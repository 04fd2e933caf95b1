"""Tests for deterministic result fingerprints."""

import hashlib
import re
import uuid

import pytest

from econ_assist.services.result_identity import key_to_uuid, natural_identifier, result_id

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


class TestKeyToUuid:
    def test_format_version_and_variant(self):
        value = key_to_uuid("10.1000/xyz")
        assert UUID_RE.match(value)
        parsed = uuid.UUID(value)
        assert parsed.version == 4
        assert parsed.variant == uuid.RFC_4122

    def test_derived_from_sha256_prefix(self):
        digest = hashlib.sha256(b"gdp").digest()[:16]
        value = key_to_uuid("gdp").replace("-", "")
        # Apart from the version and variant bits the bytes are the digest
        assert value[:12] == digest.hex()[:12]
        assert value[13:16] == digest.hex()[13:16]
        assert value[20:] == digest.hex()[20:]

    def test_deterministic(self):
        assert key_to_uuid("same") == key_to_uuid("same")
        assert key_to_uuid("same") != key_to_uuid("other")


class TestResultId:
    def test_same_doi_different_urls(self):
        a = {"url": "https://doi.org/10.1000/xyz", "title": "A"}
        b = {"url": "https://publisher.example/article?doi=10.1000/xyz", "title": "B"}
        assert result_id(a) == result_id(b)

    def test_explicit_natural_key_wins(self):
        record = {"url": "https://doi.org/10.1000/xyz"}
        assert result_id(record, natural_key="GDPC1") == key_to_uuid("GDPC1")

    def test_registry_field_in_metadata(self):
        record = {"url": "https://pubmed.example/123", "metadata": {"pmid": "123"}}
        assert natural_identifier(record) == "123"

    def test_doi_field_normalized(self):
        record = {"doi": "https://doi.org/10.1000/ABC", "url": "https://x.example"}
        assert natural_identifier(record) == "10.1000/abc"

    def test_doi_in_content_when_url_has_none(self):
        record = {"url": "https://example.com/page", "content": "Published as 10.5555/econ.1"}
        assert natural_identifier(record) == "10.5555/econ.1"

    def test_arxiv_before_url(self):
        record = {"url": "https://arxiv.org/abs/2301.01234"}
        assert natural_identifier(record) == "2301.01234"

    def test_normalized_url(self):
        a = {"url": "https://Example.com/report/?utm_source=feed#top"}
        b = {"url": "https://example.com/report"}
        assert result_id(a) == result_id(b)

    def test_title_source_date_fallback(self):
        record = {"title": "GDP Report", "metadata": {"source": "BEA", "date": "2024-01-01"}}
        assert natural_identifier(record) == "gdp report|bea|2024-01-01"

    @pytest.mark.parametrize("record", [{}, {"url": None, "content": None}])
    def test_empty_record(self, record):
        assert result_id(record) == key_to_uuid("||")
