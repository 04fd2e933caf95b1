"""Deterministic fingerprints for search result records.

A record's fingerprint is derived from the best natural identifier it
carries, in strict priority order:

1. an explicit natural key supplied by the caller (FRED/BLS/USASpending ids),
2. a known registry id on the record or its ``metadata``/``data`` mapping
   (clinical-trial NCT id, PubMed id, DOI, label set id),
3. a DOI found in the URL, then in the text content,
4. an arXiv id found in the URL,
5. the normalized URL,
6. ``lower(title)|lower(source)|date``.

The identifier is hashed with SHA-256 and the first 16 bytes are laid out as
a version-4/variant-1 UUID string, so the same identifier always produces the
same fingerprint. Records with no title, source or date collapse onto one
fingerprint; they carry nothing that could tell them apart.
"""

from __future__ import annotations

import hashlib
from typing import Any, Mapping, Optional

from econ_assist.utils.url_utils import extract_arxiv_id, extract_doi, normalize_url

# Registry identifiers checked on the record itself and its nested mappings
NATURAL_KEY_FIELDS = ("nct_id", "pmid", "doi", "setid")


def key_to_uuid(key: str) -> str:
    digest = bytearray(hashlib.sha256(key.encode("utf-8")).digest()[:16])
    digest[6] = (digest[6] & 0x0F) | 0x40
    digest[8] = (digest[8] & 0x3F) | 0x80
    h = digest.hex()
    return f"{h[0:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"


def record_field(record: Mapping[str, Any], name: str) -> Any:
    """Read ``name`` from a raw record, falling back to its metadata/data."""
    value = record.get(name)
    if value:
        return value
    for nested in ("metadata", "data"):
        inner = record.get(nested)
        if isinstance(inner, Mapping) and inner.get(name):
            return inner.get(name)
    return None


def natural_identifier(record: Mapping[str, Any], natural_key: Optional[str] = None) -> str:
    """Return the string a record's fingerprint is computed from."""
    if natural_key:
        return str(natural_key)

    for name in NATURAL_KEY_FIELDS:
        value = record_field(record, name)
        if not value:
            continue
        if name == "doi":
            return extract_doi(str(value)) or str(value).strip().lower()
        return str(value)

    url = record.get("url") if isinstance(record.get("url"), str) else ""
    content = record.get("content")
    doi = extract_doi(url) or extract_doi(content if isinstance(content, str) else "")
    if doi:
        return doi

    arxiv_id = extract_arxiv_id(url)
    if arxiv_id:
        return arxiv_id

    normalized = normalize_url(url)
    if normalized:
        return normalized

    title = str(record.get("title") or "").lower()
    source = str(record_field(record, "source") or "").lower()
    date = str(record_field(record, "date") or "")
    return f"{title}|{source}|{date}"


def result_id(record: Mapping[str, Any], natural_key: Optional[str] = None) -> str:
    return key_to_uuid(natural_identifier(record, natural_key))
