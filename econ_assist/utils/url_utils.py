"""
URL utilities for normalizing URLs and extracting natural identifiers
(DOIs, arXiv ids) used to fingerprint search results.
"""

import re
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

DOI_PATTERN = re.compile(r"10\.\d{4,9}/[-._;()/:A-Za-z0-9]+")
ARXIV_PATTERN = re.compile(r"arxiv\.org/(?:abs|pdf)/([\w.\-]+)", re.IGNORECASE)

# Tracking parameters removed before a URL is used as an identity
TRACKING_PARAMS = {
    'fbclid', 'gclid', 'dclid', 'msclkid', 'twclid',
    'ref', 'ref_src', 'ref_url', 'referrer',
    '_ga', '_gid', '_gac', '_gl', '_gclid',
    'mc_cid', 'mc_eid', 'mkt_tok',
    'yclid', 'ysclid',
}


def is_tracking_param(name: str) -> bool:
    return name.startswith("utm_") or name in TRACKING_PARAMS


def strip_tracking_params(query: str) -> List[Tuple[str, str]]:
    """
    Drop tracking parameters from a raw query string.

    Args:
        query: Query component without the leading ``?``

    Returns:
        Remaining ``(name, value)`` pairs sorted by name then value
    """
    if not query:
        return []
    pairs = parse_qsl(query, keep_blank_values=True)
    return sorted((k, v) for k, v in pairs if not is_tracking_param(k))


def normalize_url(url: Optional[str]) -> str:
    """
    Normalize a URL into a stable identity string.

    Scheme and host are lowercased, the fragment is removed, trailing slashes
    are stripped from the path, tracking parameters are removed and the
    remaining query parameters are sorted. Strings that do not parse as an
    absolute URL are returned trimmed.

    Args:
        url: URL string to normalize

    Returns:
        Normalized URL string, empty when ``url`` is empty
    """
    if not url:
        return ""

    url = url.strip()
    try:
        p = urlparse(url)
    except ValueError:
        return url
    if not p.scheme or not p.netloc:
        return url

    query = urlencode(strip_tracking_params(p.query))
    return urlunparse((
        p.scheme.lower(),
        p.netloc.lower(),
        p.path.rstrip("/"),
        p.params,
        query,
        "",
    ))


def extract_doi(text: Optional[str]) -> Optional[str]:
    """
    Extract a DOI from text or a URL.

    Args:
        text: Text that may contain a DOI

    Returns:
        Lowercased DOI if found, None otherwise
    """
    if not text:
        return None

    match = DOI_PATTERN.search(text)
    if not match:
        return None
    # Sentence punctuation directly after a DOI is not part of it
    return match.group(0).rstrip(".,;:").lower()


def extract_arxiv_id(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    m = ARXIV_PATTERN.search(url)
    if not m:
        return None
    arxiv_id = m.group(1)
    if arxiv_id.lower().endswith(".pdf"):
        arxiv_id = arxiv_id[:-4]
    return arxiv_id
