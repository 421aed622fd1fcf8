"""Pulse item identity.

The same story often reaches us through several feeds with different tracking
links (hnrss adds utm_*, Product Hunt adds ref). Each candidate gets an
`external_id` derived from its canonical URL, which is the unique key of the
pulse-items collection, so reruns and repeats across feeds of one source
(HN frontpage and HN Show) are skipped.
"""

from __future__ import annotations

import hashlib
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


TRACKING_QUERY_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "utm_id",
    "gclid",
    "fbclid",
    "mc_cid",
    "mc_eid",
    "ref",
    "ref_src",
}

EXTERNAL_ID_HASH_CHARS = 20


def canonicalize_url(url: str) -> str:
    """Canonical form used for Pulse identity.

    Scheme and host are lowercased (scheme defaults to https), an empty path
    becomes "/", the fragment is dropped, and tracking parameters are removed
    while the remaining query parameters are sorted.
    """
    if not url:
        return ""
    p = urlparse(url.strip())
    scheme = (p.scheme or "https").lower()
    netloc = (p.netloc or "").lower()
    path = p.path or "/"

    kept = [(k, v) for k, v in parse_qsl(p.query, keep_blank_values=True) if k.lower() not in TRACKING_QUERY_PARAMS]
    kept.sort(key=lambda kv: (kv[0].lower(), kv[1]))
    return urlunparse((scheme, netloc, path, "", urlencode(kept, doseq=True), ""))


def url_hash(url: str) -> str:
    """sha256 hex digest of the canonical URL."""
    return hashlib.sha256(canonicalize_url(url).encode("utf-8")).hexdigest()


def external_id(source: str, url: str) -> str:
    """Stable pulse-item id, e.g. "hn-3f1c9a0d2b7e4c5a6f10"."""
    return f"{source}-{url_hash(url)[:EXTERNAL_ID_HASH_CHARS]}"
