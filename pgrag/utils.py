"""Helpers for deriving document ids from ingestion sources.

A source is either a local path or an http(s) URL. Its doc_id is the SHA-1 of
the normalized URL or the resolved path, so ingesting the same source twice
replaces rather than duplicates its chunks.
"""
import hashlib
import re

MARKDOWN_SUFFIXES = (".md", ".markdown", ".mdx")


def stable_doc_id(s: str) -> str:
    """Return the 40-char SHA-1 hex digest of a source key (URL or path)."""
    return hashlib.sha1(s.encode("utf-8")).hexdigest()


def normalize_url(u: str) -> str:
    """Strip whitespace, the #fragment and one trailing slash.

    Args:
        u: URL as given on the command line.

    Returns:
        str: Canonical form used as the doc_id key.
    """
    u = re.sub(r"#.*$", "", u.strip())
    return u[:-1] if len(u) > 1 and u.endswith("/") else u


def is_url(s: str) -> bool:
    return s.lower().startswith(("http://", "https://"))


def is_markdown_source(name: str) -> bool:
    """Return True when the path or URL ends in a Markdown suffix (query string ignored)."""
    path = name.split("?", 1)[0].lower()
    return path.endswith(MARKDOWN_SUFFIXES)
