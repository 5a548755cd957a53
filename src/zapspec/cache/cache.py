"""Disk-based caching of fetched OpenAPI documents.

Uses :mod:`diskcache` to keep the raw text of every schema fetched over HTTP,
so repeated ``generate`` runs against the same URL work offline and do not
hammer the documentation server.  Entries never expire on their own; pass
``--update-cache`` to the CLI (``refresh=True`` to the loader) to fetch a
fresh copy.

Cache keys are SHA-256 hashes of the URL.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

import diskcache


class SchemaCache:
    """Disk-backed cache of raw schema documents keyed by source URL.

    Args:
        cache_dir: Root directory for the cache.  A ``schemas/``
            subdirectory is created inside it.

    Example::

        from zapspec.cache import SchemaCache

        cache = SchemaCache("/tmp/zapspec-cache")
        cache.set("https://api.example.com/openapi.json", '{"openapi": "3.0.3"}')
        text = cache.get("https://api.example.com/openapi.json")
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._cache_dir = Path(cache_dir)
        self._cache = diskcache.Cache(str(self._cache_dir / "schemas"))

    def get(self, url: str) -> Optional[str]:
        """Return the cached document text for *url*, or ``None`` on a miss."""
        return self._cache.get(self._make_key(url))

    def set(self, url: str, content: str) -> None:
        """Store the document text fetched from *url*."""
        self._cache.set(self._make_key(url), content)

    def invalidate(self, url: str) -> None:
        """Remove the entry for *url*, if any."""
        self._cache.delete(self._make_key(url))

    def clear(self) -> None:
        """Remove all entries from the cache."""
        self._cache.clear()

    @property
    def directory(self) -> Path:
        return self._cache_dir / "schemas"

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()

    def __enter__(self) -> SchemaCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _make_key(self, url: str) -> str:
        return hashlib.sha256(url.encode()).hexdigest()
