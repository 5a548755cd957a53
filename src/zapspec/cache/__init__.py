"""Disk-based schema caching for zapspec.

This package provides :class:`SchemaCache`, which stores the raw text of
OpenAPI documents fetched over HTTP using :mod:`diskcache`.  The cache is
consulted by :func:`~zapspec.parser.loader.load_spec` whenever a cache
instance is passed in.
"""

from zapspec.cache.cache import SchemaCache

__all__ = ["SchemaCache"]
