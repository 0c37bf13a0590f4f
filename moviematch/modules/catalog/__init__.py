"""
Catalog Module - Black Box Interface

Purpose: Fetch candidate movies from the external catalog provider
Interface: discover()
Hidden: TMDb URLs, query parameters, HTTP client, response normalization

Can be replaced with any provider that returns a ranked movie list.
"""

from .catalog import CatalogModule, normalize_movie

__all__ = ["CatalogModule", "normalize_movie"]
