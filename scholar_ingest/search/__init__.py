"""
External scholarly search.

Currently a single backend: SerpApi's Google Scholar engine.
"""

from .serpapi import SerpApiClient, TransportError, mask_api_key

__all__ = [
    "SerpApiClient",
    "TransportError",
    "mask_api_key",
]
