"""
Service-boundary errors.

Ingestion clients raise these (or `httpx.HTTPError`) internally; the public operations
(`fetch_route`, `search`, `reverse_geocode`) catch them and degrade to local results.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures talking to an external service."""


class MalformedResponseError(ServiceError, ValueError):
    """The service answered, but the body did not match the expected schema."""


class GeocodingError(ServiceError):
    """Place search or reverse geocoding could not produce a usable answer."""
