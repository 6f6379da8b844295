"""In-memory TTL caching utilities.

Note: Cache is per-worker/replica, not shared across instances.
A download link handed out by one worker is only valid on that worker.
"""

from typing import TYPE_CHECKING

from cachetools import TTLCache

if TYPE_CHECKING:
    from core.auth import IntrospectionResult

DEFAULT_MAX_SIZE = 1000

# Token introspection results, keyed by access token. A revoked token stays
# valid for at most this long.
INTROSPECTION_TTL_SECONDS = 60

# Generated workbooks, keyed by export id
EXPORT_TTL_SECONDS = 3600
EXPORT_MAX_SIZE = 100

# Serialised locality map with its ETag, matching the client max-age
GEOJSON_TTL_SECONDS = 300
GEOJSON_LOCALITIES_KEY = "localities"

_introspection_cache: TTLCache[str, "IntrospectionResult"] = TTLCache(
    maxsize=DEFAULT_MAX_SIZE,
    ttl=INTROSPECTION_TTL_SECONDS,
)

_export_cache: TTLCache[str, bytes] = TTLCache(
    maxsize=EXPORT_MAX_SIZE,
    ttl=EXPORT_TTL_SECONDS,
)

_geojson_cache: TTLCache[str, tuple[bytes, str]] = TTLCache(
    maxsize=8,
    ttl=GEOJSON_TTL_SECONDS,
)


def get_cached_introspection(token: str) -> "IntrospectionResult | None":
    return _introspection_cache.get(token)


def set_cached_introspection(token: str, result: "IntrospectionResult") -> None:
    _introspection_cache[token] = result


def get_cached_export(export_id: str) -> bytes | None:
    return _export_cache.get(export_id)


def set_cached_export(export_id: str, content: bytes) -> None:
    _export_cache[export_id] = content


def get_cached_geojson(key: str) -> tuple[bytes, str] | None:
    return _geojson_cache.get(key)


def set_cached_geojson(key: str, content: bytes, etag: str) -> None:
    _geojson_cache[key] = (content, etag)


def invalidate_geojson_cache() -> None:
    _geojson_cache.clear()


def clear_all_caches() -> None:
    """For tests."""
    _introspection_cache.clear()
    _export_cache.clear()
    _geojson_cache.clear()
