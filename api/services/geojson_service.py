"""GeoJSON export of the localities, for the observation map.

The serialised collection is cached with its ETag until the TTL expires or a
locality, town or department changes.
"""

import hashlib
import json
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core.cache import (
    GEOJSON_LOCALITIES_KEY,
    get_cached_geojson,
    set_cached_geojson,
)
from core.logger import get_logger
from core.permissions import LoggedUser
from repositories.locality_repository import LocalityRepository
from services.entity_service import require_user

logger = get_logger(__name__)


def locality_feature(row: Any) -> dict[str, Any]:
    """Point feature from a find_all_with_town_and_department() row."""
    locality = row.Locality
    return {
        "type": "Feature",
        "id": locality.id,
        "geometry": {
            "type": "Point",
            "coordinates": [locality.longitude, locality.latitude],
        },
        "properties": {
            "id": str(locality.id),
            "nom": locality.nom,
            "altitude": locality.altitude,
            "townId": str(locality.town_id),
            "townCode": row.town_code,
            "townName": row.town_name,
            "departmentCode": row.department_code,
        },
    }


async def get_localities_geojson(
    db: AsyncSession, user: LoggedUser | None
) -> tuple[bytes, str]:
    """Returns the FeatureCollection body and its ETag.

    Raises:
        NotAllowedError: no authenticated caller.
    """
    require_user(user)

    cached = get_cached_geojson(GEOJSON_LOCALITIES_KEY)
    if cached is not None:
        return cached

    rows = await LocalityRepository(db).find_all_with_town_and_department()
    collection = {
        "type": "FeatureCollection",
        "features": [locality_feature(row) for row in rows],
    }
    content = json.dumps(collection, ensure_ascii=False, separators=(",", ":")).encode()
    etag = f'"{hashlib.sha256(content).hexdigest()}"'

    set_cached_geojson(GEOJSON_LOCALITIES_KEY, content, etag)
    logger.info("geojson.localities.generated", features=len(rows))
    return content, etag
