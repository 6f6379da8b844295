"""Tests for the locality GeoJSON endpoint."""

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from tests.factories import create_locality_tree

pytestmark = pytest.mark.integration

URL = "/api/v1/geojson/localities"


async def test_returns_feature_collection(user_client: AsyncClient, app: FastAPI):
    async with app.state.session_maker() as session:
        department, town, locality = await create_locality_tree(session)
        await session.commit()

    response = await user_client.get(URL)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json; charset=utf-8"
    assert response.headers["cache-control"] == "private, max-age=300"
    assert response.headers["etag"].startswith('"')
    body = response.json()
    assert body["type"] == "FeatureCollection"
    (feature,) = body["features"]
    assert feature["geometry"] == {
        "type": "Point",
        "coordinates": [locality.longitude, locality.latitude],
    }
    assert feature["properties"]["nom"] == locality.nom
    assert feature["properties"]["townName"] == town.nom
    assert feature["properties"]["departmentCode"] == department.code


async def test_matching_etag_returns_304(user_client: AsyncClient, app: FastAPI):
    async with app.state.session_maker() as session:
        await create_locality_tree(session)
        await session.commit()
    first = await user_client.get(URL)

    response = await user_client.get(
        URL, headers={"If-None-Match": first.headers["etag"]}
    )

    assert response.status_code == 304
    assert response.headers["etag"] == first.headers["etag"]
    assert response.content == b""


async def test_new_locality_refreshes_the_map(
    admin_client: AsyncClient, app: FastAPI
):
    async with app.state.session_maker() as session:
        _, town, _ = await create_locality_tree(session)
        await session.commit()
    first = await admin_client.get(URL)

    created = await admin_client.post(
        "/api/v1/localities",
        json={
            "townId": town.id,
            "nom": "Étang des Landes",
            "altitude": 210,
            "longitude": 2.37,
            "latitude": 46.3,
        },
    )
    response = await admin_client.get(URL)

    assert created.status_code == 200
    assert len(response.json()["features"]) == 2
    assert response.headers["etag"] != first.headers["etag"]


async def test_requires_authentication(client: AsyncClient):
    response = await client.get(URL)

    assert response.status_code == 401


async def test_identity_without_role_is_403(no_role_client: AsyncClient):
    response = await no_role_client.get(URL)

    assert response.status_code == 403
