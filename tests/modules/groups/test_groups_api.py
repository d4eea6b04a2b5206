# tests/modules/groups/test_groups_api.py
import pytest
from bson import ObjectId
from httpx import AsyncClient
from fastapi import status

pytestmark = pytest.mark.asyncio


async def create_group(client: AsyncClient, **payload):
    body = {"name": "Summer 2024", **payload}
    response = await client.post("/api/groups", json=body)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


async def test_create_group_keeps_memory_order(test_client: AsyncClient):
    first, second = str(ObjectId()), str(ObjectId())
    created = await create_group(test_client, description="Trips", memoryIds=[second, first])

    listed = await test_client.get("/api/groups")

    assert listed.status_code == status.HTTP_200_OK
    [group] = listed.json()
    assert group["id"] == created["id"]
    assert group["memoryIds"] == [second, first]
    assert group["description"] == "Trips"


async def test_create_group_defaults(test_client: AsyncClient):
    created = await create_group(test_client)

    assert created["memoryIds"] == []
    assert created["description"] is None
    assert "createdAt" in created


async def test_create_group_allows_duplicates_and_unknown_ids(test_client: AsyncClient):
    dangling = str(ObjectId())
    created = await create_group(test_client, memoryIds=[dangling, dangling])

    assert created["memoryIds"] == [dangling, dangling]


async def test_create_group_requires_name(test_client: AsyncClient, db_client):
    response = await test_client.post("/api/groups", json={"description": "nameless"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "name is required"}
    assert await db_client["groups"].count_documents({}) == 0


async def test_create_group_rejects_unknown_fields(test_client: AsyncClient):
    response = await test_client.post("/api/groups", json={"name": "x", "owner": "me"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Unknown field: owner"}


async def test_get_group_by_id(test_client: AsyncClient):
    created = await create_group(test_client)

    response = await test_client.get(f"/api/groups/{created['id']}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["name"] == "Summer 2024"


async def test_update_group_only_touches_present_fields(test_client: AsyncClient):
    memory_id = str(ObjectId())
    created = await create_group(test_client, description="Trips", memoryIds=[memory_id])

    response = await test_client.put(f"/api/groups/{created['id']}", json={"description": "Road trips"})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["description"] == "Road trips"
    assert body["name"] == "Summer 2024"
    assert body["memoryIds"] == [memory_id]
    assert body["createdAt"] == created["createdAt"]


async def test_update_group_with_empty_list_clears_memories(test_client: AsyncClient):
    created = await create_group(test_client, memoryIds=[str(ObjectId())])

    response = await test_client.put(f"/api/groups/{created['id']}", json={"memoryIds": []})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["memoryIds"] == []


async def test_update_group_rejects_null_name(test_client: AsyncClient):
    created = await create_group(test_client)

    response = await test_client.put(f"/api/groups/{created['id']}", json={"name": None})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Invalid value for name"}


@pytest.mark.parametrize("group_id", [str(ObjectId()), "nope"])
async def test_update_and_delete_unknown_group(test_client: AsyncClient, group_id):
    update = await test_client.put(f"/api/groups/{group_id}", json={"name": "x"})
    delete = await test_client.delete(f"/api/groups/{group_id}")

    for response in (update, delete):
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "Group not found"}


async def test_delete_group(test_client: AsyncClient, db_client):
    created = await create_group(test_client)

    response = await test_client.delete(f"/api/groups/{created['id']}")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Group deleted successfully"}
    assert await db_client["groups"].count_documents({}) == 0


async def test_deleting_memory_does_not_touch_groups(test_client: AsyncClient, png_bytes):
    memory = (await test_client.post(
        "/api/memories",
        data={"title": "t", "date": "2024-01-01", "description": "d"},
        files={"image": ("a.png", png_bytes, "image/png")},
    )).json()
    group = await create_group(test_client, memoryIds=[memory["id"]])

    await test_client.delete(f"/api/memories/{memory['id']}")

    response = await test_client.get(f"/api/groups/{group['id']}")
    assert response.json()["memoryIds"] == [memory["id"]]
