"""컬렉션 / 프로필"""

from __future__ import annotations

from bson import ObjectId


async def _collection(client, **body):
    resp = await client.post("/collections", json={"name": "Weeknight", **body})
    assert resp.status_code == 201
    return resp.json()


class TestCollections:
    async def test_create_requires_name(self, client) -> None:
        resp = await client.post("/collections", json={"color": "red"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Collection name is required"

    async def test_icon_kept_only_with_code_point(self, client) -> None:
        with_icon = await _collection(client, icon={"codePoint": 58732, "fontFamily": "MaterialIcons"})
        without = await _collection(client, icon={"fontFamily": "MaterialIcons"})
        assert with_icon["icon"] == {"codePoint": 58732, "fontFamily": "MaterialIcons", "fontPackage": None}
        assert "icon" not in without

    async def test_scoped_to_owner(self, client, auth) -> None:
        mine = await _collection(client)
        auth.uid = "bob"
        assert (await client.get(f"/collections/{mine['id']}")).status_code == 404
        assert (await client.get("/collections")).json() == []

    async def test_add_duplicate_and_remove_recipe(self, client) -> None:
        col = await _collection(client)
        url = f"/collections/{col['id']}/recipes"

        assert (await client.post(url, json={})).status_code == 400
        assert (await client.post(url, json={"recipe": {"id": "r1", "title": "Pie"}})).status_code == 200
        dup = await client.post(url, json={"recipe": {"id": "r1", "title": "Pie"}})
        assert dup.status_code == 409

        await client.delete(f"{url}/r1")
        fetched = await client.get(f"/collections/{col['id']}")
        assert fetched.json()["recipes"] == []

    async def test_update_and_delete(self, client) -> None:
        col = await _collection(client)
        resp = await client.put(f"/collections/{col['id']}", json={"name": "Weekend"})
        assert resp.json()["name"] == "Weekend"
        assert (await client.delete(f"/collections/{col['id']}")).status_code == 200
        assert (await client.delete(f"/collections/{col['id']}")).status_code == 404

    async def test_unknown_collection(self, client) -> None:
        assert (await client.put(f"/collections/{ObjectId()}", json={"name": "x"})).status_code == 404


class TestProfile:
    async def test_missing_profile(self, client) -> None:
        resp = await client.get("/users/profile")
        assert resp.status_code == 404
        assert resp.json()["message"] == "User not found"

    async def test_upsert_and_read(self, client) -> None:
        resp = await client.put("/users/profile", json={"displayName": "Alice", "showProfileInCommunity": False})
        assert resp.status_code == 200
        assert resp.json()["uid"] == "alice"

        got = (await client.get("/users/profile")).json()
        assert got["displayName"] == "Alice"
        assert got["showProfileInCommunity"] is False

        await client.put("/users/profile", json={"fcmToken": "tok"})
        got = (await client.get("/users/profile")).json()
        assert got["fcmToken"] == "tok"
        assert got["displayName"] == "Alice"
