from conftest import family_of, register


def test_family_crud_and_settings(client):
    owner = register(client, "owner@example.com")

    created = client.post("/v1/families", json={"name": "Lake House"}, headers=owner["headers"])
    assert created.status_code == 201
    family = created.json()
    assert family["settings"] == {"currency": "BDT", "timezone": "Asia/Dhaka"}
    assert [m["role"] for m in family["members"]] == ["Primary User"]

    listed = client.get("/v1/families", headers=owner["headers"])
    assert listed.status_code == 200
    assert len(listed.json()["items"]) == 2

    updated = client.patch(
        f"/v1/families/{family['id']}",
        json={"name": "Lake House 2", "currency": "USD"},
        headers=owner["headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Lake House 2"
    assert updated.json()["settings"]["currency"] == "USD"

    empty = client.patch(f"/v1/families/{family['id']}", json={}, headers=owner["headers"])
    assert empty.status_code == 400


def test_non_member_cannot_read_family(client):
    owner = register(client, "owner@example.com")
    stranger = register(client, "stranger@example.com")
    family_id = family_of(client, owner["headers"])

    assert client.get(f"/v1/families/{family_id}", headers=stranger["headers"]).status_code == 403
    assert client.get(f"/v1/families/{family_id}/members", headers=stranger["headers"]).status_code == 403
    assert client.get("/v1/families/9999", headers=owner["headers"]).status_code == 404


def test_member_management_is_primary_user_only(client):
    owner = register(client, "owner@example.com")
    admin = register(client, "admin@example.com")
    kid = register(client, "kid@example.com")
    family_id = family_of(client, owner["headers"])

    added = client.post(
        f"/v1/families/{family_id}/members",
        json={"email": "admin@example.com", "role": "Admin"},
        headers=owner["headers"],
    )
    assert added.status_code == 201
    assert added.json()["role"] == "Admin"

    # An Admin holds no authority over membership.
    by_admin = client.post(
        f"/v1/families/{family_id}/members",
        json={"email": "kid@example.com", "role": "Member"},
        headers=admin["headers"],
    )
    assert by_admin.status_code == 403

    added_kid = client.post(
        f"/v1/families/{family_id}/members",
        json={"email": "kid@example.com", "role": "Member"},
        headers=owner["headers"],
    )
    assert added_kid.status_code == 201

    duplicate = client.post(
        f"/v1/families/{family_id}/members",
        json={"email": "kid@example.com", "role": "Member"},
        headers=owner["headers"],
    )
    assert duplicate.status_code == 409

    promote = client.put(
        f"/v1/families/{family_id}/members/{kid['user_id']}/role",
        json={"role": "Admin"},
        headers=owner["headers"],
    )
    assert promote.status_code == 200
    assert promote.json()["role"] == "Admin"

    removed_by_admin = client.delete(f"/v1/families/{family_id}/members/{kid['user_id']}", headers=admin["headers"])
    assert removed_by_admin.status_code == 403

    removed = client.delete(f"/v1/families/{family_id}/members/{kid['user_id']}", headers=owner["headers"])
    assert removed.status_code == 204

    members = client.get(f"/v1/families/{family_id}/members", headers=owner["headers"]).json()["items"]
    assert sorted(m["email"] for m in members) == ["admin@example.com", "owner@example.com"]


def test_primary_user_is_protected(client):
    owner = register(client, "owner@example.com")
    admin = register(client, "admin@example.com")
    family_id = family_of(client, owner["headers"])
    client.post(
        f"/v1/families/{family_id}/members",
        json={"email": "admin@example.com", "role": "Admin"},
        headers=owner["headers"],
    )

    assert client.delete(f"/v1/families/{family_id}/members/{owner['user_id']}", headers=owner["headers"]).status_code == 403
    assert client.delete(f"/v1/families/{family_id}/members/{owner['user_id']}", headers=admin["headers"]).status_code == 403

    grant_primary = client.put(
        f"/v1/families/{family_id}/members/{admin['user_id']}/role",
        json={"role": "Primary User"},
        headers=owner["headers"],
    )
    assert grant_primary.status_code == 403

    unknown_role = client.put(
        f"/v1/families/{family_id}/members/{admin['user_id']}/role",
        json={"role": "Owner"},
        headers=owner["headers"],
    )
    assert unknown_role.status_code == 400

    missing = client.delete(f"/v1/families/{family_id}/members/424242", headers=owner["headers"])
    assert missing.status_code == 404


def test_add_member_unknown_email(client):
    owner = register(client, "owner@example.com")
    family_id = family_of(client, owner["headers"])

    resp = client.post(
        f"/v1/families/{family_id}/members",
        json={"email": "ghost@example.com", "role": "Member"},
        headers=owner["headers"],
    )
    assert resp.status_code == 404
