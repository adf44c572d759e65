"""HTTP tests for tasks: two grant sources, strict mode, moves and fan-out."""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from taskshare.models.user import User
from taskshare.realtime.hub import Hub


async def _create_list(client: AsyncClient, headers: dict, name: str = "Chores") -> dict:
    response = await client.post("/api/lists/", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _create_task(client: AsyncClient, headers: dict, list_id: str, **fields) -> dict:
    body = {"name": "Vacuum", "list_id": list_id, **fields}
    response = await client.post("/api/tasks/", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _share_list(client, headers, list_id, user: User, permission="VIEW"):
    response = await client.post(
        f"/api/lists/{list_id}/share",
        json={"user_id": user.id, "permission": permission},
        headers=headers,
    )
    assert response.status_code == 201, response.text


async def _share_task(client, headers, task_id, user: User, permission="VIEW"):
    return await client.post(
        f"/api/tasks/{task_id}/share",
        json={"user_id": user.id, "permission": permission},
        headers=headers,
    )


@pytest.mark.api
@pytest.mark.asyncio
class TestTaskCrud:
    async def test_editor_creates_task_and_members_hear(
        self, client, hub: Hub, alice, bob, headers, make_socket
    ):
        task_list = await _create_list(client, headers(alice))
        await _share_list(client, headers(alice), task_list["id"], bob, "EDIT")
        alice_socket = make_socket()
        await hub.sync_lists(await hub.connect(alice_socket, alice.id), [task_list["id"]])

        task = await _create_task(client, headers(bob), task_list["id"])

        assert task["owner_id"] == alice.id
        assert task["status"] == "PENDING"
        assert task["priority"] == "MEDIUM"
        assert alice_socket.of("task:created")[0]["id"] == task["id"]

    async def test_viewer_cannot_create(self, client, alice, bob, headers):
        task_list = await _create_list(client, headers(alice))
        await _share_list(client, headers(alice), task_list["id"], bob)

        response = await client.post(
            "/api/tasks/", json={"name": "x", "list_id": task_list["id"]}, headers=headers(bob)
        )
        assert response.status_code == 403

    async def test_create_in_missing_list(self, client, alice, headers):
        response = await client.post(
            "/api/tasks/", json={"name": "x", "list_id": "missing"}, headers=headers(alice)
        )
        assert response.status_code == 404

    async def test_completion_fields_follow_status(self, client, alice, headers):
        task_list = await _create_list(client, headers(alice))
        task = await _create_task(client, headers(alice), task_list["id"])
        url = f"/api/tasks/{task['id']}"

        done = (await client.patch(url, json={"status": "COMPLETED"}, headers=headers(alice))).json()
        reopened = (await client.patch(url, json={"status": "IN_PROGRESS"}, headers=headers(alice))).json()

        assert done["completed"] is True
        assert done["completed_at"] is not None
        assert reopened["completed"] is False
        assert reopened["completed_at"] is None

    async def test_created_completed(self, client, alice, headers):
        task_list = await _create_list(client, headers(alice))
        task = await _create_task(client, headers(alice), task_list["id"], status="COMPLETED")
        assert task["completed"] is True

    async def test_empty_update_rejected(self, client, alice, headers):
        task_list = await _create_list(client, headers(alice))
        task = await _create_task(client, headers(alice), task_list["id"])
        response = await client.patch(f"/api/tasks/{task['id']}", json={}, headers=headers(alice))
        assert response.json()["error"]["code"] == "NO_FIELDS_TO_UPDATE"

    async def test_owned_and_shared_task_listing(self, client, alice, bob, carol, headers):
        via_list = await _create_list(client, headers(alice), "Via list")
        other = await _create_list(client, headers(alice), "Other")
        t1 = await _create_task(client, headers(alice), via_list["id"], name="One")
        t2 = await _create_task(client, headers(alice), other["id"], name="Two")
        await _share_list(client, headers(alice), via_list["id"], bob)
        await _share_task(client, headers(alice), t2["id"], bob)

        owned = (await client.get("/api/tasks/", headers=headers(alice))).json()
        shared = (await client.get("/api/tasks/shared", headers=headers(bob))).json()
        nothing = (await client.get("/api/tasks/shared", headers=headers(carol))).json()

        assert {t["id"] for t in owned} == {t1["id"], t2["id"]}
        assert {t["id"] for t in shared} == {t1["id"], t2["id"]}
        assert nothing == []

    async def test_list_editor_cannot_delete_task(self, client, alice, bob, headers):
        task_list = await _create_list(client, headers(alice))
        await _share_list(client, headers(alice), task_list["id"], bob, "EDIT")
        task = await _create_task(client, headers(alice), task_list["id"])

        response = await client.delete(f"/api/tasks/{task['id']}", headers=headers(bob))
        assert response.status_code == 403

    async def test_list_admin_deletes_task(
        self, client, hub: Hub, alice, bob, headers, make_socket
    ):
        task_list = await _create_list(client, headers(alice))
        await _share_list(client, headers(alice), task_list["id"], bob, "ADMIN")
        task = await _create_task(client, headers(alice), task_list["id"])
        alice_socket = make_socket()
        await hub.sync_lists(await hub.connect(alice_socket, alice.id), [task_list["id"]])

        response = await client.delete(f"/api/tasks/{task['id']}", headers=headers(bob))

        assert response.status_code == 200
        assert alice_socket.of("task:deleted") == [task["id"]]


@pytest.mark.api
@pytest.mark.asyncio
class TestTaskOnlyCollaborator:
    """Carol holds ADMIN on one task and nothing on its list."""

    @pytest_asyncio.fixture
    async def setup(self, client, alice, carol, headers):
        task_list = await _create_list(client, headers(alice))
        task = await _create_task(client, headers(alice), task_list["id"])
        response = await _share_task(client, headers(alice), task["id"], carol, "ADMIN")
        assert response.status_code == 201
        return task_list, task

    async def test_can_view_and_update(self, client, carol, headers, setup):
        _, task = setup
        viewed = await client.get(f"/api/tasks/{task['id']}", headers=headers(carol))
        updated = await client.patch(
            f"/api/tasks/{task['id']}", json={"description": "Upstairs too"}, headers=headers(carol)
        )
        assert viewed.status_code == 200
        assert updated.status_code == 200
        assert updated.json()["description"] == "Upstairs too"

    async def test_cannot_delete(self, client, carol, headers, setup):
        _, task = setup
        response = await client.delete(f"/api/tasks/{task['id']}", headers=headers(carol))
        assert response.status_code == 403

    async def test_cannot_manage_task_shares(self, client, carol, dave, headers, setup):
        _, task = setup
        response = await _share_task(client, headers(carol), task["id"], dave)
        assert response.status_code == 403

    async def test_cannot_view_parent_list(self, client, carol, headers, setup):
        task_list, _ = setup
        response = await client.get(f"/api/lists/{task_list['id']}", headers=headers(carol))
        assert response.status_code == 403

    async def test_hears_updates_through_user_room(
        self, client, hub: Hub, alice, carol, headers, make_socket, setup
    ):
        _, task = setup
        carol_socket = make_socket()
        await hub.connect(carol_socket, carol.id)

        await client.patch(
            f"/api/tasks/{task['id']}", json={"favorite": True}, headers=headers(alice)
        )

        assert carol_socket.of("task:updated")[0]["favorite"] is True

    async def test_hears_list_deletion_as_task_deleted(
        self, client, hub: Hub, alice, carol, headers, make_socket, setup
    ):
        task_list, task = setup
        carol_socket = make_socket()
        await hub.connect(carol_socket, carol.id)

        await client.delete(f"/api/lists/{task_list['id']}", headers=headers(alice))

        assert carol_socket.of("task:deleted") == [task["id"]]

    async def test_cannot_move_task(self, client, carol, headers, setup):
        _, task = setup
        own = await _create_list(client, headers(carol), "Carol's")
        response = await client.patch(
            f"/api/tasks/{task['id']}", json={"list_id": own["id"]}, headers=headers(carol)
        )
        assert response.status_code == 403

    async def test_leaves_task(self, client, carol, headers, setup):
        _, task = setup
        response = await client.delete(
            f"/api/tasks/{task['id']}/share/{carol.id}", headers=headers(carol)
        )
        viewed = await client.get(f"/api/tasks/{task['id']}", headers=headers(carol))
        assert response.status_code == 204
        assert viewed.status_code == 403

    async def test_owner_revokes(
        self, client, hub: Hub, alice, carol, headers, make_socket, setup
    ):
        _, task = setup
        carol_socket = make_socket()
        await hub.connect(carol_socket, carol.id)

        response = await client.delete(
            f"/api/tasks/{task['id']}/share/{carol.id}", headers=headers(alice)
        )

        assert response.status_code == 200
        assert response.json()["shares"] == []
        assert carol_socket.of("task:unshared") == [task["id"]]


@pytest.mark.api
@pytest.mark.asyncio
class TestTaskSharing:
    async def test_share_task_notifies_grantee(
        self, client, hub: Hub, alice, bob, headers, make_socket
    ):
        task_list = await _create_list(client, headers(alice))
        task = await _create_task(client, headers(alice), task_list["id"])
        bob_socket = make_socket()
        await hub.connect(bob_socket, bob.id)

        response = await _share_task(client, headers(alice), task["id"], bob, "EDIT")

        assert response.status_code == 201
        assert response.json()["shares"][0]["permission"] == "EDIT"
        assert bob_socket.events() == ["task:shared", "notification:created"]

    async def test_list_admin_shares_task(self, client, alice, bob, carol, headers):
        task_list = await _create_list(client, headers(alice))
        await _share_list(client, headers(alice), task_list["id"], bob, "ADMIN")
        task = await _create_task(client, headers(alice), task_list["id"])

        response = await _share_task(client, headers(bob), task["id"], carol)
        assert response.status_code == 201

    async def test_duplicate_task_share(self, client, alice, bob, headers):
        task_list = await _create_list(client, headers(alice))
        task = await _create_task(client, headers(alice), task_list["id"])
        await _share_task(client, headers(alice), task["id"], bob)

        response = await _share_task(client, headers(alice), task["id"], bob)
        assert response.status_code == 409

    async def test_share_task_with_list_owner(self, client, alice, bob, headers):
        task_list = await _create_list(client, headers(alice))
        await _share_list(client, headers(alice), task_list["id"], bob, "ADMIN")
        task = await _create_task(client, headers(alice), task_list["id"])

        response = await _share_task(client, headers(bob), task["id"], alice)
        assert response.json()["error"]["code"] == "SELF_GRANT"

    async def test_update_task_share(self, client, alice, bob, headers):
        task_list = await _create_list(client, headers(alice))
        task = await _create_task(client, headers(alice), task_list["id"])
        await _share_task(client, headers(alice), task["id"], bob)

        response = await client.patch(
            f"/api/tasks/{task['id']}/share/{bob.id}",
            json={"permission": "ADMIN"},
            headers=headers(alice),
        )
        assert response.status_code == 200
        assert response.json()["shares"][0]["permission"] == "ADMIN"


@pytest.mark.api
@pytest.mark.asyncio
class TestTaskMove:
    async def test_owner_moves_task(
        self, client, hub: Hub, alice, headers, make_socket
    ):
        source = await _create_list(client, headers(alice), "Source")
        target = await _create_list(client, headers(alice), "Target")
        task = await _create_task(client, headers(alice), source["id"])
        socket = make_socket()
        await hub.sync_lists(await hub.connect(socket, alice.id), [source["id"], target["id"]])

        response = await client.patch(
            f"/api/tasks/{task['id']}", json={"list_id": target["id"]}, headers=headers(alice)
        )

        assert response.status_code == 200
        assert response.json()["list_id"] == target["id"]
        assert socket.of("task:deleted") == [task["id"]]
        assert socket.of("task:created")[0]["list_id"] == target["id"]

    async def test_move_into_grantees_list_drops_their_task_share(
        self, client, alice, bob, carol, headers
    ):
        source = await _create_list(client, headers(alice), "Source")
        target = await _create_list(client, headers(bob), "Bob's")
        await _share_list(client, headers(bob), target["id"], alice, "EDIT")
        task = await _create_task(client, headers(alice), source["id"])
        await _share_task(client, headers(alice), task["id"], bob, "EDIT")
        await _share_task(client, headers(alice), task["id"], carol)

        response = await client.patch(
            f"/api/tasks/{task['id']}", json={"list_id": target["id"]}, headers=headers(alice)
        )

        assert response.status_code == 200
        moved = response.json()
        assert moved["owner_id"] == bob.id
        assert [share["user_id"] for share in moved["shares"]] == [carol.id]

        fetched = await client.get(f"/api/tasks/{task['id']}", headers=headers(bob))
        assert [share["user_id"] for share in fetched.json()["shares"]] == [carol.id]

    async def test_move_needs_edit_on_destination(self, client, alice, bob, headers):
        source = await _create_list(client, headers(alice), "Source")
        foreign = await _create_list(client, headers(bob), "Bob's")
        await _share_list(client, headers(bob), foreign["id"], alice, "VIEW")
        task = await _create_task(client, headers(alice), source["id"])

        response = await client.patch(
            f"/api/tasks/{task['id']}", json={"list_id": foreign["id"]}, headers=headers(alice)
        )
        assert response.status_code == 403

    async def test_list_editor_cannot_move(self, client, alice, bob, headers):
        source = await _create_list(client, headers(alice), "Source")
        target = await _create_list(client, headers(bob), "Bob's")
        await _share_list(client, headers(alice), source["id"], bob, "EDIT")
        task = await _create_task(client, headers(alice), source["id"])

        response = await client.patch(
            f"/api/tasks/{task['id']}", json={"list_id": target["id"]}, headers=headers(bob)
        )
        assert response.status_code == 403

    async def test_same_list_is_not_a_move(self, client, alice, bob, headers):
        task_list = await _create_list(client, headers(alice))
        await _share_list(client, headers(alice), task_list["id"], bob, "EDIT")
        task = await _create_task(client, headers(alice), task_list["id"])

        response = await client.patch(
            f"/api/tasks/{task['id']}",
            json={"list_id": task_list["id"], "name": "Mop"},
            headers=headers(bob),
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Mop"
