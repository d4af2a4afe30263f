"""
Nomination lifecycle through the API: create, update, status changes.
"""
import pytest

from election_backend.orm.user import UserRole
from election_backend.services.deadline_gate import Window


async def create(client, headers, positions=("President",), score=8.5):
    return await client.post("/api/nominations", json={"positions": list(positions), "score": score}, headers=headers)


class TestCreate:

    @pytest.mark.asyncio
    async def test_default_config_keeps_nominations_closed(self, client, make_user, auth_headers):
        candidate = await make_user(UserRole.candidate)

        response = await create(client, auth_headers(candidate))

        assert response.status_code == 403
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "WINDOW_CLOSED"

    @pytest.mark.asyncio
    async def test_create_while_open(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)

        response = await create(client, auth_headers(candidate), positions=["President", "General Secretary"])

        assert response.status_code == 201
        nomination = response.json()["nomination"]
        assert nomination["status"] == "pending"
        assert nomination["is_locked"] is False
        assert nomination["positions"] == ["President", "General Secretary"]
        assert nomination["user_id"] == candidate.id

    @pytest.mark.asyncio
    async def test_one_nomination_per_owner(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)
        headers = auth_headers(candidate)

        assert (await create(client, headers)).status_code == 201
        response = await create(client, headers)

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_EXISTS"

    @pytest.mark.asyncio
    async def test_students_cannot_nominate(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        student = await make_user(UserRole.student)

        response = await create(client, auth_headers(student))

        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

    @pytest.mark.asyncio
    async def test_empty_positions_rejected(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)

        response = await create(client, auth_headers(candidate), positions=[])

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestUpdate:

    @pytest.mark.asyncio
    async def test_owner_updates_while_open(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)
        headers = auth_headers(candidate)
        nomination_id = (await create(client, headers)).json()["nomination"]["id"]

        response = await client.put(f"/api/nominations/{nomination_id}", json={"score": 9.1}, headers=headers)

        assert response.status_code == 200
        nomination = response.json()["nomination"]
        assert nomination["score"] == 9.1
        assert nomination["positions"] == ["President"]

    @pytest.mark.asyncio
    async def test_other_candidate_forbidden(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        owner = await make_user(UserRole.candidate)
        other = await make_user(UserRole.candidate)
        nomination_id = (await create(client, auth_headers(owner))).json()["nomination"]["id"]

        response = await client.put(f"/api/nominations/{nomination_id}", json={"score": 1}, headers=auth_headers(other))

        assert response.status_code == 403
        assert response.json()["code"] == "OWNERSHIP_VIOLATION"

    @pytest.mark.asyncio
    async def test_locked_nomination_cannot_change(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)
        headers = auth_headers(candidate)
        nomination_id = (await create(client, headers)).json()["nomination"]["id"]

        locked = await client.put(f"/api/nominations/{nomination_id}", json={"is_locked": True}, headers=headers)
        assert locked.json()["nomination"]["is_locked"] is True

        response = await client.put(f"/api/nominations/{nomination_id}", json={"score": 5}, headers=headers)
        assert response.status_code == 423
        assert response.json()["code"] == "RESOURCE_LOCKED"

    @pytest.mark.asyncio
    async def test_update_after_window_closes(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)
        headers = auth_headers(candidate)
        nomination_id = (await create(client, headers)).json()["nomination"]["id"]

        await set_windows(closed=[Window.nomination])
        response = await client.put(f"/api/nominations/{nomination_id}", json={"score": 5}, headers=headers)

        assert response.status_code == 403
        assert response.json()["code"] == "WINDOW_CLOSED"

    @pytest.mark.asyncio
    async def test_decided_nomination_cannot_be_edited(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)
        admin = await make_user(UserRole.admin)
        headers = auth_headers(candidate)
        nomination_id = (await create(client, headers)).json()["nomination"]["id"]

        await client.put(f"/api/admin/nominations/{nomination_id}/status",
                         json={"status": "accepted"}, headers=auth_headers(admin))
        response = await client.put(f"/api/nominations/{nomination_id}", json={"score": 5}, headers=headers)

        assert response.status_code == 423

    @pytest.mark.asyncio
    async def test_unknown_nomination(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)

        response = await client.put("/api/nominations/does-not-exist", json={"score": 5},
                                    headers=auth_headers(candidate))

        assert response.status_code == 404


class TestStatus:

    @pytest.mark.asyncio
    async def test_admin_sets_status_ignoring_windows(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)
        admin = await make_user(UserRole.admin)
        nomination_id = (await create(client, auth_headers(candidate))).json()["nomination"]["id"]
        await set_windows(closed=[Window.nomination])

        response = await client.patch("/api/admin/nomination-status",
                                      json={"candidate_id": candidate.id, "status": "rejected"},
                                      headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["nomination"]["status"] == "rejected"

        response = await client.put(f"/api/admin/nominations/{nomination_id}/status",
                                    json={"status": "accepted"}, headers=auth_headers(admin))
        assert response.json()["nomination"]["status"] == "accepted"

    @pytest.mark.asyncio
    async def test_candidate_cannot_set_status(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)
        nomination_id = (await create(client, auth_headers(candidate))).json()["nomination"]["id"]

        response = await client.put(f"/api/admin/nominations/{nomination_id}/status",
                                    json={"status": "accepted"}, headers=auth_headers(candidate))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_status_value(self, client, make_user, auth_headers):
        admin = await make_user(UserRole.admin)

        response = await client.put("/api/admin/nominations/some-id/status",
                                    json={"status": "verified"}, headers=auth_headers(admin))

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_public_list_shows_only_accepted(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        accepted = await make_user(UserRole.candidate, name="Accepted Candidate")
        pending = await make_user(UserRole.candidate, name="Pending Candidate")
        admin = await make_user(UserRole.superadmin)
        nomination_id = (await create(client, auth_headers(accepted))).json()["nomination"]["id"]
        await create(client, auth_headers(pending))
        await client.put(f"/api/admin/nominations/{nomination_id}/status",
                         json={"status": "accepted"}, headers=auth_headers(admin))

        response = await client.get("/api/nominations")

        body = response.json()
        assert body["count"] == 1
        assert body["nominations"][0]["user"]["name"] == "Accepted Candidate"

        detail = await client.get(f"/api/nominations/{nomination_id}")
        assert detail.json()["nomination"]["user"]["id"] == accepted.id

    @pytest.mark.asyncio
    async def test_my_nomination(self, client, make_user, auth_headers, set_windows):
        candidate = await make_user(UserRole.candidate)
        headers = auth_headers(candidate)

        assert (await client.get("/api/nominations/my-nomination", headers=headers)).status_code == 404

        await set_windows(open=[Window.nomination])
        await create(client, headers)
        response = await client.get("/api/nominations/my-nomination", headers=headers)

        assert response.status_code == 200
        assert response.json()["nomination"]["user"]["id"] == candidate.id

    @pytest.mark.asyncio
    async def test_status_change_is_audited(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.nomination])
        candidate = await make_user(UserRole.candidate)
        superadmin = await make_user(UserRole.superadmin)
        nomination_id = (await create(client, auth_headers(candidate))).json()["nomination"]["id"]
        await client.put(f"/api/admin/nominations/{nomination_id}/status",
                         json={"status": "accepted"}, headers=auth_headers(superadmin))

        response = await client.get("/api/superadmin/activity", params={"action": "nomination_status_changed"},
                                    headers=auth_headers(superadmin))

        entries = response.json()["activity"]
        assert len(entries) == 1
        assert entries[0]["actor_id"] == superadmin.id
        assert entries[0]["details"] == {"nomination_id": nomination_id, "from": "pending", "to": "accepted"}
