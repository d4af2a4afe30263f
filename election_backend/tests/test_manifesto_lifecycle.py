"""
Manifesto upload/replace/delete, admin locks, and the inline PDF relay.
"""
from urllib.parse import quote

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import update

from election_backend.orm.manifesto import Manifesto, ManifestoPhase
from election_backend.orm.nomination import Nomination
from election_backend.orm.user import UserRole
from election_backend.services import manifesto_service
from election_backend.services.deadline_gate import Window

PDF = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n%%EOF\n"


@pytest_asyncio.fixture
async def candidate(make_user, session_factory):
    user = await make_user(UserRole.candidate)
    async with session_factory() as session:
        session.add(Nomination(user_id=user.id, positions=["President"], score=7.5))
        await session.commit()
    return user


async def upload(client, headers, name="a.pdf", data=PDF, phase="phase1"):
    return await client.post(
        "/api/manifestos/upload",
        data={"phase": phase},
        files={"manifesto": (name, data, "application/pdf")},
        headers=headers,
    )


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_then_replace(self, client, auth_headers, set_windows, blob_store, candidate):
        await set_windows(open=[Window.phase1])
        headers = auth_headers(candidate)

        first = await upload(client, headers, name="a.pdf")
        assert first.status_code == 200
        original = first.json()["manifesto"]
        assert original["file_name"] == "a.pdf"
        assert original["status"] == "submitted"
        assert len(blob_store.blobs) == 1
        old_storage = next(iter(blob_store.blobs))

        second = await upload(client, headers, name="b.pdf", data=PDF + b"v2")
        assert second.status_code == 200
        assert second.json()["message"] == "Manifesto replaced successfully"
        replaced = second.json()["manifesto"]

        assert replaced["id"] == original["id"]
        assert replaced["file_name"] == "b.pdf"
        assert replaced["file_url"] != original["file_url"]
        assert old_storage in blob_store.deleted
        assert list(blob_store.blobs.values()) == [PDF + b"v2"]

    @pytest.mark.asyncio
    async def test_phase_window_closed(self, client, auth_headers, set_windows, blob_store, candidate):
        await set_windows(open=[Window.phase1])

        response = await upload(client, auth_headers(candidate), phase="phase2")

        assert response.status_code == 403
        assert response.json()["code"] == "WINDOW_CLOSED"
        assert blob_store.blobs == {}

    @pytest.mark.asyncio
    async def test_candidate_without_nomination(self, client, make_user, auth_headers, set_windows):
        await set_windows(open=[Window.phase1])
        bare = await make_user(UserRole.candidate)

        response = await upload(client, auth_headers(bare))

        assert response.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,data", [
        ("notes.txt", PDF),
        ("fake.pdf", b"PK\x03\x04 not a pdf"),
        ("empty.pdf", b""),
    ])
    async def test_invalid_files_rejected(self, client, auth_headers, set_windows, candidate, name, data):
        await set_windows(open=[Window.phase1])

        response = await upload(client, auth_headers(candidate), name=name, data=data)

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FILE"

    @pytest.mark.asyncio
    async def test_unknown_phase(self, client, auth_headers, candidate):
        response = await upload(client, auth_headers(candidate), phase="phase9")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_locked_manifesto_cannot_be_replaced(self, client, make_user, auth_headers, set_windows,
                                                       candidate):
        await set_windows(open=[Window.phase1])
        admin = await make_user(UserRole.admin)
        headers = auth_headers(candidate)
        manifesto_id = (await upload(client, headers)).json()["manifesto"]["id"]

        locked = await client.post(f"/api/admin/manifestos/{manifesto_id}/lock", headers=auth_headers(admin))
        assert locked.json()["manifesto"]["status"] == "locked"

        response = await upload(client, headers, name="b.pdf")
        assert response.status_code == 403
        assert response.json()["code"] == "RESOURCE_LOCKED"

    @pytest.mark.asyncio
    async def test_failed_row_write_removes_new_blob(self, session_factory, set_windows, blob_store, candidate,
                                                     monkeypatch):
        await set_windows(open=[Window.phase1])

        async with session_factory() as session:
            async def broken_commit():
                raise RuntimeError("disk full")
            monkeypatch.setattr(session, "commit", broken_commit)

            with pytest.raises(RuntimeError):
                await manifesto_service.upload_manifesto(
                    session, blob_store, candidate, ManifestoPhase.phase1, PDF, "a.pdf"
                )

        assert blob_store.blobs == {}
        assert len(blob_store.deleted) == 1

    @pytest.mark.asyncio
    async def test_failed_replacement_keeps_old_blob(self, session_factory, set_windows, blob_store, candidate,
                                                     monkeypatch):
        await set_windows(open=[Window.phase1])
        async with session_factory() as session:
            original, _ = await manifesto_service.upload_manifesto(
                session, blob_store, candidate, ManifestoPhase.phase1, PDF, "a.pdf"
            )
        old_storage = original.storage_id

        async with session_factory() as session:
            async def broken_commit():
                raise RuntimeError("disk full")
            monkeypatch.setattr(session, "commit", broken_commit)

            with pytest.raises(RuntimeError):
                await manifesto_service.upload_manifesto(
                    session, blob_store, candidate, ManifestoPhase.phase1, PDF + b"v2", "b.pdf"
                )

        async with session_factory() as session:
            row = await manifesto_service.get_manifesto(session, original.id)
            assert row.storage_id == old_storage
            assert row.file_name == "a.pdf"

        assert list(blob_store.blobs) == [old_storage]
        assert blob_store.blobs[old_storage] == PDF
        assert old_storage not in blob_store.deleted

    @pytest.mark.asyncio
    async def test_replacement_survives_old_blob_delete_failure(self, session_factory, set_windows, blob_store,
                                                                candidate, monkeypatch):
        await set_windows(open=[Window.phase1])
        async with session_factory() as session:
            original, _ = await manifesto_service.upload_manifesto(
                session, blob_store, candidate, ManifestoPhase.phase1, PDF, "a.pdf"
            )

        def unreachable(storage_id):
            raise OSError("store offline")
        monkeypatch.setattr(blob_store, "delete", unreachable)

        async with session_factory() as session:
            replaced, created = await manifesto_service.upload_manifesto(
                session, blob_store, candidate, ManifestoPhase.phase1, PDF + b"v2", "b.pdf"
            )

        assert created is False
        assert replaced.file_name == "b.pdf"
        assert blob_store.blobs[replaced.storage_id] == PDF + b"v2"
        assert original.storage_id in blob_store.blobs


class TestDelete:

    @pytest.mark.asyncio
    async def test_owner_deletes_while_open(self, client, auth_headers, set_windows, blob_store, candidate):
        await set_windows(open=[Window.phase1])
        headers = auth_headers(candidate)
        manifesto = (await upload(client, headers)).json()["manifesto"]

        response = await client.delete(f"/api/manifestos/{manifesto['id']}", headers=headers)

        assert response.status_code == 200
        assert blob_store.blobs == {}
        missing = await client.get(f"/api/manifestos/{manifesto['nomination_id']}/phase1")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_after_phase_end(self, client, auth_headers, set_windows, blob_store, candidate):
        await set_windows(open=[Window.phase1])
        headers = auth_headers(candidate)
        manifesto_id = (await upload(client, headers)).json()["manifesto"]["id"]
        await set_windows(closed=[Window.phase1])

        response = await client.delete(f"/api/manifestos/{manifesto_id}", headers=headers)

        assert response.status_code == 403
        assert response.json()["code"] == "WINDOW_CLOSED"
        assert len(blob_store.blobs) == 1

    @pytest.mark.asyncio
    async def test_locked_manifesto_cannot_be_deleted(self, client, make_user, auth_headers, set_windows,
                                                      blob_store, candidate):
        await set_windows(open=[Window.phase1])
        admin = await make_user(UserRole.admin)
        headers = auth_headers(candidate)
        manifesto_id = (await upload(client, headers)).json()["manifesto"]["id"]
        await client.post(f"/api/admin/manifestos/{manifesto_id}/lock", headers=auth_headers(admin))

        response = await client.delete(f"/api/manifestos/{manifesto_id}", headers=headers)

        assert response.status_code == 403
        assert response.json()["code"] == "RESOURCE_LOCKED"
        assert len(blob_store.blobs) == 1
        assert blob_store.deleted == []

    @pytest.mark.asyncio
    async def test_other_candidate_cannot_delete(self, client, make_user, auth_headers, set_windows, candidate):
        await set_windows(open=[Window.phase1])
        other = await make_user(UserRole.candidate)
        manifesto_id = (await upload(client, auth_headers(candidate))).json()["manifesto"]["id"]

        response = await client.delete(f"/api/manifestos/{manifesto_id}", headers=auth_headers(other))

        assert response.status_code == 403
        assert response.json()["code"] == "OWNERSHIP_VIOLATION"


class TestReads:

    @pytest.mark.asyncio
    async def test_listings_are_in_phase_order(self, client, auth_headers, set_windows, candidate):
        await set_windows(open=[Window.phase1, Window.phase2, Window.final])
        headers = auth_headers(candidate)
        await upload(client, headers, phase="final")
        nomination_id = (await upload(client, headers, phase="phase1")).json()["manifesto"]["nomination_id"]
        await upload(client, headers, phase="phase2")

        by_nomination = await client.get(f"/api/manifestos/nomination/{nomination_id}")
        assert [m["phase"] for m in by_nomination.json()["manifestos"]] == ["phase1", "phase2", "final"]

        by_candidate = await client.get(f"/api/manifestos/candidate/{candidate.id}")
        assert by_candidate.json()["nomination_id"] == nomination_id
        assert by_candidate.json()["count"] == 3

        single = await client.get(f"/api/manifestos/{nomination_id}/phase2")
        assert single.json()["manifesto"]["phase"] == "phase2"

    @pytest.mark.asyncio
    async def test_lock_phase(self, client, make_user, auth_headers, set_windows, candidate):
        await set_windows(open=[Window.phase1, Window.phase2])
        admin = await make_user(UserRole.admin)
        headers = auth_headers(candidate)
        await upload(client, headers, phase="phase1")
        await upload(client, headers, phase="phase2")

        response = await client.post("/api/admin/manifestos/lock-phase", json={"phase": "phase1"},
                                     headers=auth_headers(admin))
        assert response.json()["locked"] == 1

        again = await client.post("/api/admin/manifestos/lock-phase", json={"phase": "phase1"},
                                  headers=auth_headers(admin))
        assert again.json()["locked"] == 0


class TestInlineView:

    @pytest_asyncio.fixture
    async def manifesto_id(self, client, auth_headers, set_windows, candidate):
        await set_windows(open=[Window.phase1])
        return (await upload(client, auth_headers(candidate), name="agenda.pdf")).json()["manifesto"]["id"]

    async def point_to(self, session_factory, manifesto_id, url):
        async with session_factory() as session:
            await session.execute(update(Manifesto).where(Manifesto.id == manifesto_id).values(file_url=url))
            await session.commit()

    @pytest.mark.asyncio
    async def test_streams_pdf_inline(self, client, manifesto_id):
        response = await client.get(f"/api/manifestos/view/{manifesto_id}")

        assert response.status_code == 200
        assert response.content == PDF
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == "inline; filename=\"agenda.pdf\"; filename*=UTF-8''agenda.pdf"
        assert response.headers["cache-control"] == "public, max-age=3600"

    @pytest.mark.asyncio
    async def test_non_ascii_file_name(self, client, auth_headers, set_windows, candidate):
        await set_windows(open=[Window.phase2])
        name = "घोषणा.pdf"
        uploaded = await upload(client, auth_headers(candidate), name=name, phase="phase2")
        assert uploaded.status_code == 200
        manifesto = uploaded.json()["manifesto"]

        response = await client.get(f"/api/manifestos/view/{manifesto['id']}")

        assert response.status_code == 200
        assert response.content == PDF
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('inline; filename="')
        assert disposition.endswith("filename*=UTF-8''" + quote(manifesto["file_name"], safe=""))
        disposition.encode("ascii")

    @pytest.mark.asyncio
    async def test_follows_a_few_redirects(self, client, upstream, session_factory, manifesto_id):
        def handler(request: httpx.Request) -> httpx.Response:
            hops = int(request.url.path.rsplit("/", 1)[-1])
            if hops < 3:
                return httpx.Response(302, headers={"location": f"https://blobs.test/hop/{hops + 1}"})
            return httpx.Response(200, content=PDF)

        upstream.handler = handler
        await self.point_to(session_factory, manifesto_id, "https://blobs.test/hop/0")

        response = await client.get(f"/api/manifestos/view/{manifesto_id}")

        assert response.status_code == 200
        assert response.content == PDF

    @pytest.mark.asyncio
    async def test_redirect_loop_is_bad_gateway(self, client, upstream, session_factory, manifesto_id):
        def handler(request: httpx.Request) -> httpx.Response:
            hops = int(request.url.path.rsplit("/", 1)[-1])
            return httpx.Response(302, headers={"location": f"https://blobs.test/hop/{hops + 1}"})

        upstream.handler = handler
        await self.point_to(session_factory, manifesto_id, "https://blobs.test/hop/0")

        response = await client.get(f"/api/manifestos/view/{manifesto_id}")

        assert response.status_code == 502
        assert response.json()["code"] == "UPSTREAM_ERROR"

    @pytest.mark.asyncio
    async def test_upstream_error_status_is_bad_gateway(self, client, upstream, manifesto_id):
        upstream.handler = lambda request: httpx.Response(403, content=b"denied")

        response = await client.get(f"/api/manifestos/view/{manifesto_id}")

        assert response.status_code == 502
        assert response.json()["details"] == {"upstream_status": 403}

    @pytest.mark.asyncio
    async def test_transport_failure_is_bad_gateway(self, client, upstream, manifesto_id):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        upstream.handler = handler

        response = await client.get(f"/api/manifestos/view/{manifesto_id}")

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_unknown_manifesto(self, client):
        response = await client.get("/api/manifestos/view/missing")
        assert response.status_code == 404
