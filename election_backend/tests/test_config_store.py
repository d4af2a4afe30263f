"""
ConfigStore: lazy singleton creation and validated updates.
"""
from datetime import datetime, timedelta, timezone

import pytest

from election_backend.errors import BadRequestError
from election_backend.orm.manifesto import ManifestoPhase
from election_backend.orm.supporter_request import SupporterRole
from election_backend.orm.system_config import WINDOW_FIELDS
from election_backend.rbac import verify_password
from election_backend.services import deadline_gate
from election_backend.services.config_store import ConfigStore, cap_for_role, reviewer_credentials


class TestLazyDefault:

    @pytest.mark.asyncio
    async def test_first_read_creates_closed_config(self, db_session):
        config = await ConfigStore(db_session).get()

        for field in WINDOW_FIELDS:
            assert getattr(config, field) is None
        assert deadline_gate.nomination_open(config) is False
        assert cap_for_role(config, SupporterRole.proposer) == 5
        assert cap_for_role(config, SupporterRole.seconder) == 5
        assert cap_for_role(config, SupporterRole.campaigner) == 10

    @pytest.mark.asyncio
    async def test_reads_return_the_same_row(self, session_factory):
        async with session_factory() as first:
            a = await ConfigStore(first).get()
        async with session_factory() as second:
            b = await ConfigStore(second).get()
        assert a.id == b.id

    @pytest.mark.asyncio
    async def test_reviewer_passwords_are_hashed(self, db_session):
        config = await ConfigStore(db_session).get()
        creds = reviewer_credentials(config, ManifestoPhase.phase1)

        assert creds["username"] == "phase1_reviewer"
        assert "password" not in creds
        assert creds["password_hash"] != "change_me_phase1"
        assert verify_password("change_me_phase1", creds["password_hash"])
        assert "password_hash" not in str(config.to_dict())


class TestUpdates:

    @pytest.mark.asyncio
    async def test_update_windows_opens_and_clears(self, db_session):
        store = ConfigStore(db_session)
        now = datetime.utcnow()

        config = await store.update_windows({
            "nomination_start": now - timedelta(hours=1),
            "nomination_end": now + timedelta(hours=1),
        })
        assert deadline_gate.nomination_open(config) is True

        config = await store.update_windows({"nomination_end": None})
        assert deadline_gate.nomination_open(config) is False

    @pytest.mark.asyncio
    async def test_aware_timestamps_are_stored_as_naive_utc(self, db_session):
        ist = timezone(timedelta(hours=5, minutes=30))
        config = await ConfigStore(db_session).update_windows({
            "campaigner_start": datetime(2026, 1, 1, 10, 0, tzinfo=ist),
            "campaigner_end": datetime(2026, 1, 2, 10, 0, tzinfo=ist),
        })
        assert config.campaigner_start == datetime(2026, 1, 1, 4, 30)
        assert config.campaigner_start.tzinfo is None

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, db_session):
        with pytest.raises(BadRequestError):
            await ConfigStore(db_session).update_windows({"voting_start": datetime.utcnow()})

    @pytest.mark.asyncio
    async def test_start_after_end_rejected(self, db_session):
        now = datetime.utcnow()
        with pytest.raises(BadRequestError):
            await ConfigStore(db_session).update_windows({
                "manifesto_phase1_start": now,
                "manifesto_phase1_end": now - timedelta(days=1),
            })

    @pytest.mark.asyncio
    async def test_update_limits(self, db_session):
        store = ConfigStore(db_session)
        config = await store.update_limits({SupporterRole.campaigner: 3})
        assert cap_for_role(config, SupporterRole.campaigner) == 3
        assert cap_for_role(config, SupporterRole.proposer) == 5

        with pytest.raises(BadRequestError):
            await store.update_limits({SupporterRole.proposer: -1})

    @pytest.mark.asyncio
    async def test_update_reviewers_keeps_unspecified_fields(self, db_session):
        store = ConfigStore(db_session)
        config = await store.update_reviewers({ManifestoPhase.phase2: {"password": "new-secret"}})

        creds = reviewer_credentials(config, ManifestoPhase.phase2)
        assert creds["username"] == "phase2_reviewer"
        assert verify_password("new-secret", creds["password_hash"])
        assert not verify_password("change_me_phase2", creds["password_hash"])
