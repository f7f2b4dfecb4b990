"""Tests for the two-tier persistence adapter."""

from __future__ import annotations

import asyncio
import json

import pytest

from onboardflow.core.config import PersistenceConfig
from onboardflow.core.types import SnapshotSource
from onboardflow.persistence.adapter import LOCAL_WARNING, PersistenceAdapter
from onboardflow.persistence.local import InMemoryLocalStorage
from onboardflow.persistence.remote import RepositoryRemoteStore
from onboardflow.repositories.progress import InMemoryProgressRepository
from onboardflow.wizard.answers import AnswerSet
from onboardflow.wizard.models import PersistedSnapshot, RemoteProgress

PROGRESS_KEY = "onboarding_progress_new_business"
FORM_DATA_KEY = "onboarding_form_data"


@pytest.fixture
def local():
    return InMemoryLocalStorage()


@pytest.fixture
def make_adapter(local, remote, scheduler):
    def _make(**overrides) -> PersistenceAdapter:
        kwargs = {
            "flow_variant": "new_business",
            "step_count": 4,
            "local": local,
            "remote": remote,
            "identity": "asha@acme.example.com",
            "config": PersistenceConfig(debounce_seconds=1.0),
            "scheduler": scheduler,
        }
        kwargs.update(overrides)
        return PersistenceAdapter(**kwargs)
    return _make


class TestAutoSave:
    async def test_debounce_collapses_mutations(self, make_adapter, scheduler, remote, local):
        adapter = make_adapter()
        answers = AnswerSet()
        adapter.attach(answers, lambda: 2)

        answers.set("businessDetails.companyName", "A")
        scheduler.advance(0.1)
        answers.set("businessDetails.companyName", "Ac")
        scheduler.advance(0.1)
        answers.set("businessDetails.companyName", "Acme")
        assert remote.saves == []

        scheduler.advance(1.0)
        await adapter.flush()

        assert len(remote.saves) == 1
        step_key, payload, identity, full_answers = remote.saves[0]
        assert step_key == "step_2"
        assert payload == {"step": 2, "flowType": "new_business"}
        assert identity == "asha@acme.example.com"
        assert full_answers == {"businessDetails": {"companyName": "Acme"}}

        snapshot = PersistedSnapshot.model_validate_json(local.get_item(PROGRESS_KEY))
        assert snapshot.current_step == 2
        assert snapshot.answers == {"businessDetails": {"companyName": "Acme"}}
        assert json.loads(local.get_item(FORM_DATA_KEY)) == full_answers

    async def test_local_record_uses_camel_case_keys(self, make_adapter, scheduler, local):
        adapter = make_adapter(remote=None)
        answers = AnswerSet()
        adapter.attach(answers, lambda: 1)
        answers.set("firstName", "Asha")
        scheduler.advance(1.0)
        record = json.loads(local.get_item(PROGRESS_KEY))
        assert set(record) == {"currentStep", "formData", "flowType", "lastSaved"}
        assert record["flowType"] == "new_business"

    async def test_restore_and_reset_events_do_not_save(self, make_adapter, scheduler):
        adapter = make_adapter()
        answers = AnswerSet()
        adapter.attach(answers, lambda: 1)
        answers.load({"firstName": "Asha"})
        answers.clear()
        assert scheduler.pending == []
        assert not adapter.save_pending

    async def test_detach_cancels_pending(self, make_adapter, scheduler, remote, local):
        adapter = make_adapter()
        answers = AnswerSet()
        adapter.attach(answers, lambda: 1)
        answers.set("firstName", "Asha")
        adapter.detach()
        scheduler.advance(5.0)
        await adapter.flush()
        assert remote.saves == []
        assert local.get_item(PROGRESS_KEY) is None
        answers.set("firstName", "Ravi")
        assert scheduler.pending == []

    async def test_flush_writes_pending_save(self, make_adapter, remote):
        adapter = make_adapter()
        answers = AnswerSet()
        adapter.attach(answers, lambda: 3)
        answers.set("lastName", "Rao")
        await adapter.flush()
        assert remote.saves[0][0] == "step_3"
        assert not adapter.save_pending

    async def test_remote_failure_is_silent(self, make_adapter, scheduler, remote, local):
        remote.fail_save = True
        adapter = make_adapter()
        answers = AnswerSet()
        adapter.attach(answers, lambda: 1)
        answers.set("firstName", "Asha")
        scheduler.advance(1.0)
        await adapter.flush()
        assert local.get_item(PROGRESS_KEY) is not None

    async def test_no_identity_skips_remote(self, make_adapter, scheduler, remote, local):
        adapter = make_adapter(identity=None)
        answers = AnswerSet()
        adapter.attach(answers, lambda: 1)
        answers.set("firstName", "Asha")
        scheduler.advance(1.0)
        await adapter.flush()
        assert remote.saves == []
        assert local.get_item(PROGRESS_KEY) is not None

    async def test_local_failure_warns_once(self, make_adapter, scheduler, remote, broken_local):
        warnings = []
        adapter = make_adapter(local=broken_local, on_warning=warnings.append)
        answers = AnswerSet()
        adapter.attach(answers, lambda: 1)

        answers.set("firstName", "Asha")
        scheduler.advance(1.0)
        answers.set("firstName", "Ravi")
        scheduler.advance(1.0)
        await adapter.flush()

        assert warnings == [LOCAL_WARNING]
        assert not adapter.local_enabled
        assert broken_local.writes == 1
        assert [s[3]["firstName"] for s in remote.saves] == ["Asha", "Ravi"]


class TestRestore:
    async def test_remote_first(self, make_adapter, remote, local):
        remote.progress = RemoteProgress(current_step=3, form_data={"firstName": "Remote"})
        local.set_item(
            PROGRESS_KEY,
            PersistedSnapshot(current_step=2, answers={"firstName": "Local"}, flow_variant="new_business").to_record(),
        )
        result = await make_adapter().restore()
        assert result.source == SnapshotSource.REMOTE
        assert result.current_step == 3
        assert result.answers["firstName"] == "Remote"

    async def test_remote_step_data_merged(self, make_adapter, remote):
        remote.progress = RemoteProgress(
            current_step=2,
            step_data={"step_2": {"billingCity": "Pune"}, "step_1": {"companyType": "llp"}},
        )
        result = await make_adapter().restore()
        assert result.answers["billingCity"] == "Pune"
        assert result.answers["companyType"] == "llp"

    async def test_remote_failure_falls_back_to_local(self, make_adapter, remote, local):
        remote.fail_restore = True
        local.set_item(
            PROGRESS_KEY,
            PersistedSnapshot(current_step=2, answers={"firstName": "Local"}, flow_variant="new_business").to_record(),
        )
        result = await make_adapter().restore()
        assert result.source == SnapshotSource.LOCAL
        assert result.current_step == 2
        assert result.answers["firstName"] == "Local"

    async def test_generic_form_data_fallback(self, make_adapter, local):
        local.set_item(FORM_DATA_KEY, json.dumps({"firstName": "Generic"}))
        result = await make_adapter(remote=None).restore()
        assert result.source == SnapshotSource.LOCAL
        assert result.current_step == 1
        assert result.answers["firstName"] == "Generic"

    async def test_corrupt_local_record_ignored(self, make_adapter, local):
        local.set_item(PROGRESS_KEY, "{not json")
        local.set_item(FORM_DATA_KEY, json.dumps({"firstName": "Generic"}))
        result = await make_adapter(remote=None).restore()
        assert result.answers["firstName"] == "Generic"

    async def test_fresh_start(self, make_adapter):
        result = await make_adapter().restore()
        assert not result.restored
        assert result.current_step == 1
        assert result.answers == {}

    async def test_step_clamped_to_flow(self, make_adapter, remote):
        remote.progress = RemoteProgress(current_step=7, form_data={"firstName": "Asha"})
        result = await make_adapter().restore()
        assert result.current_step == 4

    async def test_restored_answers_normalized(self, make_adapter, remote):
        remote.progress = RemoteProgress(current_step=1, form_data={"businessName": "Acme"})
        result = await make_adapter().restore()
        assert result.answers["businessDetails"]["companyName"] == "Acme"
        assert result.answers["businessDetails"]["country"] == "IN"

    async def test_restore_is_idempotent(self, make_adapter, remote):
        remote.progress = RemoteProgress(current_step=2, form_data={"firstName": "Asha"})
        adapter = make_adapter()
        first = await adapter.restore()
        second = await adapter.restore()
        assert first == second
        assert remote.restore_calls == 1

    async def test_restore_is_single_flight(self, make_adapter, remote):
        remote.progress = RemoteProgress(current_step=2, form_data={"firstName": "Asha"})
        adapter = make_adapter()
        results = await asyncio.gather(adapter.restore(), adapter.restore(), adapter.restore())
        assert remote.restore_calls == 1
        assert all(r == results[0] for r in results)

    async def test_guard_is_per_instance(self, make_adapter, remote):
        remote.progress = RemoteProgress(current_step=2, form_data={"firstName": "Asha"})
        await make_adapter().restore()
        await make_adapter().restore()
        assert remote.restore_calls == 2


class TestClear:
    async def test_clear_removes_both_tiers(self, make_adapter, scheduler, remote, local):
        adapter = make_adapter()
        answers = AnswerSet()
        adapter.attach(answers, lambda: 2)
        answers.set("firstName", "Asha")
        scheduler.advance(1.0)
        await adapter.flush()

        await adapter.clear()

        assert local.get_item(PROGRESS_KEY) is None
        assert local.get_item(FORM_DATA_KEY) is None
        assert remote.saves[-1] == ("step_1", {}, "asha@acme.example.com", {})

    async def test_clear_cancels_pending_save(self, make_adapter, scheduler, remote, local):
        adapter = make_adapter()
        answers = AnswerSet()
        adapter.attach(answers, lambda: 2)
        answers.set("firstName", "Asha")
        await adapter.clear()
        scheduler.advance(5.0)
        await adapter.flush()
        assert local.get_item(PROGRESS_KEY) is None
        assert remote.saves == [("step_1", {}, "asha@acme.example.com", {})]

    async def test_clear_survives_remote_failure(self, make_adapter, remote, local):
        remote.fail_save = True
        local.set_item(FORM_DATA_KEY, "{}")
        await make_adapter().clear()
        assert local.get_item(FORM_DATA_KEY) is None


class TestRestoreIgnoresSaveBookkeeping:
    async def test_metadata_only_record_falls_through_to_local(self, make_adapter, remote, local):
        remote.progress = RemoteProgress(
            current_step=2,
            form_data={},
            step_data={"step_2": {"step": 2, "flowType": "new_business", "completedAt": "2026-10-17T09:00:00+00:00"}},
        )
        local.set_item(
            PROGRESS_KEY,
            PersistedSnapshot(current_step=3, answers={"firstName": "Local"}, flow_variant="new_business").to_record(),
        )
        result = await make_adapter().restore()
        assert result.source == SnapshotSource.LOCAL
        assert result.current_step == 3
        assert "step" not in result.answers
        assert "flowType" not in result.answers

    async def test_emptied_answers_do_not_restore_bookkeeping(self, make_adapter, scheduler):
        store = RepositoryRemoteStore(InMemoryProgressRepository())
        writer = make_adapter(remote=store, local=None)
        answers = AnswerSet()
        writer.attach(answers, lambda: 2)
        answers.set("firstName", "Asha")
        answers.unset("firstName")
        await writer.flush()

        result = await make_adapter(remote=store, local=None).restore()
        assert not result.restored
        assert result.answers == {}
