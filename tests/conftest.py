"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from onboardflow.wizard.flows import get_flow
from onboardflow.wizard.models import FlowDefinition, RemoteProgress


def complete_answers() -> dict[str, Any]:
    """A fully valid answer set for an Indian company."""
    return {
        "companyType": "private_limited",
        "businessDetails": {
            "companyName": "Acme Tools",
            "businessType": "technology",
            "organizationSize": "11-50",
            "country": "IN",
        },
        "website": "acme.example.com",
        "taxRegistered": True,
        "panNumber": "ABCDE1234F",
        "vatGstRegistered": True,
        "gstin": "29ABCDE1234F1Z5",
        "state": "Karnataka",
        "billingStreet": "42 MG Road, Indiranagar",
        "billingCity": "Bengaluru",
        "billingZip": "560038",
        "mailingAddressSameAsRegistered": True,
        "firstName": "Asha",
        "lastName": "Rao",
        "adminEmail": "asha@acme.example.com",
        "adminMobile": "+91 98765 43210",
        "supportEmail": "support@acme.example.com",
        "termsAccepted": True,
    }


class FakeTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock standing in for ``loop.call_later``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in list(self.timers):
            if not timer.cancelled and not timer.fired and timer.when <= self.now:
                timer.fired = True
                timer.callback()

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]


class FakeRemoteStore:
    """In-process remote tier that records calls."""

    def __init__(self) -> None:
        self.progress: RemoteProgress | None = None
        self.saves: list[tuple[str, dict[str, Any], str, dict[str, Any]]] = []
        self.restore_calls = 0
        self.fail_save = False
        self.fail_restore = False

    async def save(
        self,
        step_key: str,
        payload: dict[str, Any],
        identity: str,
        full_answers: dict[str, Any],
    ) -> bool:
        await asyncio.sleep(0)
        if self.fail_save:
            raise ConnectionError("remote unavailable")
        self.saves.append((step_key, payload, identity, full_answers))
        return True

    async def restore_by_identity(self, identity: str) -> RemoteProgress | None:
        self.restore_calls += 1
        await asyncio.sleep(0)
        if self.fail_restore:
            raise ConnectionError("remote unavailable")
        return self.progress


class BrokenLocalStorage:
    """Local storage whose backing store is gone."""

    def __init__(self) -> None:
        self.writes = 0

    def get_item(self, key: str) -> str | None:
        return None

    def set_item(self, key: str, value: str) -> None:
        self.writes += 1
        raise OSError("No space left on device")

    def remove_item(self, key: str) -> None:
        raise OSError("No space left on device")


@pytest.fixture
def flow() -> FlowDefinition:
    return get_flow("new_business")


@pytest.fixture
def answers_data() -> dict[str, Any]:
    return complete_answers()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def broken_local() -> BrokenLocalStorage:
    return BrokenLocalStorage()
