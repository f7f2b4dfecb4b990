"""Answer set: nested form values addressed by dot-delimited field paths."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable, Iterable


CHANGE = "change"
RESTORE = "restore"
RESET = "reset"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(frozen=True)
class AnswerChange:
    """One mutation of the answer set."""

    kind: str
    paths: tuple[str, ...]


Listener = Callable[[AnswerChange], None]


def get_path(data: dict[str, Any], path: str, default: Any = MISSING) -> Any:
    """Read ``a.b.c`` from nested dicts; ``default`` when any segment is absent."""
    node: Any = data
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def set_path(data: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def unset_path(data: dict[str, Any], path: str) -> bool:
    parts = path.split(".")
    node: Any = data
    for part in parts[:-1]:
        if not isinstance(node, dict) or part not in node:
            return False
        node = node[part]
    if isinstance(node, dict) and parts[-1] in node:
        del node[parts[-1]]
        return True
    return False


def is_blank(value: Any) -> bool:
    """Unanswered: absent, None, or a whitespace-only string."""
    if value is MISSING or value is None:
        return True
    return isinstance(value, str) and not value.strip()


STEP_METADATA_KEYS = frozenset({"step", "flowType", "completedAt"})


def merge_step_data(step_data: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Merge a per-step map (``{"step_1": {...}, ...}``) into one answer dict.

    Later steps win on conflicting keys; steps are merged in step-number order
    rather than key order. Bookkeeping written alongside each step
    (``STEP_METADATA_KEYS``) is not an answer and is dropped.
    """

    def _order(key: str) -> tuple[int, str]:
        digits = "".join(ch for ch in key if ch.isdigit())
        return (int(digits) if digits else 0, key)

    merged: dict[str, Any] = {}
    for key in sorted(step_data, key=_order):
        values = step_data[key]
        if isinstance(values, dict):
            merged.update(
                (k, copy.deepcopy(v)) for k, v in values.items() if k not in STEP_METADATA_KEYS
            )
    return merged


def normalize_restored(raw: dict[str, Any]) -> dict[str, Any]:
    """Fold legacy flat keys from older saves into the current answer layout."""
    data = copy.deepcopy(raw)
    details = data.get("businessDetails")
    if not isinstance(details, dict):
        details = {}

    def _first(*values: Any) -> Any:
        for value in values:
            if value is not None:
                return value
        return None

    merged = dict(details)
    company = _first(details.get("companyName"), data.get("companyName"), data.get("businessName"))
    business_type = _first(details.get("businessType"), data.get("businessType"), data.get("industry"))
    size = _first(
        details.get("organizationSize"), data.get("organizationSize"), data.get("companySize")
    )
    country = _first(details.get("country"), data.get("country"), "IN")
    for key, value in (
        ("companyName", company),
        ("businessType", business_type),
        ("organizationSize", size),
    ):
        if value is not None:
            merged[key] = value
    merged["country"] = str(country).upper()
    data["businessDetails"] = merged
    data["country"] = str(_first(data.get("country"), merged["country"])).upper()

    for current, legacy in (
        ("defaultCurrency", "currency"),
        ("defaultTimeZone", "timezone"),
        ("defaultLanguage", "language"),
        ("defaultLocale", "locale"),
    ):
        if data.get(current) is None and data.get(legacy) is not None:
            data[current] = data[legacy]

    billing_street = _first(data.get("billingStreet"), data.get("billingAddress"))
    if billing_street is not None:
        data.setdefault("billingAddress", billing_street)
        if data.get("billingStreet") is None:
            data["billingStreet"] = billing_street
    state = _first(data.get("state"), data.get("billingState"), data.get("incorporationState"))
    if state is not None:
        if data.get("state") is None:
            data["state"] = state
        if data.get("billingState") is None:
            data["billingState"] = state
    return data


class AnswerSet:
    """Observable nested answer mapping.

    Absent paths mean "unanswered" and are distinct from an explicit empty
    string. Listeners receive exactly one ``AnswerChange`` per mutating call.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._listeners: list[Listener] = []

    # -- reads --

    def get(self, path: str, default: Any = MISSING) -> Any:
        return get_path(self._data, path, default)

    def has(self, path: str) -> bool:
        return get_path(self._data, path) is not MISSING

    def to_dict(self) -> dict[str, Any]:
        """Deep copy of the current answers."""
        return copy.deepcopy(self._data)

    # -- writes --

    def set(self, path: str, value: Any) -> None:
        set_path(self._data, path, copy.deepcopy(value))
        self._emit(CHANGE, (path,))

    def unset(self, path: str) -> None:
        if unset_path(self._data, path):
            self._emit(CHANGE, (path,))

    def update(self, values: dict[str, Any]) -> None:
        """Set several dot paths as one mutation."""
        if not values:
            return
        for path, value in values.items():
            set_path(self._data, path, copy.deepcopy(value))
        self._emit(CHANGE, tuple(values))

    def load(self, data: dict[str, Any]) -> None:
        """Replace every answer at once (restore); one batched event."""
        self._data = copy.deepcopy(data)
        self._emit(RESTORE, tuple(self._data))

    def clear(self) -> None:
        self._data = {}
        self._emit(RESET, ())

    # -- observation --

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns the matching unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, kind: str, paths: Iterable[str]) -> None:
        event = AnswerChange(kind=kind, paths=tuple(paths))
        for listener in list(self._listeners):
            listener(event)
