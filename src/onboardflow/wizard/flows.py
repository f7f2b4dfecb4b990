"""Flow variant definitions loaded from YAML."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from onboardflow.core.types import Classification
from onboardflow.wizard.models import FieldDefinition, FlowDefinition, FlowPolicy, StepDefinition

logger = logging.getLogger(__name__)

_DEFAULT_FLOWS_DIR = Path(__file__).resolve().parent / "definitions"


def _parse_field(data: dict[str, Any] | str) -> FieldDefinition:
    if isinstance(data, str):
        return FieldDefinition(path=data)
    return FieldDefinition(path=data["path"], label=data.get("label", ""))


def _parse_step(data: dict[str, Any], index: int) -> StepDefinition:
    number = data.get("number", index + 1)
    if number != index + 1:
        raise ValueError(
            f"Step {data.get('id')!r} declares number {number} but is at position {index + 1}"
        )
    return StepDefinition(
        id=data["id"],
        number=number,
        title=data.get("title", data["id"]),
        description=data.get("description", ""),
        fields=tuple(_parse_field(f) for f in data.get("fields", [])),
    )


def _parse_policy(data: dict[str, Any] | None) -> FlowPolicy:
    if not data:
        return FlowPolicy()
    names = data.get("mobile_required_classifications")
    if names is None:
        return FlowPolicy()
    return FlowPolicy(mobile_required_classifications=frozenset(Classification(n) for n in names))


def load_flow(path: Path) -> FlowDefinition:
    """Parse one flow file. Raises ``ValueError`` on a malformed definition."""
    with open(path) as fh:
        data = yaml.safe_load(fh)
    if not isinstance(data, dict) or "variant" not in data:
        raise ValueError(f"Flow file {path} has no 'variant'")
    steps = [_parse_step(s, i) for i, s in enumerate(data.get("steps", []))]
    if not steps:
        raise ValueError(f"Flow {data['variant']!r} in {path} defines no steps")
    ids = [s.id for s in steps]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Flow {data['variant']!r} has duplicate step ids: {ids}")
    return FlowDefinition(
        variant=data["variant"],
        title=data.get("title", data["variant"]),
        description=data.get("description", ""),
        steps=steps,
        policy=_parse_policy(data.get("policy")),
    )


def load_flows(flows_dir: str | Path | None = None) -> dict[str, FlowDefinition]:
    """Load every ``*.yml`` flow in ``flows_dir`` keyed by variant."""
    directory = Path(flows_dir) if flows_dir else _DEFAULT_FLOWS_DIR
    flows: dict[str, FlowDefinition] = {}
    if not directory.exists():
        logger.warning("Flow directory %s does not exist", directory)
        return flows
    for path in sorted(directory.glob("*.yml")):
        defn = load_flow(path)
        flows[defn.variant] = defn
        logger.debug("Loaded flow %s (%d steps) from %s", defn.variant, defn.step_count, path)
    return flows


def get_flow(variant: str, flows_dir: str | Path | None = None) -> FlowDefinition:
    """Return the flow for ``variant``.

    Raises:
        KeyError: If no flow file defines ``variant``.
    """
    flows = load_flows(flows_dir)
    if variant not in flows:
        raise KeyError(f"Unknown flow variant: {variant!r}")
    return flows[variant]
