"""Tests for flow definition loading."""

from __future__ import annotations

import pytest
import yaml

from onboardflow.core.types import Classification, FlowVariant
from onboardflow.wizard.flows import get_flow, load_flow, load_flows


def _write_flow(tmp_path, data, name="custom.yml"):
    path = tmp_path / name
    path.write_text(yaml.dump(data))
    return path


class TestShippedFlows:
    def test_both_variants_load(self):
        flows = load_flows()
        assert set(flows) >= {FlowVariant.NEW_BUSINESS, FlowVariant.EXISTING_BUSINESS}

    def test_step_numbers_match_positions(self):
        for flow in load_flows().values():
            for index, step in enumerate(flow.steps):
                assert step.number == index + 1

    def test_new_business_steps(self):
        flow = get_flow("new_business")
        assert [s.id for s in flow.steps] == [
            "businessDetails",
            "taxDetails",
            "adminDetails",
            "review",
        ]
        assert flow.step_by_id("adminDetails").number == 3
        assert flow.step_by_id("missing") is None

    def test_policy_loaded(self):
        flow = get_flow("existing_business")
        assert flow.policy.mobile_required_classifications == frozenset(
            {Classification.WITH_GST, Classification.ENTERPRISE}
        )

    def test_existing_business_mirrors_new_business(self):
        new, existing = get_flow("new_business"), get_flow("existing_business")
        assert existing.title != new.title
        assert existing.steps == new.steps
        assert existing.policy == new.policy

    def test_unknown_variant(self):
        with pytest.raises(KeyError):
            get_flow("franchise")


class TestLoadFlow:
    def test_minimal_flow(self, tmp_path):
        path = _write_flow(tmp_path, {
            "variant": "mini",
            "steps": [
                {"id": "one", "fields": ["a", {"path": "b", "label": "Bee"}]},
                {"id": "two"},
            ],
        })
        flow = load_flow(path)
        assert flow.title == "mini"
        assert flow.step_count == 2
        assert flow.step(1).fields[0].display_name == "a"
        assert flow.step(1).fields[1].display_name == "Bee"
        assert flow.policy.mobile_required_classifications  # default policy

    def test_number_mismatch_rejected(self, tmp_path):
        path = _write_flow(tmp_path, {
            "variant": "bad",
            "steps": [{"id": "one", "number": 1}, {"id": "two", "number": 3}],
        })
        with pytest.raises(ValueError, match="position 2"):
            load_flow(path)

    def test_duplicate_ids_rejected(self, tmp_path):
        path = _write_flow(tmp_path, {"variant": "dup", "steps": [{"id": "a"}, {"id": "a"}]})
        with pytest.raises(ValueError, match="duplicate"):
            load_flow(path)

    def test_empty_flow_rejected(self, tmp_path):
        path = _write_flow(tmp_path, {"variant": "empty", "steps": []})
        with pytest.raises(ValueError):
            load_flow(path)

    def test_custom_policy(self, tmp_path):
        path = _write_flow(tmp_path, {
            "variant": "strict",
            "policy": {"mobile_required_classifications": ["founder"]},
            "steps": [{"id": "only"}],
        })
        flow = load_flow(path)
        assert flow.policy.mobile_required_classifications == frozenset({Classification.FOUNDER})

    def test_load_flows_from_directory(self, tmp_path):
        _write_flow(tmp_path, {"variant": "x", "steps": [{"id": "s"}]}, name="x.yml")
        _write_flow(tmp_path, {"variant": "y", "steps": [{"id": "s"}]}, name="y.yml")
        assert sorted(load_flows(tmp_path)) == ["x", "y"]

    def test_missing_directory(self, tmp_path):
        assert load_flows(tmp_path / "nope") == {}
