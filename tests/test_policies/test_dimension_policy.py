"""Tests for the dimension policy loader."""

import pytest

from dimension_gate.core.dimensions import Action, Dimension
from dimension_gate.core.errors import PersistenceError
from dimension_gate.policies import DimensionPolicyLoader, parse_policy

POLICY_YAML = """\
dimensions:
  overworld:
    open: true
  nether:
    open: false
  end:
    open: true

schedules:
  nightly-nether-close:
    enabled: true
    dimension: nether
    action: close
    delay_ticks: 0
    interval_ticks: 24000
  morning-open:
    enabled: true
    dimension: the_nether
    action: open
    delay_ticks: "12000"
  broken:
    enabled: true
    dimension: mars
    action: open
  dormant:
    dimension: end
    action: close
"""


@pytest.mark.unit
def test_empty_payload_defaults():
    policy = parse_policy({})

    assert policy.initial_states == {d: True for d in Dimension}
    assert policy.schedules == []
    assert policy.problems == []
    assert policy.source is None


@pytest.mark.integration
def test_load_file(tmp_path):
    path = tmp_path / "dimensions.yaml"
    path.write_text(POLICY_YAML)

    policy = DimensionPolicyLoader(path).load()

    assert policy.source == path
    assert policy.initial_states[Dimension.NETHER] is False
    assert [job.name for job in policy.schedules] == [
        "nightly-nether-close",
        "morning-open",
        "broken",
        "dormant",
    ]
    morning = policy.schedules[1]
    assert morning.delay == 12000
    assert morning.interval == 24000
    # Missing "enabled" means disabled
    assert policy.schedules[3].enabled is False


@pytest.mark.integration
def test_validate_schedules_flags_bad_entries(tmp_path):
    path = tmp_path / "dimensions.yaml"
    path.write_text(POLICY_YAML)

    results = DimensionPolicyLoader(path).load().validate_schedules()

    errors = {job.name: error for job, error in results}
    assert errors["nightly-nether-close"] is None
    assert errors["broken"] is not None
    assert errors["broken"].field == "dimension"
    valid = [job for job, error in results if error is None]
    assert valid[1].dimension is Dimension.NETHER
    assert valid[1].action is Action.OPEN


@pytest.mark.integration
def test_missing_file_yields_defaults(tmp_path):
    policy = DimensionPolicyLoader(tmp_path / "missing.yaml").load()

    assert policy.initial_states == {d: True for d in Dimension}
    assert policy.schedules == []


@pytest.mark.integration
def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "dimensions.yaml"
    path.write_text("dimensions: {nether: [\n")

    with pytest.raises(PersistenceError) as exc_info:
        DimensionPolicyLoader(path).load()
    assert exc_info.value.context.operation == "policy.load"


@pytest.mark.unit
def test_problems_recorded():
    policy = parse_policy(
        {
            "dimensions": {"mars": {"open": False}, "end": "closed"},
            "schedules": {"odd": "not a mapping"},
        }
    )

    assert policy.initial_states == {d: True for d in Dimension}
    assert policy.schedules == []
    assert len(policy.problems) == 3


@pytest.mark.unit
def test_non_numeric_ticks_left_for_validation():
    policy = parse_policy(
        {"schedules": {"x": {"enabled": True, "dimension": "end", "action": "open", "delay_ticks": "soon"}}}
    )

    [(job, error)] = policy.validate_schedules()
    assert job.delay == "soon"
    assert error is not None
    assert error.field == "delay"


@pytest.mark.unit
def test_quoted_booleans_are_parsed():
    policy = parse_policy(
        {
            "dimensions": {"nether": {"open": "false"}, "end": {"open": "Yes"}},
            "schedules": {"x": {"enabled": "off", "dimension": "end", "action": "open"}},
        }
    )

    assert policy.initial_states[Dimension.NETHER] is False
    assert policy.initial_states[Dimension.END] is True
    assert policy.schedules[0].enabled is False
    assert policy.problems == []


@pytest.mark.unit
def test_non_boolean_flags_reported():
    policy = parse_policy(
        {
            "dimensions": {"nether": {"open": "sometimes"}},
            "schedules": {"x": {"enabled": "maybe", "dimension": "end", "action": "open"}},
        }
    )

    assert policy.initial_states[Dimension.NETHER] is True
    assert policy.schedules[0].enabled is False
    assert len(policy.problems) == 2
