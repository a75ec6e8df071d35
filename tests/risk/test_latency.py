import pytest

from src.risk.latency import estimate_latency


@pytest.mark.parametrize(
    "scenario, expected",
    [
        ("optimistic", (11, 31, 63)),
        ("default", (15, 45, 90)),
        ("pessimistic", (23, 68, 135)),
    ],
)
def test_latency_table_scaled_by_scenario(scenario, expected):
    estimate = estimate_latency(scenario)
    assert (estimate.p50, estimate.p95, estimate.p99) == expected
    assert estimate.capital_at_risk_seconds == estimate.p95


def test_latency_is_integer_seconds():
    estimate = estimate_latency("pessimistic")
    assert all(isinstance(v, int) for v in (estimate.p50, estimate.p95, estimate.p99))


def test_unknown_scenario_rejected():
    with pytest.raises(ValueError):
        estimate_latency("apocalyptic")
