from app.domain import ThresholdRule, UnresolvedMarket
from pipelines.gate import evaluate_gate, format_wait, unix_to_iso

RESOLVE_TIME = 1_700_000_000


def _market() -> UnresolvedMarket:
    return UnresolvedMarket(
        rule=ThresholdRule("Scroll"),
        question_digest=b"\x01" * 32,
        lock_time=RESOLVE_TIME - 3600,
        resolve_time=RESOLVE_TIME,
    )


def test_gate_opens_at_resolve_time():
    decision = evaluate_gate(_market(), RESOLVE_TIME)
    assert decision.ready
    assert decision.wait_seconds == 0


def test_gate_closed_before_resolve_time():
    decision = evaluate_gate(_market(), RESOLVE_TIME - 3725)
    assert not decision.ready
    assert decision.wait_seconds == 3725
    assert format_wait(decision.wait_seconds) == "1h 2m 5s"
    assert decision.ready_at.timestamp() == RESOLVE_TIME


def test_unix_to_iso_uses_utc_suffix():
    assert unix_to_iso(0) == "1970-01-01T00:00:00Z"
