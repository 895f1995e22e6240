"""Admission engine behaviour, including property-based checks."""

from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

from rate_limited_proxy.errors import RateLimitExceeded
from rate_limited_proxy.rate import Blocks, PerBlock
from rate_limited_proxy.services.rate_limit import AdmissionState, RateLimiter, evaluate


def tick_sequences(max_step: int = 3, max_size: int = 60):
    """Non-decreasing tick sequences starting at zero."""

    return st.lists(st.integers(min_value=0, max_value=max_step), max_size=max_size).map(
        lambda steps: [sum(steps[: i + 1]) for i in range(len(steps))]
    )


def run(limiter: RateLimiter, ticks: list[int]) -> list[bool]:
    return [limiter.check(tick) for tick in ticks]


def test_scenario_one_per_block_every_tick():
    limiter = RateLimiter(Blocks(1), tick=0)
    assert run(limiter, [0, 1, 2, 3]) == [True, True, True, True]


def test_scenario_two_per_block_third_attempt_fails():
    limiter = RateLimiter(PerBlock(2), tick=10)
    limiter.try_admit(10)
    limiter.try_admit(10)
    with pytest.raises(RateLimitExceeded) as info:
        limiter.try_admit(10)
    assert info.value.code == "rate_limit_exceeded"
    assert info.value.tick == 10
    assert info.value.count_in_tick == 2


def test_scenario_spacing_of_two():
    limiter = RateLimiter(Blocks(2), tick=0)
    assert limiter.check(0) is True
    with pytest.raises(RateLimitExceeded):
        limiter.try_admit(1)
    assert limiter.check(2) is True


def test_first_admission_under_blocks_is_open_at_construction_tick():
    limiter = RateLimiter(Blocks(5), tick=42)
    assert limiter.check(42) is True
    assert limiter.check(46) is False
    assert limiter.check(47) is True


def test_per_block_resets_on_new_tick():
    limiter = RateLimiter(PerBlock(1), tick=0)
    assert run(limiter, [0, 0, 1, 1, 5]) == [True, False, True, False, True]
    assert limiter.state == AdmissionState(last_tick=5, count_in_tick=1)


def test_initial_state():
    limiter = RateLimiter(PerBlock(3), tick=7)
    assert limiter.state == AdmissionState(last_tick=7, count_in_tick=0)
    assert limiter.snapshot() == {"rate": {"per_block": 3}, "last_tick": 7, "count_in_tick": 0}


def test_evaluate_does_not_touch_its_input():
    state = AdmissionState(last_tick=3, count_in_tick=1)
    new_state = evaluate(PerBlock(2), state, 3)
    assert new_state == AdmissionState(last_tick=3, count_in_tick=2)
    assert state == AdmissionState(last_tick=3, count_in_tick=1)


@pytest.mark.parametrize("tick", [-1, 1.0, True, "3"])
def test_bad_ticks(tick):
    with pytest.raises((TypeError, ValueError)):
        evaluate(PerBlock(1), AdmissionState(last_tick=0), tick)


@given(n=st.integers(min_value=1, max_value=6), ticks=tick_sequences(max_step=2))
@settings(max_examples=200)
def test_per_block_never_exceeds_n_per_tick(n, ticks):
    limiter = RateLimiter(PerBlock(n), tick=0)
    admitted: dict[int, int] = {}
    for tick, ok in zip(ticks, run(limiter, ticks)):
        if ok:
            admitted[tick] = admitted.get(tick, 0) + 1
        else:
            # only rejected once the tick's budget is spent
            assert admitted.get(tick, 0) == n
    assert all(count <= n for count in admitted.values())


@given(b=st.integers(min_value=1, max_value=6), ticks=tick_sequences(max_step=4))
@settings(max_examples=200)
def test_blocks_spaces_admissions_at_least_b_apart(b, ticks):
    limiter = RateLimiter(Blocks(b), tick=0)
    admitted = [tick for tick, ok in zip(ticks, run(limiter, ticks)) if ok]
    for earlier, later in zip(admitted, admitted[1:]):
        assert later - earlier >= b


@given(
    rate=st.one_of(
        st.integers(min_value=1, max_value=4).map(PerBlock),
        st.integers(min_value=1, max_value=4).map(Blocks),
    ),
    ticks=tick_sequences(max_step=2),
)
@settings(max_examples=200)
def test_rejection_leaves_state_unchanged(rate, ticks):
    limiter = RateLimiter(rate, tick=0)
    for tick in ticks:
        before = limiter.state
        try:
            limiter.try_admit(tick)
        except RateLimitExceeded:
            assert limiter.state == before


@given(ticks=tick_sequences(max_step=2))
@settings(max_examples=200)
def test_one_per_block_and_every_block_agree(ticks):
    per_block = RateLimiter(PerBlock(1), tick=0)
    blocks = RateLimiter(Blocks(1), tick=0)
    assert run(per_block, ticks) == run(blocks, ticks)
