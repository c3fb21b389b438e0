"""Tests for the one-round state transition."""

import logging
import pickle

import numpy as np
import pytest

from macropolicy.errors import (
    ConfigurationError,
    InvalidStateError,
    MacroPolicyError,
    NumericDomainError,
)
from macropolicy import transition
from macropolicy.state import TIMELINES, EconomyState
from macropolicy.transition import (
    ROUND_FIELDS,
    advance,
    describe,
    evaluate_round,
    materialize,
)
from tests.helpers import reference
from tests.helpers.invariants import assert_state_invariants


def _assert_round_matches(state, ref, rel=1e-10):
    t = state.t
    for name in ROUND_FIELDS:
        value = getattr(state, name)[t]
        assert value == pytest.approx(ref[name], rel=rel, abs=1e-12), name
    assert state.expected_inflation[t] == pytest.approx(ref["expected_inflation"])
    assert state.expected_inflation[t + 1] == pytest.approx(
        ref["expected_inflation_next"], rel=rel
    )


class TestEquations:
    def test_first_round_matches_reference(self, seed_state):
        s1 = advance(seed_state, 0.05, 0.2)
        _assert_round_matches(s1, reference.round_values(reference.seed(), 0.05, 0.2))

    def test_first_round_known_values(self, seed_state):
        s1 = advance(seed_state, 0.05, 0.2)

        assert s1.full_employment_gdp[1] == pytest.approx(18360.0)
        assert s1.government_spending[1] == pytest.approx(3672.0)
        # 0.7 * 0.02 + 0.2 * 0.02 + 0.1 * 0.02
        assert s1.expected_inflation[2] == pytest.approx(0.02)
        assert s1.real_interest_rate[1] == pytest.approx(0.03)
        assert s1.tax[1] == pytest.approx(s1.gdp[1] * 0.2)
        assert s1.price[1] == pytest.approx(1.0 + s1.inflation[1])
        assert s1.bonds[1] == pytest.approx(13500.0 + s1.nominal_deficit[1])

    def test_goods_market_clears(self, seed_state):
        s1 = advance(seed_state, 0.07, 0.33)
        y = s1.consumption[1] + s1.investment[1] + s1.government_spending[1]
        assert s1.gdp[1] == pytest.approx(y, rel=1e-12)

    def test_deficit_uses_previous_rate_and_bonds(self, seed_state):
        s1 = advance(seed_state, 0.12, 0.2)
        s2 = advance(s1, 0.03, 0.2)

        p, g, y = s2.price[2], s2.government_spending[2], s2.gdp[2]
        expected = p * g + 0.12 * s1.bonds[1] - 0.2 * p * y
        assert s2.nominal_deficit[2] == pytest.approx(expected, rel=1e-12)

    def test_multi_round_trajectory(self):
        instruments = [(0.05, 0.2), (0.03, 0.25), (0.10, 0.0), (-0.01, 0.4)]
        expected = reference.trajectory(instruments)

        state = EconomyState.init(max_round=len(instruments))
        for (i, tau), ref in zip(instruments, expected, strict=True):
            state = advance(state, i, tau)
            _assert_round_matches(state, ref)
        assert_state_invariants(state)

    def test_unemployment_below_potential(self, seed_state):
        # high rates and taxes keep output under potential
        s1 = advance(seed_state, 0.20, 0.40)
        assert s1.gdp[1] < s1.full_employment_gdp[1]
        gap = (s1.full_employment_gdp[1] - s1.gdp[1]) / s1.full_employment_gdp[1]
        assert s1.unemployment_rate[1] == pytest.approx(0.06 + 0.5 * gap)

    def test_unemployment_above_potential(self, seed_state):
        s1 = advance(seed_state, -0.01, 0.0)
        assert s1.gdp[1] > s1.full_employment_gdp[1]
        gap = (s1.full_employment_gdp[1] - s1.gdp[1]) / s1.full_employment_gdp[1]
        expected = 0.06 * (0.06 / (0.06 - 0.5 * gap))
        assert s1.unemployment_rate[1] == pytest.approx(expected)
        assert 0 < s1.unemployment_rate[1] < 0.06

    def test_losses_are_cumulative(self, seed_state):
        s1 = advance(seed_state, 0.05, 0.2)
        s2 = advance(s1, 0.05, 0.2)

        assert s2.monetary_loss[2] >= s1.monetary_loss[1]
        assert s2.fiscal_loss[2] >= s1.fiscal_loss[1]
        total = s2.monetary_loss[2] + s2.fiscal_loss[2]
        assert s2.total_loss[2] == pytest.approx(total)


class TestAdvance:
    def test_input_not_modified(self, seed_state):
        before = {n: getattr(seed_state, n).copy() for n in TIMELINES}

        s1 = advance(seed_state, 0.05, 0.2)

        assert s1 is not seed_state
        assert seed_state.t == 0
        for name in TIMELINES:
            np.testing.assert_array_equal(getattr(seed_state, name), before[name])

    def test_round_argument_checked(self, seed_state):
        assert advance(seed_state, 0.05, 0.2, round=1).t == 1
        with pytest.raises(InvalidStateError, match="round 2"):
            advance(seed_state, 0.05, 0.2, round=2)

    def test_full_timeline(self):
        s1 = advance(EconomyState.init(max_round=1), 0.05, 0.2)
        with pytest.raises(InvalidStateError, match="last round"):
            advance(s1, 0.05, 0.2)

    def test_bad_domain_policy(self, seed_state):
        with pytest.raises(ConfigurationError, match="on_domain_error"):
            advance(seed_state, 0.05, 0.2, on_domain_error="ignore")

    def test_deterministic(self, seed_state):
        a = advance(seed_state, 0.061, 0.217)
        b = advance(seed_state, 0.061, 0.217)
        for name in TIMELINES:
            np.testing.assert_array_equal(getattr(a, name), getattr(b, name))


class TestNumericDomain:
    def test_negative_denominator_raises(self, seed_state):
        # 0.4 + 0.6 * (-1) < 0 -> negative output -> log undefined
        with pytest.raises(NumericDomainError) as exc_info:
            advance(seed_state, 0.05, -1.0)

        err = exc_info.value
        assert err.round == 1
        assert "inflation" in err.fields
        assert "tax_rate=-1.0" in str(err)
        assert isinstance(err, ArithmeticError)
        assert isinstance(err, MacroPolicyError)

    def test_overflow_raises(self, seed_state):
        with pytest.raises(NumericDomainError):
            advance(seed_state, -1000.0, 0.2)

    def test_warn_mode_returns_non_finite_state(self, seed_state, caplog):
        with caplog.at_level(logging.WARNING, logger="macropolicy"):
            s1 = advance(seed_state, 0.05, -1.0, on_domain_error="warn")

        assert s1.t == 1
        assert not np.isfinite(s1.inflation[1])
        assert "non-finite" in caplog.text

    def test_no_numpy_warnings_leak(self, seed_state, recwarn):
        evaluate_round(seed_state, np.array([0.05, -1000.0]), np.array([-1.0, 0.2]))
        assert not [w for w in recwarn if issubclass(w.category, RuntimeWarning)]

    def test_error_pickles(self):
        err = NumericDomainError(3, ["gdp", "price"], "tax_rate=-1.0")
        clone = pickle.loads(pickle.dumps(err))

        assert clone.round == 3
        assert clone.fields == ("gdp", "price")
        assert str(clone) == str(err)


class TestEvaluateRound:
    def test_vector_matches_scalar(self, seed_state):
        rates = np.array([-0.01, 0.05, 0.12, 0.2])
        taxes = np.array([0.0, 0.2, 0.31, 0.4])

        rv = evaluate_round(seed_state, rates, taxes)

        assert rv.round == 1
        assert rv.size == 4
        assert rv.finite.all()
        for k in range(4):
            s = advance(seed_state, rates[k], taxes[k])
            for name in ROUND_FIELDS:
                assert rv.values[name][k] == pytest.approx(
                    getattr(s, name)[1], rel=1e-12, abs=1e-15
                ), name

    def test_scalar_broadcasts(self, seed_state):
        rv = evaluate_round(seed_state, np.array([0.01, 0.02, 0.03]), 0.2)

        assert rv.size == 3
        np.testing.assert_array_equal(rv.values["tax_rate"], [0.2, 0.2, 0.2])
        assert rv.values["full_employment_gdp"].shape == (3,)

    def test_finite_mask(self, seed_state):
        rv = evaluate_round(seed_state, 0.05, np.array([0.2, -1.0, 0.3]))

        assert rv.finite.tolist() == [True, False, True]
        assert rv.non_finite_fields(0) == []
        assert "gdp" not in rv.non_finite_fields(1)
        assert "inflation" in rv.non_finite_fields(1)

    def test_rejects_2d(self, seed_state):
        with pytest.raises(ValueError, match="1-D"):
            evaluate_round(seed_state, np.zeros((2, 2)), 0.2)

    def test_state_untouched(self, seed_state):
        evaluate_round(seed_state, np.linspace(0, 0.2, 5), 0.2)
        assert seed_state.t == 0
        assert seed_state.gdp[1] == 0.0

    def test_materialize_picks_candidate(self, seed_state):
        rv = evaluate_round(seed_state, np.array([0.01, 0.02]), np.array([0.1, 0.2]))

        s1 = materialize(seed_state, rv, 1)

        assert s1.t == 1
        assert s1.nominal_interest_rate[1] == 0.02
        assert s1.tax_rate[1] == 0.2
        assert s1.expected_inflation[2] == rv.expected_inflation_next

    def test_materialize_round_mismatch(self, seed_state):
        s1 = advance(seed_state, 0.05, 0.2)
        rv = evaluate_round(seed_state, 0.05, 0.2)
        with pytest.raises(InvalidStateError, match="round 1"):
            materialize(s1, rv)

    def test_describe(self, seed_state):
        rv = evaluate_round(seed_state, 0.05, 0.2)
        d = describe(rv, 0)
        assert "describe" in transition.__all__
        assert d["nominal_interest_rate"] == 0.05
        assert d["expected_inflation_next"] == rv.expected_inflation_next


def test_deep_debug_logs_equations(seed_state, caplog):
    from macropolicy.logging import DEEP_DEBUG

    with caplog.at_level(DEEP_DEBUG, logger="macropolicy"):
        advance(seed_state, 0.05, 0.2)

    assert "Round 1 equations" in caplog.text
    assert "gdp = " in caplog.text
