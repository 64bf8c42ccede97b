"""
Forecast builder tests.
Covers amortization, periodic variation and aggregation.
"""
import numpy as np
import pandas as pd
import pytest

from mixplanner.forecast.builder import (
    DEFAULT_VARIATION,
    NO_VARIATION,
    PeriodicVariation,
    aggregate_snapshots,
    build,
)
from mixplanner.model.domains import DIGITAL, SKINCARE, TELEVISION
from mixplanner.model.response_model import evaluate, margin_rate, saturation_effects
from mixplanner.utils.exceptions import ConfigurationError, InvalidInputError, UnknownDomainError


class TestBuildShape:
    """Test the structure of a forecast series."""

    def test_length_matches_horizon(self, skincare_spend, skincare_auxiliary):
        series = build("skincare", skincare_spend, skincare_auxiliary, horizon_periods=30)

        assert len(series) == 30
        assert [period for period, _ in series.periods] == list(range(30))
        assert series.domain == "skincare"
        assert series.horizon_periods == 30

    def test_every_period_has_every_metric(self, skincare_spend, skincare_auxiliary):
        series = build("skincare", skincare_spend, skincare_auxiliary, horizon_periods=7)

        for _, snapshot in series.periods:
            assert set(snapshot) == set(SKINCARE.output_metrics)

    def test_single_period(self, skincare_spend, skincare_auxiliary):
        series = build("skincare", skincare_spend, skincare_auxiliary, horizon_periods=1)

        assert len(series) == 1
        assert series.aggregate == series.periods[0][1]

    def test_to_frame(self, skincare_spend, skincare_auxiliary):
        series = build("skincare", skincare_spend, skincare_auxiliary, horizon_periods=14)
        frame = series.to_frame()

        assert isinstance(frame, pd.DataFrame)
        assert frame.shape == (14, len(SKINCARE.output_metrics))
        assert frame.index.name == "period"
        np.testing.assert_allclose(frame["sales"].to_numpy(), series.metric("sales"))


class TestAggregation:
    """Test reduction of the series to totals."""

    def test_aggregate_is_sum_of_periods(self, skincare_spend, skincare_auxiliary):
        series = build("skincare", skincare_spend, skincare_auxiliary, horizon_periods=30)

        for metric, total in series.aggregate.items():
            assert total == pytest.approx(sum(series.metric(metric)), rel=1e-12)

    def test_gross_profit_round_trip(self, skincare_spend, skincare_auxiliary):
        series = build("skincare", skincare_spend, skincare_auxiliary, horizon_periods=30)
        rate = SKINCARE.margin.rate

        for _, snapshot in series.periods:
            assert snapshot["grossProfit"] == pytest.approx(snapshot["sales"] * rate, rel=1e-12)
        assert series.aggregate["grossProfit"] == pytest.approx(series.aggregate["sales"] * rate, rel=1e-12)
        assert series.margin_rate == pytest.approx(rate)

    def test_share_margin_rate(self, makeup_spend):
        series = build("makeup", makeup_spend, {"organicPosts": 12.0}, horizon_periods=30)

        assert series.margin_rate == pytest.approx(margin_rate("makeup", makeup_spend))

    def test_missing_metrics_count_as_zero(self):
        totals = aggregate_snapshots([{"sales": 1.0, "ugc": 2.0}, {"sales": 3.0}])

        assert totals == {"sales": 4.0, "ugc": 2.0}

    def test_zero_sales_margin_rate(self):
        series = build("skincare", {TELEVISION: 0.0, DIGITAL: 0.0}, horizon_periods=3)

        assert series.aggregate["sales"] == 0.0
        assert series.margin_rate == 0.0


class TestAmortization:
    """Saturation uses campaign totals, linear terms use per-period amounts."""

    def test_matches_response_model_without_variation(self, skincare_spend, skincare_auxiliary):
        horizon = 20
        totals = {**skincare_spend, **skincare_auxiliary}
        effects = saturation_effects("skincare", totals)
        per_period = {name: amount / horizon for name, amount in totals.items()}
        expected = evaluate("skincare", per_period, effects=effects)

        series = build("skincare", skincare_spend, skincare_auxiliary, horizon, variation=NO_VARIATION)

        for _, snapshot in series.periods:
            for metric, value in expected.items():
                assert snapshot[metric] == pytest.approx(value)

    def test_auxiliary_alias(self, skincare_spend):
        with_alias = build("skincare", skincare_spend, {"posts": 8}, horizon_periods=10)
        canonical = build("skincare", skincare_spend, {"organicPosts": 8}, horizon_periods=10)

        assert with_alias.aggregate == canonical.aggregate

    def test_posts_accepted_inside_spend(self, skincare_spend, skincare_auxiliary):
        merged = build("skincare", {**skincare_spend, **skincare_auxiliary}, horizon_periods=10)
        separate = build("skincare", skincare_spend, skincare_auxiliary, horizon_periods=10)

        assert merged.aggregate == separate.aggregate


class TestPeriodicVariation:
    """Test the deterministic per-period wobble."""

    def test_reproducible(self, skincare_spend, skincare_auxiliary):
        first = build("skincare", skincare_spend, skincare_auxiliary, horizon_periods=30)
        second = build("skincare", skincare_spend, skincare_auxiliary, horizon_periods=30)

        assert first == second

    def test_factor_is_pure_function_of_index(self):
        factors = [DEFAULT_VARIATION.factor(i) for i in range(60)]

        assert factors == [DEFAULT_VARIATION.factor(i) for i in range(60)]
        assert all(0 < factor < 2 for factor in factors)
        assert len(set(round(f, 12) for f in factors[:14])) > 1

    def test_factor_formula(self):
        variation = PeriodicVariation(amplitude=0.1, cycle=4.0, weekly_amplitude=0.03)

        assert variation.factor(0) == pytest.approx(1.0 - 0.03)
        assert variation.factor(1) == pytest.approx(1.0 + 0.1 + 0.03 * (1 - 3) / 3)
        assert variation.factor(3) == pytest.approx(1.0 - 0.1)

    def test_no_variation_flattens_series(self, skincare_spend):
        series = build("skincare", skincare_spend, horizon_periods=10, variation=NO_VARIATION)

        sales = series.metric("sales")
        assert all(value == sales[0] for value in sales)

    def test_variation_changes_periods_not_order_of_magnitude(self, skincare_spend):
        flat = build("skincare", skincare_spend, horizon_periods=30, variation=NO_VARIATION)
        wobbly = build("skincare", skincare_spend, horizon_periods=30)

        ratio = np.array(wobbly.metric("sales")) / np.array(flat.metric("sales"))
        np.testing.assert_allclose(ratio, [DEFAULT_VARIATION.factor(i) for i in range(30)])

    @pytest.mark.parametrize("kwargs", [
        {"cycle": 0.0},
        {"amplitude": -0.1},
        {"amplitude": 0.6, "weekly_amplitude": 0.4},
    ])
    def test_invalid_variation(self, kwargs):
        with pytest.raises(ConfigurationError):
            PeriodicVariation(**kwargs)


class TestBuildErrors:
    """Invalid inputs fail before any computation."""

    @pytest.mark.parametrize("horizon", [0, -3, 1.5, True, "30", None])
    def test_invalid_horizon(self, skincare_spend, horizon):
        with pytest.raises(InvalidInputError):
            build("skincare", skincare_spend, horizon_periods=horizon)

    def test_numpy_integer_horizon(self, skincare_spend):
        series = build("skincare", skincare_spend, horizon_periods=np.int64(5))

        assert len(series) == 5

    def test_negative_spend(self):
        with pytest.raises(InvalidInputError):
            build("skincare", {TELEVISION: -5.0, DIGITAL: 10.0}, horizon_periods=10)

    def test_negative_auxiliary(self, skincare_spend):
        with pytest.raises(InvalidInputError):
            build("skincare", skincare_spend, {"organicPosts": -1.0}, horizon_periods=10)

    def test_input_given_twice(self, skincare_spend):
        with pytest.raises(InvalidInputError):
            build("skincare", {**skincare_spend, "organicPosts": 2.0}, {"organicPosts": 3.0}, horizon_periods=10)

    def test_unknown_spend_input(self):
        with pytest.raises(InvalidInputError) as exc_info:
            build("skincare", {"tv": 1_000_000.0}, horizon_periods=10)
        assert exc_info.value.field == "spend"

    def test_unknown_auxiliary_input(self, skincare_spend):
        with pytest.raises(InvalidInputError) as exc_info:
            build("skincare", skincare_spend, {"stories": 3.0}, horizon_periods=10)
        assert exc_info.value.field == "auxiliary"

    def test_unknown_domain(self, skincare_spend):
        with pytest.raises(UnknownDomainError):
            build("haircare", skincare_spend, horizon_periods=10)


class TestReadOnlySeries:
    """Forecast snapshots cannot be changed after the build."""

    def test_aggregate_is_read_only(self, skincare_spend):
        series = build("skincare", skincare_spend, horizon_periods=3)

        with pytest.raises(TypeError):
            series.aggregate["sales"] = 0.0

    def test_period_snapshots_are_read_only(self, skincare_spend):
        series = build("skincare", skincare_spend, horizon_periods=3)

        with pytest.raises(TypeError):
            series.periods[0][1]["sales"] = 0.0

    def test_snapshots_copy_to_plain_dicts(self, skincare_spend):
        series = build("skincare", skincare_spend, horizon_periods=3)

        aggregate = dict(series.aggregate)
        aggregate["sales"] = 0.0

        assert series.aggregate["sales"] > 0
