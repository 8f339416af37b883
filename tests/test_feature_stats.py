"""
Tests for FeatureStatsEngine: Welch t-test per feature.

scipy.stats.ttest_ind(equal_var=False) serves as the numerical reference.
"""

import logging

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from replicavar.core.errors import DimensionMismatchError, InsufficientReplicatesError
from replicavar.core.expression import ExpressionMatrix
from replicavar.stats.multitest import fdr_correction
from replicavar.stats.welch import FeatureStatsEngine, welch_t_test


@pytest.fixture
def engine():
    return FeatureStatsEngine()


@pytest.fixture
def random_matrix():
    rng = np.random.RandomState(7)
    data = rng.normal(10.0, 1.0, size=(300, 11))
    data[:30, 5:] += rng.uniform(0.5, 3.0, size=(30, 1))
    return data


class TestWelchFormula:
    """Closed-form and reference agreement."""

    def test_hand_computed_example(self, engine):
        data = np.array([[2.0, 4.0, 6.0, 8.0, 10.0, 12.0]])
        result = engine.compute(data, [0, 1, 2], [3, 4, 5])
        r = result[0]

        assert r.mean_a == pytest.approx(4.0)
        assert r.mean_b == pytest.approx(10.0)
        assert r.sd_a == pytest.approx(2.0)
        assert r.sd_b == pytest.approx(2.0)
        assert r.t_statistic == pytest.approx(-6.0 / np.sqrt(8.0 / 3.0))
        assert r.t_statistic == pytest.approx(-3.674, abs=1e-3)
        assert r.degrees_of_freedom == pytest.approx(4.0)
        assert 0.020 < r.p_value < 0.022

    def test_matches_scipy_welch(self, engine, random_matrix):
        a = [0, 1, 2, 3, 4]
        b = [5, 6, 7, 8, 9, 10]
        result = engine.compute(random_matrix, a, b)
        ref = stats.ttest_ind(random_matrix[:, a], random_matrix[:, b], axis=1, equal_var=False)

        np.testing.assert_allclose(result.t_statistics, ref.statistic, rtol=1e-9)
        np.testing.assert_allclose(result.p_values, ref.pvalue, rtol=1e-6)

    def test_differs_from_pooled_variance_test(self, engine):
        data = np.array([[1.0, 1.2, 0.9, 5.0, 9.0, 2.0, 7.5, 3.0]])
        result = engine.compute(data, [0, 1, 2], [3, 4, 5, 6, 7])
        student = stats.ttest_ind(data[0, :3], data[0, 3:], equal_var=True)
        assert result[0].p_value != pytest.approx(student.pvalue, rel=1e-3)

    def test_fractional_df(self, engine):
        data = np.array([[1.0, 2.0, 3.0, 10.0, 30.0, 20.0, 5.0]])
        r = engine.compute(data, [0, 1, 2], [3, 4, 5, 6])[0]
        assert r.degrees_of_freedom != round(r.degrees_of_freedom)
        assert 2.0 <= r.degrees_of_freedom <= 5.0

    def test_group_order_flips_sign_only(self, engine, random_matrix):
        ab = engine.compute(random_matrix, [0, 1, 2], [3, 4, 5])
        ba = engine.compute(random_matrix, [3, 4, 5], [0, 1, 2])
        np.testing.assert_allclose(ab.t_statistics, -ba.t_statistics)
        np.testing.assert_allclose(ab.p_values, ba.p_values)


class TestZeroVariance:
    """Constant groups give defined statistics."""

    def test_both_constant_different_means(self, engine, caplog):
        data = np.array([[5.0, 5.0, 5.0, 7.0, 7.0, 7.0]])
        with caplog.at_level(logging.WARNING, logger="replicavar.stats.welch"):
            r = engine.compute(data, [0, 1, 2], [3, 4, 5])[0]
        assert not np.isnan(r.t_statistic)
        assert r.t_statistic == -np.inf
        assert r.p_value == 0.0
        assert r.degrees_of_freedom == 4.0
        assert "constant" in caplog.text

    def test_both_constant_equal_means(self, engine):
        data = np.array([[3.0, 3.0, 3.0, 3.0]])
        r = engine.compute(data, [0, 1], [2, 3])[0]
        assert r.t_statistic == 0.0
        assert r.p_value == 1.0

    def test_decimal_constant_equal_means_unequal_sizes(self, engine):
        data = np.array([[0.1, 0.1, 0.1, 0.1, 0.1]])
        r = engine.compute(data, [0, 1, 2], [3, 4])[0]
        assert r.sd_a == 0.0 and r.sd_b == 0.0
        assert r.mean_a == 0.1 and r.mean_b == 0.1
        assert r.t_statistic == 0.0
        assert r.p_value == 1.0
        assert r.degrees_of_freedom == 3.0

    def test_decimal_constant_different_means(self, engine):
        data = np.array([
            [0.1, 0.1, 0.1, 0.7, 0.7],
            [9.3, 9.3, 9.3, 2.2, 2.2],
        ])
        result = engine.compute(data, [0, 1, 2], [3, 4])
        assert result[0].t_statistic == -np.inf
        assert result[1].t_statistic == np.inf
        assert result.p_values.tolist() == [0.0, 0.0]
        assert result.sd_a.tolist() == [0.0, 0.0]

    def test_decimal_constant_row_standard_deviation(self, engine):
        sds = engine.row_standard_deviations(np.array([[0.1, 0.1, 0.1], [0.3, 0.3, 0.3]]), [0, 1, 2])
        assert sds.tolist() == [0.0, 0.0]

    def test_one_group_constant(self, engine):
        data = np.array([[5.0, 5.0, 5.0, 6.0, 7.0, 8.0]])
        r = engine.compute(data, [0, 1, 2], [3, 4, 5])[0]
        ref = stats.ttest_ind(data[0, :3], data[0, 3:], equal_var=False)
        assert r.t_statistic == pytest.approx(ref.statistic)
        assert r.p_value == pytest.approx(ref.pvalue)
        assert r.degrees_of_freedom == pytest.approx(2.0)

    def test_welch_t_test_vectorised_degenerate(self):
        t, df, p = welch_t_test(
            np.array([1.0, 2.0]), np.array([0.0, 0.0]), 3,
            np.array([2.0, 1.0]), np.array([0.0, 0.0]), 3,
        )
        assert t.tolist() == [-np.inf, np.inf]
        assert p.tolist() == [0.0, 0.0]


class TestEngineContract:

    def test_one_result_per_row_in_order(self, engine, random_matrix):
        ids = [f"probe_{i}" for i in range(random_matrix.shape[0])]
        result = engine.compute(random_matrix, [0, 1, 2], [3, 4, 5], feature_ids=ids)
        assert len(result) == random_matrix.shape[0]
        assert result.feature_ids == ids
        assert result.n_a == 3 and result.n_b == 3

    def test_expression_matrix_input_uses_feature_ids(self, engine):
        matrix = ExpressionMatrix(
            data=np.array([[1.0, 2.0, 3.0, 4.0], [2.0, 2.5, 4.0, 4.2]]),
            feature_ids=pd.Index(["g1", "g2"]),
            sample_ids=pd.Index(["a1", "a2", "b1", "b2"]),
        )
        result = engine.compute(matrix, [0, 1], [2, 3])
        assert result.feature_ids == ["g1", "g2"]

    def test_idempotent(self, engine, random_matrix):
        first = engine.compute(random_matrix, [0, 2, 4], [1, 3, 5, 7])
        second = engine.compute(random_matrix, [0, 2, 4], [1, 3, 5, 7])
        assert first.results == second.results

    def test_chunking_and_workers_do_not_change_results(self, random_matrix):
        a, b = [0, 1, 2, 3], [6, 7, 8, 9]
        reference = FeatureStatsEngine().compute(random_matrix, a, b)
        chunked = FeatureStatsEngine(chunk_size=17).compute(random_matrix, a, b)
        parallel = FeatureStatsEngine(n_jobs=2, chunk_size=50).compute(random_matrix, a, b)
        assert chunked.results == reference.results
        assert parallel.results == reference.results

    def test_input_not_mutated(self, engine, random_matrix):
        before = random_matrix.copy()
        engine.compute(random_matrix, [0, 1, 2], [3, 4, 5])
        np.testing.assert_array_equal(random_matrix, before)

    def test_result_arrays_read_only(self, engine, random_matrix):
        result = engine.compute(random_matrix, [0, 1, 2], [3, 4, 5])
        with pytest.raises(ValueError):
            result.p_values[0] = 0.5

    def test_detects_differential_rows(self, engine, random_matrix):
        result = engine.compute(random_matrix, [0, 1, 2, 3, 4], [5, 6, 7, 8, 9, 10])
        assert np.median(result.p_values[:30]) < np.median(result.p_values[30:])

    def test_nan_row_isolated(self, engine, caplog):
        data = np.array([
            [1.0, np.nan, 3.0, 4.0, 5.0, 6.0],
            [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
        ])
        with caplog.at_level(logging.WARNING, logger="replicavar.stats.welch"):
            result = engine.compute(data, [0, 1, 2], [3, 4, 5])
        assert np.isnan(result[0].p_value)
        assert not np.isnan(result[1].p_value)
        assert "non-finite" in caplog.text


class TestEngineErrors:

    def test_insufficient_replicates_group_a(self, engine):
        with pytest.raises(InsufficientReplicatesError, match="Group A has 1 sample"):
            engine.compute(np.ones((2, 4)), [0], [1, 2, 3])

    def test_insufficient_replicates_group_b(self, engine):
        with pytest.raises(InsufficientReplicatesError, match="Group B"):
            engine.compute(np.ones((2, 4)), [0, 1, 2], [3])

    def test_index_out_of_range(self, engine):
        with pytest.raises(DimensionMismatchError, match="4 sample columns"):
            engine.compute(np.ones((2, 4)), [0, 1], [2, 9])

    def test_overlapping_groups(self, engine):
        with pytest.raises(ValueError, match="share sample columns"):
            engine.compute(np.ones((2, 4)), [0, 1, 2], [2, 3])

    def test_feature_id_length_mismatch(self, engine):
        with pytest.raises(DimensionMismatchError, match="feature_ids"):
            engine.compute(np.ones((2, 4)), [0, 1], [2, 3], feature_ids=["only_one"])

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            FeatureStatsEngine(n_jobs=0)
        with pytest.raises(ValueError):
            FeatureStatsEngine(chunk_size=0)


class TestRowStandardDeviations:

    def test_matches_numpy(self, engine, random_matrix):
        idx = [1, 4, 6, 9]
        sds = engine.row_standard_deviations(random_matrix, idx)
        np.testing.assert_allclose(sds, random_matrix[:, idx].std(axis=1, ddof=1))

    def test_matches_compute(self, engine, random_matrix):
        result = engine.compute(random_matrix, [0, 1, 2], [3, 4, 5])
        np.testing.assert_allclose(
            engine.row_standard_deviations(random_matrix, [0, 1, 2]), result.sd_a
        )

    def test_requires_two_columns(self, engine, random_matrix):
        with pytest.raises(InsufficientReplicatesError):
            engine.row_standard_deviations(random_matrix, [3])


class TestResultTable:

    def test_to_dataframe(self, engine, random_matrix):
        result = engine.compute(random_matrix, [0, 1, 2], [3, 4, 5])
        df = result.to_dataframe()
        assert len(df) == random_matrix.shape[0]
        for col in ("feature_id", "mean_a", "mean_b", "mean_difference", "sd_a", "sd_b",
                    "t_statistic", "degrees_of_freedom", "p_value", "adj_p_value"):
            assert col in df.columns
        np.testing.assert_allclose(df["mean_difference"], df["mean_a"] - df["mean_b"])
        assert (df["adj_p_value"] >= df["p_value"] - 1e-12).all()

    def test_n_significant(self, engine):
        data = np.array([
            [1.0, 1.01, 1.02, 100.0, 100.01, 100.02],
            [5.0, 7.0, 6.0, 6.5, 5.5, 6.0],
        ])
        result = engine.compute(data, [0, 1, 2], [3, 4, 5])
        assert result.n_significant(alpha=0.01) == 1
        assert result.n_significant(alpha=0.01, adjusted=True) == 1


class TestFdrCorrection:

    def test_bh_matches_statsmodels(self):
        from statsmodels.stats.multitest import multipletests

        p = np.array([0.001, 0.01, 0.03, 0.2, 0.9])
        np.testing.assert_allclose(
            fdr_correction(p, "BH"), multipletests(p, method="fdr_bh")[1]
        )

    def test_bonferroni(self):
        p = np.array([0.01, 0.2, 0.5])
        np.testing.assert_allclose(fdr_correction(p, "bonferroni"), [0.03, 0.6, 1.0])

    def test_nan_kept_out_of_family(self):
        adjusted = fdr_correction(np.array([0.01, np.nan, 0.02]), "bonferroni")
        assert np.isnan(adjusted[1])
        np.testing.assert_allclose(adjusted[[0, 2]], [0.02, 0.04])

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown FDR method"):
            fdr_correction(np.array([0.1]), "holm")
