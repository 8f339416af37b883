"""
Tests for VarianceComparator: technical vs biological SD summaries.
"""

import numpy as np
import pytest

from replicavar.stats.variance import VarianceComparator, summarize


@pytest.fixture
def comparator():
    return VarianceComparator()


class TestSummaries:

    def test_five_number_summary(self):
        s = summarize(np.array([1.0, 2.0, 3.0, 4.0, 5.0]))
        assert (s.min, s.q1, s.median, s.q3, s.max) == (1.0, 2.0, 3.0, 4.0, 5.0)
        assert s.mean == 3.0
        assert s.iqr == 2.0
        assert s.range == 4.0
        assert s.n == 5 and s.n_missing == 0

    def test_nan_excluded_and_counted(self):
        s = summarize(np.array([1.0, np.nan, 3.0]))
        assert s.n == 2
        assert s.n_missing == 1
        assert s.median == 2.0

    def test_all_nan_rejected(self):
        with pytest.raises(ValueError, match="no non-missing"):
            summarize(np.array([np.nan, np.nan]), "technical_sds")


class TestCompare:

    def test_uniformly_smaller_technical_sds(self, comparator):
        rng = np.random.RandomState(3)
        biological = rng.uniform(0.2, 1.0, size=500)
        technical = biological * rng.uniform(0.1, 0.5, size=500)

        result = comparator.compare(technical, biological)

        assert result.technical.median < result.biological.median
        assert result.technical.q1 < result.biological.q1
        assert result.technical.q3 < result.biological.q3
        assert result.technical.iqr < result.biological.iqr
        assert result.median_ratio < 1.0
        assert result.mannwhitney_pvalue < 1e-10
        assert result.fraction_biological_greater == 1.0

    def test_unequal_lengths(self, comparator):
        result = comparator.compare(np.array([0.1, 0.2, 0.15]), np.array([0.5, 0.7, 0.6, 0.8, 0.9]))
        assert result.technical.n == 3
        assert result.biological.n == 5
        assert not result.aligned
        assert result.fraction_biological_greater is None

    def test_inputs_not_mutated_and_exposed_read_only(self, comparator):
        technical = np.array([0.1, 0.2, 0.3])
        biological = np.array([0.4, 0.5, 0.6])
        result = comparator.compare(technical, biological)

        technical[0] = 99.0
        assert result.technical_sds[0] == 0.1
        np.testing.assert_array_equal(result.biological_sds, biological)
        with pytest.raises(ValueError):
            result.biological_sds[0] = 0.0

    def test_to_dict_has_no_vectors(self, comparator):
        d = comparator.compare(np.array([0.1, 0.2]), np.array([0.3, 0.4])).to_dict()
        assert set(d) == {
            'technical', 'biological', 'median_ratio',
            'mannwhitney_pvalue', 'fraction_biological_greater',
        }
        assert d['technical']['median'] == pytest.approx(0.15)

    def test_zero_biological_median(self, comparator):
        result = comparator.compare(np.array([0.1, 0.2]), np.array([0.0, 0.0]))
        assert result.median_ratio == np.inf

    def test_rejects_negative_sds(self, comparator):
        with pytest.raises(ValueError, match="negative"):
            comparator.compare(np.array([-0.1, 0.2]), np.array([0.3, 0.4]))

    def test_rejects_2d(self, comparator):
        with pytest.raises(ValueError, match="1D"):
            comparator.compare(np.ones((2, 2)), np.ones(3))
