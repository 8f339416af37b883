"""
Tests for AnalysisConfig and config-file handling in the CLI.

Priority: explicit CLI args > config file > argparse defaults.
"""

import json
from argparse import Namespace

import pytest
import yaml

from replicavar.cli.config import (
    analysis_config_from_args,
    load_config,
    merge_config_with_args,
)
from replicavar.config import AnalysisConfig
from replicavar.design.partition import SelectionMode


def _defaults(**overrides):
    values = dict(
        label_marker=None,
        cohort_size=12,
        exclude=None,
        selection_mode='all',
        fdr_method='BH',
        alpha=0.01,
        n_jobs=1,
        orientation='samples_by_units',
    )
    values.update(overrides)
    return Namespace(**values)


class TestAnalysisConfig:

    def test_defaults(self):
        config = AnalysisConfig(label_marker_pattern="b")
        assert config.cohort_size == 12
        assert config.selection_mode is SelectionMode.ALL
        assert config.exclusion_pattern is None
        assert config.orientation == "samples_by_units"

    def test_selection_mode_parsed_from_string(self):
        assert AnalysisConfig("b", selection_mode="pooled").selection_mode is SelectionMode.POOLED_ONLY

    @pytest.mark.parametrize("kwargs, match", [
        ({'label_marker_pattern': ""}, "label_marker_pattern"),
        ({'label_marker_pattern': "b", 'cohort_size': 0}, "cohort_size"),
        ({'label_marker_pattern': "b", 'fdr_method': "holm"}, "fdr_method"),
        ({'label_marker_pattern': "b", 'alpha': 1.5}, "alpha"),
        ({'label_marker_pattern': "b", 'n_jobs': 0}, "n_jobs"),
        ({'label_marker_pattern': "b", 'orientation': "wide"}, "orientation"),
        ({'label_marker_pattern': "b", 'selection_mode': "technical"}, "selection mode"),
    ])
    def test_invalid_values(self, kwargs, match):
        with pytest.raises(ValueError, match=match):
            AnalysisConfig(**kwargs)

    def test_cohort_size_per_label(self):
        config = AnalysisConfig("b", cohort_size={"0": 12, 1: 10})
        assert config.cohort_size == {0: 12, 1: 10}
        assert config.to_dict()["cohort_size"] == {0: 12, 1: 10}
        assert AnalysisConfig.from_dict(config.to_dict()) == config

    @pytest.mark.parametrize("cohort_size", [
        {0: 12},
        {0: 12, 1: 10, 2: 8},
        {0: 12, 1: 0},
        {0: 12, 1: "ten"},
        {0: 12, 1: [10]},
        2.5,
    ])
    def test_invalid_cohort_size(self, cohort_size):
        with pytest.raises(ValueError, match="cohort_size"):
            AnalysisConfig("b", cohort_size=cohort_size)

    def test_dict_round_trip(self):
        config = AnalysisConfig("b", exclusion_pattern="tr", selection_mode="individual")
        d = config.to_dict()
        assert d['selection_mode'] == "individual"
        assert AnalysisConfig.from_dict(d) == config

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown config key"):
            AnalysisConfig.from_dict({'label_marker_pattern': "b", 'strain': "a"})


class TestLoadConfig:

    def test_yaml(self, tmp_path):
        path = tmp_path / "pooling.yaml"
        path.write_text(yaml.safe_dump({'label_marker_pattern': "b", 'cohort_size': 10}))
        assert load_config(path) == {'label_marker_pattern': "b", 'cohort_size': 10}

    def test_json(self, tmp_path):
        path = tmp_path / "pooling.json"
        path.write_text(json.dumps({'selection_mode': "pooled"}))
        assert load_config(path) == {'selection_mode': "pooled"}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config(path) == {}

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("x = 1")
        with pytest.raises(ValueError, match="Unsupported config format"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text("label_marker: b\n")
        with pytest.raises(ValueError, match="Unknown config key"):
            load_config(path)


class TestMerge:

    def test_config_fills_defaults(self):
        merged = merge_config_with_args(
            {'label_marker_pattern': "b", 'selection_mode': "pooled"},
            _defaults(),
            cli_args=[],
        )
        assert merged.label_marker == "b"
        assert merged.selection_mode == "pooled"

    def test_explicit_cli_wins(self):
        merged = merge_config_with_args(
            {'selection_mode': "pooled", 'cohort_size': 10},
            _defaults(selection_mode="individual"),
            cli_args=["ttest", "--selection-mode", "individual"],
        )
        assert merged.selection_mode == "individual"
        assert merged.cohort_size == 10

    def test_equals_form_counts_as_explicit(self):
        merged = merge_config_with_args(
            {'cohort_size': 10},
            _defaults(cohort_size=6),
            cli_args=["--cohort-size=6"],
        )
        assert merged.cohort_size == 6

    def test_original_namespace_untouched(self):
        args = _defaults()
        merge_config_with_args({'label_marker_pattern': "b"}, args, cli_args=[])
        assert args.label_marker is None

    def test_analysis_config_from_args(self):
        config = analysis_config_from_args(_defaults(label_marker="b", exclude="tr"))
        assert config.label_marker_pattern == "b"
        assert config.exclusion_pattern == "tr"

    def test_cohort_mapping_from_yaml(self, tmp_path):
        path = tmp_path / "cohorts.yaml"
        path.write_text("label_marker_pattern: _b\ncohort_size: {0: 12, 1: 10}\n")
        merged = merge_config_with_args(load_config(path), _defaults(), cli_args=[])
        assert analysis_config_from_args(merged).cohort_size == {0: 12, 1: 10}

    def test_label_marker_required(self):
        with pytest.raises(ValueError, match="label marker"):
            analysis_config_from_args(_defaults())
