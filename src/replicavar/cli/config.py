"""
Configuration file support for the replicavar CLI.

Supports YAML and JSON config files with CLI argument override. A config
file holds the analysis surface, flat:

    label_marker_pattern: "b"
    cohort_size: 12
    exclusion_pattern: "tr"
    selection_mode: individual
    fdr_method: BH
    alpha: 0.01
    n_jobs: 1
    orientation: samples_by_units

Strains with cohorts of different size take a mapping instead:

    cohort_size: {0: 12, 1: 10}
"""

import json
from argparse import Namespace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from replicavar.config import AnalysisConfig

# config key -> argparse dest
CONFIG_TO_ARG = {
    'label_marker_pattern': 'label_marker',
    'cohort_size': 'cohort_size',
    'exclusion_pattern': 'exclude',
    'selection_mode': 'selection_mode',
    'fdr_method': 'fdr_method',
    'alpha': 'alpha',
    'n_jobs': 'n_jobs',
    'orientation': 'orientation',
}

_SHORT_TO_LONG = {
    'e': 'expression',
    'd': 'design',
    'o': 'output',
    'c': 'config',
}


_PARSERS = {
    '.yaml': (yaml.safe_load, yaml.YAMLError, "YAML"),
    '.yml': (yaml.safe_load, yaml.YAMLError, "YAML"),
    '.json': (json.load, json.JSONDecodeError, "JSON"),
}


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Read a flat YAML or JSON config file.

    Parameters:
        config_path: .yaml, .yml or .json file

    Returns:
        Mapping of config keys (see CONFIG_TO_ARG); empty for an empty file

    Raises:
        FileNotFoundError: If the file is missing
        ValueError: On an unsupported suffix, a parse error, a non-mapping
            document or unknown keys

    Examples:
        >>> config = load_config(Path("pooling.yaml"))
        >>> config['label_marker_pattern']
        'b'
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix not in _PARSERS:
        raise ValueError(
            f"Unsupported config format {suffix!r} for {config_path.name}; "
            f"expected one of {sorted(_PARSERS)}"
        )
    parse, parse_error, fmt = _PARSERS[suffix]

    with open(config_path) as f:
        try:
            config = parse(f)
        except parse_error as e:
            raise ValueError(f"Invalid {fmt} in {config_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(
            f"{config_path} must hold a mapping of settings, got {type(config).__name__}"
        )

    unknown = set(config) - set(CONFIG_TO_ARG)
    if unknown:
        raise ValueError(
            f"Unknown config key(s): {sorted(unknown)}. "
            f"Valid keys: {sorted(CONFIG_TO_ARG)}"
        )

    return config


def _explicit_args(cli_args: Optional[List[str]]) -> set:
    """
    Argparse dests the user typed on the command line.

    The parsers set allow_abbrev=False, so every long option arrives spelled
    out and maps directly to its dest.
    """
    explicit = set()
    for arg in cli_args or []:
        if arg.startswith('--'):
            explicit.add(arg[2:].split('=', 1)[0].replace('-', '_'))
        elif arg.startswith('-') and len(arg) == 2 and arg[1] in _SHORT_TO_LONG:
            explicit.add(_SHORT_TO_LONG[arg[1]])
    return explicit


def merge_config_with_args(
    config: Dict[str, Any],
    args: Namespace,
    cli_args: Optional[List[str]] = None,
) -> Namespace:
    """
    Overlay config file values onto parsed arguments.

    An option typed on the command line always wins; otherwise a value from
    the config file replaces the argparse default.

    Parameters:
        config: Output of load_config()
        args: Parsed namespace; left unchanged
        cli_args: The raw argv used to detect typed options. None means
            nothing was typed explicitly.

    Returns:
        A new Namespace
    """
    explicit = _explicit_args(cli_args)
    merged = Namespace(**dict(vars(args)))

    for config_key, arg_name in CONFIG_TO_ARG.items():
        if config_key not in config or arg_name in explicit:
            continue
        if config[config_key] is not None or config_key == 'exclusion_pattern':
            setattr(merged, arg_name, config[config_key])

    return merged


def analysis_config_from_args(args: Namespace) -> AnalysisConfig:
    """
    Build the AnalysisConfig from (merged) CLI arguments.

    Raises:
        ValueError: If a value is invalid or the label marker is missing.
    """
    if not getattr(args, 'label_marker', None):
        raise ValueError(
            "A label marker pattern is required (--label-marker or "
            "label_marker_pattern in the config file)"
        )
    values = {
        config_key: getattr(args, arg_name)
        for config_key, arg_name in CONFIG_TO_ARG.items()
        if getattr(args, arg_name, None) is not None
    }
    return AnalysisConfig.from_dict(values)
