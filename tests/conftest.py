"""
Pytest configuration and shared fixtures.

Provides a synthetic pooling experiment modelled on a two-strain microarray
study: every animal of a strain is mixed into one RNA pool that is
hybridised several times (technical replicates), and each animal is also
arrayed on its own (biological replicates).
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
import pytest

from replicavar.core.expression import ExpressionMatrix
from replicavar.core.incidence import IncidenceMatrix


@dataclass
class PoolingExperiment:
    expression: ExpressionMatrix
    incidence: IncidenceMatrix
    n_differential: int
    technical_sd: float
    biological_sd: float


def generate_pooling_experiment(
    n_features: int = 200,
    n_units: int = 12,
    n_pool_arrays: int = 4,
    n_differential: int = 20,
    strain_effect: float = 2.0,
    biological_sd: float = 0.5,
    technical_sd: float = 0.1,
    with_technical_repeat: bool = True,
    with_partial_pool: bool = True,
    seed: int = 42,
) -> PoolingExperiment:
    """
    Generate a two-strain pooling experiment.

    Sample naming:
        pool_a_{k} / pool_b_{k}   full pools of strain a / b
        ind_a_{u}  / ind_b_{u}    one animal each
        ind_a_1_tr                repeat array of animal a1 (technical)
        mix_a                     half of strain a pooled

    Label 1 (strain b) is marked by "_b" in the sample id.

    Design:
        - Log-scale expression, baseline drawn per feature
        - First n_differential features shifted by strain_effect in strain b
        - Animal effects N(0, biological_sd) per feature
        - Array noise N(0, technical_sd) per value
    """
    rng = np.random.RandomState(seed)

    baseline = rng.uniform(6.0, 12.0, size=n_features)
    effect = np.zeros(n_features)
    effect[:n_differential] = strain_effect

    units = {
        strain: [f"{strain}{u}" for u in range(1, n_units + 1)]
        for strain in ("a", "b")
    }
    unit_ids = units["a"] + units["b"]
    animal = {
        uid: rng.normal(0.0, biological_sd, size=n_features) for uid in unit_ids
    }

    samples: list[tuple[str, list[str], str]] = []
    for strain in ("a", "b"):
        for k in range(1, n_pool_arrays + 1):
            samples.append((f"pool_{strain}_{k}", units[strain], strain))
    for strain in ("a", "b"):
        for uid in units[strain]:
            samples.append((f"ind_{strain}_{uid[1:]}", [uid], strain))
    if with_technical_repeat:
        samples.append(("ind_a_1_tr", ["a1"], "a"))
    if with_partial_pool:
        samples.append(("mix_a", units["a"][: n_units // 2], "a"))

    data = np.empty((n_features, len(samples)))
    design = np.zeros((len(samples), len(unit_ids)), dtype=int)
    for j, (sample_id, members, strain) in enumerate(samples):
        biological = np.mean([animal[m] for m in members], axis=0)
        shift = effect if strain == "b" else 0.0
        data[:, j] = baseline + shift + biological + rng.normal(0.0, technical_sd, n_features)
        for m in members:
            design[j, unit_ids.index(m)] = 1

    sample_ids = pd.Index([s[0] for s in samples])
    expression = ExpressionMatrix(
        data=data,
        feature_ids=pd.Index([f"{1367452 + i}_at" for i in range(n_features)]),
        sample_ids=sample_ids,
    )
    incidence = IncidenceMatrix(
        values=design,
        sample_ids=tuple(sample_ids),
        unit_ids=tuple(unit_ids),
    )
    return PoolingExperiment(
        expression=expression,
        incidence=incidence,
        n_differential=n_differential,
        technical_sd=technical_sd,
        biological_sd=biological_sd,
    )


@pytest.fixture
def pooling_experiment():
    """Default synthetic experiment (200 features, 12 animals per strain)."""
    return generate_pooling_experiment()


@pytest.fixture
def small_incidence():
    """Four-unit design: two strains of two animals, one pool each."""
    return IncidenceMatrix(
        values=np.array([
            [1, 1, 0, 0],  # pool_a
            [1, 0, 0, 0],  # ind_a_1
            [0, 1, 0, 0],  # ind_a_2
            [0, 0, 1, 1],  # pool_b
            [0, 0, 1, 0],  # ind_b_1
            [0, 0, 0, 1],  # ind_b_2
        ]),
        sample_ids=("pool_a", "ind_a_1", "ind_a_2", "pool_b", "ind_b_1", "ind_b_2"),
        unit_ids=("a1", "a2", "b1", "b2"),
    )


@pytest.fixture
def make_pooling_experiment():
    """Factory fixture for experiments with non-default parameters."""
    return generate_pooling_experiment
