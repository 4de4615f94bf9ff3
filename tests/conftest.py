# Test configuration
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add css to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def factor_data():
    """Six columns driven by two latent factors, fully observed."""
    rng = np.random.default_rng(42)
    n = 200
    factors = rng.normal(size=(n, 2))
    loadings = np.array([
        [1.0, 0.0],
        [0.8, 0.2],
        [0.9, 0.1],
        [0.0, 1.0],
        [0.1, 0.9],
        [0.2, 0.7],
    ])
    X = factors @ loadings.T + rng.normal(scale=0.3, size=(n, 6))
    return X


@pytest.fixture
def missing_data(factor_data):
    """``factor_data`` with 20% of cells missing."""
    rng = np.random.default_rng(7)
    X = factor_data.copy()
    X[rng.random(X.shape) < 0.2] = np.nan
    return X


@pytest.fixture
def dominant_data():
    """50x5 matrix: one high-variance column and four small independent ones."""
    rng = np.random.default_rng(0)
    X = rng.normal(scale=0.1, size=(50, 5))
    X[:, 0] = rng.normal(scale=100.0, size=50)
    return X


@pytest.fixture
def item_frame(missing_data):
    """DataFrame version of ``missing_data`` with named columns."""
    return pd.DataFrame(missing_data, columns=[f"item_{i + 1}" for i in range(6)])
