#   Copyright 2022 - 2025 The PyMC Labs Developers
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.
import numpy as np
import pandas as pd
import pytest

LOG_PARAMS = np.log([0.8, 5.0, 0.05, 1.5, 10.0])


@pytest.fixture(scope="module")
def rng() -> np.random.Generator:
    return np.random.default_rng(seed=42)


@pytest.fixture(scope="module")
def log_params() -> np.ndarray:
    return LOG_PARAMS.copy()


@pytest.fixture(scope="module")
def summary_data() -> pd.DataFrame:
    """Synthetic customer summary with two static covariates."""
    rng = np.random.default_rng(seed=34)
    n = 20

    T = rng.uniform(20, 40, size=n)
    frequency = rng.poisson(3, size=n).astype(float)
    recency = np.where(frequency > 0, T * rng.uniform(0.1, 1.0, size=n), 0.0)

    return pd.DataFrame(
        {
            "customer_id": np.arange(n),
            "frequency": frequency,
            "recency": recency,
            "T": T,
            "age": rng.normal(0, 1, size=n),
            "channel": rng.integers(0, 2, size=n).astype(float),
        }
    )
