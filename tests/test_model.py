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
import xarray
from numpy.testing import assert_allclose
from scipy.optimize import minimize

from ggompertz_clv import (
    GGompertzNBDModel,
    InvalidArgument,
    QuadratureConfig,
    nocov_ll_ind,
    staticcov_ll_ind,
)


@pytest.fixture(scope="module")
def model(summary_data) -> GGompertzNBDModel:
    return GGompertzNBDModel(summary_data)


@pytest.fixture(scope="module")
def cov_model(summary_data) -> GGompertzNBDModel:
    return GGompertzNBDModel(
        summary_data,
        model_config={
            "purchase_covariate_cols": ["age", "channel"],
            "dropout_covariate_cols": ["age"],
        },
    )


class TestGGompertzNBDModel:
    def test_repr(self, model, cov_model):
        assert repr(model) == "GGompertz/NBD"
        assert repr(cov_model) == "GGompertz/NBD with 3 static covariates"

    def test_param_names(self, model, cov_model):
        assert model.param_names == ["log_r", "log_alpha", "log_b", "log_s", "log_beta"]
        assert cov_model.param_names == [
            "log_r",
            "log_alpha",
            "log_b",
            "log_s",
            "log_beta",
            "dropout_age",
            "purchase_age",
            "purchase_channel",
        ]

    def test_default_quad_config(self, model):
        assert model.quad_config == QuadratureConfig()

    def test_transform_start_params(self, model, cov_model):
        assert_allclose(model.transform_start_params(), np.zeros(5))
        start = cov_model.transform_start_params({"r": 2.0, "purchase_channel": 0.5})
        assert_allclose(start, [np.log(2.0), 0, 0, 0, 0, 0, 0, 0.5])

    def test_model_config_start_values(self, summary_data):
        model = GGompertzNBDModel(
            summary_data,
            model_config={"b": 0.1, "dropout_coefficient": 0.2, "dropout_covariate_cols": ["age"]},
        )

        assert_allclose(
            model.transform_start_params(), [0, 0, np.log(0.1), 0, 0, 0.2]
        )

    @pytest.mark.parametrize(
        "start_params, match",
        [
            ({"r": 0.0}, "must be > 0"),
            ({"beta": -1.0}, "must be > 0"),
            ({"gamma": 1.0}, "Unknown start parameters"),
        ],
    )
    def test_transform_start_params_invalid(self, model, start_params, match):
        with pytest.raises(InvalidArgument, match=match):
            model.transform_start_params(start_params)

    def test_backtransform_params(self, cov_model):
        start = {"r": 0.5, "alpha": 3.0, "b": 0.2, "s": 1.5, "beta": 7.0, "dropout_age": -0.4}
        result = cov_model.backtransform_params(cov_model.transform_start_params(start))

        assert isinstance(result, pd.Series)
        assert list(result.index) == [
            "r",
            "alpha",
            "b",
            "s",
            "beta",
            "dropout_age",
            "purchase_age",
            "purchase_channel",
        ]
        assert_allclose(result.to_numpy(), [0.5, 3.0, 0.2, 1.5, 7.0, -0.4, 0.0, 0.0])

    def test_jacobian_diag(self, cov_model):
        params = np.array([0.0, np.log(2.0), 0.0, 0.0, np.log(3.0), 0.7, -1.0, 2.0])
        jacobian = cov_model.jacobian_diag(params)

        assert jacobian.shape == (8, 8)
        assert_allclose(np.diag(jacobian), [1.0, 2.0, 1.0, 1.0, 3.0, 1.0, 1.0, 1.0])
        assert np.count_nonzero(jacobian - np.diag(np.diag(jacobian))) == 0

    def test_log_likelihood(self, model, summary_data, log_params):
        ll = model.log_likelihood(log_params)

        assert isinstance(ll, xarray.DataArray)
        assert ll.dims == ("customer_id",)
        assert ll.name == "log_likelihood"
        np.testing.assert_array_equal(ll["customer_id"], summary_data["customer_id"])
        assert_allclose(
            ll.values,
            nocov_ll_ind(
                log_params,
                summary_data["frequency"],
                summary_data["recency"],
                summary_data["T"],
            ),
        )

    def test_log_likelihood_with_covariates(self, cov_model, summary_data, log_params):
        params = np.concatenate([log_params, [0.3, -0.2, 0.4]])
        ll = cov_model.log_likelihood(params)

        expected = staticcov_ll_ind(
            params,
            summary_data["frequency"],
            summary_data["recency"],
            summary_data["T"],
            summary_data[["age"]],
            summary_data[["age", "channel"]],
        )
        assert_allclose(ll.values, expected)

    def test_negative_log_likelihood(self, cov_model, log_params):
        params = np.concatenate([log_params, [0.3, -0.2, 0.4]])

        assert cov_model.negative_log_likelihood(params) == pytest.approx(
            -cov_model.log_likelihood(params).sum().item(), rel=1e-9
        )

    def test_wrong_param_length(self, cov_model, log_params):
        with pytest.raises(InvalidArgument, match="Expected 8 parameters"):
            cov_model.negative_log_likelihood(log_params)

    def test_expected_probability_alive(self, summary_data, log_params):
        data = summary_data.copy()
        # last purchase at the end of the period
        data.loc[0, "recency"] = data.loc[0, "T"]
        data.loc[0, "frequency"] = 2.0
        model = GGompertzNBDModel(data)

        p_alive = model.expected_probability_alive(log_params)

        assert isinstance(p_alive, xarray.DataArray)
        assert p_alive.dims == ("customer_id",)
        assert np.all((p_alive > 0) & (p_alive <= 1))
        assert p_alive.sel(customer_id=0).item() == pytest.approx(1.0)

    def test_expected_probability_alive_decreases_with_recency(self, log_params):
        data = pd.DataFrame(
            {
                "customer_id": [0, 1],
                "frequency": [3.0, 3.0],
                "recency": [5.0, 25.0],
                "T": [30.0, 30.0],
            }
        )
        p_alive = GGompertzNBDModel(data).expected_probability_alive(log_params)

        assert p_alive.sel(customer_id=0) < p_alive.sel(customer_id=1)

    @pytest.mark.parametrize(
        "change, match",
        [
            (lambda df: df.drop(columns="T"), "Required column T missing"),
            (
                lambda df: df.assign(customer_id=0),
                "Column customer_id has duplicate entries",
            ),
            (
                lambda df: df.assign(recency=df["T"] + 1),
                "recency has entries larger than T",
            ),
            (
                lambda df: df.assign(frequency=-1.0),
                "frequency has negative entries",
            ),
        ],
    )
    def test_invalid_data(self, summary_data, change, match):
        with pytest.raises(InvalidArgument, match=match):
            GGompertzNBDModel(change(summary_data))

    def test_missing_covariate_column(self, summary_data):
        with pytest.raises(InvalidArgument, match="Required column income missing"):
            GGompertzNBDModel(
                summary_data, model_config={"purchase_covariate_cols": ["income"]}
            )

    @pytest.mark.slow
    def test_external_optimizer(self, cov_model):
        x0 = cov_model.transform_start_params()
        res = minimize(
            cov_model.negative_log_likelihood,
            x0=x0,
            method="Nelder-Mead",
            options={"maxiter": 200},
        )

        assert res.fun < cov_model.negative_log_likelihood(x0)
        assert np.all(cov_model.backtransform_params(res.x)[["r", "alpha", "b", "s", "beta"]] > 0)
