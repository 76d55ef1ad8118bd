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
"""GGompertz/NBD model front-end for customer summary data."""

import logging
from collections.abc import Mapping, Sequence

import numpy as np
import pandas as pd
import xarray
from pydantic import ConfigDict, InstanceOf, validate_call

from ggompertz_clv.config import QuadratureConfig
from ggompertz_clv.exceptions import InvalidArgument
from ggompertz_clv.loglikelihood import (
    aggregate,
    log_likelihood_terms,
    nocov_ll_ind,
    staticcov_ll_ind,
)
from ggompertz_clv.transform import (
    MODEL_PARAM_NAMES,
    N_MODEL_PARAMS,
    transform_static_covariates,
)
from ggompertz_clv.utils import as_vector, to_xarray

__all__ = ["GGompertzNBDModel"]

logger = logging.getLogger(__name__)


class GGompertzNBDModel:
    """Gamma-Gompertz/NBD model (GGompertz/NBD).

    Model for continuous, non-contractual customers introduced by Bemmaor and Glady [1]_.
    Purchases follow a Poisson process with Gamma-distributed rates, as in the
    Pareto/NBD model, while the lifetime follows a Gompertz distribution whose
    scale is Gamma-distributed across customers.

    This class binds the log-likelihood to a dataset so that it can be handed
    to any external optimizer. It does not estimate the parameters itself.

    Parameters
    ----------
    data : ~pandas.DataFrame
        DataFrame containing the following columns:

        * `customer_id`: Unique customer identifier
        * `frequency`: Number of repeat purchases
        * `recency`: Time between the first and the last purchase
        * `T`: Time between the first purchase and the end of the observation period.
          Model assumptions require *T >= recency*

        Along with optional covariate columns.

    model_config : dict, optional
        Dictionary containing start values and covariate column names:

        * `r`, `alpha`, `b`, `s`, `beta`: Start values at natural scale; default to 1
        * `purchase_coefficient`: Start value of the purchase covariate coefficients; defaults to 0
        * `dropout_coefficient`: Start value of the dropout covariate coefficients; defaults to 0
        * `purchase_covariate_cols`: Column names of covariates shifting the purchase scale `alpha`
        * `dropout_covariate_cols`: Column names of covariates shifting the lifetime scale `beta`

    quad_config : QuadratureConfig, optional
        Settings of the numerical integration.

    Examples
    --------

    .. code-block:: python

        from scipy.optimize import minimize

        from ggompertz_clv import GGompertzNBDModel

        model = GGompertzNBDModel(
            data=rfm_df,
            model_config={"dropout_covariate_cols": ["age"]},
        )

        res = minimize(
            model.negative_log_likelihood,
            x0=model.transform_start_params(),
            method="L-BFGS-B",
        )
        print(model.backtransform_params(res.x))

        probability_alive = model.expected_probability_alive(res.x)

    References
    ----------
    .. [1] Bemmaor, Albert C., and Nicolas Glady (2012).
           "Modeling Purchasing Behavior with Sudden 'Death': A Flexible Customer
           Lifetime Model". Management Science, 58(5), 1012-1021.
    .. [2] Fader, Peter & G. S. Hardie, Bruce (2007).
           "Incorporating Time-Invariant Covariates into the Pareto/NBD and BG/NBD Models".
           https://www.brucehardie.com/notes/019/time_invariant_covariates.pdf

    """

    _model_type = "GGompertz/NBD"

    @validate_call(config=ConfigDict(arbitrary_types_allowed=True))
    def __init__(
        self,
        data: InstanceOf[pd.DataFrame],
        *,
        model_config: dict | None = None,
        quad_config: QuadratureConfig | None = None,
    ):
        self.model_config = self.default_model_config | (model_config or {})
        self.quad_config = quad_config or QuadratureConfig()

        self.purchase_covariate_cols = list(
            self.model_config["purchase_covariate_cols"]
        )
        self.dropout_covariate_cols = list(self.model_config["dropout_covariate_cols"])
        self.covariate_cols = self.purchase_covariate_cols + self.dropout_covariate_cols
        self._validate_cols(
            data,
            required_cols=[
                "customer_id",
                "frequency",
                "recency",
                "T",
                *self.covariate_cols,
            ],
            must_be_unique=["customer_id"],
        )
        self._validate_summary(data)
        self.data = data

    @property
    def default_model_config(self) -> dict:
        """Default model configuration."""
        return {
            "r": 1.0,
            "alpha": 1.0,
            "b": 1.0,
            "s": 1.0,
            "beta": 1.0,
            "purchase_coefficient": 0.0,
            "dropout_coefficient": 0.0,
            "purchase_covariate_cols": [],
            "dropout_covariate_cols": [],
        }

    @staticmethod
    def _validate_cols(
        data: pd.DataFrame,
        required_cols: Sequence[str],
        must_be_unique: Sequence[str] = (),
    ):
        existing_columns = set(data.columns)
        n = data.shape[0]

        for required_col in required_cols:
            if required_col not in existing_columns:
                raise InvalidArgument(f"Required column {required_col} missing")
            if required_col in must_be_unique:
                if data[required_col].nunique() != n:
                    raise InvalidArgument(f"Column {required_col} has duplicate entries")

    @staticmethod
    def _validate_summary(data: pd.DataFrame) -> None:
        if (data["frequency"] < 0).any():
            raise InvalidArgument("Column frequency has negative entries")
        if (data["recency"] < 0).any():
            raise InvalidArgument("Column recency has negative entries")
        if (data["recency"] > data["T"]).any():
            raise InvalidArgument("Column recency has entries larger than T")

    def __repr__(self) -> str:
        """Representation of the model."""
        n_cov = len(self.covariate_cols)
        if not n_cov:
            return self._model_type
        return f"{self._model_type} with {n_cov} static covariates"

    @property
    def has_covariates(self) -> bool:
        """Whether any covariate column was configured."""
        return bool(self.covariate_cols)

    @property
    def param_names(self) -> list[str]:
        """Names of the entries of the flat parameter vector, in order."""
        return [
            *(f"log_{name}" for name in MODEL_PARAM_NAMES),
            *self._coefficient_names(),
        ]

    def _coefficient_names(self) -> list[str]:
        # lifetime coefficients come before transaction coefficients
        return [
            *(f"dropout_{col}" for col in self.dropout_covariate_cols),
            *(f"purchase_{col}" for col in self.purchase_covariate_cols),
        ]

    @property
    def default_start_params(self) -> dict[str, float]:
        """Start values at natural scale, keyed by model parameter or coefficient name."""
        start = {name: float(self.model_config[name]) for name in MODEL_PARAM_NAMES}
        for col in self.dropout_covariate_cols:
            start[f"dropout_{col}"] = float(self.model_config["dropout_coefficient"])
        for col in self.purchase_covariate_cols:
            start[f"purchase_{col}"] = float(self.model_config["purchase_coefficient"])
        return start

    def transform_start_params(
        self, start_params: Mapping[str, float] | None = None
    ) -> np.ndarray:
        """Map natural-scale start values to the flat vector used by the optimizer.

        Model parameters are log-ed, covariate coefficients are kept as they are.
        Values missing from ``start_params`` are taken from :attr:`default_start_params`.

        Raises
        ------
        InvalidArgument
            If an unknown name is given or a model parameter is not strictly positive.
        """
        start = self.default_start_params
        unknown = set(start_params or {}) - set(start)
        if unknown:
            raise InvalidArgument(f"Unknown start parameters {sorted(unknown)}")
        start.update(start_params or {})

        model_values = np.array([start[name] for name in MODEL_PARAM_NAMES])
        if np.any(model_values <= 0):
            raise InvalidArgument(
                "Model start parameters must be > 0 as they are log-ed for the optimization"
            )

        coefficients = [start[name] for name in self._coefficient_names()]
        return np.concatenate([np.log(model_values), coefficients])

    def backtransform_params(self, params) -> pd.Series:
        """Map a flat parameter vector back to natural scale.

        Returns
        -------
        pandas.Series
            Model parameters at natural scale followed by the covariate coefficients.
        """
        params = self._check_params(params)
        values = np.concatenate(
            [np.exp(params[:N_MODEL_PARAMS]), params[N_MODEL_PARAMS:]]
        )
        return pd.Series(
            values, index=[*MODEL_PARAM_NAMES, *self._coefficient_names()]
        )

    def jacobian_diag(self, params) -> np.ndarray:
        """Jacobian of :meth:`backtransform_params`.

        Used to map a covariance matrix estimated at the optimizer's scale
        to the natural scale with the delta method.
        """
        params = self._check_params(params)
        diag = np.ones(params.size)
        diag[:N_MODEL_PARAMS] = np.exp(params[:N_MODEL_PARAMS])
        return np.diag(diag)

    def _check_params(self, params) -> np.ndarray:
        params = as_vector(params, "params")
        if params.size != len(self.param_names):
            raise InvalidArgument(
                f"Expected {len(self.param_names)} parameters {self.param_names}, got {params.size}"
            )
        return params

    def _customer_arrays(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return (
            self.data["frequency"].to_numpy(dtype=float),
            self.data["recency"].to_numpy(dtype=float),
            self.data["T"].to_numpy(dtype=float),
        )

    def _covariate_arrays(self) -> tuple[np.ndarray, np.ndarray]:
        return (
            self.data[self.dropout_covariate_cols].to_numpy(dtype=float),
            self.data[self.purchase_covariate_cols].to_numpy(dtype=float),
        )

    def _individual_ll(self, params) -> np.ndarray:
        x, t_x, t_cal = self._customer_arrays()
        if not self.has_covariates:
            return nocov_ll_ind(params, x, t_x, t_cal, quad_config=self.quad_config)

        cov_life, cov_trans = self._covariate_arrays()
        return staticcov_ll_ind(
            params,
            x,
            t_x,
            t_cal,
            cov_life,
            cov_trans,
            quad_config=self.quad_config,
        )

    def log_likelihood(self, params) -> xarray.DataArray:
        """Log-likelihood of each customer.

        Parameters
        ----------
        params : array-like
            Flat parameter vector ordered as :attr:`param_names`.

        Returns
        -------
        xarray.DataArray
            Log-likelihood over the ``customer_id`` dimension.
        """
        params = self._check_params(params)
        ll = self._individual_ll(params)
        return to_xarray(self.data["customer_id"], ll).rename("log_likelihood")

    def negative_log_likelihood(self, params) -> float:
        """Objective for external minimizers: the negated sum of the log-likelihoods."""
        params = self._check_params(params)
        return aggregate(self._individual_ll(params))

    def expected_probability_alive(self, params) -> xarray.DataArray:
        """Probability that each customer is still alive at the end of the calibration period.

        The share of the likelihood that is due to the customer being alive,
        ``exp(L1 - log(exp(L1) + exp(L2)))``.

        Parameters
        ----------
        params : array-like
            Flat parameter vector ordered as :attr:`param_names`.

        Returns
        -------
        xarray.DataArray
            Probability alive over the ``customer_id`` dimension.
        """
        params = self._check_params(params)
        x, t_x, t_cal = self._customer_arrays()
        cov_life, cov_trans = self._covariate_arrays()
        model_params, alpha_i, beta_i = transform_static_covariates(
            params, cov_life, cov_trans, n=x.size
        )
        l1, l2 = log_likelihood_terms(
            model_params.r,
            model_params.b,
            model_params.s,
            alpha_i,
            beta_i,
            x,
            t_x,
            t_cal,
            quad_config=self.quad_config,
        )
        p_alive = np.exp(l1 - np.logaddexp(l1, l2))
        logger.debug("Computed probability alive of %d customers", x.size)
        return to_xarray(self.data["customer_id"], p_alive).rename("p_alive")
