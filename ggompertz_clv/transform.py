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
"""Decoding of optimizer-facing parameter vectors.

The optimizer works on an unconstrained flat vector. The first five entries are
the log-scale model parameters in the fixed order ``[r, alpha_0, b, s, beta_0]``.
For the static covariates variant, the coefficients of the lifetime covariates
and then those of the transaction covariates follow at their original scale.
"""

import logging
from typing import NamedTuple

import numpy as np
from numpy import typing as npt

from ggompertz_clv.exceptions import InvalidArgument
from ggompertz_clv.utils import as_matrix, as_vector, check_n_customers

__all__ = [
    "MODEL_PARAM_NAMES",
    "N_MODEL_PARAMS",
    "ModelParameters",
    "decode_log_params",
    "transform_no_covariates",
    "transform_static_covariates",
]

logger = logging.getLogger(__name__)

MODEL_PARAM_NAMES = ("r", "alpha", "b", "s", "beta")
N_MODEL_PARAMS = len(MODEL_PARAM_NAMES)


class ModelParameters(NamedTuple):
    """Natural-scale parameters of the GGompertz/NBD model."""

    r: float
    alpha_0: float
    b: float
    s: float
    beta_0: float


def decode_log_params(log_params) -> ModelParameters:
    """Exponentiate the five log-scale model parameters.

    Parameters
    ----------
    log_params : array-like
        Log of ``[r, alpha_0, b, s, beta_0]``, in this order.

    Returns
    -------
    ModelParameters
        The model parameters at their natural scale.

    Raises
    ------
    InvalidArgument
        If ``log_params`` does not hold exactly five entries or if any decoded
        parameter is not strictly positive (``log_params`` containing NaN or ``-inf``).
    """
    log_params = as_vector(log_params, "log_params")
    if log_params.size != N_MODEL_PARAMS:
        raise InvalidArgument(
            f"Expected {N_MODEL_PARAMS} log-scale model parameters, got {log_params.size}"
        )

    params = ModelParameters(*(float(value) for value in np.exp(log_params)))
    for name, value in zip(MODEL_PARAM_NAMES, params, strict=True):
        if not value > 0:
            raise InvalidArgument(f"Model parameter {name} must be > 0, got {value}")

    logger.debug("Decoded model parameters %s", params)
    return params


def _check_scales(alpha_i: np.ndarray, beta_i: np.ndarray) -> None:
    if not np.all(alpha_i > 0):
        raise InvalidArgument("Decoded alpha_i must be > 0 for all customers")
    if not np.all(beta_i > 0):
        raise InvalidArgument("Decoded beta_i must be > 0 for all customers")


def transform_no_covariates(
    log_params, n: int
) -> tuple[ModelParameters, npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Decode the parameters of the model without covariates.

    Every customer shares the same scale parameters.

    Parameters
    ----------
    log_params : array-like
        Log of ``[r, alpha_0, b, s, beta_0]``.
    n : int
        Number of customers.

    Returns
    -------
    tuple
        The model parameters, ``alpha_i`` and ``beta_i`` as vectors of length ``n``
        filled with ``alpha_0`` and ``beta_0``.
    """
    params = decode_log_params(log_params)
    alpha_i = np.full(n, params.alpha_0)
    beta_i = np.full(n, params.beta_0)
    return params, alpha_i, beta_i


def transform_static_covariates(
    params, cov_life, cov_trans, n: int | None = None
) -> tuple[ModelParameters, npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    r"""Decode the parameters of the model with static covariates.

    Each customer gets its own scale parameters

    .. math::

        \alpha_i = \alpha_0 \exp(-X^{trans}_i \theta^{trans}), \quad
        \beta_i = \beta_0 \exp(-X^{life}_i \theta^{life})

    Parameters
    ----------
    params : array-like
        Log of ``[r, alpha_0, b, s, beta_0]`` followed by ``theta_life``
        (one entry per column of ``cov_life``) and ``theta_trans``
        (one entry per column of ``cov_trans``).
    cov_life : array-like
        Matrix of lifetime covariates with one row per customer.
    cov_trans : array-like
        Matrix of transaction covariates with one row per customer.
    n : int, optional
        Number of customers. If given, the row counts of both matrices must match it.

    Returns
    -------
    tuple
        The model parameters, ``alpha_i`` and ``beta_i``.

    Raises
    ------
    InvalidArgument
        If the length of ``params`` is not ``5 + k_life + k_trans``, if a matrix
        row count does not match, or if a decoded scale is not strictly positive.
    """
    params = as_vector(params, "params")
    cov_life = as_matrix(cov_life, "cov_life")
    cov_trans = as_matrix(cov_trans, "cov_trans")

    if n is None:
        n = cov_life.shape[0]
    check_n_customers(n, cov_life=cov_life, cov_trans=cov_trans)

    k_life = cov_life.shape[1]
    k_trans = cov_trans.shape[1]
    expected = N_MODEL_PARAMS + k_life + k_trans
    if params.size != expected:
        raise InvalidArgument(
            f"Expected {expected} parameters ({N_MODEL_PARAMS} model, {k_life} lifetime "
            f"and {k_trans} transaction coefficients), got {params.size}"
        )

    model_params = decode_log_params(params[:N_MODEL_PARAMS])
    theta_life = params[N_MODEL_PARAMS : N_MODEL_PARAMS + k_life]
    theta_trans = params[N_MODEL_PARAMS + k_life :]

    alpha_i = model_params.alpha_0 * np.exp(-(cov_trans @ theta_trans))
    beta_i = model_params.beta_0 * np.exp(-(cov_life @ theta_life))
    _check_scales(alpha_i, beta_i)

    return model_params, alpha_i, beta_i
