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
r"""Log-likelihood of the GGompertz/NBD model.

The GGompertz/NBD model of Bemmaor and Glady [1]_ combines an NBD purchase
process with a Gamma-mixed Gompertz lifetime. The likelihood of customer
:math:`i` is the sum of the probability of being alive at the end of the
calibration period and the probability of having died after the last
transaction:

.. math::

    L_{1,i} = G_i + r \log\frac{\alpha_i}{\alpha_i + T_i} - x_i \log(\alpha_i + T_i)
              + s \log\frac{\beta_i}{\beta_i - 1 + e^{b T_i}}

    L_{2,i} = G_i + \log b + r \log \alpha_i + \log s + s \log \beta_i + \log I_i

    \ell_i = \log\left(e^{L_{1,i}} + e^{L_{2,i}}\right)

with :math:`G_i = \log\Gamma(r + x_i) - \log\Gamma(r)` and :math:`I_i` the
integral computed in :mod:`ggompertz_clv.integration`.

All entry points expect the parameters at the scale used by the optimizer and
return values that can be minimized directly.

References
----------
.. [1] Bemmaor, Albert C., and Nicolas Glady (2012).
       "Modeling Purchasing Behavior with Sudden 'Death': A Flexible Customer
       Lifetime Model". Management Science, 58(5), 1012-1021.
"""

import logging

import numpy as np
from numpy import typing as npt
from scipy.special import gammaln

from ggompertz_clv.config import QuadratureConfig
from ggompertz_clv.exceptions import InvalidArgument
from ggompertz_clv.integration import check_divergence, integrate_customers
from ggompertz_clv.transform import (
    transform_no_covariates,
    transform_static_covariates,
)
from ggompertz_clv.utils import as_vector, check_n_customers

__all__ = [
    "aggregate",
    "ll_components",
    "log_likelihood",
    "log_likelihood_terms",
    "nocov_ll_ind",
    "nocov_ll_sum",
    "staticcov_ll_ind",
    "staticcov_ll_sum",
]

logger = logging.getLogger(__name__)


def _prepare_customers(x, t_x, t_cal) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    x = as_vector(x, "x")
    t_x = as_vector(t_x, "t_x")
    t_cal = as_vector(t_cal, "t_cal")
    check_n_customers(x.size, t_x=t_x, t_cal=t_cal)

    if np.any(x < 0):
        raise InvalidArgument("x must be >= 0 for all customers")
    if np.any(t_x < 0):
        raise InvalidArgument("t_x must be >= 0 for all customers")
    if np.any(t_x > t_cal):
        raise InvalidArgument("t_x must be <= t_cal for all customers")

    return x, t_x, t_cal


def ll_components(
    r: float,
    b: float,
    s: float,
    alpha_i: np.ndarray,
    beta_i: np.ndarray,
    x: np.ndarray,
    t_cal: np.ndarray,
    integrals: np.ndarray,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Compute the two log terms of every customer's likelihood.

    Returns
    -------
    tuple of numpy.ndarray
        ``L1``, the log-probability of the data and of being alive at ``t_cal``,
        and ``L2``, the log-probability of the data and of dying in ``(t_x, t_cal]``.
    """
    # shared by both terms
    log_gamma_ratio = gammaln(r + x) - gammaln(r)
    log_alpha = np.log(alpha_i)
    log_alpha_t_cal = np.log(alpha_i + t_cal)
    log_beta = np.log(beta_i)

    l1 = (
        log_gamma_ratio
        + r * (log_alpha - log_alpha_t_cal)
        - x * log_alpha_t_cal
        + s
        * (log_beta - b * t_cal - np.log1p((beta_i - 1.0) * np.exp(-b * t_cal)))
    )

    # zero-length intervals integrate to 0
    with np.errstate(divide="ignore"):
        log_integrals = np.log(integrals)

    l2 = (
        log_gamma_ratio
        + np.log(b)
        + r * log_alpha
        + np.log(s)
        + s * log_beta
        + log_integrals
    )

    return l1, l2


def log_likelihood_terms(
    r: float,
    b: float,
    s: float,
    alpha_i: np.ndarray,
    beta_i: np.ndarray,
    x: np.ndarray,
    t_x: np.ndarray,
    t_cal: np.ndarray,
    quad_config: QuadratureConfig | None = None,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Run the divergence check and the quadrature, then compute ``L1`` and ``L2``."""
    quad_config = quad_config or QuadratureConfig()
    n = x.size
    logger.debug("Evaluating the log-likelihood of %d customers", n)
    if n == 0:
        return np.empty(0), np.empty(0)

    check_divergence(
        r,
        b,
        s,
        alpha_i,
        beta_i,
        x,
        t_x,
        threshold=quad_config.upper_divergence_threshold,
    )
    integrals = integrate_customers(
        r, b, s, alpha_i, beta_i, x, t_x, t_cal, config=quad_config
    )
    return ll_components(r, b, s, alpha_i, beta_i, x, t_cal, integrals)


def log_likelihood(
    r: float,
    b: float,
    s: float,
    alpha_i: np.ndarray,
    beta_i: np.ndarray,
    x: np.ndarray,
    t_x: np.ndarray,
    t_cal: np.ndarray,
    quad_config: QuadratureConfig | None = None,
) -> npt.NDArray[np.float64]:
    """Per-customer log-likelihood for given natural-scale parameters.

    The two terms are combined as
    ``max(L1, L2) + log1p(exp(-|L1 - L2|))``, which stays finite where
    ``log(exp(L1) + exp(L2))`` would overflow.

    Parameters
    ----------
    r, b, s : float
        Model parameters shared by all customers.
    alpha_i, beta_i : numpy.ndarray
        Per-customer scale parameters.
    x, t_x, t_cal : numpy.ndarray
        Frequency, recency and length of the calibration period of each customer.
    quad_config : QuadratureConfig, optional
        Settings of the numerical integration.

    Returns
    -------
    numpy.ndarray
        The log-likelihood of each customer.
    """
    l1, l2 = log_likelihood_terms(
        r, b, s, alpha_i, beta_i, x, t_x, t_cal, quad_config=quad_config
    )
    return np.logaddexp(l1, l2)


def aggregate(ll: np.ndarray) -> float:
    """Negated sum of the per-customer log-likelihoods, the objective to minimize."""
    return -float(np.sum(ll))


def nocov_ll_ind(
    log_params,
    x,
    t_x,
    t_cal,
    *,
    quad_config: QuadratureConfig | None = None,
) -> npt.NDArray[np.float64]:
    """Individual log-likelihoods of the model without covariates.

    Parameters
    ----------
    log_params : array-like
        Log of ``[r, alpha_0, b, s, beta_0]``, in this order.
    x : array-like
        Number of repeat transactions of each customer.
    t_x : array-like
        Time of the last transaction of each customer.
    t_cal : array-like
        Length of the calibration period of each customer.
    quad_config : QuadratureConfig, optional
        Settings of the numerical integration.

    Returns
    -------
    numpy.ndarray
        The log-likelihood of each customer.

    Examples
    --------
    .. code-block:: python

        import numpy as np

        from ggompertz_clv import nocov_ll_ind

        log_params = np.log([1.0, 1.0, 0.01, 1.0, 1.0])
        nocov_ll_ind(log_params, x=[0, 3], t_x=[0, 7.5], t_cal=[10, 10])

    """
    x, t_x, t_cal = _prepare_customers(x, t_x, t_cal)
    params, alpha_i, beta_i = transform_no_covariates(log_params, x.size)
    return log_likelihood(
        params.r,
        params.b,
        params.s,
        alpha_i,
        beta_i,
        x,
        t_x,
        t_cal,
        quad_config=quad_config,
    )


def nocov_ll_sum(
    log_params,
    x,
    t_x,
    t_cal,
    *,
    quad_config: QuadratureConfig | None = None,
) -> float:
    """Negative log-likelihood of the model without covariates.

    Equals ``-sum(nocov_ll_ind(...))`` and is the objective to hand to a minimizer.
    """
    return aggregate(nocov_ll_ind(log_params, x, t_x, t_cal, quad_config=quad_config))


def staticcov_ll_ind(
    params,
    x,
    t_x,
    t_cal,
    cov_life,
    cov_trans,
    *,
    quad_config: QuadratureConfig | None = None,
) -> npt.NDArray[np.float64]:
    """Individual log-likelihoods of the model with static covariates.

    Parameters
    ----------
    params : array-like
        Log of ``[r, alpha_0, b, s, beta_0]``, then one coefficient per column
        of ``cov_life``, then one coefficient per column of ``cov_trans``.
    x, t_x, t_cal : array-like
        Frequency, recency and length of the calibration period of each customer.
    cov_life : array-like
        Lifetime covariates, shape ``(n, k_life)``. Shifts ``beta_i``.
    cov_trans : array-like
        Transaction covariates, shape ``(n, k_trans)``. Shifts ``alpha_i``.
    quad_config : QuadratureConfig, optional
        Settings of the numerical integration.

    Returns
    -------
    numpy.ndarray
        The log-likelihood of each customer.
    """
    x, t_x, t_cal = _prepare_customers(x, t_x, t_cal)
    model_params, alpha_i, beta_i = transform_static_covariates(
        params, cov_life, cov_trans, n=x.size
    )
    return log_likelihood(
        model_params.r,
        model_params.b,
        model_params.s,
        alpha_i,
        beta_i,
        x,
        t_x,
        t_cal,
        quad_config=quad_config,
    )


def staticcov_ll_sum(
    params,
    x,
    t_x,
    t_cal,
    cov_life,
    cov_trans,
    *,
    quad_config: QuadratureConfig | None = None,
) -> float:
    """Negative log-likelihood of the model with static covariates.

    Equals ``-sum(staticcov_ll_ind(...))``.
    """
    return aggregate(
        staticcov_ll_ind(
            params, x, t_x, t_cal, cov_life, cov_trans, quad_config=quad_config
        )
    )
