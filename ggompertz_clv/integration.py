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
r"""Per-customer integral of the GGompertz/NBD likelihood.

For customer :math:`i` the likelihood of dying between the last transaction
and the end of the calibration period involves

.. math::

    \int_{t_{x,i}}^{T_i} (y + \alpha_i)^{-(r + x_i)}
    (\beta_i + e^{b y} - 1)^{-(s + 1)} e^{b y} \, dy

which has no closed form and is computed with adaptive Gauss-Kronrod quadrature.
"""

import logging
import warnings
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from numpy import typing as npt
from scipy.integrate import quad

from ggompertz_clv.config import QuadratureConfig
from ggompertz_clv.exceptions import DiagnosticWarning

__all__ = ["check_divergence", "integrate_customers", "make_integrand"]

logger = logging.getLogger(__name__)


def make_integrand(
    r: float, b: float, s: float, alpha_i: float, beta_i: float, x_i: float
) -> Callable[[float], float]:
    """Build the integrand of a single customer.

    The customer's parameters are bound by value, so integrands of different
    customers can be evaluated concurrently. The integrand is evaluated in log
    space, writing ``beta + exp(b y) - 1`` as ``exp(b y) (1 + (beta - 1) exp(-b y))``,
    so that a large ``b y`` underflows to 0 instead of producing NaN.
    """
    purchase_exponent = -(r + x_i)
    lifetime_exponent = -(s + 1.0)

    def integrand(y: float) -> float:
        by = b * y
        return np.exp(
            purchase_exponent * np.log(y + alpha_i)
            + lifetime_exponent * (by + np.log1p((beta_i - 1.0) * np.exp(-by)))
            + by
        )

    return integrand


def check_divergence(
    r: float,
    b: float,
    s: float,
    alpha_i: np.ndarray,
    beta_i: np.ndarray,
    x: np.ndarray,
    t_x: np.ndarray,
    threshold: float = 1e200,
) -> tuple[float, float]:
    """Warn if the log of some integral might diverge.

    The integrand is bounded with the extremes of the whole batch instead of
    per customer. The bounds are a rough early warning and never change the
    result of the evaluation.

    Parameters
    ----------
    r, b, s : float
        Model parameters.
    alpha_i, beta_i : array-like
        Per-customer scale parameters.
    x, t_x : array-like
        Per-customer frequency and recency.
    threshold : float
        Upper-bound value above which a warning is emitted.

    Returns
    -------
    tuple of float
        The lower and the upper bound proxies.
    """
    purchase_exponent = -(r + x.max())
    lifetime_exponent = -(s + 1.0)

    with np.errstate(over="ignore", under="ignore", invalid="ignore"):
        lower = (
            (t_x.max() + alpha_i.max()) ** purchase_exponent
            * (beta_i.max() + np.exp(b * t_x.max()) - 1.0) ** lifetime_exponent
            * np.exp(b * t_x.min())
        )
        upper = (
            (t_x.min() + alpha_i.min()) ** purchase_exponent
            * (beta_i.min() + np.exp(b * t_x.min()) - 1.0) ** lifetime_exponent
            * np.exp(b * t_x.max())
        )

    if lower == 0.0:
        warnings.warn(
            "Log of the integral might diverge to -inf; lower boundary = 0",
            DiagnosticWarning,
        )
    if upper > threshold:
        warnings.warn(
            f"Log of the integral might diverge to +inf; upper boundary = {upper}",
            DiagnosticWarning,
        )

    return float(lower), float(upper)


def _integrate_one(
    integrand: Callable[[float], float],
    lower: float,
    upper: float,
    config: QuadratureConfig,
) -> tuple[float, str | None]:
    result = quad(
        integrand,
        lower,
        upper,
        epsabs=config.epsabs,
        epsrel=config.epsrel,
        limit=config.limit,
        full_output=1,
    )
    # quad only appends a message when the tolerance was not reached
    message = result[3] if len(result) > 3 else None
    return result[0], message


def integrate_customers(
    r: float,
    b: float,
    s: float,
    alpha_i: np.ndarray,
    beta_i: np.ndarray,
    x: np.ndarray,
    t_x: np.ndarray,
    t_cal: np.ndarray,
    config: QuadratureConfig | None = None,
) -> npt.NDArray[np.float64]:
    """Integrate every customer's kernel from ``t_x`` to ``t_cal``.

    Customers are independent: each call to the quadrature gets its own
    integrand and workspace. With ``config.n_workers > 1`` they are
    integrated on a thread pool; the returned order always follows the inputs.

    Non-convergence within ``config.limit`` subintervals is reported as a
    :class:`~ggompertz_clv.exceptions.DiagnosticWarning` and the best
    available estimate is kept.

    Returns
    -------
    numpy.ndarray
        The integral of each customer.
    """
    config = config or QuadratureConfig()
    n = len(x)

    tasks = [
        (
            make_integrand(r, b, s, alpha_i[i], beta_i[i], x[i]),
            float(t_x[i]),
            float(t_cal[i]),
            config,
        )
        for i in range(n)
    ]

    if config.n_workers > 1 and n > 1:
        logger.debug("Integrating %d customers on %d threads", n, config.n_workers)
        with ThreadPoolExecutor(max_workers=config.n_workers) as executor:
            results = list(executor.map(lambda task: _integrate_one(*task), tasks))
    else:
        results = [_integrate_one(*task) for task in tasks]

    integrals = np.empty(n)
    for i, (value, message) in enumerate(results):
        integrals[i] = value
        if message is not None:
            warnings.warn(
                f"Integral of customer {i} did not reach the requested tolerance: {message}",
                DiagnosticWarning,
            )

    return integrals
