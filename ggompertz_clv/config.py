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
"""Settings for the per-customer numerical integration."""

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["QuadratureConfig"]


class QuadratureConfig(BaseModel):
    """Tolerances and resources of the adaptive quadrature.

    The defaults match the settings under which the model was published:
    absolute and relative tolerances of ``1e-8`` and at most 1000 subintervals.

    Parameters
    ----------
    epsabs : float
        Absolute error tolerance. Default is ``1e-8``.
    epsrel : float
        Relative error tolerance. Default is ``1e-8``.
    limit : int
        Maximum number of subintervals of the adaptive subdivision. Default is 1000.
    n_workers : int
        Number of threads integrating customers concurrently. Default is 1,
        which integrates in the calling thread.
    upper_divergence_threshold : float
        Value above which the upper-bound proxy of the integrand triggers a
        divergence warning. Default is ``1e200``.

    Examples
    --------
    Integrate with four threads and a looser relative tolerance.

    .. code-block:: python

        from ggompertz_clv import QuadratureConfig, nocov_ll_sum

        config = QuadratureConfig(epsrel=1e-6, n_workers=4)
        nll = nocov_ll_sum(log_params, x, t_x, t_cal, quad_config=config)

    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    epsabs: float = Field(1e-8, gt=0, description="Absolute error tolerance")
    epsrel: float = Field(1e-8, gt=0, description="Relative error tolerance")
    limit: int = Field(1000, ge=1, description="Maximum number of subintervals")
    n_workers: int = Field(
        1, ge=1, description="Threads used to integrate customers concurrently"
    )
    upper_divergence_threshold: float = Field(
        1e200,
        gt=0,
        description="Threshold of the upper-bound divergence heuristic",
    )
