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
"""Log-likelihood of the GGompertz/NBD customer lifetime model."""

from ggompertz_clv.config import QuadratureConfig
from ggompertz_clv.exceptions import DiagnosticWarning, InvalidArgument
from ggompertz_clv.loglikelihood import (
    nocov_ll_ind,
    nocov_ll_sum,
    staticcov_ll_ind,
    staticcov_ll_sum,
)
from ggompertz_clv.model import GGompertzNBDModel

__version__ = "0.1.0"

__all__ = (
    "DiagnosticWarning",
    "GGompertzNBDModel",
    "InvalidArgument",
    "QuadratureConfig",
    "nocov_ll_ind",
    "nocov_ll_sum",
    "staticcov_ll_ind",
    "staticcov_ll_sum",
)
