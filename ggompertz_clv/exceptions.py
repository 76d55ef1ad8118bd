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
"""Errors and warnings raised while evaluating the GGompertz/NBD log-likelihood."""

__all__ = ["DiagnosticWarning", "InvalidArgument"]


class InvalidArgument(ValueError):
    """Inputs with inconsistent shapes or parameters outside of their support."""


class DiagnosticWarning(UserWarning):
    """Numerical trouble that does not stop the evaluation.

    Emitted when the quadrature does not reach the requested tolerance or
    when the batch-level heuristic suspects that the log of an integral diverges.
    """
