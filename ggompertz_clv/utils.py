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
"""Utilities for coercing and validating customer-level inputs."""

from collections.abc import Sequence

import numpy as np
import xarray
from numpy import typing as npt

from ggompertz_clv.exceptions import InvalidArgument

__all__ = [
    "as_matrix",
    "as_vector",
    "check_n_customers",
    "to_xarray",
]


def to_xarray(customer_id, *arrays, dim: str = "customer_id"):
    """Convert vector arrays to xarray with a common dim (default "customer_id")."""
    dims = (dim,)
    coords = {dim: np.asarray(customer_id)}

    res = tuple(
        xarray.DataArray(data=array, coords=coords, dims=dims) for array in arrays
    )

    return res[0] if len(arrays) == 1 else res


def as_vector(values, name: str) -> npt.NDArray[np.float64]:
    """Cast ``values`` to a one-dimensional float array.

    Raises
    ------
    InvalidArgument
        If ``values`` is not one-dimensional.
    """
    array = np.asarray(values, dtype=np.float64)
    if array.ndim != 1:
        raise InvalidArgument(
            f"{name} must be one-dimensional, got an array with shape {array.shape}"
        )
    return array


def as_matrix(values, name: str) -> npt.NDArray[np.float64]:
    """Cast ``values`` to a two-dimensional float array with one row per customer.

    Raises
    ------
    InvalidArgument
        If ``values`` is not two-dimensional.
    """
    array = np.asarray(values, dtype=np.float64)
    if array.ndim != 2:
        raise InvalidArgument(
            f"{name} must be a two-dimensional matrix, got an array with shape {array.shape}"
        )
    return array


def check_n_customers(n: int, **arrays: Sequence | np.ndarray) -> None:
    """Check that every array has ``n`` entries along its first axis.

    Parameters
    ----------
    n : int
        Number of customers, taken from the frequency vector.
    arrays : array-like
        Named arrays to check, e.g. ``t_x=t_x, cov_life=cov_life``.

    Raises
    ------
    InvalidArgument
        If any array has a different length than ``n``.
    """
    for name, array in arrays.items():
        length = np.shape(array)[0]
        if length != n:
            raise InvalidArgument(
                f"{name} has {length} rows but x has {n} customers"
            )
