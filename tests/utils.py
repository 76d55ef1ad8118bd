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
import mpmath as mp


def reference_ll(r, alpha, b, s, beta, x, t_x, t_cal, points=(), dps=40):
    """Log-likelihood of one customer in arbitrary precision, for use as test oracle."""
    with mp.workdps(dps):
        r, alpha, b, s, beta, x, t_x, t_cal = (
            mp.mpf(value) for value in (r, alpha, b, s, beta, x, t_x, t_cal)
        )
        log_gamma_ratio = mp.loggamma(r + x) - mp.loggamma(r)
        l1 = (
            log_gamma_ratio
            + r * (mp.log(alpha) - mp.log(alpha + t_cal))
            - x * mp.log(alpha + t_cal)
            + s * (mp.log(beta) - mp.log(beta - 1 + mp.exp(b * t_cal)))
        )

        def integrand(y):
            return (
                (y + alpha) ** (-(r + x))
                * (beta + mp.exp(b * y) - 1) ** (-(s + 1))
                * mp.exp(b * y)
            )

        integral = mp.quad(integrand, [t_x, *points, t_cal])
        l2 = (
            log_gamma_ratio
            + mp.log(b)
            + r * mp.log(alpha)
            + mp.log(s)
            + s * mp.log(beta)
            + mp.log(integral)
        )
        return float(mp.log(mp.exp(l1) + mp.exp(l2)))
