"""Error-covariance filters for error-state estimation.

Available filters:
- ErrorCovarianceFilter: conventional / Joseph-form covariance Kalman filter
- UDCovarianceFilter: Bierman-Thornton UD-factorized covariance filter
"""

from insnav.estimators.base import CovarianceFilter
from insnav.estimators.kalman_filter import ErrorCovarianceFilter
from insnav.estimators.ud_kalman_filter import UDCovarianceFilter, ud_decompose

__all__ = [
    "CovarianceFilter",
    "ErrorCovarianceFilter",
    "UDCovarianceFilter",
    "ud_decompose",
]
