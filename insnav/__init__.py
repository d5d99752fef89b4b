"""insnav: error-state Kalman filtering for strapdown inertial navigation.

Subpackages:
- coords: quaternions, DCMs, geodetic transforms, Earth model
- estimators: error-covariance filters (conventional/Joseph, UD-factorized)
- sensors: strapdown mechanization, error-state linearization, filtered INS
  and aiding measurements
- utils: angle helpers
"""

__version__ = "0.1.0"
