"""Estimators which track the hidden state of a system as measurements arrive"""
from .base import Estimator
from .unscented import UnscentedKalmanFilter

__all__ = ['Estimator', 'UnscentedKalmanFilter']
