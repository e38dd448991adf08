"""Predictors which forecast the future of a system from a belief about its state"""
from .base import Predictor
from .monte_carlo import MonteCarloPredictor

__all__ = ['Predictor', 'MonteCarloPredictor']
