"""Interface shared by all state estimators"""
from abc import abstractmethod
from typing import List, Optional

import numpy as np

from lachesis.config import ConfigMap
from lachesis.distributions import UncertainValue
from lachesis.models.base import PrognosticsModel


class Estimator:
    """
    The interface for all state estimators.

    An estimator is created without a model, has the model attached by the prognoser
    through :meth:`set_model`, is seeded with a single state through :meth:`initialize`,
    and is then advanced with one measurement at a time through :meth:`step`.

    Args:
        model: Model describing the system. May be provided later using :meth:`set_model`
    """

    def __init__(self, model: Optional[PrognosticsModel] = None):
        self.model = model
        self.last_time: Optional[float] = None
        """Time of the last state estimate"""

    @classmethod
    def from_config(cls, config: ConfigMap) -> 'Estimator':
        """Create the estimator given a configuration map"""
        return cls()

    def set_model(self, model: PrognosticsModel):
        """Define the model used to propagate the state"""
        self.model = model

    @property
    def initialized(self) -> bool:
        """Whether the estimator has been seeded with a state"""
        return self.last_time is not None

    def _check_step(self, t: float):
        """Make sure a step is allowed at time ``t``"""
        if not self.initialized:
            raise ValueError('The estimator must be initialized before stepping')
        if t <= self.last_time:
            raise ValueError(f'Time must advance between steps. Last time: {self.last_time}, new time: {t}')

    @abstractmethod
    def initialize(self, t0: float, x0: np.ndarray, u0: np.ndarray):
        """Seed the belief with a single state

        Args:
            t0: Time of the state
            x0: State vector
            u0: Inputs at the time of the state
        """
        raise NotImplementedError()

    @abstractmethod
    def step(self, t: float, u: np.ndarray, z: np.ndarray):
        """Update the belief given a new measurement

        Args:
            t: Time of the measurement. Must be later than the previous step
            u: Inputs at the time of the measurement
            z: Outputs measured
        """
        raise NotImplementedError()

    @abstractmethod
    def get_state_estimate(self) -> List[UncertainValue]:
        """Current belief of the state, one uncertain value per state dimension"""
        raise NotImplementedError()
