"""Interface shared by all predictors"""
from abc import abstractmethod
from typing import Optional, Sequence

from lachesis.config import ConfigMap, get_int
from lachesis.distributions import UncertainValue
from lachesis.models.base import PrognosticsModel
from lachesis.results import PredictionResults


class Predictor:
    """
    Forecast the future of a system given a belief about its current state.

    The number of realizations and the number of steps simulated per prediction are fixed at construction,
    which allows the results of every prediction to be written into the same preallocated
    :class:`~lachesis.results.PredictionResults`.

    Args:
        model: Model describing the system. May be provided later using :meth:`set_model`
        num_samples: Number of realizations per prediction
        horizon: Number of steps of ``model.dt`` simulated per prediction
    """

    def __init__(self, model: Optional[PrognosticsModel] = None, num_samples: int = 100, horizon: int = 100):
        if num_samples < 1:
            raise ValueError(f'Number of samples must be positive. Found: {num_samples}')
        if horizon < 1:
            raise ValueError(f'Horizon must be positive. Found: {horizon}')
        self.model = model
        self.num_samples = num_samples
        self.horizon = horizon

    @classmethod
    def from_config(cls, config: ConfigMap) -> 'Predictor':
        """Create the predictor given a configuration map"""
        return cls(num_samples=get_int(config, 'Predictor.numSamples'),
                   horizon=get_int(config, 'Predictor.horizon'))

    def set_model(self, model: PrognosticsModel):
        """Define the model used to simulate the system"""
        self.model = model

    @abstractmethod
    def predict(self, t: float, state_estimate: Sequence[UncertainValue], results: PredictionResults):
        """Forecast the system from its current state and publish the outcome

        Args:
            t: Time of the state estimate
            state_estimate: Belief of the state, one uncertain value per state dimension
            results: Storage for the predictions
        """
        raise NotImplementedError()
