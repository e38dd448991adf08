"""Base class which defines the contract between a physical model of an asset,
the estimators which track its hidden state, and the predictors which forecast its future.

All functions operate on numpy arrays whose last axis is the vector being described
(state, input, output). Arrays may carry any number of leading batch dimensions,
which lets predictors simulate many realizations of a system with a single call.
"""
from abc import abstractmethod
from typing import Optional, Tuple, Union
import logging

import numpy as np

from lachesis.config import ConfigMap

logger = logging.getLogger(__name__)


class PrognosticsModel:
    """
    Base model for prognostics. A model must be able to:
        1. advance a hidden state by one timestep given the inputs
        2. compute the sensor outputs from a hidden state
        3. synthesize future inputs from a profile described by input parameters
        4. compute derived outputs which are not measured but matter for decisions
        5. reconstruct a hidden state from a single observation of the inputs and outputs

    Models hold no state between calls. The parameters of a model are fixed after construction,
    so the same model can be shared between an estimator and a predictor and called on many
    independent states at once.

    Whether the system has crossed its failure boundary (:meth:`threshold_eqn`) is defined
    with respect to what is observable: the output named by :attr:`threshold_output` is compared against
    :attr:`threshold_value`.
    """

    state_names: Tuple[str, ...] = ()
    """Names of each element of the state vector"""
    input_names: Tuple[str, ...] = ()
    """Names of each element of the input vector"""
    output_names: Tuple[str, ...] = ()
    """Names of each element of the output vector"""
    predicted_output_names: Tuple[str, ...] = ()
    """Names of each derived output"""
    num_input_parameters: int = 2
    """Minimum number of parameters used to describe an input profile"""
    dt: float = 1.
    """Nominal timestep. Units: s"""
    threshold_output: int = 0
    """Index of the output compared against the threshold"""

    @property
    def num_states(self) -> int:
        return len(self.state_names)

    @property
    def num_inputs(self) -> int:
        return len(self.input_names)

    @property
    def num_outputs(self) -> int:
        return len(self.output_names)

    @property
    def num_predicted_outputs(self) -> int:
        return len(self.predicted_output_names)

    @property
    @abstractmethod
    def threshold_value(self) -> float:
        """Value of the designated output at or below which the event has occurred"""
        raise NotImplementedError()

    @classmethod
    def from_config(cls, config: ConfigMap) -> 'PrognosticsModel':
        """Create the model given a configuration map

        Args:
            config: Configuration, which may override default parameters
        Returns:
            A model ready for use
        """
        return cls()

    @abstractmethod
    def state_eqn(self, t: float, x: np.ndarray, u: np.ndarray, n: Optional[np.ndarray], dt: float) -> np.ndarray:
        """Advance the state by a single explicit step

        Args:
            t: Time at the start of the step
            x: State at the start of the step. Updated in place
            u: Inputs applied during the step
            n: Process noise, added after scaling by ``dt``. ``None`` for no noise
            dt: Length of the step
        Returns:
            The updated state, ``x``
        """
        raise NotImplementedError()

    @abstractmethod
    def output_eqn(self, t: float, x: np.ndarray, u: np.ndarray, n: Optional[np.ndarray] = None) -> np.ndarray:
        """Compute the sensor outputs for a state

        Args:
            t: Time
            x: State
            u: Inputs
            n: Measurement noise. ``None`` for no noise
        Returns:
            Outputs, with the same batch dimensions as ``x``
        """
        raise NotImplementedError()

    @abstractmethod
    def predicted_output_eqn(self, t: float, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        """Compute the derived outputs for a state"""
        raise NotImplementedError()

    @abstractmethod
    def initialize(self, u: np.ndarray, z: np.ndarray) -> np.ndarray:
        """Reconstruct a state which is consistent with an observation

        Args:
            u: Inputs at the time of the observation
            z: Outputs observed
        Returns:
            A state vector
        """
        raise NotImplementedError()

    def threshold_eqn(self, t: float, x: np.ndarray, u: np.ndarray) -> Union[bool, np.ndarray]:
        """Determine whether the system has crossed its failure boundary

        Args:
            t: Time
            x: State
            u: Inputs
        Returns:
            Whether the event has occurred. An array of booleans if ``x`` is batched
        """
        z = self.output_eqn(t, x, u, None)
        crossed = z[..., self.threshold_output] <= self.threshold_value
        if np.ndim(crossed) == 0:
            return bool(crossed)
        return crossed

    def input_eqn(self, t: float, input_parameters: Union[np.ndarray, list]) -> np.ndarray:
        """Synthesize the inputs from a piecewise-constant load profile

        The profile is a sequence of (magnitude, duration) pairs. The magnitude of the first
        segment which ends at or after ``t`` is used, and the last magnitude is held after
        the end of the profile.

        Args:
            t: Time since the start of the profile
            input_parameters: Pairs of magnitude and duration.
                May be 2D to describe a different profile for each member of a batch.
        Returns:
            Inputs, with a leading batch dimension if ``input_parameters`` is 2D
        """
        params = np.asarray(input_parameters, dtype=float)
        length = params.shape[-1] if params.ndim > 0 else 0
        if length < 2 or length % 2 != 0:
            raise ValueError(f'Input parameters must be (magnitude, duration) pairs. Found {length} values')

        magnitudes = params[..., 0::2]
        end_times = np.cumsum(params[..., 1::2], axis=-1)

        # The first segment which is still running at t, or the last one
        running = end_times >= t
        segment = np.where(running.any(axis=-1), np.argmax(running, axis=-1), magnitudes.shape[-1] - 1)
        magnitude = np.take_along_axis(magnitudes, np.expand_dims(segment, -1), axis=-1)

        # The magnitude applies to every input
        return np.repeat(magnitude, self.num_inputs, axis=-1)

    def _noise(self, n: Optional[np.ndarray], size: int) -> Union[np.ndarray, float]:
        """Turn an optional noise vector into something which broadcasts against the state"""
        if n is None:
            return 0.
        n = np.asarray(n, dtype=float)
        if n.shape[-1] != size:
            raise ValueError(f'Expected noise with {size} elements, found {n.shape[-1]}')
        return n
