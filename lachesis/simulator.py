"""Utility for running physics models for large numbers of steps"""
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from lachesis.models.base import PrognosticsModel


class Simulator:
    """
    Run a :class:`~lachesis.models.base.PrognosticsModel` and track results

    The current state of the system is stored in :attr:`state`, and the history of the
    times, inputs, states, and outputs are stored as lists if ``keep_history`` is True.

    Args:
        model: Model used to simulate the system
        initial_state: Starting state of the system
        initial_input: Inputs at the start of the simulation. Used to compute the initial outputs
        t0: Starting time
        keep_history: Whether to keep history of the system.
    """

    time_history: Optional[List[float]]
    """Time of each step"""
    input_history: Optional[List[np.ndarray]]
    """History of inputs into the system"""
    state_history: Optional[List[np.ndarray]]
    """History of the states of the system"""
    output_history: Optional[List[np.ndarray]]
    """History of the outputs from the system"""

    def __init__(self,
                 model: PrognosticsModel,
                 initial_state: np.ndarray,
                 initial_input: Optional[np.ndarray] = None,
                 t0: float = 0.,
                 keep_history: bool = False):
        self.model = model
        self.time = t0
        self.state = np.array(initial_state, dtype=float)
        self.previous_input = np.zeros((model.num_inputs,)) if initial_input is None \
            else np.array(initial_input, dtype=float)

        # Get the initial measurement
        self.output = self.model.output_eqn(self.time, self.state, self.previous_input)

        # Initialize the storage arrays
        self.keep_history = keep_history
        if self.keep_history:
            self.time_history = [self.time]
            self.input_history = [self.previous_input.copy()]
            self.state_history = [self.state.copy()]
            self.output_history = [self.output.copy()]
        else:
            self.time_history = self.input_history = self.state_history = self.output_history = None

    def step(self, t: float, new_inputs: np.ndarray) -> np.ndarray:
        """
        Advance the system to a new time, applying the new inputs over the whole step

        Args:
            t: Time at the end of the step. Must be after the current time
            new_inputs: Inputs applied during the step

        Returns:
            Outputs of the system at the end of the step
        """
        if t <= self.time:
            raise ValueError(f'Time must advance. Current time: {self.time}, requested: {t}')
        new_inputs = np.array(new_inputs, dtype=float)

        self.state = self.model.state_eqn(self.time, self.state, new_inputs, None, t - self.time)
        self.time = t
        self.previous_input = new_inputs
        self.output = self.model.output_eqn(t, self.state, new_inputs)

        if self.keep_history:
            self.time_history.append(t)
            self.input_history.append(new_inputs.copy())
            self.state_history.append(self.state.copy())
            self.output_history.append(self.output.copy())
        return self.output.copy()

    def evolve(self, times: Sequence[float], inputs: Sequence[np.ndarray]) -> np.ndarray:
        """
        Evolves the simulator given a list of times and inputs.

        Args
            times: Time at the end of each step
            inputs: Inputs applied during each step

        Returns
            Outputs after each step, as a 2D array
        """
        if len(times) != len(inputs):
            raise ValueError(f'Number of times ({len(times)}) and inputs ({len(inputs)}) must match')
        return np.array([self.step(t, u) for t, u in zip(times, inputs)])

    def to_dataframe(self) -> pd.DataFrame:
        """
        Compile the history of the simulator as a Pandas dataframe

        Returns:
            Dataframe with the time followed by columns of the inputs, states, and outputs
        """

        if not self.keep_history:
            raise ValueError('History was not stored. Set keep_history=True')

        return pd.concat([
            pd.DataFrame({'time': self.time_history}),
            pd.DataFrame(np.array(self.input_history), columns=list(self.model.input_names)),
            pd.DataFrame(np.array(self.state_history), columns=list(self.model.state_names)),
            pd.DataFrame(np.array(self.output_history), columns=list(self.model.output_names)),
        ], axis=1)
