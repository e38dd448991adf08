"""Predict the time of events by simulating many realizations of the system at once"""
from typing import Optional, Sequence, Union
import logging

import numpy as np

from lachesis.config import ConfigMap, ConfigurationError, get_float_list, get_int
from lachesis.distributions import UncertainValue, draw_samples
from lachesis.models.base import PrognosticsModel
from lachesis.results import PredictionResults
from .base import Predictor

logger = logging.getLogger(__name__)


class MonteCarloPredictor(Predictor):
    """
    Sample states and load profiles, then simulate every realization until the end of the horizon.

    Realizations are simulated together as a single batch.
    A realization stops evolving once its event occurs: its time of event is recorded and the
    remaining steps of its predicted outputs are NaN. Realizations which do not reach the event
    within the horizon have a time of event of ``inf``, and those already past the threshold
    at the time of prediction have a time of event equal to that time.

    Args:
        model: Model describing the system. May be provided later using :meth:`set_model`
        num_samples: Number of realizations per prediction
        horizon: Number of steps of ``model.dt`` simulated per prediction
        input_parameters: Load profile as (magnitude, duration) pairs, with durations measured from the time of prediction
        input_uncertainty: Standard deviation of each input parameter, or one value for all of them
        process_noise: Variance of the process noise for each state, or one value for all states
        seed: Seed for the random number generator
    """

    def __init__(self,
                 model: Optional[PrognosticsModel] = None,
                 num_samples: int = 100,
                 horizon: int = 100,
                 input_parameters: Sequence[float] = (),
                 input_uncertainty: Union[float, Sequence[float], None] = None,
                 process_noise: Union[float, Sequence[float], None] = None,
                 seed: Optional[int] = None):
        super().__init__(model=model, num_samples=num_samples, horizon=horizon)
        self.input_parameters = np.array(input_parameters, dtype=float)
        if len(self.input_parameters) < 2 or len(self.input_parameters) % 2 != 0:
            raise ValueError('Input parameters must be (magnitude, duration) pairs. '
                             f'Found {len(self.input_parameters)} values')

        self.input_uncertainty = None
        if input_uncertainty is not None:
            input_uncertainty = np.atleast_1d(np.array(input_uncertainty, dtype=float))
            if len(input_uncertainty) not in (1, len(self.input_parameters)):
                raise ValueError(f'Expected 1 or {len(self.input_parameters)} input uncertainties. '
                                 f'Found {len(input_uncertainty)}')
            self.input_uncertainty = input_uncertainty

        self.process_noise = None if process_noise is None else np.atleast_1d(np.array(process_noise, dtype=float))
        self.rng = np.random.default_rng(seed)

    @classmethod
    def from_config(cls, config: ConfigMap) -> 'MonteCarloPredictor':
        params = get_float_list(config, 'Predictor.inputParameters', None)
        if params is None:
            raise ConfigurationError('Monte Carlo predictor requires Predictor.inputParameters')
        try:
            return cls(
                num_samples=get_int(config, 'Predictor.numSamples'),
                horizon=get_int(config, 'Predictor.horizon'),
                input_parameters=params,
                input_uncertainty=get_float_list(config, 'Predictor.inputUncertainty', None),
                process_noise=get_float_list(config, 'Predictor.processNoise', None),
                seed=get_int(config, 'Predictor.seed', None)
            )
        except ConfigurationError:
            raise
        except ValueError as exc:
            raise ConfigurationError(f'Invalid Monte Carlo predictor settings: {exc}') from exc

    def sample_input_parameters(self) -> np.ndarray:
        """Draw one load profile per realization

        Returns:
            Array of shape (num_samples, num_parameters). Durations are never negative.
        """
        params = np.repeat(self.input_parameters[None, :], self.num_samples, axis=0)
        if self.input_uncertainty is not None:
            params = params + self.rng.normal(size=params.shape) * self.input_uncertainty
            params[:, 1::2] = np.clip(params[:, 1::2], 0, None)
        return params

    def _sample_process_noise(self, num_states: int) -> Optional[np.ndarray]:
        if self.process_noise is None:
            return None
        std = np.sqrt(self.process_noise)
        if len(std) not in (1, num_states):
            raise ValueError(f'Expected 1 or {num_states} process noise variances. Found {len(std)}')
        return self.rng.normal(size=(self.num_samples, num_states)) * std

    def predict(self, t: float, state_estimate: Sequence[UncertainValue], results: PredictionResults):
        if self.model is None:
            raise ValueError('The model must be set before predicting')
        model = self.model
        if len(state_estimate) != model.num_states:
            raise ValueError(f'Expected {model.num_states} state values. Found {len(state_estimate)}')

        # Map the stored trajectories to the derived outputs of the model
        try:
            output_ids = [model.predicted_output_names.index(name) for name in results.trajectory_names]
        except ValueError as exc:
            raise ValueError(f'Results store records outputs not produced by the model: {exc}') from exc

        # Draw the starting points
        x = draw_samples(state_estimate, self.num_samples, self.rng)
        params = self.sample_input_parameters()

        dt = model.dt
        times = t + dt * np.arange(1, self.horizon + 1)
        time_of_event = np.full((self.num_samples,), np.inf)
        trajectories = np.full((len(output_ids), self.num_samples, self.horizon), np.nan)

        # Realizations already past the threshold reach the event at the time of prediction
        already = np.asarray(model.threshold_eqn(t, x, model.input_eqn(0., params)), dtype=bool)
        time_of_event[already] = t
        active = ~already

        for k in range(self.horizon):
            if not active.any():
                logger.debug(f'All realizations reached the event after {k} steps')
                break
            u = model.input_eqn(k * dt, params)
            noise = self._sample_process_noise(model.num_states)
            x[active] = model.state_eqn(t + k * dt, x[active], u[active],
                                       None if noise is None else noise[active], dt)

            # Record the outputs and events at the end of the step
            u_next = model.input_eqn((k + 1) * dt, params)
            if len(output_ids) > 0:
                outputs = model.predicted_output_eqn(times[k], x[active], u_next[active])
                trajectories[:, active, k] = outputs[:, output_ids].T
            crossed = np.asarray(model.threshold_eqn(times[k], x[active], u_next[active]))

            newly_done = np.flatnonzero(active)[crossed]
            time_of_event[newly_done] = times[k]
            active[newly_done] = False

        occurrence = time_of_event[:, None] <= times[None, :]
        results.update(
            prediction_time=t,
            times=times,
            time_of_event=dict((name, time_of_event) for name in results.event_names),
            occurrence=dict((name, occurrence) for name in results.event_names),
            trajectories=dict((name, trajectories[i]) for i, name in enumerate(results.trajectory_names))
        )
        logger.debug(f'Predicted from t={t} with {self.num_samples} samples.'
                     f' Event occurred in {np.isfinite(time_of_event).sum()}')
