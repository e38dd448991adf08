"""Storage for the outcome of each prediction cycle

The store is allocated once, when the prognoser is assembled, with a fixed number of
samples and a fixed horizon. Predictors publish a full cycle at once with :meth:`PredictionResults.update`,
and readers retrieve consistent copies with :meth:`PredictionResults.snapshot`.
"""
from threading import Lock
from typing import Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from lachesis.distributions import SampledValue


class EventPrediction(BaseModel):
    """Predicted time of an event"""
    model_config = ConfigDict(arbitrary_types_allowed=True, use_attribute_docstrings=True)

    name: str
    """Name of the event"""
    time_of_event: SampledValue
    """Time at which the event occurs in each realization. ``inf`` if not within the horizon"""
    occurrence: np.ndarray
    """Whether the event has occurred by each step of the horizon in each realization. Shape: (samples, horizon)"""

    @property
    def probability(self) -> float:
        """Fraction of realizations where the event occurs within the horizon"""
        return float(np.mean(np.isfinite(self.time_of_event.samples)))

    def summarize(self, percentiles: Sequence[float] = (5, 95)) -> Dict[str, float]:
        """Summarize the distribution of the time of event

        The mean is computed over the realizations where the event occurs.
        Percentiles and the median account for every realization, so they are infinite
        when too few realizations reach the event within the horizon.

        Args:
            percentiles: Percentiles to report in addition to the median
        Returns:
            Dictionary with the ``mean``, ``median``, one entry per percentile (e.g., ``p5``),
            and the ``probability`` of the event occurring
        """
        output = {
            'mean': self.time_of_event.mean(),
            'median': float(self.time_of_event.percentile(50, method='inverted_cdf')),
        }
        for q in percentiles:
            output[f'p{q:g}'] = float(self.time_of_event.percentile(q, method='inverted_cdf'))
        output['probability'] = self.probability
        return output


class TrajectoryPrediction(BaseModel):
    """Predicted values of a derived output over the horizon"""
    model_config = ConfigDict(arbitrary_types_allowed=True, use_attribute_docstrings=True)

    name: str
    """Name of the predicted output"""
    times: np.ndarray
    """Time of each step in the horizon"""
    samples: np.ndarray
    """Value for each realization at each time. NaN after the event has occurred. Shape: (samples, horizon)"""

    def mean(self) -> np.ndarray:
        """Mean over the realizations which have yet to reach the event at each time"""
        counts = np.isfinite(self.samples).sum(axis=0)
        totals = np.where(np.isfinite(self.samples), self.samples, 0).sum(axis=0)
        with np.errstate(invalid='ignore', divide='ignore'):
            return np.where(counts > 0, totals / counts, np.nan)


class PredictionSnapshot(BaseModel):
    """Copy of the results of one prediction cycle"""

    prediction_time: Optional[float] = Field(None, description='Time at which the prediction was made')
    cycle: int = Field(0, description='Number of prediction cycles published so far')
    events: Dict[str, EventPrediction] = Field(default_factory=dict)
    trajectories: Dict[str, TrajectoryPrediction] = Field(default_factory=dict)


class PredictionResults:
    """Preallocated storage for the latest prediction cycle

    Args:
        events: Names of the events being predicted
        trajectories: Names of the predicted outputs being recorded
        num_samples: Number of realizations per prediction
        horizon: Number of steps per realization
    """

    def __init__(self, events: Sequence[str], trajectories: Sequence[str], num_samples: int, horizon: int):
        if num_samples < 1 or horizon < 1:
            raise ValueError(f'Number of samples and horizon must be positive. Found {num_samples} and {horizon}')
        self.event_names: Tuple[str, ...] = tuple(events)
        self.trajectory_names: Tuple[str, ...] = tuple(trajectories)
        self.num_samples = num_samples
        self.horizon = horizon

        self.prediction_time: Optional[float] = None
        """Time of the latest prediction"""
        self.cycle: int = 0
        """Number of prediction cycles published"""

        self._lock = Lock()
        self._times = np.full((horizon,), np.nan)
        self._time_of_event = dict((name, np.full((num_samples,), np.inf)) for name in self.event_names)
        self._occurrence = dict((name, np.zeros((num_samples, horizon), dtype=bool)) for name in self.event_names)
        self._trajectories = dict((name, np.full((num_samples, horizon), np.nan)) for name in self.trajectory_names)

    def _check(self, label: str, arrays: Mapping[str, np.ndarray], names: Sequence[str], shape: Tuple[int, ...]):
        if set(arrays.keys()) != set(names):
            raise ValueError(f'Expected {label} for {sorted(names)}. Found {sorted(arrays.keys())}')
        for name, array in arrays.items():
            if np.shape(array) != shape:
                raise ValueError(f'Expected {label} of {name} to have shape {shape}. Found {np.shape(array)}')

    def update(self,
               prediction_time: float,
               times: np.ndarray,
               time_of_event: Mapping[str, np.ndarray],
               occurrence: Mapping[str, np.ndarray],
               trajectories: Mapping[str, np.ndarray]):
        """Publish the outcome of a prediction cycle

        All arrays are checked before any are copied, so a failed update leaves the previous cycle intact.

        Args:
            prediction_time: Time at which the prediction was made
            times: Time of each step in the horizon
            time_of_event: Time of each event for each realization, keyed by event name
            occurrence: Whether each event has occurred by each step, keyed by event name
            trajectories: Value of each predicted output for each realization and step
        """
        if np.shape(times) != (self.horizon,):
            raise ValueError(f'Expected {self.horizon} times. Found shape {np.shape(times)}')
        self._check('time of event', time_of_event, self.event_names, (self.num_samples,))
        self._check('occurrence', occurrence, self.event_names, (self.num_samples, self.horizon))
        self._check('trajectory', trajectories, self.trajectory_names, (self.num_samples, self.horizon))

        with self._lock:
            np.copyto(self._times, times)
            for name in self.event_names:
                np.copyto(self._time_of_event[name], time_of_event[name])
                np.copyto(self._occurrence[name], occurrence[name])
            for name in self.trajectory_names:
                np.copyto(self._trajectories[name], trajectories[name])
            self.prediction_time = prediction_time
            self.cycle += 1

    def snapshot(self) -> PredictionSnapshot:
        """Copy the latest prediction cycle"""
        with self._lock:
            times = self._times.copy()
            return PredictionSnapshot(
                prediction_time=self.prediction_time,
                cycle=self.cycle,
                events=dict(
                    (name, EventPrediction(name=name,
                                           time_of_event=SampledValue(samples=self._time_of_event[name].copy()),
                                           occurrence=self._occurrence[name].copy()))
                    for name in self.event_names
                ),
                trajectories=dict(
                    (name, TrajectoryPrediction(name=name, times=times, samples=self._trajectories[name].copy()))
                    for name in self.trajectory_names
                )
            )

    def get_event(self, name: str) -> EventPrediction:
        """Copy of the latest prediction for an event"""
        if name not in self.event_names:
            raise KeyError(f'No such event: {name}')
        return self.snapshot().events[name]

    def get_trajectory(self, name: str) -> TrajectoryPrediction:
        """Copy of the latest prediction for a derived output"""
        if name not in self.trajectory_names:
            raise KeyError(f'No such trajectory: {name}')
        return self.snapshot().trajectories[name]
