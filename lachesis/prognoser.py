"""Tie together a model, an estimator and a predictor to forecast events from streaming data"""
from typing import Optional
import logging

import numpy as np

from lachesis import registry
from lachesis.bus import DataBus
from lachesis.config import (ConfigMap, ConfigurationError, check_required,
                             get_float, get_int, get_string, get_string_list)
from lachesis.results import PredictionResults

logger = logging.getLogger(__name__)


class ModelBasedPrognoser:
    """
    Produce a new prediction each time the data bus holds newer measurements.

    The first call to :meth:`step` reconstructs the state from the measurements with the model's
    ``initialize`` function and seeds the estimator. Each later call with newer data updates the
    estimator and runs a prediction, which is published to :attr:`results`. Calls where the data are
    not newer than the previous step do nothing.

    Times are measured relative to the timestamp of the first measurement, after converting
    the timestamps of the bus to seconds by multiplying by ``Prognoser.timestampScale``.

    Args:
        config: Configuration describing the model, estimator, predictor, and signals.
            See :attr:`required_keys` for the keys which must be present
        bus: Source of the latest inputs and outputs
    """

    required_keys = ('model', 'observer', 'predictor', 'Model.event', 'Predictor.numSamples',
                     'Predictor.horizon', 'Model.predictedOutputs', 'inputs', 'outputs')
    """Keys which must be in the configuration"""

    def __init__(self, config: ConfigMap, bus: DataBus):
        check_required(config, self.required_keys)
        self.bus = bus

        # Assemble the components
        try:
            self.model = registry.build_model(config)
            self.observer = registry.build_observer(config)
            self.predictor = registry.build_predictor(config)
        except ConfigurationError:
            raise
        except ValueError as exc:
            raise ConfigurationError(f'Failed to create prognoser components: {exc}') from exc
        self.observer.set_model(self.model)
        self.predictor.set_model(self.model)

        # Determine which signals map to the inputs and outputs
        self.input_names = get_string_list(config, 'inputs')
        self.output_names = get_string_list(config, 'outputs')
        if len(self.input_names) != self.model.num_inputs:
            raise ConfigurationError(f'Model takes {self.model.num_inputs} inputs. '
                                     f'Configuration lists {len(self.input_names)}')
        if len(self.output_names) != self.model.num_outputs:
            raise ConfigurationError(f'Model produces {self.model.num_outputs} outputs. '
                                     f'Configuration lists {len(self.output_names)}')

        predicted = get_string_list(config, 'Model.predictedOutputs')
        missing = [p for p in predicted if p not in self.model.predicted_output_names]
        if len(missing) > 0:
            raise ConfigurationError(f'Model does not predict: {", ".join(missing)}')

        # Allocate storage for the predictions
        self.event_name = get_string(config, 'Model.event')
        num_samples = get_int(config, 'Predictor.numSamples')
        horizon = get_int(config, 'Predictor.horizon')
        if num_samples < 1 or horizon < 1:
            raise ConfigurationError(f'Predictor.numSamples ({num_samples}) and '
                                     f'Predictor.horizon ({horizon}) must be positive')
        self.results = PredictionResults(events=[self.event_name], trajectories=predicted,
                                         num_samples=num_samples, horizon=horizon)

        self.timestamp_scale = get_float(config, 'Prognoser.timestampScale', 1e-3)
        self.time_origin: Optional[float] = None
        """Timestamp of the first measurement, in seconds"""
        self.last_time: Optional[float] = None
        """Time of the last measurement processed, relative to the origin"""
        logger.debug(f'Created prognoser for event "{self.event_name}" with '
                     f'{type(self.model).__name__}, {type(self.observer).__name__}, and {type(self.predictor).__name__}')

    @property
    def initialized(self) -> bool:
        """Whether the first measurement has been received"""
        return self.time_origin is not None

    def _read_signals(self):
        """Read the inputs, outputs, and the timestamp of the first output from the bus"""
        inputs = [self.bus.get_value(name) for name in self.input_names]
        outputs = [self.bus.get_value(name) for name in self.output_names]
        u = np.array([p.value for p in inputs])
        z = np.array([p.value for p in outputs])
        return outputs[0].timestamp * self.timestamp_scale, u, z

    def step(self) -> bool:
        """Process the latest measurements on the bus

        Returns:
            Whether a new prediction was made
        """
        timestamp, u, z = self._read_signals()

        if not self.initialized:
            # The origin is stored only once the model and estimator are seeded
            origin = timestamp
            t = timestamp - origin
            x0 = self.model.initialize(u, z)
            self.observer.initialize(t, x0, u)
            self.time_origin = origin
            self.last_time = t
            logger.debug(f'Initialized with time origin {self.time_origin} and state {x0}')
            return False

        t = timestamp - self.time_origin
        if t <= self.last_time:
            logger.debug(f'Skipping step. Data at t={t} are not newer than the last step at t={self.last_time}')
            return False

        self.observer.step(t, u, z)
        estimate = self.observer.get_state_estimate()
        self.predictor.predict(t, estimate, self.results)
        self.last_time = t
        logger.debug(f'Completed prediction cycle {self.results.cycle} at t={t}')
        return True
