from typing import List

from pytest import fixture, raises
import numpy as np

from lachesis import registry
from lachesis.bus import MemoryBus
from lachesis.config import ConfigurationError
from lachesis.distributions import PointValue
from lachesis.estimators import Estimator
from lachesis.predictors import Predictor
from lachesis.prognoser import ModelBasedPrognoser


class RecordingEstimator(Estimator):
    """Estimator which records calls and reports the initial state"""

    def __init__(self):
        super().__init__()
        self.calls: List[tuple] = []
        self.state = None

    def initialize(self, t0, x0, u0):
        self.calls.append(('initialize', t0))
        self.state = np.array(x0)
        self.last_time = t0

    def step(self, t, u, z):
        self._check_step(t)
        self.calls.append(('step', t))
        self.last_time = t

    def get_state_estimate(self):
        return [PointValue(value=v) for v in self.state]


class RecordingPredictor(Predictor):
    """Predictor which records the times it was called"""

    def __init__(self):
        super().__init__(num_samples=8, horizon=20)
        self.calls: List[float] = []

    def predict(self, t, state_estimate, results):
        self.calls.append(t)


@fixture()
def bus() -> MemoryBus:
    return MemoryBus()


@fixture()
def recording_config(config, monkeypatch):
    monkeypatch.setitem(registry.OBSERVERS, 'Recorder', lambda c: RecordingEstimator())
    monkeypatch.setitem(registry.PREDICTORS, 'Recorder', lambda c: RecordingPredictor())
    config['observer'] = ['Recorder']
    config['predictor'] = ['Recorder']
    return config


def _publish(bus: MemoryBus, timestamp: float, power: float = 2., voltage: float = 3.9):
    bus.publish('power', power, timestamp)
    bus.publish('temperature', 20., timestamp)
    bus.publish('voltage', voltage, timestamp)


def test_staleness(recording_config, bus):
    prognoser = ModelBasedPrognoser(recording_config, bus)
    assert not prognoser.initialized
    assert prognoser.observer.model is prognoser.model
    assert prognoser.predictor.model is prognoser.model

    # First tick only initializes
    _publish(bus, 5000.)
    assert not prognoser.step()
    assert prognoser.initialized
    assert prognoser.time_origin == 5.
    assert prognoser.observer.calls == [('initialize', 0.)]
    assert prognoser.predictor.calls == []

    # Repeating the same data does nothing
    assert not prognoser.step()
    assert prognoser.observer.calls == [('initialize', 0.)]

    # New data leads to a step and a prediction
    _publish(bus, 6000.)
    assert prognoser.step()
    assert prognoser.observer.calls[-1] == ('step', 1.)
    assert prognoser.predictor.calls == [1.]
    assert prognoser.last_time == 1.

    # Older data are skipped
    _publish(bus, 5500.)
    assert not prognoser.step()
    assert prognoser.predictor.calls == [1.]


def test_failed_initialization(recording_config, bus):
    """A first tick which fails to seed the estimator leaves the prognoser uninitialized"""
    prognoser = ModelBasedPrognoser(recording_config, bus)

    def _fail(t0, x0, u0):
        raise ValueError('Bad initial state')

    prognoser.observer.initialize = _fail
    _publish(bus, 1000.)
    with raises(ValueError, match='Bad initial state'):
        prognoser.step()
    assert not prognoser.initialized
    assert prognoser.last_time is None

    # A later tick initializes from its own timestamp
    del prognoser.observer.initialize
    _publish(bus, 3000.)
    assert not prognoser.step()
    assert prognoser.initialized
    assert prognoser.time_origin == 3.
    assert prognoser.observer.calls == [('initialize', 0.)]

    _publish(bus, 4000.)
    assert prognoser.step()
    assert prognoser.predictor.calls == [1.]


def test_time_origin_per_instance(recording_config, bus):
    first = ModelBasedPrognoser(recording_config, bus)
    _publish(bus, 1000.)
    first.step()

    second_bus = MemoryBus()
    second = ModelBasedPrognoser(recording_config, second_bus)
    _publish(second_bus, 9000.)
    second.step()
    assert first.time_origin == 1.
    assert second.time_origin == 9.


def test_timestamp_scale(recording_config, bus):
    recording_config['Prognoser.timestampScale'] = ['1']
    prognoser = ModelBasedPrognoser(recording_config, bus)
    _publish(bus, 10.)
    prognoser.step()
    _publish(bus, 12.)
    prognoser.step()
    assert prognoser.last_time == 2.


def test_full_pipeline(config, bus):
    prognoser = ModelBasedPrognoser(config, bus)
    _publish(bus, 0.)
    prognoser.step()

    # Voltage after one second of the load, from the model itself
    x = prognoser.model.initialize(np.array([2.]), np.array([20., 3.9]))
    x = prognoser.model.state_eqn(0., x, np.array([2.]), None, 1.)
    voltage = prognoser.model.output_eqn(1., x, np.array([2.]))[1]
    _publish(bus, 1000., voltage=voltage)
    assert prognoser.step()

    snapshot = prognoser.results.snapshot()
    assert snapshot.prediction_time == 1.
    assert snapshot.events['EOD'].time_of_event.num_samples == 8
    assert snapshot.events['EOD'].occurrence.shape == (8, 20)
    assert snapshot.trajectories['SOC'].samples.shape == (8, 20)


def test_missing_keys(config, bus):
    del config['model']
    del config['Predictor.horizon']
    with raises(ConfigurationError, match='model, Predictor.horizon'):
        ModelBasedPrognoser(config, bus)


def test_bad_components(config, bus):
    config['model'] = ['Pump']
    with raises(ConfigurationError, match='Unknown model: "Pump"'):
        ModelBasedPrognoser(config, bus)


def test_bad_signals(config, bus):
    config['outputs'] = ['voltage']
    with raises(ConfigurationError, match='Model produces 2 outputs'):
        ModelBasedPrognoser(config, bus)


def test_bad_predicted_outputs(config, bus):
    config['Model.predictedOutputs'] = ['SOC', 'SOH']
    with raises(ConfigurationError, match='SOH'):
        ModelBasedPrognoser(config, bus)


def test_bad_sizes(config, bus):
    config['Predictor.numSamples'] = ['0']
    with raises(ConfigurationError):
        ModelBasedPrognoser(config, bus)


def test_missing_signal(config, bus):
    prognoser = ModelBasedPrognoser(config, bus)
    bus.publish('power', 2., 0.)
    with raises(KeyError, match='temperature'):
        prognoser.step()
