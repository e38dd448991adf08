from pytest import fixture, raises
import numpy as np

from lachesis.config import ConfigurationError, normalize_config
from lachesis.distributions import PointValue, MultivariateGaussian
from lachesis.models.battery import BatteryModel, BatteryParameters
from lachesis.predictors import MonteCarloPredictor
from lachesis.results import PredictionResults


@fixture()
def point_estimate(initial_state):
    return [PointValue(value=v) for v in initial_state]


@fixture()
def results() -> PredictionResults:
    return PredictionResults(events=['EOD'], trajectories=['SOC'], num_samples=6, horizon=30)


def test_no_event(battery, point_estimate, results):
    predictor = MonteCarloPredictor(battery, num_samples=6, horizon=30, input_parameters=[2., 1000.], seed=1)
    predictor.predict(10., point_estimate, results)

    snapshot = results.snapshot()
    assert snapshot.prediction_time == 10.
    assert snapshot.cycle == 1

    event = snapshot.events['EOD']
    assert event.time_of_event.num_samples == 6
    assert np.isinf(event.time_of_event.samples).all()
    assert event.occurrence.shape == (6, 30)
    assert not event.occurrence.any()
    assert event.probability == 0.

    soc = snapshot.trajectories['SOC']
    assert soc.samples.shape == (6, 30)
    assert np.isfinite(soc.samples).all()
    assert np.allclose(soc.times, 10. + np.arange(1, 31))
    assert np.all(np.diff(soc.samples, axis=1) < 0)  # Discharging
    assert np.allclose(soc.samples, soc.samples[0])  # All realizations are identical without noise


def test_event(battery, point_estimate, results):
    """A heavy load ends the discharge within a few steps"""
    predictor = MonteCarloPredictor(battery, num_samples=6, horizon=30, input_parameters=[100., 1000.],
                                    input_uncertainty=[5., 0.], seed=1)
    predictor.predict(0., point_estimate, results)

    event = results.get_event('EOD')
    soc = results.get_trajectory('SOC')
    times = event.time_of_event.samples
    assert np.isfinite(times).all()
    assert (times <= 30.).all()
    assert event.summarize()['probability'] == 1.

    for i, toe in enumerate(times):
        step = int(np.flatnonzero(soc.times == toe)[0])

        # Trajectories stop after the event
        assert np.isfinite(soc.samples[i, :step + 1]).all()
        assert np.isnan(soc.samples[i, step + 1:]).all()

        # Occurrence switches on at the event
        assert not event.occurrence[i, :step].any()
        assert event.occurrence[i, step:].all()


def test_already_past_threshold(point_estimate, results):
    """A realization below the end-of-discharge voltage reaches the event at the time of prediction"""
    battery = BatteryModel(parameters=BatteryParameters(v_eod=4.5))
    predictor = MonteCarloPredictor(battery, num_samples=6, horizon=30, input_parameters=[2., 1000.], seed=1)
    predictor.predict(10., point_estimate, results)

    event = results.get_event('EOD')
    assert np.allclose(event.time_of_event.samples, 10.)
    assert event.occurrence.all()
    assert event.probability == 1.
    assert np.isnan(results.get_trajectory('SOC').samples).all()


def test_gaussian_estimate(battery, initial_state, results):
    estimate = MultivariateGaussian(mean=initial_state, covariance=np.diag([1e-4] * 4 + [1.] * 4))
    predictor = MonteCarloPredictor(battery, num_samples=6, horizon=30, input_parameters=[2., 1000.],
                                    process_noise=1e-6, seed=1)
    predictor.predict(0., estimate.to_uncertain_values(), results)

    soc = results.get_trajectory('SOC').samples
    assert soc.shape == (6, 30)
    assert not np.allclose(soc, soc[0])  # Realizations differ


def test_sample_inputs(battery):
    predictor = MonteCarloPredictor(battery, num_samples=100, horizon=1, input_parameters=[2., 1.],
                                    input_uncertainty=1., seed=1)
    params = predictor.sample_input_parameters()
    assert params.shape == (100, 2)
    assert (params[:, 1] >= 0).all()
    assert np.std(params[:, 0]) > 0.5


def test_failures(battery, point_estimate, results):
    with raises(ValueError, match='pairs'):
        MonteCarloPredictor(battery, input_parameters=[1.])
    with raises(ValueError, match='input uncertainties'):
        MonteCarloPredictor(battery, input_parameters=[1., 2.], input_uncertainty=[1., 2., 3.])
    with raises(ValueError, match='Horizon'):
        MonteCarloPredictor(battery, horizon=0, input_parameters=[1., 2.])

    predictor = MonteCarloPredictor(input_parameters=[1., 2.], num_samples=6, horizon=30)
    with raises(ValueError, match='model must be set'):
        predictor.predict(0., point_estimate, results)

    predictor.set_model(battery)
    with raises(ValueError, match='Expected 8 state values'):
        predictor.predict(0., point_estimate[:2], results)

    wrong = PredictionResults(events=['EOD'], trajectories=['SOH'], num_samples=6, horizon=30)
    with raises(ValueError, match='not produced by the model'):
        predictor.predict(0., point_estimate, wrong)


def test_from_config():
    config = normalize_config({'Predictor.numSamples': 4, 'Predictor.horizon': 10})
    with raises(ConfigurationError, match='inputParameters'):
        MonteCarloPredictor.from_config(config)

    config['Predictor.inputParameters'] = ['2', '100']
    config['Predictor.processNoise'] = ['1e-6']
    predictor = MonteCarloPredictor.from_config(config)
    assert predictor.num_samples == 4
    assert predictor.horizon == 10
    assert np.allclose(predictor.input_parameters, [2., 100.])
    assert np.allclose(predictor.process_noise, [1e-6])

    config['Predictor.inputParameters'] = ['2']
    with raises(ConfigurationError, match='pairs'):
        MonteCarloPredictor.from_config(config)
