from typing import Tuple

from pytest import fixture
import numpy as np
import pandas as pd

from lachesis.config import ConfigMap, normalize_config
from lachesis.models.battery import BatteryModel
from lachesis.simulator import Simulator


@fixture()
def battery() -> BatteryModel:
    return BatteryModel()


@fixture()
def initial_observation() -> Tuple[np.ndarray, np.ndarray]:
    """Power drawn from the cell, and the temperature and voltage measured"""
    return np.array([2.]), np.array([20., 3.9])


@fixture()
def initial_state(battery, initial_observation) -> np.ndarray:
    u, z = initial_observation
    return battery.initialize(u, z)


@fixture()
def config() -> ConfigMap:
    """Configuration for a battery prognoser which is quick to run"""
    return normalize_config({
        'model': 'Battery',
        'observer': 'UKF',
        'predictor': 'MC',
        'Model.event': 'EOD',
        'Model.predictedOutputs': ['SOC'],
        'Predictor.numSamples': 8,
        'Predictor.horizon': 20,
        'Predictor.inputParameters': [2., 1e5],
        'Predictor.seed': 1,
        'inputs': ['power'],
        'outputs': ['temperature', 'voltage'],
    })


@fixture()
def discharge_data(battery, initial_state, initial_observation) -> pd.DataFrame:
    """Measurements from a cell discharging at a constant power, with timestamps in ms"""
    u, _ = initial_observation
    sim = Simulator(battery, initial_state, initial_input=u, keep_history=True)
    sim.evolve(np.arange(1., 6.), [u] * 5)

    df = sim.to_dataframe()
    return pd.DataFrame({
        'timestamp': df['time'] * 1000 + 1e6,
        'power': df['P'],
        'temperature': df['Tbm'],
        'voltage': df['Vm'],
    })
