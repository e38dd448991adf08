"""Mapping from the names used in configuration files to the components they create

Each table maps an identifier to a factory which takes the full configuration map.
Register a new variant by adding it to the appropriate table:

.. code-block:: python

    from lachesis.registry import MODELS

    MODELS['MyModel'] = MyModel.from_config
"""
from typing import Callable, Dict, TypeVar
import logging

from lachesis.config import ConfigMap, ConfigurationError, get_string
from lachesis.estimators import Estimator, UnscentedKalmanFilter
from lachesis.models.base import PrognosticsModel
from lachesis.models.battery import BatteryModel
from lachesis.predictors import Predictor, MonteCarloPredictor

logger = logging.getLogger(__name__)

T = TypeVar('T')

MODELS: Dict[str, Callable[[ConfigMap], PrognosticsModel]] = {
    'Battery': BatteryModel.from_config,
}
"""Models which describe the system"""

OBSERVERS: Dict[str, Callable[[ConfigMap], Estimator]] = {
    'UKF': UnscentedKalmanFilter.from_config,
}
"""Estimators which track the state of the system"""

PREDICTORS: Dict[str, Callable[[ConfigMap], Predictor]] = {
    'MC': MonteCarloPredictor.from_config,
}
"""Predictors which forecast events"""


def _build(kind: str, table: Dict[str, Callable[[ConfigMap], T]], key: str, config: ConfigMap) -> T:
    name = get_string(config, key)
    if name not in table:
        raise ConfigurationError(f'Unknown {kind}: "{name}". Available choices: {", ".join(sorted(table))}')
    logger.debug(f'Building {kind} "{name}"')
    return table[name](config)


def build_model(config: ConfigMap) -> PrognosticsModel:
    """Create the model named by the ``model`` key"""
    return _build('model', MODELS, 'model', config)


def build_observer(config: ConfigMap) -> Estimator:
    """Create the estimator named by the ``observer`` key"""
    return _build('observer', OBSERVERS, 'observer', config)


def build_predictor(config: ConfigMap) -> Predictor:
    """Create the predictor named by the ``predictor`` key"""
    return _build('predictor', PREDICTORS, 'predictor', config)
