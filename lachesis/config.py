"""Configuration maps which describe how to assemble a prognoser.

Configuration follows a flat key/value layout in which every value is an ordered list of strings,
so that a single key can hold a scalar (a list of length one) or a list of signal names or numbers.
Keys of components are namespaced by the component they configure (e.g., ``Battery.VEOD``
or ``Predictor.numSamples``).

Configuration can be loaded from YAML files:

.. code-block:: yaml

    model: Battery
    observer: UKF
    predictor: MC
    Model.event: EOD
    Model.predictedOutputs: [SOC]
    Predictor.numSamples: 100
    Predictor.horizon: 5000
    inputs: [power]
    outputs: [temperature, voltage]
"""
from pathlib import Path
from typing import Any, Collection, Dict, List, Mapping, Optional, Union

import yaml

ConfigMap = Dict[str, List[str]]
"""Mapping of configuration key to an ordered list of values"""

_missing = object()


class ConfigurationError(ValueError):
    """The configuration is missing a key or holds a value which cannot be parsed"""


def _to_strings(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def normalize_config(mapping: Mapping[str, Any]) -> ConfigMap:
    """Convert a mapping with scalar or list values into a :data:`ConfigMap`

    Args:
        mapping: Keys and values, where values are either scalars or sequences
    Returns:
        Configuration where each value is a list of strings
    """
    return dict((str(k), _to_strings(v)) for k, v in mapping.items())


def load_config(path: Union[str, Path]) -> ConfigMap:
    """Read a configuration map from a YAML file

    Args:
        path: Path to the YAML file. Must hold a single mapping at the top level
    Returns:
        Normalized configuration
    """
    with open(path) as fp:
        content = yaml.safe_load(fp)
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f'Configuration in {path} must be a mapping, found {type(content).__name__}')
    return normalize_config(content)


def check_required(config: Mapping[str, List[str]], keys: Collection[str]):
    """Make sure all required keys are present

    Args:
        config: Configuration to check
        keys: Keys which must be present
    Raises:
        ConfigurationError: listing every missing key
    """
    missing = [k for k in keys if k not in config]
    if len(missing) > 0:
        raise ConfigurationError(f'Missing required configuration keys: {", ".join(missing)}')


def get_string_list(config: Mapping[str, List[str]], key: str, default: Any = _missing) -> List[str]:
    """Get all values associated with a key"""
    if key not in config:
        if default is _missing:
            raise ConfigurationError(f'Missing required configuration key: {key}')
        return default
    return list(config[key])


def get_string(config: Mapping[str, List[str]], key: str, default: Any = _missing) -> Optional[str]:
    """Get the first value associated with a key"""
    values = get_string_list(config, key, default=None if default is not _missing else _missing)
    if values is None:
        return default
    if len(values) == 0:
        raise ConfigurationError(f'No value provided for {key}')
    return values[0]


def get_float_list(config: Mapping[str, List[str]], key: str, default: Any = _missing) -> Optional[List[float]]:
    """Get all values of a key as floating point numbers"""
    values = get_string_list(config, key, default=None if default is not _missing else _missing)
    if values is None:
        return default
    try:
        return [float(v) for v in values]
    except ValueError as exc:
        raise ConfigurationError(f'Could not parse {key}={values} as numbers') from exc


def get_float(config: Mapping[str, List[str]], key: str, default: Any = _missing) -> Optional[float]:
    """Get the first value of a key as a floating point number"""
    value = get_string(config, key, default=None if default is not _missing else _missing)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigurationError(f'Could not parse {key}={value} as a number') from exc


def get_int(config: Mapping[str, List[str]], key: str, default: Any = _missing) -> Optional[int]:
    """Get the first value of a key as a non-negative integer"""
    value = get_string(config, key, default=None if default is not _missing else _missing)
    if value is None:
        return default
    try:
        output = int(value)
    except ValueError as exc:
        raise ConfigurationError(f'Could not parse {key}={value} as an integer') from exc
    if output < 0:
        raise ConfigurationError(f'{key} must be non-negative. Found: {output}')
    return output
