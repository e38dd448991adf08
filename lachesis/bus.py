"""Source of the latest value of each signal measured from an asset"""
from threading import Lock
from typing import Dict, Iterator, NamedTuple
from typing_extensions import Protocol
import logging

logger = logging.getLogger(__name__)


class DataPoint(NamedTuple):
    """A single value of a signal"""

    value: float
    """Value of the signal"""
    timestamp: float
    """Time at which the value was recorded, in the units of the data source"""


class DataBus(Protocol):
    """Anything which can supply the latest value of a named signal"""

    def get_value(self, name: str) -> DataPoint:
        """Get the latest value of a signal

        Args:
            name: Name of the signal
        Returns:
            Latest value and the time it was recorded
        Raises:
            KeyError: if no value has been published for the signal
        """
        ...


class MemoryBus:
    """Data bus which holds the latest value of each signal in memory"""

    def __init__(self):
        self._values: Dict[str, DataPoint] = {}
        self._lock = Lock()

    def publish(self, name: str, value: float, timestamp: float):
        """Replace the latest value of a signal"""
        with self._lock:
            self._values[name] = DataPoint(float(value), float(timestamp))

    def get_value(self, name: str) -> DataPoint:
        with self._lock:
            if name not in self._values:
                logger.debug(f'Requested signal {name} before any value was published')
                raise KeyError(f'No value published for signal: {name}')
            return self._values[name]

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values.keys()))
