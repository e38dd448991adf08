"""Interfaces for running common workflows with Lachesis, such as replaying recorded data through a prognoser"""
from pathlib import Path
from typing import Sequence, Tuple, Union
import logging

import numpy as np
import pandas as pd
from tqdm import tqdm

from lachesis.bus import MemoryBus
from lachesis.config import ConfigMap, load_config
from lachesis.distributions import PointValue, SampledValue, UncertainValue
from lachesis.prognoser import ModelBasedPrognoser

__all__ = ['run_prognoser']

logger = logging.getLogger(__name__)


def _mean(value: UncertainValue) -> float:
    if isinstance(value, PointValue):
        return value.value
    if isinstance(value, SampledValue):
        return value.mean()
    return value.mean


def run_prognoser(
        data: pd.DataFrame,
        config: Union[ConfigMap, str, Path],
        pbar: bool = False,
        timestamp_column: str = 'timestamp',
        percentiles: Sequence[float] = (5, 95),
) -> Tuple[pd.DataFrame, ModelBasedPrognoser]:
    """Replay a recorded time series through a prognoser

    Each row of the data is published to a :class:`~lachesis.bus.MemoryBus` before stepping the prognoser.

    Args:
        data: Time series with one column for each input and output named in the configuration
            and a column holding the timestamp of each row, in the units of the data bus
        config: Configuration map, or the path to a YAML file holding one
        pbar: Whether to display a progress bar
        timestamp_column: Name of the column holding the timestamps
        percentiles: Percentiles of the time of event to report
    Returns:
        - Summary of each step: the time, whether a prediction was made,
          the mean of each state variable, and the summary of the time of event.
          Summaries are NaN for steps where no prediction was made.
        - Prognoser after processing the data
    """
    if isinstance(config, (str, Path)):
        config = load_config(config)

    bus = MemoryBus()
    prognoser = ModelBasedPrognoser(config, bus)
    signals = prognoser.input_names + prognoser.output_names
    missing = [s for s in signals + [timestamp_column] if s not in data.columns]
    if len(missing) > 0:
        raise ValueError(f'Data are missing columns: {", ".join(missing)}')

    event = prognoser.event_name
    summary_names = ['mean', 'median'] + [f'p{q:g}' for q in percentiles] + ['probability']
    state_names = list(prognoser.model.state_names)

    times = np.full((len(data),), np.nan)
    predicted = np.zeros((len(data),), dtype=bool)
    states = np.full((len(data), len(state_names)), np.nan)
    summaries = np.full((len(data), len(summary_names)), np.nan)

    for i, (_, row) in tqdm(enumerate(data.iterrows()), total=len(data), disable=not pbar):
        for name in signals:
            bus.publish(name, row[name], row[timestamp_column])
        predicted[i] = prognoser.step()
        times[i] = prognoser.last_time

        if predicted[i]:
            states[i, :] = [_mean(v) for v in prognoser.observer.get_state_estimate()]
            summary = prognoser.results.get_event(event).summarize(percentiles)
            summaries[i, :] = [summary[s] for s in summary_names]
    logger.debug(f'Made {predicted.sum()} predictions from {len(data)} rows')

    output = pd.concat([
        pd.DataFrame({'time': times, 'predicted': predicted}),
        pd.DataFrame(states, columns=state_names),
        pd.DataFrame(summaries, columns=[f'{event}_{s}' for s in summary_names])
    ], axis=1)
    return output, prognoser
