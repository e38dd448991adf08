from pytest import raises
import numpy as np
import yaml

from lachesis.interface import run_prognoser


def test_replay(discharge_data, config):
    output, prognoser = run_prognoser(discharge_data, config)
    assert len(output) == len(discharge_data)
    assert list(output['predicted']) == [False] + [True] * (len(discharge_data) - 1)
    assert np.allclose(output['time'], np.arange(len(discharge_data)))
    assert prognoser.results.cycle == len(discharge_data) - 1

    # Summaries are only available after predictions
    assert np.isnan(output['EOD_mean'].iloc[0])
    assert np.isnan(output['Vo'].iloc[0])
    assert (output['EOD_probability'].iloc[1:] == 0.).all()  # Horizon is too short to reach the end of discharge
    assert {'EOD_median', 'EOD_p5', 'EOD_p95'}.issubset(output.columns)
    assert np.isfinite(output['qnS'].iloc[1:]).all()


def test_yaml_config(discharge_data, config, tmp_path):
    path = tmp_path / 'config.yml'
    with open(path, 'w') as fp:
        yaml.safe_dump(config, fp)
    output, _ = run_prognoser(discharge_data.iloc[:3], path)
    assert output['predicted'].sum() == 2


def test_missing_column(discharge_data, config):
    with raises(ValueError, match='voltage'):
        run_prognoser(discharge_data.drop(columns=['voltage']), config)
