from pytest import fixture, raises
from pydantic import TypeAdapter
import numpy as np

from lachesis.distributions import (PointValue, MeanCovarianceValue, SampledValue, UncertainValue,
                                    DeltaDistribution, MultivariateGaussian, values_to_distribution, draw_samples)


@fixture()
def rng() -> np.random.Generator:
    return np.random.default_rng(1)


def test_tagged_union():
    adapter = TypeAdapter(UncertainValue)
    assert isinstance(adapter.validate_python({'kind': 'point', 'value': 1.}), PointValue)
    value = adapter.validate_python({'kind': 'samples', 'samples': [1., 2.]})
    assert isinstance(value, SampledValue)
    assert value.num_samples == 2
    value = adapter.validate_python({'kind': 'mean_covariance', 'mean': 1., 'covariance': [1., 0.]})
    assert isinstance(value, MeanCovarianceValue)
    assert value.covariance.shape == (2,)


def test_samples():
    value = SampledValue(samples=[1., 2., 3., np.inf])
    assert value.mean() == 2.
    assert value.percentile(50, method='inverted_cdf') == 2.
    assert np.isinf(value.percentile(100, method='inverted_cdf'))

    assert np.isnan(SampledValue(samples=[np.inf]).mean())


def test_delta():
    delta = DeltaDistribution(mean=np.array([1., 2.]))
    assert delta.num_dimensions == 2
    assert np.allclose(delta.get_covariance(), 0.)

    values = delta.to_uncertain_values()
    assert all(isinstance(v, PointValue) for v in values)
    assert [v.value for v in values] == [1., 2.]


def test_gaussian():
    gauss = MultivariateGaussian(mean=np.array([1., 2.]), covariance=np.diag([1., 4.]))
    values = gauss.to_uncertain_values()
    assert values[1].mean == 2.
    assert np.allclose(values[1].covariance, [0., 4.])

    # Round trip through the uncertain values
    assert np.allclose(values_to_distribution(values).get_covariance(), gauss.get_covariance())

    with raises(ValueError, match='Wrong dimensions'):
        MultivariateGaussian(mean=np.array([1., 2.]), covariance=np.eye(3))


def test_to_distribution():
    assert isinstance(values_to_distribution([PointValue(value=1.), PointValue(value=2.)]), DeltaDistribution)

    # Points mixed with Gaussians have no variance
    dist = values_to_distribution([PointValue(value=1.), MeanCovarianceValue(mean=2., covariance=[0., 1.])])
    assert isinstance(dist, MultivariateGaussian)
    assert np.allclose(dist.get_mean(), [1., 2.])
    assert np.allclose(dist.get_covariance(), [[0., 0.], [0., 1.]])

    with raises(ValueError, match='draw_samples'):
        values_to_distribution([SampledValue(samples=[1.])])
    with raises(ValueError, match='Covariance row 0'):
        values_to_distribution([MeanCovarianceValue(mean=1., covariance=[1., 0., 0.])])


def test_draw_points(rng):
    samples = draw_samples([PointValue(value=1.), PointValue(value=2.)], 4, rng)
    assert samples.shape == (4, 2)
    assert np.allclose(samples, [[1., 2.]] * 4)


def test_draw_sampled(rng):
    values = [SampledValue(samples=[0., 1., 2.]), SampledValue(samples=[0., 10., 20.])]
    samples = draw_samples(values, 32, rng)
    assert samples.shape == (32, 2)
    assert np.allclose(samples[:, 1], samples[:, 0] * 10)  # Realizations stay aligned

    with raises(ValueError, match='same number of samples'):
        draw_samples([SampledValue(samples=[0.]), SampledValue(samples=[0., 1.])], 4, rng)


def test_draw_gaussian(rng):
    values = MultivariateGaussian(mean=np.array([1., -1.]), covariance=np.diag([0.01, 0.])).to_uncertain_values()
    samples = draw_samples(values, 2000, rng)
    assert samples.shape == (2000, 2)
    assert np.isclose(samples[:, 0].mean(), 1., atol=0.02)
    assert np.isclose(samples[:, 0].std(), 0.1, atol=0.02)
    assert np.allclose(samples[:, 1], -1.)
