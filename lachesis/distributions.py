"""Representations of uncertain quantities.

Uncertain quantities appear at two levels:

- *Uncertain scalars* (:data:`UncertainValue`) describe a single element of a vector, such as one
  dimension of a state estimate or the time of an event. Each is one member of a tagged union
  distinguished by the ``kind`` field.
- *Multivariate distributions* (:class:`MultivariateRandomDistribution`) describe a whole vector
  and are what estimators work with internally.

Functions in this module convert between the two.
"""
from abc import abstractmethod
from typing import List, Literal, Optional, Sequence, Union
from typing_extensions import Annotated, Self

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator


# Uncertain scalars
class PointValue(BaseModel):
    """A value known without uncertainty"""

    kind: Literal['point'] = 'point'
    value: float = Field(description='Value')


class MeanCovarianceValue(BaseModel, arbitrary_types_allowed=True):
    """One dimension of a multivariate Gaussian: its mean and its row of the covariance matrix"""

    kind: Literal['mean_covariance'] = 'mean_covariance'
    mean: float = Field(description='Mean of this dimension')
    covariance: np.ndarray = Field(description='Covariance between this dimension and every dimension of the vector')

    @field_validator('covariance', mode='before')
    @classmethod
    def _to_1d(cls, value) -> np.ndarray:
        return np.atleast_1d(np.asarray(value, dtype=float)).flatten()


class SampledValue(BaseModel, arbitrary_types_allowed=True):
    """A collection of discrete realizations of a value"""

    kind: Literal['samples'] = 'samples'
    samples: np.ndarray = Field(description='One value per realization')

    @field_validator('samples', mode='before')
    @classmethod
    def _to_1d(cls, value) -> np.ndarray:
        return np.atleast_1d(np.asarray(value, dtype=float)).flatten()

    @property
    def num_samples(self) -> int:
        return len(self.samples)

    def mean(self) -> float:
        """Mean of the finite samples"""
        finite = self.samples[np.isfinite(self.samples)]
        return float(np.mean(finite)) if len(finite) > 0 else np.nan

    def percentile(self, q: Union[float, Sequence[float]], method: str = 'linear') -> np.ndarray:
        """Percentiles of the samples, treating NaN samples as missing

        Args:
            q: Percentile(s) to compute, between 0 and 100
            method: Estimation method, as in :func:`numpy.percentile`.
                Use a method which does not interpolate (e.g., ``inverted_cdf``) if samples may be infinite.
        """
        return np.nanpercentile(self.samples, q, method=method)


UncertainValue = Annotated[Union[PointValue, MeanCovarianceValue, SampledValue], Field(discriminator='kind')]
"""Any of the representations of an uncertain scalar"""


# Multivariate distributions
class MultivariateRandomDistribution(BaseModel, arbitrary_types_allowed=True):
    """
    Base class to help represent a multivariate random variable.
    """

    @property
    def num_dimensions(self) -> int:
        """ Number of dimensions of random variable """
        return len(self.get_mean())

    @abstractmethod
    def get_mean(self) -> np.ndarray:
        """
        Provides mean (first moment) of distribution
        """
        raise NotImplementedError('Please implement in child class!')

    @abstractmethod
    def get_covariance(self) -> np.ndarray:
        """
        Provides the covariance of the distribution
        """
        raise NotImplementedError('Please implement in child class!')

    @abstractmethod
    def to_uncertain_values(self) -> List[UncertainValue]:
        """Describe each dimension as an uncertain scalar"""
        raise NotImplementedError('Please implement in child class!')


def _mean_1d(mu: np.ndarray) -> np.ndarray:
    """ Making sure the mean is a vector """
    mean_shape = mu.shape
    if not mean_shape:
        raise ValueError('Mean must be Sized and have a non-empty shape!')
    if len(mean_shape) > 2 or (len(mean_shape) == 2 and 1 not in mean_shape):
        raise ValueError('Mean must be a 1D vector, but array provided has shape ' + str(mean_shape) + '!')
    elif len(mean_shape) == 2:
        msg = 'Provided mean has shape (%d, %d), please flatten to (%d,)' % \
              (mean_shape + (max(mean_shape),))
        raise ValueError(msg)
    return mu.flatten()


class DeltaDistribution(MultivariateRandomDistribution, validate_assignment=True):
    """
    A distribution with only one set of allowed values

    Args:
        mean: a 1D array containing allowed values
    """

    mean: np.ndarray = Field(default=None, description='Mean of the distribution.')

    @field_validator('mean', mode='after')
    @classmethod
    def mean_1d(cls, mu: np.ndarray) -> np.ndarray:
        return _mean_1d(mu)

    def get_mean(self) -> np.ndarray:
        return self.mean.copy()

    def get_covariance(self) -> np.ndarray:
        size = self.get_mean().shape[0]
        return np.zeros((size, size))

    def to_uncertain_values(self) -> List[UncertainValue]:
        return [PointValue(value=v) for v in self.mean]


class MultivariateGaussian(MultivariateRandomDistribution, validate_assignment=True):
    """
    Class to describe a multivariate Gaussian distribution.

    Args:
        mean: a 1D array containing allowed values
        covariance: a 2D array of shape (dim, dim) describing the covariance of the distribution
    """
    mean: np.ndarray = Field(default=np.array([0]),
                             description='Mean of the multivariate Gaussian distribution')
    covariance: np.ndarray = Field(default=np.array([[1]]),
                                   description='Covariance of the multivariate Gaussian distribution')

    @field_validator('mean', mode='after')
    @classmethod
    def mean_1d(cls, mu: np.ndarray) -> np.ndarray:
        return _mean_1d(mu)

    @field_validator('covariance', mode='after')
    @classmethod
    def cov_2d(cls, sigma: np.ndarray) -> np.ndarray:
        """ Making sure the covariance is a 2D matrix """
        cov_shape = sigma.shape
        if len(cov_shape) != 2:
            raise ValueError('Covariance must be a 2D matrix, but shape provided was ' + str(cov_shape) + '!')
        return sigma

    @model_validator(mode='after')
    def fields_dim(self) -> Self:
        """ Making sure dimensions match between mean and covariance """
        dim = self.num_dimensions
        if self.covariance.shape != (dim, dim):
            msg = 'Wrong dimensions! Mean has shape ' + str(self.mean.shape)
            msg += ', but covariance has shape ' + str(self.covariance.shape)
            raise ValueError(msg)
        return self

    def get_mean(self) -> np.ndarray:
        return self.mean.copy()

    def get_covariance(self) -> np.ndarray:
        return self.covariance.copy()

    def to_uncertain_values(self) -> List[UncertainValue]:
        return [MeanCovarianceValue(mean=m, covariance=row) for m, row in zip(self.mean, self.covariance)]


def values_to_distribution(values: Sequence[UncertainValue]) -> MultivariateRandomDistribution:
    """Assemble a multivariate distribution from uncertain scalars

    Point values become a :class:`DeltaDistribution` and mean/covariance values a :class:`MultivariateGaussian`.
    Point values mixed with mean/covariance values are treated as Gaussian dimensions with zero variance.

    Args:
        values: One uncertain scalar per dimension
    Returns:
        Distribution over the full vector
    """
    kinds = set(v.kind for v in values)
    if kinds == {'point'}:
        return DeltaDistribution(mean=np.array([v.value for v in values]))
    if 'samples' in kinds:
        raise ValueError('Sampled values do not define a parametric distribution. Use `draw_samples`')

    dim = len(values)
    mean = np.zeros((dim,))
    covariance = np.zeros((dim, dim))
    for i, value in enumerate(values):
        if isinstance(value, PointValue):
            mean[i] = value.value
        else:
            if len(value.covariance) != dim:
                raise ValueError(f'Covariance row {i} has {len(value.covariance)} elements. Expected {dim}')
            mean[i] = value.mean
            covariance[i, :] = value.covariance
    return MultivariateGaussian(mean=mean, covariance=covariance)


def draw_samples(values: Sequence[UncertainValue], num_samples: int,
                 rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Draw joint realizations of a vector described by uncertain scalars

    Sampled values are resampled with replacement, keeping the realizations of
    different dimensions aligned so that correlations between dimensions survive.

    Args:
        values: One uncertain scalar per dimension
        num_samples: Number of realizations to draw
        rng: Random number generator
    Returns:
        Array of shape (num_samples, dimensions)
    """
    rng = np.random.default_rng() if rng is None else rng

    if all(isinstance(v, SampledValue) for v in values):
        sizes = set(v.num_samples for v in values)
        if len(sizes) != 1:
            raise ValueError(f'All sampled values must have the same number of samples. Found: {sizes}')
        choices = rng.integers(0, sizes.pop(), size=num_samples)
        return np.stack([v.samples[choices] for v in values], axis=1)

    dist = values_to_distribution(values)
    mean = dist.get_mean()
    if isinstance(dist, DeltaDistribution):
        return np.repeat(mean[None, :], num_samples, axis=0)
    return rng.multivariate_normal(mean=mean, cov=dist.get_covariance(), size=num_samples, method='eigh')
