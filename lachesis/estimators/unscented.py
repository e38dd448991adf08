""" Definition of Unscented Kálmán Filter (UKF)"""
from typing import Union, Literal, Optional, Tuple, Dict, List, Sequence
import logging

import numpy as np
from scipy.linalg import block_diag

from lachesis.config import ConfigMap, ConfigurationError, get_float, get_float_list, get_string
from lachesis.distributions import MultivariateGaussian, UncertainValue
from .base import Estimator
from .utils import ensure_positive_semi_definite, calculate_gain_matrix, matrix_square_root, as_covariance

logger = logging.getLogger(__name__)

NoiseDescription = Optional[Union[float, Sequence[float], np.ndarray]]


def assemble_unscented_estimate_from_samples(samples: np.ndarray,
                                             mean_weights: np.ndarray,
                                             cov_weights: np.ndarray) -> Dict:
    """
    Function that takes a collection of samples and computes the relative mean and covariance based on the weights
    provided

    Args:
        samples: array of evolved hidden states
        mean_weights: weights to be used by the computation of the mean
        cov_weights: weights to be used by the computation of the covariance

    Returns:
        Dictionary of containing 'mean' and 'covariance'
    """
    # Start with mean
    mu = np.average(samples, axis=0, weights=mean_weights)

    # For the covariance, since there can be negative weights, we need to calculate things by hand
    diffs = samples - mu
    cov = compute_unscented_covariance(cov_weights=cov_weights, array0=diffs)
    return {'mean': mu, 'covariance': cov}


def compute_unscented_covariance(cov_weights: np.ndarray,
                                 array0: np.ndarray,
                                 array1: Optional[np.ndarray] = None,
                                 ) -> np.ndarray:
    """
    Function that computes the unscented covariance between zero-mean arrays. If second array is not provided,
    this is equivalent to computing the unscented variance of the only provided array.
    """
    if array1 is None:
        array1 = array0
    cov = np.matmul(array0.T, np.matmul(np.diag(cov_weights), array1))
    return cov


class UnscentedKalmanFilter(Estimator):
    """
    State estimator which uses the Unscented Kálmán Filter.

    The filter works on an augmented state made of the hidden state, the process noise, and the sensor noise.
    Sigma points are propagated from the time of the previous measurement to the current one with a single
    call to the state equation, using the inputs from the previous measurement.

    Args:
        model: model describing the system. May be provided later through :meth:`set_model`
        covariance_process_noise: covariance of process noise as a matrix, a list of variances,
            or a single variance for all states (default = 1.0e-8 * identity)
        covariance_sensor_noise: covariance of sensor noise, described in the same way (default = 1.0e-8 * identity)
        initial_covariance: covariance of the initial state (default = the process noise covariance)
        alpha_param: tuning parameter 0.001 <= alpha <= 1 used to control the spread of the sigma points; lower values
            keep sigma points closer to the mean, alpha=1 effectively brings the KF closer to Central Difference KF
            (default = 1.)
        kappa_param: tuning parameter  kappa >= 3 - aug_len; choose values of kappa >=0 for positive semidefiniteness.
            (default = 0.)
        beta_param: tuning parameter beta >=0 used to incorporate knowledge of prior distribution; for Gaussian use
            beta = 2 (default = 2.)
    """

    hidden: Optional[MultivariateGaussian]
    """Current estimate of the hidden state"""
    controls: Optional[np.ndarray]
    """Inputs at the time of the last estimate"""

    def __init__(self,
                 model=None,
                 covariance_process_noise: NoiseDescription = None,
                 covariance_sensor_noise: NoiseDescription = None,
                 initial_covariance: NoiseDescription = None,
                 alpha_param: float = 1.,
                 kappa_param: Union[float, Literal['automatic']] = 0.,
                 beta_param: float = 2.):
        super().__init__(model=model)

        # Tuning parameters check and save
        assert alpha_param >= 0.001, 'Alpha parameter should be >= 0.001!'
        assert alpha_param <= 1, 'Alpha parameter must be <= 1!'
        assert beta_param >= 0, 'Beta parameter must be >= 0!'
        self.alpha_param = alpha_param
        self.beta_param = beta_param
        self._kappa_setting = kappa_param
        self.kappa_param: Optional[float] = None

        # Covariances are built once the dimensions are known
        self._process_noise = covariance_process_noise
        self._sensor_noise = covariance_sensor_noise
        self._initial_covariance = initial_covariance
        self.cov_w: Optional[np.ndarray] = None
        self.cov_v: Optional[np.ndarray] = None
        self._aug_len: Optional[int] = None

        self.hidden = None
        self.controls = None

    @classmethod
    def from_config(cls, config: ConfigMap) -> 'UnscentedKalmanFilter':
        kappa = get_string(config, 'Observer.kappa', None)
        if kappa != 'automatic':
            kappa = get_float(config, 'Observer.kappa', 0.)
        alpha = get_float(config, 'Observer.alpha', 1.)
        beta = get_float(config, 'Observer.beta', 2.)
        if not 0.001 <= alpha <= 1:
            raise ConfigurationError(f'Invalid UKF tuning parameters: Observer.alpha must be in [0.001, 1]. Found {alpha}')
        if beta < 0:
            raise ConfigurationError(f'Invalid UKF tuning parameters: Observer.beta must be >= 0. Found {beta}')
        return cls(
            covariance_process_noise=get_float_list(config, 'Observer.Q', None),
            covariance_sensor_noise=get_float_list(config, 'Observer.R', None),
            initial_covariance=get_float_list(config, 'Observer.P0', None),
            alpha_param=alpha,
            beta_param=beta,
            kappa_param=kappa,
        )

    @property
    def gamma_param(self) -> float:
        return self.alpha_param * np.sqrt(self._aug_len + self.kappa_param)

    @property
    def lambda_param(self) -> float:
        return (self.alpha_param * self.alpha_param * (self._aug_len + self.kappa_param)) - self._aug_len

    @property
    def mean_weights(self) -> np.ndarray:
        mean_weights = 0.5 * np.ones((2 * self._aug_len + 1))
        mean_weights[0] = self.lambda_param
        mean_weights /= (self.alpha_param * self.alpha_param * (self._aug_len + self.kappa_param))
        return mean_weights

    @property
    def cov_weights(self) -> np.ndarray:
        cov_weights = self.mean_weights.copy()
        cov_weights[0] += 1 - (self.alpha_param * self.alpha_param) + self.beta_param
        return cov_weights

    def initialize(self, t0: float, x0: np.ndarray, u0: np.ndarray):
        if self.model is None:
            raise ValueError('The model must be set before initializing the estimator')
        num_states = self.model.num_states
        num_outputs = self.model.num_outputs
        x0 = np.asarray(x0, dtype=float)
        assert x0.shape == (num_states,), f'Model expects {num_states} hidden dimensions, but state has {x0.shape}!'

        # Calculate augmented dimensions
        self._aug_len = int((2 * num_states) + num_outputs)
        if self._kappa_setting == 'automatic':
            self.kappa_param = 3 - self._aug_len
        else:
            assert self._aug_len + self._kappa_setting > 0, \
                'Kappa parameter (%f) must be > - Augmented_length L (%d)!' % (self._kappa_setting, self._aug_len)
            self.kappa_param = self._kappa_setting

        # Taking care of covariances
        self.cov_w = as_covariance(self._process_noise, num_states, 1.0e-08)
        self.cov_v = as_covariance(self._sensor_noise, num_outputs, 1.0e-08)
        initial_covariance = as_covariance(self._initial_covariance, num_states, 1.0e-08) \
            if self._initial_covariance is not None else self.cov_w.copy()

        self.hidden = MultivariateGaussian(mean=x0.copy(), covariance=initial_covariance)
        self.controls = np.array(u0, dtype=float)
        self.last_time = t0
        logger.debug(f'Initialized UKF at t={t0} with an augmented state of {self._aug_len} dimensions')

    def step(self, t: float, u: np.ndarray, z: np.ndarray) -> Tuple[MultivariateGaussian, MultivariateGaussian]:
        """
        Steps the UKF

        Args:
            t: time of the new measurement
            u: new control variables
            z: new measurements

        Returns:
            Corrected hidden state, as well as the output predicted before the correction
        """
        self._check_step(t)
        u = np.array(u, dtype=float)
        z = np.array(z, dtype=float)

        # Step 0: build Sigma points
        sigma_pts = self.build_sigma_points()
        # Step 1: perform estimation update
        x_k_minus, y_k, cov_xy = self.estimation_update(sigma_pts=sigma_pts, t=t, new_controls=u)
        # Step 2: correction step, adjust hidden states based on new measurement
        self.correction_update(x_k_minus=x_k_minus, y_hat=y_k, cov_xy=cov_xy, y=z)
        # Don't forget to update the internal control and time!
        self.controls = u
        self.last_time = t
        return self.hidden.model_copy(deep=True), y_k

    def get_state_estimate(self) -> List[UncertainValue]:
        if self.hidden is None:
            raise ValueError('The estimator has not been initialized')
        return self.hidden.to_uncertain_values()

    def build_sigma_points(self) -> np.ndarray:
        """
        Function to build Sigma points.

        Returns:
            2D numpy array, where each row represents an "augmented state" consisting of hidden state, process noise,
            and sensor noise, in that order.
        """
        # Building augmented state (recall noise terms are all zero-mean!)
        x_aug = np.hstack((self.hidden.get_mean(),
                           np.zeros(self.model.num_states + self.model.num_outputs)))

        # Now, build the augmented covariance
        cov_aug = block_diag(self.hidden.get_covariance(), self.cov_w, self.cov_v)
        # Making sure this is positive semi-definite
        cov_aug = ensure_positive_semi_definite(cov_aug)

        # Sigma points are the augmented "mean" + each individual row of the transpose of the square root of
        # Cov_aug, with a weighing factor of plus and minus gamma_param
        sqrt_cov_aug = matrix_square_root(cov_aug).T
        aux_sigma_pts = np.vstack((np.zeros((self._aug_len,)),
                                   self.gamma_param * sqrt_cov_aug,
                                   -self.gamma_param * sqrt_cov_aug))
        sigma_pts = x_aug + aux_sigma_pts
        return sigma_pts

    def _break_sigma_pts(self, sigma_pts: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Function to break Sigma points into its hidden state, process noise, and sensor noise parts

        Args:
            sigma_pts: Sigma points matrix to be broken up

        Returns:
            - x_hid: array corresponding to iterable of hidden states
            - w_hid: array corresponding to iterable of process noises
            - v_hid: array corresponding to iterable of sensor noises
        """
        dim = self.model.num_states
        x_hid = sigma_pts[:, :dim].copy()
        w_hid = sigma_pts[:, dim:(2 * dim)].copy()
        v_hid = sigma_pts[:, (2 * dim):].copy()
        return x_hid, w_hid, v_hid

    def estimation_update(self,
                          sigma_pts: np.ndarray,
                          t: float,
                          new_controls: np.ndarray) -> Tuple[MultivariateGaussian, MultivariateGaussian, np.ndarray]:
        """
        Function to perform the estimation update from the Sigma points

        Args:
            sigma_pts: numpy array corresponding to the Sigma points built
            t: time of the new measurement
            new_controls: inputs at the time of the new measurement

        Returns:
            - x_k_minus: new estimate of the hidden state corresponding to x_k_minus (includes mean and covariance!)
            - y_k: estimate of the output measurement (includes mean and covariance!)
            - cov_xy: covariance matrix between hidden state and output
        """
        # Step 1a: break up Sigma points to get hidden states, process errors, and sensor errors
        x_hid, w_hid, v_hid = self._break_sigma_pts(sigma_pts=sigma_pts)

        # Step 1b: evolve hidden states based on the model and the previous input
        dt = t - self.last_time
        x_updated = self.model.state_eqn(self.last_time, x_hid, self.controls, None, dt)
        # Don't forget to include process noise!
        x_updated += w_hid
        # Assemble x_k_minus
        x_k_minus = MultivariateGaussian.model_validate(
            assemble_unscented_estimate_from_samples(x_updated, self.mean_weights, self.cov_weights)
        )

        # Step 1c: use updated hidden states to predict outputs, including sensor noise
        y_preds = self.model.output_eqn(t, x_updated, new_controls, None)
        y_preds += v_hid
        y_k = MultivariateGaussian.model_validate(
            assemble_unscented_estimate_from_samples(y_preds, self.mean_weights, self.cov_weights)
        )
        # Calculate covariance between hidden state and output
        cov_xy = compute_unscented_covariance(cov_weights=self.cov_weights,
                                              array0=(x_updated - x_k_minus.get_mean()),
                                              array1=(y_preds - y_k.get_mean()))

        return x_k_minus, y_k, cov_xy

    def correction_update(self,
                          x_k_minus: MultivariateGaussian,
                          y_hat: MultivariateGaussian,
                          cov_xy: np.ndarray,
                          y: np.ndarray) -> None:
        """
        Function to perform the correction update of the hidden state, based on the real measured output values.

        Args:
            x_k_minus: estimate of the hidden state P(x_k|y_(k-1))
            y_hat: output predictions P(y_k|y_k-1)
            cov_xy: covariance between hidden state and predicted output
            y: real measured output values
        """
        # Step 2a: calculate gain matrix
        l_k = calculate_gain_matrix(cov_xy=cov_xy, cov_y=y_hat.covariance)

        # Step 2b: compute Kálmán innovation (basically, the error in the output predictions)
        innovation = y.flatten() - y_hat.get_mean()

        # Step 2c: update the hidden state mean and covariance
        x_k_hat_plus = x_k_minus.get_mean() + np.matmul(l_k, innovation)
        cov_x_k_plus = x_k_minus.get_covariance() - np.matmul(l_k, np.matmul(y_hat.get_covariance(), l_k.T))
        # Make sure this new covariance is positive semi-definite
        cov_x_k_plus = ensure_positive_semi_definite(cov_x_k_plus)
        # Set internal state
        self.hidden = MultivariateGaussian(mean=x_k_hat_plus, covariance=cov_x_k_plus)
