"""Electrochemistry model of a lithium-ion cell which predicts the end of discharge"""
from typing import Literal, Optional, Tuple
import logging

import numpy as np

from lachesis.config import ConfigMap, ConfigurationError, get_float, get_string
from ..base import PrognosticsModel
from .parameters import BatteryParameters
from .potentials import equilibrium_potential

logger = logging.getLogger(__name__)

DomainPolicy = Literal['propagate', 'clip', 'raise']
"""How to treat surface mole fractions outside of (0, 1)"""

_kelvin_offset = 273.15


class MoleFractionDomainError(FloatingPointError):
    """A surface mole fraction left the (0, 1) interval, where the equilibrium potentials are undefined"""


class BatteryModel(PrognosticsModel):
    """
    Lumped electrochemistry model of a lithium-ion cell under a power load.

    The state holds the bulk temperature (K), the ohmic voltage drop and the surface overpotentials
    of each electrode (V), and the Li-ion charge held in the bulk and surface regions of each electrode (C).
    The cell is driven by the power drawn from it (W) and the sensors observe temperature (°C) and terminal voltage (V).
    The end of discharge occurs when the terminal voltage falls to :attr:`~BatteryParameters.v_eod`.

    The current depends on the terminal voltage (``i = P / V``), which in turn depends on the current through
    the overpotentials. The coupling is resolved explicitly: the voltage used to compute the current at each step
    is computed from the overpotentials at the start of the step, rather than solving for a current consistent
    with the end of the step. The error is small for steps short compared to the time constants of the overpotentials.

    Mole fractions outside (0, 1) make the equilibrium potentials undefined, and the model does not
    keep the state within that range by itself. The ``domain_policy`` determines what happens when it leaves:

    - ``propagate``: compute anyway, producing NaN or infinite values
    - ``clip``: evaluate the potentials and exchange currents at mole fractions clipped into the valid range.
      The state itself is not altered.
    - ``raise``: raise a :class:`MoleFractionDomainError`

    Args:
        parameters: Physical parameters of the cell
        domain_policy: How to treat mole fractions outside of (0, 1)
        dt: Nominal timestep. Units: s
    """

    state_names = ('Tb', 'Vo', 'Vsn', 'Vsp', 'qnB', 'qnS', 'qpB', 'qpS')
    input_names = ('P',)
    output_names = ('Tbm', 'Vm')
    predicted_output_names = ('SOC',)
    num_input_parameters = 2
    threshold_output = 1

    clip_tolerance: float = 1e-9
    """Distance from the bounds of the mole fraction used when clipping"""
    grid_step: float = 1e-4
    """Spacing between mole fractions scanned by :meth:`initialize`"""
    grid_points: int = 6000
    """Number of mole fractions scanned by :meth:`initialize`, which ends just short of fully discharged"""

    def __init__(self,
                 parameters: Optional[BatteryParameters] = None,
                 domain_policy: DomainPolicy = 'propagate',
                 dt: float = 1.):
        if domain_policy not in ('propagate', 'clip', 'raise'):
            raise ValueError(f'Unknown domain policy: {domain_policy}')
        self.parameters = BatteryParameters() if parameters is None else parameters
        self.domain_policy = domain_policy
        self.dt = dt

    @classmethod
    def from_config(cls, config: ConfigMap) -> 'BatteryModel':
        overrides = {}
        for key, name in [('Battery.qMobile', 'q_mobile'), ('Battery.Ro', 'ro'), ('Battery.VEOD', 'v_eod')]:
            value = get_float(config, key, None)
            if value is not None:
                overrides[name] = value
        try:
            parameters = BatteryParameters(**overrides)
        except ValueError as exc:
            raise ConfigurationError(f'Invalid battery parameters: {exc}') from exc
        logger.debug(f'Created battery parameters with overrides: {overrides}')

        policy = get_string(config, 'Battery.domainPolicy', 'propagate')
        if policy not in ('propagate', 'clip', 'raise'):
            raise ConfigurationError(f'Unknown Battery.domainPolicy: {policy}')
        return cls(parameters=parameters, domain_policy=policy)

    @property
    def threshold_value(self) -> float:
        return self.parameters.v_eod

    def _check_domain(self, *fractions: np.ndarray) -> Tuple[np.ndarray, ...]:
        """Apply the domain policy to a set of mole fractions"""
        if self.domain_policy == 'clip':
            eps = self.clip_tolerance
            return tuple(np.clip(x, eps, 1 - eps) for x in fractions)
        if self.domain_policy == 'raise':
            for x in fractions:
                if np.any((x <= 0) | (x >= 1)) or np.any(np.isnan(x)):
                    raise MoleFractionDomainError(f'Mole fraction outside of (0, 1): {x}')
        return fractions

    def _terminal_voltage(self, x: np.ndarray, xn_s: np.ndarray, xp_s: np.ndarray) -> np.ndarray:
        """Terminal voltage given the state and surface mole fractions"""
        p = self.parameters
        tb = x[..., 0]
        with np.errstate(divide='ignore', invalid='ignore'):
            ven = equilibrium_potential(xn_s, tb, p.u0n, p.an, p.f, p.r)
            vep = equilibrium_potential(xp_s, tb, p.u0p, p.ap, p.f, p.r)
        return vep - ven - x[..., 1] - x[..., 2] - x[..., 3]

    def state_eqn(self, t: float, x: np.ndarray, u: np.ndarray, n: Optional[np.ndarray], dt: float) -> np.ndarray:
        p = self.parameters
        tb, vo, vsn, vsp, qn_b, qn_s, qp_b, qp_s = (x[..., i] for i in range(8))
        power = np.asarray(u)[..., 0]

        # Mole fractions. The exchange current at the positive electrode is evaluated
        #  at the surface charge relative to the maximum bulk charge
        xn_s = qn_s / p.q_s_max
        xp_s = qp_s / p.q_s_max
        xp_j = qp_s / p.q_b_max
        xn_s, xp_s, xp_j = self._check_domain(xn_s, xp_s, xp_j)

        # Current drawn, given the voltage at the start of the step
        voltage = self._terminal_voltage(x, xn_s, xp_s)
        current = power / voltage

        # Diffusion from the bulk to the surface
        diffusion_n = (qn_b / p.vol_b - qn_s / p.vol_s) / p.t_diffusion
        diffusion_p = (qp_b / p.vol_b - qp_s / p.vol_s) / p.t_diffusion

        # Overpotentials approach their steady-state values
        with np.errstate(divide='ignore', invalid='ignore'):
            jn0 = p.kn * xn_s ** p.alpha * (1 - xn_s) ** p.alpha
            jp0 = p.kp * xp_j ** p.alpha * (1 - xp_j) ** p.alpha
            vsn_nominal = p.r * tb * np.arcsinh(current / p.sn / (2 * jn0)) / (p.f * p.alpha)
            vsp_nominal = p.r * tb * np.arcsinh(current / p.sp / (2 * jp0)) / (p.f * p.alpha)
        vo_nominal = p.ro * current

        derivatives = np.stack([
            np.zeros_like(tb),
            (vo_nominal - vo) / p.to,
            (vsn_nominal - vsn) / p.tsn,
            (vsp_nominal - vsp) / p.tsp,
            -diffusion_n,
            -current + diffusion_n,
            -diffusion_p,
            current + diffusion_p
        ], axis=-1)

        x += derivatives * dt
        x += self._noise(n, self.num_states) * dt
        return x

    def output_eqn(self, t: float, x: np.ndarray, u: np.ndarray, n: Optional[np.ndarray] = None) -> np.ndarray:
        p = self.parameters
        xn_s, xp_s = self._check_domain(x[..., 5] / p.q_s_max, x[..., 7] / p.q_s_max)
        z = np.stack([
            x[..., 0] - _kelvin_offset,
            self._terminal_voltage(x, xn_s, xp_s)
        ], axis=-1)
        return z + self._noise(n, self.num_outputs)

    def predicted_output_eqn(self, t: float, x: np.ndarray, u: np.ndarray) -> np.ndarray:
        # State of charge is the charge left at the negative electrode relative to its capacity
        soc = (x[..., 5] + x[..., 4]) / self.parameters.qn_max
        return soc[..., None]

    def initialize(self, u: np.ndarray, z: np.ndarray) -> np.ndarray:
        """Find a state consistent with a single observation by searching over states of charge

        Scans the mole fraction of the positive electrode from fully charged (0.4) towards fully discharged,
        and accepts the first mole fraction where the equilibrium voltage less the ohmic drop
        is at or below the observed voltage. The search relies on the voltage decreasing monotonically
        during discharge and uses the last mole fraction scanned if no candidate matches.
        The concentration is assumed to be equal between surface and bulk,
        and the surface overpotentials are assumed to be zero.

        Args:
            u: Power drawn from the cell. Units: W
            z: Measured temperature (°C) and terminal voltage (V)
        Returns:
            State vector
        """
        p = self.parameters
        u = np.asarray(u, dtype=float)
        z = np.asarray(z, dtype=float)

        tb = z[0] + _kelvin_offset
        voltage = z[1]
        current = u[0] / voltage
        vo = current * p.ro

        # Candidate mole fractions, scanning from charged to discharged
        xp = 0.4 + self.grid_step * np.arange(self.grid_points)
        xn = 1 - xp
        xp, xn = self._check_domain(xp, xn)
        with np.errstate(divide='ignore', invalid='ignore'):
            vep = equilibrium_potential(xp, tb, p.u0p, p.ap, p.f, p.r)
            ven = equilibrium_potential(xn, tb, p.u0n, p.an, p.f, p.r)
        candidates = vep - ven - vo

        matches = np.flatnonzero(candidates <= voltage)
        index = matches[0] if len(matches) > 0 else len(xp) - 1
        logger.debug(f'Initial positive mole fraction: {xp[index]:.4f}, matched {len(matches) > 0}')

        qp_s = p.q_max * xp[index] * p.vol_s / p.vol
        qn_s = p.q_max * xn[index] * p.vol_s / p.vol
        qp_b = qp_s * p.vol_b / p.vol_s
        qn_b = qn_s * p.vol_b / p.vol_s
        return np.array([tb, vo, 0., 0., qn_b, qn_s, qp_b, qp_s])
