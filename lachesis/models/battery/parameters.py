"""Physical parameters of a lithium-ion cell"""
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _default_ap() -> Tuple[float, ...]:
    return (-31593.7, 0.106747, 24606.4, -78561.9, 13317.9, 307387., 84916.1,
            -1.07469e+06, 2285.04, 990894., 283920., -161513., -469218.)


def _default_an() -> Tuple[float, ...]:
    return (86.19,) + (0.,) * 12


class BatteryParameters(BaseModel):
    """Parameters of the electrochemistry model of a cell

    Parameters are fixed after creation.
    The charges held at each electrode, and how they split between the surface and bulk regions,
    are determined by the mobile charge and the volume split, so they are computed from those parameters
    rather than stored. Make a copy with a new mobile charge to change them:

    .. code-block:: python

        params = BatteryParameters()
        aged = params.model_copy(update={'q_mobile': 7000.})
    """
    model_config = ConfigDict(use_attribute_docstrings=True, frozen=True)

    q_mobile: float = Field(7600., gt=0)
    """Charge carried by mobile Li ions. Units: C"""
    xn_max: float = 0.6
    """Maximum mole fraction at the negative electrode"""
    xn_min: float = 0.
    """Minimum mole fraction at the negative electrode"""
    xp_max: float = 1.
    """Maximum mole fraction at the positive electrode"""
    xp_min: float = 0.4
    """Minimum mole fraction at the positive electrode"""
    ro: float = 0.117215
    """Lumped ohmic resistance of the current collectors, electrolyte, and solid phases. Units: Ohm"""

    r: float = 8.3144621
    """Universal gas constant. Units: J/K/mol"""
    f: float = 96487.
    """Faraday's constant. Units: C/mol"""

    alpha: float = 0.5
    """Anodic/cathodic electrochemical transfer coefficient"""
    sn: float = 0.000437545
    """Surface area of the negative electrode. Units: m^2"""
    sp: float = 0.00030962
    """Surface area of the positive electrode. Units: m^2"""
    kn: float = 2120.96
    """Lumped Butler-Volmer rate constant of the negative electrode"""
    kp: float = 248898.
    """Lumped Butler-Volmer rate constant of the positive electrode"""
    vol: float = Field(2e-5, gt=0)
    """Interior volume of each electrode (half the total volume). Units: m^3"""
    vol_s_fraction: float = Field(0.1, gt=0, lt=1)
    """Fraction of the electrode volume in the surface region"""

    t_diffusion: float = 7e6
    """Diffusion time constant between bulk and surface. Larger values slow diffusion. Units: s"""
    to: float = 6.08671
    """Time constant of the ohmic voltage drop. Units: s"""
    tsn: float = 1.00138e3
    """Time constant of the surface overpotential at the negative electrode. Units: s"""
    tsp: float = 46.4311
    """Time constant of the surface overpotential at the positive electrode. Units: s"""

    u0p: float = 4.03
    """Reference potential of the positive electrode. Units: V"""
    ap: Tuple[float, ...] = Field(default_factory=_default_ap, min_length=1)
    """Redlich-Kister coefficients of the positive electrode. Units: J/mol"""
    u0n: float = 0.01
    """Reference potential of the negative electrode. Units: V"""
    an: Tuple[float, ...] = Field(default_factory=_default_an, min_length=1)
    """Redlich-Kister coefficients of the negative electrode. Units: J/mol"""

    v_eod: float = 3.2
    """Terminal voltage at which the cell is considered discharged. Units: V"""

    @model_validator(mode='after')
    def _check_mole_fractions(self) -> 'BatteryParameters':
        if self.xn_max <= self.xn_min:
            raise ValueError(f'xn_max ({self.xn_max}) must be larger than xn_min ({self.xn_min})')
        if self.xp_max <= self.xp_min:
            raise ValueError(f'xp_max ({self.xp_max}) must be larger than xp_min ({self.xp_min})')
        return self

    # Volumes. Both electrodes share the same volume and surface/bulk split
    @property
    def vol_s(self) -> float:
        """Volume of the surface region. Units: m^3"""
        return self.vol_s_fraction * self.vol

    @property
    def vol_b(self) -> float:
        """Volume of the bulk region. Units: m^3"""
        return self.vol - self.vol_s

    # Charges
    @property
    def q_max(self) -> float:
        """Total charge at both electrodes. Units: C"""
        return self.q_mobile / (self.xn_max - self.xn_min)

    @property
    def qp_min(self) -> float:
        return self.q_max * self.xp_min

    @property
    def qp_max(self) -> float:
        return self.q_max * self.xp_max

    @property
    def qn_min(self) -> float:
        return self.q_max * self.xn_min

    @property
    def qn_max(self) -> float:
        """Maximum charge at the negative electrode. Units: C"""
        return self.q_max * self.xn_max

    @property
    def qp_s_min(self) -> float:
        return self.qp_min * self.vol_s / self.vol

    @property
    def qp_b_min(self) -> float:
        return self.qp_min * self.vol_b / self.vol

    @property
    def qp_s_max(self) -> float:
        return self.qp_max * self.vol_s / self.vol

    @property
    def qp_b_max(self) -> float:
        return self.qp_max * self.vol_b / self.vol

    @property
    def qn_s_min(self) -> float:
        return self.qn_min * self.vol_s / self.vol

    @property
    def qn_b_min(self) -> float:
        return self.qn_min * self.vol_b / self.vol

    @property
    def qn_s_max(self) -> float:
        return self.qn_max * self.vol_s / self.vol

    @property
    def qn_b_max(self) -> float:
        return self.qn_max * self.vol_b / self.vol

    @property
    def q_s_max(self) -> float:
        """Maximum charge in the surface region of either electrode. Units: C"""
        return self.q_max * self.vol_s / self.vol

    @property
    def q_b_max(self) -> float:
        """Maximum charge in the bulk region of either electrode. Units: C"""
        return self.q_max * self.vol_b / self.vol
