"""Equilibrium potential of an intercalation electrode using a Redlich-Kister expansion"""
from typing import Sequence

import numpy as np


def redlich_kister_terms(x: np.ndarray, num_terms: int) -> np.ndarray:
    r"""Compute the basis functions of the Redlich-Kister expansion

    The :math:`k`-th term is

    .. math::

        (2x - 1)^{k+1} - 2 k x (1 - x) (2x - 1)^{k-1}

    which reduces to :math:`2x - 1` for :math:`k = 0`.

    Args:
        x: Mole fraction(s) of the electrode surface
        num_terms: Number of terms in the expansion
    Returns:
        Array with one more dimension than ``x``, where the last dimension is the term index
    """
    x = np.asarray(x, dtype=float)
    y = 2 * x - 1
    mixing = x * (1 - x)

    terms = np.empty(x.shape + (num_terms,))
    terms[..., 0] = y
    for k in range(1, num_terms):
        terms[..., k] = y ** (k + 1) - 2 * k * mixing * y ** (k - 1)
    return terms


def equilibrium_potential(x: np.ndarray,
                          temperature: np.ndarray,
                          u0: float,
                          coefficients: Sequence[float],
                          faraday: float,
                          gas_constant: float) -> np.ndarray:
    """Open-circuit potential of an electrode

    Args:
        x: Mole fraction of the electrode surface. Must be within (0, 1)
        temperature: Temperature of the electrode. Units: K
        u0: Reference potential. Units: V
        coefficients: Redlich-Kister coefficients. Units: J/mol
        faraday: Faraday's constant. Units: C/mol
        gas_constant: Universal gas constant. Units: J/K/mol
    Returns:
        Equilibrium potential. Units: V
    """
    coefficients = np.asarray(coefficients, dtype=float)
    terms = redlich_kister_terms(x, len(coefficients))
    excess = np.dot(terms, coefficients) / faraday
    return u0 + excess + gas_constant * temperature * np.log((1 - x) / x) / faraday
