"""Corrections applied to the gravitational potential of the particles.

These steps follow the tree potential: the self-potential is removed, the
lattice correction is applied in periodic comoving runs, a static external
potential is added, everything is scaled by G, and the cosmological term is
added.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

__all__ = [
    "self_potential_correction",
    "lattice_correction",
    "cosmological_term",
    "finalize_potential",
]

StaticPotential = Callable[[float, float, float], float]


def _scalars(value, n: int | None, name: str, dtype=float) -> np.ndarray:
    arr = np.array(value, dtype=dtype)
    if arr.ndim != 1 or (n is not None and len(arr) != n):
        expected = "(n,)" if n is None else f"({n},)"
        raise ValueError(f"{name} must have shape {expected}, got {arr.shape}")
    return arr


def _positions(value, n: int) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != (n, 3):
        raise ValueError(f"positions must have shape ({n}, 3), got {arr.shape}")
    return arr


def self_potential_correction(potential, masses, types, softening_table) -> np.ndarray:
    """Return the potential with each particle's own softened contribution removed."""
    pot = _scalars(potential, None, "potential")
    n = len(pot)
    mass = _scalars(masses, n, "masses")
    kind = _scalars(types, n, "types", dtype=np.int64)
    soft = np.asarray(softening_table, dtype=float)
    if n and (kind.min() < 0 or kind.max() >= len(soft)):
        raise ValueError("particle type outside the softening table")
    return pot + mass / soft[kind]


def lattice_correction(
    potential, masses, types, type_to_grav, lattice_zero, omega0, hubble, G
) -> np.ndarray:
    """Return the potential with the lattice self-energy of a periodic box removed.

    Each particle uses the diagonal entry of ``lattice_zero`` for its
    gravitational type, scaled by its mass and the mean background density.
    """
    pot = _scalars(potential, None, "potential")
    n = len(pot)
    mass = _scalars(masses, n, "masses")
    kind = _scalars(types, n, "types", dtype=np.int64)
    grav_of_type = np.asarray(type_to_grav, dtype=np.int64)
    lattice = np.asarray(lattice_zero, dtype=float)
    if lattice.ndim != 2 or lattice.shape[0] != lattice.shape[1]:
        raise ValueError("lattice_zero must be a square table")
    if n and (kind.min() < 0 or kind.max() >= len(grav_of_type)):
        raise ValueError("particle type outside type_to_grav")
    grav = grav_of_type[kind]
    if n and (grav.min() < 0 or grav.max() >= len(lattice)):
        raise ValueError("gravitational type outside lattice_zero")

    background = (omega0 * 3 * hubble * hubble / (8 * np.pi * G)) ** (1.0 / 3)
    return pot - np.diagonal(lattice)[grav] * np.power(mass, 2.0 / 3) * background


def cosmological_term(potential, positions, omega, hubble) -> np.ndarray:
    """Return the potential plus ``-0.5 * omega * hubble**2 * r**2``."""
    pot = _scalars(potential, None, "potential")
    pos = _positions(positions, len(pot))
    fac = -0.5 * omega * hubble * hubble
    if fac == 0:
        return pot.copy()
    return pot + fac * np.einsum("ij,ij->i", pos, pos)


def finalize_potential(
    potential,
    masses,
    positions,
    types,
    softening_table: Sequence[float],
    G: float,
    comoving: bool = False,
    periodic: bool = False,
    omega0: float = 0.0,
    omega_lambda: float = 0.0,
    hubble: float = 0.0,
    type_to_grav=None,
    lattice_zero=None,
    static_potential: StaticPotential | None = None,
) -> np.ndarray:
    """Turn the raw tree potential into the physical potential of each particle."""
    pot = self_potential_correction(potential, masses, types, softening_table)
    pos = _positions(positions, len(pot))

    if comoving and periodic:
        if type_to_grav is None or lattice_zero is None:
            raise ValueError("type_to_grav and lattice_zero are needed in a periodic comoving run")
        pot = lattice_correction(
            pot, masses, types, type_to_grav, lattice_zero, omega0, hubble, G
        )

    if static_potential is not None:
        pot = pot + np.array([static_potential(x, y, z) for x, y, z in pos], dtype=float)

    pot = pot * G

    if comoving:
        if not periodic:
            pot = cosmological_term(pot, pos, omega0, hubble)
    else:
        pot = cosmological_term(pot, pos, omega_lambda, hubble)
    return pot