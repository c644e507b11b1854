"""Drift of particles over a time interval and periodic box wrapping."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import numpy as np

__all__ = ["GAMMA", "GasState", "ParticleState", "move_particles", "do_box_wrapping"]

GAMMA = 5.0 / 3.0

DriftFactors = Callable[[int, int], "tuple[float, float, float]"]


def _vectors(value, n: int, name: str) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != (n, 3):
        raise ValueError(f"{name} must have shape ({n}, 3), got {arr.shape}")
    return arr


def _scalars(value, n: int, name: str, dtype=float) -> np.ndarray:
    arr = np.array(value, dtype=dtype)
    if arr.shape != (n,):
        raise ValueError(f"{name} must have shape ({n},), got {arr.shape}")
    return arr


@dataclass
class GasState:
    """SPH quantities of the gas particles, which lead the particle list."""

    vel_pred: np.ndarray
    hydro_accel: np.ndarray
    density: np.ndarray
    div_vel: np.ndarray
    hsml: np.ndarray
    entropy: np.ndarray
    dt_entropy: np.ndarray
    pressure: np.ndarray | None = None

    def __post_init__(self) -> None:
        self.density = np.array(self.density, dtype=float)
        if self.density.ndim != 1:
            raise ValueError("density must be one-dimensional")
        n = len(self.density)
        self.vel_pred = _vectors(self.vel_pred, n, "vel_pred")
        self.hydro_accel = _vectors(self.hydro_accel, n, "hydro_accel")
        self.div_vel = _scalars(self.div_vel, n, "div_vel")
        self.hsml = _scalars(self.hsml, n, "hsml")
        self.entropy = _scalars(self.entropy, n, "entropy")
        self.dt_entropy = _scalars(self.dt_entropy, n, "dt_entropy")
        self.pressure = (
            np.zeros(n) if self.pressure is None else _scalars(self.pressure, n, "pressure")
        )

    def __len__(self) -> int:
        return len(self.density)


@dataclass
class ParticleState:
    """Positions, velocities and accelerations of all local particles."""

    pos: np.ndarray
    vel: np.ndarray
    types: np.ndarray
    grav_accel: np.ndarray
    ti_begstep: np.ndarray
    ti_endstep: np.ndarray
    grav_pm: np.ndarray | None = None
    gas: GasState | None = field(default=None)

    def __post_init__(self) -> None:
        self.pos = np.array(self.pos, dtype=float)
        if self.pos.ndim != 2 or self.pos.shape[1] != 3:
            raise ValueError("pos must have shape (n, 3)")
        n = len(self.pos)
        self.vel = _vectors(self.vel, n, "vel")
        self.grav_accel = _vectors(self.grav_accel, n, "grav_accel")
        self.types = _scalars(self.types, n, "types", dtype=np.int64)
        self.ti_begstep = _scalars(self.ti_begstep, n, "ti_begstep", dtype=np.int64)
        self.ti_endstep = _scalars(self.ti_endstep, n, "ti_endstep", dtype=np.int64)
        if self.grav_pm is not None:
            self.grav_pm = _vectors(self.grav_pm, n, "grav_pm")
        if self.gas is not None:
            n_gas = len(self.gas)
            if n_gas > n or np.any(self.types[:n_gas] != 0):
                raise ValueError("gas particles must be the leading particles, all of type 0")

    @property
    def n_gas(self) -> int:
        return 0 if self.gas is None else len(self.gas)


def move_particles(
    state: ParticleState,
    time0: int,
    time1: int,
    timebase_interval: float,
    min_gas_hsml: float = 0.0,
    factors: DriftFactors | None = None,
) -> ParticleState:
    """Drift all particles from integer time ``time0`` to ``time1`` in place.

    ``factors``, if given, returns the (drift, gravkick, hydrokick) factors for
    the interval, as used in comoving integration; otherwise all three equal
    ``(time1 - time0) * timebase_interval``.
    """
    if factors is None:
        dt_drift = dt_gravkick = dt_hydrokick = (time1 - time0) * timebase_interval
    else:
        dt_drift, dt_gravkick, dt_hydrokick = factors(time0, time1)

    state.pos += state.vel * dt_drift

    gas = state.gas
    n = state.n_gas
    if gas is not None and n:
        accel = state.grav_accel[:n]
        if state.grav_pm is not None:
            accel = accel + state.grav_pm[:n]
        gas.vel_pred += accel * dt_gravkick + gas.hydro_accel * dt_hydrokick

        gas.density *= np.exp(-gas.div_vel * dt_drift)
        gas.hsml *= np.exp(0.333333333333 * gas.div_vel * dt_drift)
        np.maximum(gas.hsml, min_gas_hsml, out=gas.hsml)

        midpoint = (state.ti_begstep[:n] + state.ti_endstep[:n]) // 2
        dt_entr = (time1 - midpoint) * timebase_interval
        gas.pressure = (gas.entropy + gas.dt_entropy * dt_entr) * gas.density**GAMMA

    return state


def do_box_wrapping(
    pos,
    box_size: float,
    long_factors: Sequence[float] | None = None,
) -> np.ndarray:
    """Return positions mapped periodically onto [0, box) along each axis.

    ``long_factors`` stretches the box side per axis.
    """
    arr = np.array(pos, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError("pos must have shape (n, 3)")
    if box_size <= 0:
        raise ValueError("box_size must be positive")
    boxsize = np.full(3, float(box_size))
    if long_factors is not None:
        factors = np.asarray(long_factors, dtype=float)
        if factors.shape != (3,):
            raise ValueError("long_factors must hold three values")
        boxsize *= factors
    wrapped = np.mod(arr, boxsize)
    wrapped[wrapped >= boxsize] = 0.0
    return wrapped