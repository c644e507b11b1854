"""Mesh operations for the particle-mesh force: mass assignment, interpolation,
finite differencing and the Fourier-space factors of the mesh."""

from __future__ import annotations

from itertools import product

import numpy as np

__all__ = [
    "cic_assign",
    "cic_interpolate",
    "finite_difference",
    "wavenumbers",
    "cic_deconvolution",
]


def _positions(positions) -> np.ndarray:
    pos = np.asarray(positions, dtype=float)
    if pos.ndim != 2 or pos.shape[1] != 3:
        raise ValueError(f"positions must have shape (n, 3), got {pos.shape}")
    return pos


def _shape(shape) -> np.ndarray:
    dims = np.asarray(shape, dtype=np.int64)
    if dims.shape != (3,):
        raise ValueError("shape must hold three sizes")
    if np.any(dims < 1):
        raise ValueError("mesh sizes must be positive")
    return dims


def _cells(positions, dims, to_slab_fac, origin, periodic):
    """Return the lower cells, upper cells and fractional offsets of each particle."""
    pos = _positions(positions)
    u = to_slab_fac * (pos - np.asarray(origin, dtype=float))
    slab = np.floor(u).astype(np.int64)
    if periodic:
        # A particle sitting exactly on the upper box edge belongs to the last cell.
        slab = np.minimum(slab, dims - 1)
    frac = u - slab
    upper = slab + 1
    if periodic:
        slab = np.mod(slab, dims)
        upper = np.mod(upper, dims)
    elif len(pos) and (np.any(slab < 0) or np.any(upper >= dims)):
        raise ValueError("particle lies outside the mesh")
    return slab, upper, frac


def _corners(slab, upper, frac):
    """Yield the index arrays and weights of the eight cells touched by each particle."""
    for corner in product((0, 1), repeat=3):
        index = []
        weight = np.ones(len(frac))
        for axis, side in enumerate(corner):
            if side:
                index.append(upper[:, axis])
                weight = weight * frac[:, axis]
            else:
                index.append(slab[:, axis])
                weight = weight * (1.0 - frac[:, axis])
        yield tuple(index), weight


def cic_assign(positions, masses, shape, to_slab_fac=1.0, origin=0.0, periodic=True) -> np.ndarray:
    """Deposit particle masses onto a mesh with the cloud-in-cell kernel.

    Positions are mapped to mesh coordinates by ``to_slab_fac * (pos - origin)``.
    On a periodic mesh the cells wrap around; otherwise a particle whose cloud
    leaves the mesh raises ``ValueError``.
    """
    dims = _shape(shape)
    pos = _positions(positions)
    mass = np.asarray(masses, dtype=float)
    if mass.shape != (len(pos),):
        raise ValueError(f"masses must have shape ({len(pos)},), got {mass.shape}")

    grid = np.zeros(tuple(int(d) for d in dims))
    slab, upper, frac = _cells(pos, dims, to_slab_fac, origin, periodic)
    for index, weight in _corners(slab, upper, frac):
        np.add.at(grid, index, mass * weight)
    return grid


def cic_interpolate(grid, positions, to_slab_fac=1.0, origin=0.0, periodic=True) -> np.ndarray:
    """Interpolate a mesh field tri-linearly to particle positions."""
    field = np.asarray(grid, dtype=float)
    if field.ndim != 3:
        raise ValueError("grid must be three-dimensional")
    dims = np.asarray(field.shape, dtype=np.int64)
    slab, upper, frac = _cells(positions, dims, to_slab_fac, origin, periodic)
    values = np.zeros(len(frac))
    for index, weight in _corners(slab, upper, frac):
        values += field[index] * weight
    return values


def finite_difference(potential, axis, fac=1.0, periodic=True) -> np.ndarray:
    """Return ``fac`` times minus twice the gradient of the potential along ``axis``.

    Uses the four-point formula
    ``fac * (4/3 * (phi[i-1] - phi[i+1]) - 1/6 * (phi[i-2] - phi[i+2]))``.
    On a periodic mesh the result has the shape of the input. Otherwise the
    first and last two cells along ``axis`` serve as a buffer and the result is
    four cells shorter along that axis.
    """
    phi = np.asarray(potential, dtype=float)
    if not -phi.ndim <= axis < phi.ndim:
        raise ValueError(f"axis {axis} out of range for a {phi.ndim}-dimensional field")

    if periodic:
        left = np.roll(phi, 1, axis=axis)
        right = np.roll(phi, -1, axis=axis)
        lleft = np.roll(phi, 2, axis=axis)
        rright = np.roll(phi, -2, axis=axis)
    else:
        n = phi.shape[axis]
        if n < 5:
            raise ValueError("a non-periodic mesh needs at least five cells along the axis")
        moved = np.moveaxis(phi, axis, 0)
        lleft = np.moveaxis(moved[0 : n - 4], 0, axis)
        left = np.moveaxis(moved[1 : n - 3], 0, axis)
        right = np.moveaxis(moved[3 : n - 1], 0, axis)
        rright = np.moveaxis(moved[4:n], 0, axis)

    return fac * ((4.0 / 3) * (left - right) - (1.0 / 6) * (lleft - rright))


def wavenumbers(ngrid) -> np.ndarray:
    """Return the signed integer wavenumbers of the ``ngrid`` mesh modes.

    Index ``i`` maps to ``i`` when ``i <= ngrid // 2`` and to ``i - ngrid`` above.
    """
    if ngrid < 1:
        raise ValueError("ngrid must be positive")
    k = np.arange(ngrid, dtype=np.int64)
    return np.where(k > ngrid // 2, k - ngrid, k)


def cic_deconvolution(ngrid) -> np.ndarray:
    """Return the factor that deconvolves the CIC kernel twice, on the half-complex mesh.

    The result has shape ``(ngrid, ngrid, ngrid // 2 + 1)`` and holds
    ``1 / (sinc(kx) sinc(ky) sinc(kz))**4`` with ``sinc(k) = sin(pi k / ngrid) / (pi k / ngrid)``.
    """
    k = wavenumbers(ngrid)
    s = np.sinc(k / ngrid)
    sz = s[: ngrid // 2 + 1]
    product3 = s[:, None, None] * s[None, :, None] * sz[None, None, :]
    ff = 1.0 / product3
    return ff**4