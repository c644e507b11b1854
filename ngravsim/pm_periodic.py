"""Long-range particle-mesh force and potential in a periodic box."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

from .pm_mesh import cic_assign, cic_deconvolution, cic_interpolate, finite_difference, wavenumbers

__all__ = ["ASMTH", "RCUT", "GreensFunction", "newtonian_greens", "PeriodicPM"]

ASMTH = 1.25
"""Default force-split scale, in mesh cells."""

RCUT = 4.5
"""Default short-range cutoff, in units of the force-split scale."""

GreensFunction = Callable[[float, float, np.ndarray, np.ndarray], "np.ndarray | float"]


def newtonian_greens(mass_a, mass_b, k2, k):
    """Fourier-space Green's function of Newtonian gravity: 1/k**2, zero at k = 0."""
    k2 = np.asarray(k2, dtype=float)
    out = np.zeros_like(k2)
    np.divide(1.0, k2, out=out, where=k2 > 0)
    return out


class PeriodicPM:
    """Particle-mesh solver on a periodic cube with one Green's function per
    pair of gravitational types.

    ``greens[a][b]`` is called as ``greens[a][b](mass_a, mass_b, k2, k)`` with
    arrays of squared and plain integer wavenumbers over the half-complex mesh,
    and gives the kernel with which sources of type ``a`` act on receivers of
    type ``b``. ``asmth`` and ``rcut`` are given in mesh cells and in units of
    the split scale respectively; the attributes of the same name hold the
    resulting lengths.
    """

    def __init__(
        self,
        box_size: float,
        ngrid: int,
        G: float = 1.0,
        greens: Sequence[Sequence[GreensFunction]] | None = None,
        mass_table: Sequence[float] | None = None,
        asmth: float = ASMTH,
        rcut: float = RCUT,
    ) -> None:
        if box_size <= 0:
            raise ValueError("box_size must be positive")
        if ngrid < 2:
            raise ValueError("ngrid must be at least 2")
        if greens is None:
            greens = [[newtonian_greens]]
        ntypes = len(greens)
        if ntypes == 0 or any(len(row) != ntypes for row in greens):
            raise ValueError("greens must be a non-empty square table")
        if mass_table is None:
            mass_table = [0.0] * ntypes
        if len(mass_table) != ntypes:
            raise ValueError(f"mass_table must hold {ntypes} values")

        self.box_size = float(box_size)
        self.ngrid = int(ngrid)
        self.G = float(G)
        self.ntypes = ntypes
        self.mass_table = tuple(float(m) for m in mass_table)
        self.asmth = asmth * self.box_size / self.ngrid
        self.rcut = rcut * self.asmth
        self.to_slab_fac = self.ngrid / self.box_size

        ng = self.ngrid
        k = wavenumbers(ng).astype(float)
        kz = k[: ng // 2 + 1]
        k2 = k[:, None, None] ** 2 + k[None, :, None] ** 2 + kz[None, None, :] ** 2
        kabs = np.sqrt(k2)

        asmth2 = (2 * np.pi * self.asmth / self.box_size) ** 2
        fac_pot = self.G / (np.pi * self.box_size)
        self._fac_force = fac_pot / (2 * self.box_size / ng)

        deconv = cic_deconvolution(ng)
        window = -np.exp(-k2 * asmth2) * deconv
        positive = k2 > 0

        self._smth_force: list[list[np.ndarray]] = []
        self._smth_pot: list[list[np.ndarray]] = []
        with np.errstate(all="ignore"):
            for a in range(ntypes):
                force_row, pot_row = [], []
                for b in range(ntypes):
                    g = greens[a][b](self.mass_table[a], self.mass_table[b], k2, kabs)
                    g = np.broadcast_to(np.asarray(g, dtype=float), k2.shape)
                    smth = window * g
                    force_row.append(np.where(positive, smth, 0.0))
                    pot_row.append(smth * fac_pot)
                self._smth_force.append(force_row)
                self._smth_pot.append(pot_row)

    def _prepare(self, positions, masses, grav_counts):
        pos = np.asarray(positions, dtype=float)
        if pos.ndim != 2 or pos.shape[1] != 3:
            raise ValueError(f"positions must have shape (n, 3), got {pos.shape}")
        n = len(pos)
        mass = np.asarray(masses, dtype=float)
        if mass.shape != (n,):
            raise ValueError(f"masses must have shape ({n},), got {mass.shape}")
        if grav_counts is None:
            if self.ntypes != 1:
                raise ValueError("grav_counts is required with several gravitational types")
            grav_counts = [n]
        counts = [int(c) for c in grav_counts]
        if len(counts) != self.ntypes:
            raise ValueError(f"grav_counts must hold {self.ntypes} values")
        if any(c < 0 for c in counts) or sum(counts) != n:
            raise ValueError("grav_counts must be non-negative and add up to the particle count")
        offsets = np.concatenate(([0], np.cumsum(counts))).astype(int)
        blocks = [slice(offsets[t], offsets[t + 1]) for t in range(self.ntypes)]
        return pos, mass, blocks

    def _density_modes(self, pos, mass):
        shape = (self.ngrid,) * 3
        rho = cic_assign(pos, mass, shape, self.to_slab_fac, 0.0, periodic=True)
        return np.fft.rfftn(rho)

    def _to_real(self, modes):
        ng = self.ngrid
        return np.fft.irfftn(modes, s=(ng, ng, ng)) * ng**3

    def force(self, positions, masses, grav_counts=None) -> np.ndarray:
        """Return the long-range acceleration of every particle, shape (n, 3).

        Particles are grouped by gravitational type: the first
        ``grav_counts[0]`` are of type 0, the next ``grav_counts[1]`` of type 1,
        and so on.
        """
        pos, mass, blocks = self._prepare(positions, masses, grav_counts)
        acc = np.zeros((len(pos), 3))
        for a, src in enumerate(blocks):
            if src.start == src.stop:
                continue
            rho_k = self._density_modes(pos[src], mass[src])
            for b, rcv in enumerate(blocks):
                if rcv.start == rcv.stop:
                    continue
                phi_k = rho_k * self._smth_force[a][b]
                phi_k[0, 0, 0] = 0.0
                phi = self._to_real(phi_k)
                for dim in range(3):
                    grid = finite_difference(phi, dim, self._fac_force, periodic=True)
                    acc[rcv, dim] += cic_interpolate(
                        grid, pos[rcv], self.to_slab_fac, 0.0, periodic=True
                    )
        return acc

    def potential(self, positions, masses, grav_counts=None) -> np.ndarray:
        """Return the long-range potential of every particle, shape (n,).

        The zero mode is kept, unless the Green's function makes it undefined,
        in which case it is dropped.
        """
        pos, mass, blocks = self._prepare(positions, masses, grav_counts)
        pot = np.zeros(len(pos))
        for a, src in enumerate(blocks):
            if src.start == src.stop:
                continue
            rho_k = self._density_modes(pos[src], mass[src])
            for b, rcv in enumerate(blocks):
                if rcv.start == rcv.stop:
                    continue
                with np.errstate(invalid="ignore"):
                    phi_k = rho_k * self._smth_pot[a][b]
                if np.isnan(phi_k[0, 0, 0].real):
                    phi_k[0, 0, 0] = 0.0
                phi = self._to_real(phi_k)
                pot[rcv] += cic_interpolate(phi, pos[rcv], self.to_slab_fac, 0.0, periodic=True)
        return pot