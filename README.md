# ngravsim

Building blocks for collisionless N-body simulations in which particles may
belong to several distinct gravitational interaction classes. Every piece
works on plain NumPy arrays and can be used on its own.

## Installation

```
pip install .
```

For running the test suite:

```
pip install .[test]
pytest
```

## What is inside

- `ngravsim.peano`: Peano-Hilbert keys for integer triplets
  (`peano_hilbert_key(x, y, z, bits)`, and `peano_hilbert_key_inverse(key, bits)`,
  which returns `(x, y, z)`). `peano_hilbert_order(keys, n_gas, grav_types)`
  returns the permutation that sorts particles along the curve. The first
  `n_gas` particles (gas) stay in front. When `grav_types` is given, the rest
  are grouped by gravitational class and sorted by key within each class.
- `ngravsim.tags`: the `Tag` enumeration of message labels, and
  `interaction_tag(base, na, nb)`, which folds a source/receiver class pair
  (each in 0–7) into a tag.
- `ngravsim.predict`: the drift step of the leapfrog integrator.
  `move_particles` works in place on a `ParticleState`, whose leading gas
  particles are described by a `GasState`. It updates positions, predicted gas
  velocities, density, smoothing length and pressure. An optional callable
  supplies comoving drift and kick factors. `do_box_wrapping` maps positions
  into a periodic box, and each axis may be stretched.
- `ngravsim.read_ic`: reads initial conditions in the binary snapshot formats
  1 and 2. It provides `SnapshotHeader` with `from_bytes` and `to_bytes`,
  `Snapshot`, `IOBlock`, `find_files`, `read_file`, `read_ic`,
  `distribute_file` and `initial_internal_energy`. A snapshot spread over
  several files is merged with all gas kept in front. Malformed files and the
  unsupported HDF5 format 3 raise `SnapshotFormatError`.
- `ngravsim.pm_mesh`: mesh primitives. These are cloud-in-cell assignment
  (`cic_assign`) and interpolation (`cic_interpolate`), periodic or bounded,
  four-point finite differencing (`finite_difference`), FFT wavenumbers
  (`wavenumbers`) and the double CIC deconvolution factor on the half-complex
  mesh (`cic_deconvolution`).
- `ngravsim.pm_periodic`: `PeriodicPM`, which gives the long-range
  particle-mesh acceleration (`force`) and potential (`potential`) in a
  periodic cube. Each pair of gravitational classes has its own Green's
  function, called as `greens[a][b](mass_a, mass_b, k2, k)`. The default is
  `newtonian_greens`. Particles must be grouped by class, with
  `grav_counts` giving the size of each group.
- `ngravsim.potential`: corrections applied to a raw tree potential. These
  are `self_potential_correction`, `lattice_correction` and
  `cosmological_term`. `finalize_potential` combines them with an optional
  static external potential and the factor G.
- `ngravsim.restart`: per-task restart files stored as NumPy archives
  (`write_restart`, `read_restart`, `restart_path`, `writer_groups`). An
  existing file is kept with a `.bak` suffix. Errors raise `RestartError`.

## Example

```python
import numpy as np
from ngravsim.peano import peano_hilbert_key, peano_hilbert_key_inverse
from ngravsim.pm_periodic import PeriodicPM, newtonian_greens

key = peano_hilbert_key(3, 5, 7, bits=4)
assert peano_hilbert_key_inverse(key, bits=4) == (3, 5, 7)

pm = PeriodicPM(
    box_size=1.0,
    ngrid=32,
    G=1.0,
    greens=[[newtonian_greens]],
    mass_table=[1.0],
)
positions = np.random.default_rng(0).random((100, 3))
masses = np.full(100, 0.01)
accel = pm.force(positions, masses, grav_counts=[100])      # shape (100, 3)
phi = pm.potential(positions, masses, grav_counts=[100])    # shape (100,)
```

## What the package does not do

This is a library of components, not a complete simulation code. There is no
command-line program and no time-integration driver. It has no tree (short-range)
gravity solver, no SPH hydrodynamics and no domain decomposition across
processes. The particle-mesh solver covers only periodic boxes. Vacuum
boundaries and nested high-resolution meshes are not available. Snapshots
can be read but not written, and HDF5 snapshots are not supported. Restart
files hold whatever numeric arrays the caller passes. They do not capture a
running simulation by themselves.