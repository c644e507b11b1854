import numpy as np
import pytest

from ngravsim.pm_mesh import (
    cic_assign,
    cic_deconvolution,
    cic_interpolate,
    finite_difference,
    wavenumbers,
)


def test_assign_conserves_mass():
    rng = np.random.default_rng(1)
    pos = rng.uniform(0, 8, size=(50, 3))
    mass = rng.uniform(0.5, 2.0, size=50)
    grid = cic_assign(pos, mass, (8, 8, 8), 1.0, 0.0, True)
    assert grid.shape == (8, 8, 8)
    assert grid.sum() == pytest.approx(mass.sum())


def test_assign_on_cell_corner_fills_one_cell():
    grid = cic_assign([[2.0, 3.0, 1.0]], [5.0], (6, 6, 6), 1.0, 0.0, False)
    assert grid[2, 3, 1] == pytest.approx(5.0)
    assert np.count_nonzero(grid) == 1


def test_assign_periodic_wraps_to_first_cell():
    grid = cic_assign([[3.5, 0.0, 0.0]], [2.0], (4, 4, 4), 1.0, 0.0, True)
    assert grid[3, 0, 0] == pytest.approx(1.0)
    assert grid[0, 0, 0] == pytest.approx(1.0)


def test_assign_uses_scale_and_origin():
    a = cic_assign([[1.0, 1.0, 1.0]], [1.0], (5, 5, 5), 2.0, 0.5, False)
    assert a[1, 1, 1] == pytest.approx(1.0)


def test_assign_nonperiodic_outside_raises():
    with pytest.raises(ValueError):
        cic_assign([[4.5, 1.0, 1.0]], [1.0], (5, 5, 5), 1.0, 0.0, False)


def test_assign_bad_mass_shape_raises():
    with pytest.raises(ValueError):
        cic_assign([[1.0, 1.0, 1.0]], [1.0, 2.0], (4, 4, 4))


def test_interpolate_constant_field():
    grid = np.full((6, 6, 6), 2.5)
    pos = np.array([[0.3, 1.7, 4.2], [5.9, 5.9, 0.1]])
    values = cic_interpolate(grid, pos, 1.0, 0.0, True)
    assert np.allclose(values, 2.5)


def test_interpolate_reproduces_linear_field():
    idx = np.arange(8, dtype=float)
    grid = idx[:, None, None] + 2 * idx[None, :, None] + 0 * idx[None, None, :]
    pos = np.array([[1.25, 2.5, 3.0], [4.75, 0.5, 6.2]])
    values = cic_interpolate(grid, pos, 1.0, 0.0, False)
    assert np.allclose(values, pos[:, 0] + 2 * pos[:, 1])


def test_interpolate_requires_3d_grid():
    with pytest.raises(ValueError):
        cic_interpolate(np.zeros((4, 4)), [[1.0, 1.0, 1.0]])


def test_finite_difference_linear_nonperiodic():
    x = np.arange(8, dtype=float)
    phi = np.broadcast_to(3.0 * x[:, None, None], (8, 2, 2))
    result = finite_difference(phi, 0, 0.5, False)
    assert result.shape == (4, 2, 2)
    assert np.allclose(result, -3.0)


def test_finite_difference_constant_periodic_is_zero():
    result = finite_difference(np.full((5, 5, 5), 7.0), 2, 1.0, True)
    assert result.shape == (5, 5, 5)
    assert np.allclose(result, 0.0)


def test_periodic_matches_nonperiodic_interior():
    rng = np.random.default_rng(3)
    phi = rng.normal(size=(9, 4, 3))
    full = finite_difference(phi, 0, 1.3, True)
    inner = finite_difference(phi, 0, 1.3, False)
    assert np.allclose(full[2:-2], inner)


def test_finite_difference_short_axis_raises():
    with pytest.raises(ValueError):
        finite_difference(np.zeros((4, 4, 4)), 1, 1.0, False)


def test_wavenumbers_keep_nyquist_positive():
    k = wavenumbers(8)
    assert k.tolist() == [0, 1, 2, 3, 4, -3, -2, -1]


def test_wavenumbers_odd_grid_symmetric():
    k = wavenumbers(7)
    assert sorted(k.tolist()) == [-3, -2, -1, 0, 1, 2, 3]


def test_deconvolution_shape_and_origin():
    dec = cic_deconvolution(8)
    assert dec.shape == (8, 8, 5)
    assert dec[0, 0, 0] == pytest.approx(1.0)
    assert np.all(dec >= 1.0)


def test_deconvolution_is_isotropic_in_axes():
    dec = cic_deconvolution(6)
    assert dec[1, 0, 0] == pytest.approx(dec[0, 1, 0])
    assert dec[0, 1, 0] == pytest.approx(dec[0, 0, 1])
    assert dec[1, 0, 0] == pytest.approx(dec[5, 0, 0])