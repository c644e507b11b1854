import numpy as np
import pytest

from ngravsim.pm_periodic import ASMTH, RCUT, PeriodicPM, newtonian_greens


def _zero_greens(mass_a, mass_b, k2, k):
    return 0.0


def _nan_at_origin(mass_a, mass_b, k2, k):
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(k2 > 0, 1.0 / np.where(k2 > 0, k2, 1.0), np.nan)


PAIR = np.array([[0.3, 0.5, 0.5], [0.7, 0.5, 0.5]])
MASSES = np.array([1.0, 1.0])


def test_default_scales():
    pm = PeriodicPM(2.0, 16)
    assert pm.asmth == pytest.approx(ASMTH * 2.0 / 16)
    assert pm.rcut == pytest.approx(RCUT * pm.asmth)
    assert pm.to_slab_fac == pytest.approx(8.0)


def test_pair_attracts():
    pm = PeriodicPM(1.0, 16)
    acc = pm.force(PAIR, MASSES)
    assert acc[0, 0] > 0
    assert acc[1, 0] < 0


def test_momentum_conservation():
    pm = PeriodicPM(1.0, 16)
    pos = np.array([[0.21, 0.33, 0.47], [0.62, 0.58, 0.41], [0.44, 0.12, 0.83]])
    mass = np.array([1.0, 2.0, 0.5])
    acc = pm.force(pos, mass)
    total = (mass[:, None] * acc).sum(axis=0)
    assert np.allclose(total, 0.0, atol=1e-10 * np.abs(acc).max())


def test_single_particle_on_node_feels_no_force():
    pm = PeriodicPM(1.0, 16)
    acc = pm.force([[0.5, 0.25, 0.75]], [3.0])
    assert np.allclose(acc, 0.0, atol=1e-12)


def test_force_scales_with_G():
    a1 = PeriodicPM(1.0, 16, G=1.0).force(PAIR, MASSES)
    a2 = PeriodicPM(1.0, 16, G=2.0).force(PAIR, MASSES)
    assert np.allclose(a2, 2 * a1)


def test_translation_by_whole_cells():
    pm = PeriodicPM(1.0, 16)
    shifted = PAIR + np.array([3 / 16, 2 / 16, 5 / 16])
    assert np.allclose(pm.force(shifted, MASSES), pm.force(PAIR, MASSES), atol=1e-12)


def test_pair_potential_symmetric_and_negative():
    pm = PeriodicPM(1.0, 16)
    pot = pm.potential(PAIR, MASSES)
    assert pot[0] == pytest.approx(pot[1])
    assert pot[0] < 0


def test_cross_types_switched_off():
    greens = [[newtonian_greens, _zero_greens], [_zero_greens, newtonian_greens]]
    pm = PeriodicPM(1.0, 16, greens=greens, mass_table=[1.0, 1.0])
    pos = np.array([[0.25, 0.5, 0.5], [0.75, 0.5, 0.5]])
    acc = pm.force(pos, MASSES, [1, 1])
    assert np.allclose(acc, 0.0, atol=1e-12)


def test_two_types_with_same_law_match_one_type():
    greens = [[newtonian_greens, newtonian_greens], [newtonian_greens, newtonian_greens]]
    two = PeriodicPM(1.0, 16, greens=greens)
    one = PeriodicPM(1.0, 16)
    assert np.allclose(two.force(PAIR, MASSES, [1, 1]), one.force(PAIR, MASSES))
    assert np.allclose(two.potential(PAIR, MASSES, [1, 1]), one.potential(PAIR, MASSES))


def test_nan_zero_mode_is_dropped():
    pm_nan = PeriodicPM(1.0, 16, greens=[[_nan_at_origin]])
    pm_ref = PeriodicPM(1.0, 16)
    pot = pm_nan.potential(PAIR, MASSES)
    assert np.all(np.isfinite(pot))
    assert np.allclose(pot, pm_ref.potential(PAIR, MASSES))


def test_grav_counts_must_match():
    pm = PeriodicPM(1.0, 16)
    with pytest.raises(ValueError):
        pm.force(PAIR, MASSES, [3])


def test_grav_counts_required_for_several_types():
    greens = [[newtonian_greens] * 2] * 2
    pm = PeriodicPM(1.0, 16, greens=greens)
    with pytest.raises(ValueError):
        pm.potential(PAIR, MASSES)


def test_bad_positions_shape():
    pm = PeriodicPM(1.0, 16)
    with pytest.raises(ValueError):
        pm.force([[0.1, 0.2]], [1.0])


def test_non_square_greens_rejected():
    with pytest.raises(ValueError):
        PeriodicPM(1.0, 16, greens=[[newtonian_greens, newtonian_greens]])


def test_bad_box_rejected():
    with pytest.raises(ValueError):
        PeriodicPM(0.0, 16)