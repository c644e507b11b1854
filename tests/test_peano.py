import itertools

import pytest

from ngravsim.peano import (
    peano_hilbert_key,
    peano_hilbert_key_inverse,
    peano_hilbert_order,
)


def test_origin_has_key_zero():
    assert peano_hilbert_key(0, 0, 0, 5) == 0


def test_single_bit_keys_follow_quadrant_table():
    assert peano_hilbert_key(1, 0, 0, 1) == 3
    assert peano_hilbert_key(0, 0, 1, 1) == 7


@pytest.mark.parametrize("bits", [1, 2, 3])
def test_keys_are_a_bijection(bits):
    side = 1 << bits
    keys = {
        peano_hilbert_key(x, y, z, bits)
        for x, y, z in itertools.product(range(side), repeat=3)
    }
    assert keys == set(range(side**3))


@pytest.mark.parametrize("bits", [1, 2, 3])
def test_inverse_round_trip(bits):
    side = 1 << bits
    for cell in itertools.product(range(side), repeat=3):
        key = peano_hilbert_key(*cell, bits)
        assert peano_hilbert_key_inverse(key, bits) == cell


def test_consecutive_keys_are_neighbouring_cells():
    bits = 3
    cells = [peano_hilbert_key_inverse(k, bits) for k in range(1 << (3 * bits))]
    for a, b in zip(cells, cells[1:]):
        assert sum(abs(p - q) for p, q in zip(a, b)) == 1


def test_invalid_arguments_raise():
    with pytest.raises(ValueError):
        peano_hilbert_key(0, 0, 0, 0)
    with pytest.raises(ValueError):
        peano_hilbert_key(4, 0, 0, 2)
    with pytest.raises(ValueError):
        peano_hilbert_key(-1, 0, 0, 2)
    with pytest.raises(ValueError):
        peano_hilbert_key_inverse(64, 2)


def test_order_sorts_gas_and_rest_separately():
    keys = [5, 1, 3, 9, 2, 7, 0]
    order = peano_hilbert_order(keys, 3)
    assert sorted(order) == list(range(len(keys)))
    assert order[:3] == [1, 2, 0]
    assert [keys[i] for i in order[3:]] == sorted(keys[3:])


def test_order_groups_by_grav_type():
    keys = [4, 2, 8, 1, 6, 3, 5]
    grav = [0, 0, 1, 0, 1, 0, 1]
    order = peano_hilbert_order(keys, 2, grav)
    assert order[:2] == [1, 0]
    rest = order[2:]
    assert sorted(rest) == [2, 3, 4, 5, 6]
    assert [(grav[i], keys[i]) for i in rest] == sorted((grav[i], keys[i]) for i in rest)


def test_order_rejects_bad_lengths():
    with pytest.raises(ValueError):
        peano_hilbert_order([1, 2], 3)
    with pytest.raises(ValueError):
        peano_hilbert_order([1, 2], 0, [0])