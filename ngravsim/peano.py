"""Peano-Hilbert keys and the particle ordering built on them."""

from __future__ import annotations

from collections.abc import Sequence

__all__ = ["peano_hilbert_key", "peano_hilbert_key_inverse", "peano_hilbert_order"]

_QUADRANTS = (
    # rotx=0, roty=0-3
    (((0, 7), (1, 6)), ((3, 4), (2, 5))),
    (((7, 4), (6, 5)), ((0, 3), (1, 2))),
    (((4, 3), (5, 2)), ((7, 0), (6, 1))),
    (((3, 0), (2, 1)), ((4, 7), (5, 6))),
    # rotx=1, roty=0-3
    (((1, 0), (6, 7)), ((2, 3), (5, 4))),
    (((0, 3), (7, 4)), ((1, 2), (6, 5))),
    (((3, 2), (4, 5)), ((0, 1), (7, 6))),
    (((2, 1), (5, 6)), ((3, 0), (4, 7))),
    # rotx=2, roty=0-3
    (((6, 1), (7, 0)), ((5, 2), (4, 3))),
    (((1, 2), (0, 3)), ((6, 5), (7, 4))),
    (((2, 5), (3, 4)), ((1, 6), (0, 7))),
    (((5, 6), (4, 7)), ((2, 1), (3, 0))),
    # rotx=3, roty=0-3
    (((7, 6), (0, 1)), ((4, 5), (3, 2))),
    (((6, 5), (1, 2)), ((7, 4), (0, 3))),
    (((5, 4), (2, 3)), ((6, 7), (1, 0))),
    (((4, 7), (3, 0)), ((5, 6), (2, 1))),
    # rotx=4, roty=0-3
    (((6, 7), (5, 4)), ((1, 0), (2, 3))),
    (((7, 0), (4, 3)), ((6, 1), (5, 2))),
    (((0, 1), (3, 2)), ((7, 6), (4, 5))),
    (((1, 6), (2, 5)), ((0, 7), (3, 4))),
    # rotx=5, roty=0-3
    (((2, 3), (1, 0)), ((5, 4), (6, 7))),
    (((3, 4), (0, 7)), ((2, 5), (1, 6))),
    (((4, 5), (7, 6)), ((3, 2), (0, 1))),
    (((5, 2), (6, 1)), ((4, 3), (7, 0))),
)

_ROTXMAP = (4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15, 0, 1, 2, 3, 17, 18, 19, 16, 23, 20, 21, 22)
_ROTYMAP = (1, 2, 3, 0, 16, 17, 18, 19, 11, 8, 9, 10, 22, 23, 20, 21, 14, 15, 12, 13, 4, 5, 6, 7)
_ROTX = (3, 0, 0, 2, 2, 0, 0, 1)
_ROTY = (0, 1, 1, 2, 2, 3, 3, 0)
_SENSE = (-1, -1, -1, +1, +1, -1, -1, -1)


def _build_inverse() -> tuple[tuple[tuple[int, int, int], ...], ...]:
    table = []
    for rotation in _QUADRANTS:
        cells: list[tuple[int, int, int]] = [(0, 0, 0)] * 8
        for bitx in (0, 1):
            for bity in (0, 1):
                for bitz in (0, 1):
                    cells[rotation[bitx][bity][bitz]] = (bitx, bity, bitz)
        table.append(tuple(cells))
    return tuple(table)


_QUADRANTS_INVERSE = _build_inverse()


def _next_rotation(rotation: int, quad: int) -> int:
    for _ in range(_ROTX[quad]):
        rotation = _ROTXMAP[rotation]
    for _ in range(_ROTY[quad]):
        rotation = _ROTYMAP[rotation]
    return rotation


def _check_bits(bits: int) -> None:
    if bits < 1:
        raise ValueError(f"bits must be at least 1, got {bits}")


def peano_hilbert_key(x: int, y: int, z: int, bits: int) -> int:
    """Return the Peano-Hilbert key of the cell (x, y, z), each in [0, 2**bits)."""
    _check_bits(bits)
    limit = 1 << bits
    for name, value in (("x", x), ("y", y), ("z", z)):
        if not 0 <= value < limit:
            raise ValueError(f"{name}={value} outside [0, {limit})")

    key = 0
    rotation = 0
    sense = 1
    for shift in range(bits - 1, -1, -1):
        quad = _QUADRANTS[rotation][(x >> shift) & 1][(y >> shift) & 1][(z >> shift) & 1]
        key = (key << 3) + (quad if sense == 1 else 7 - quad)
        sense *= _SENSE[quad]
        rotation = _next_rotation(rotation, quad)
    return key


def peano_hilbert_key_inverse(key: int, bits: int) -> tuple[int, int, int]:
    """Return the cell (x, y, z) whose Peano-Hilbert key is ``key``."""
    _check_bits(bits)
    if not 0 <= key < (1 << (3 * bits)):
        raise ValueError(f"key {key} does not fit in {bits} bits per axis")

    x = y = z = 0
    rotation = 0
    sense = 1
    for shift in range(3 * (bits - 1), -1, -3):
        keypart = (key >> shift) & 7
        quad = keypart if sense == 1 else 7 - keypart
        bitx, bity, bitz = _QUADRANTS_INVERSE[rotation][quad]
        x = (x << 1) + bitx
        y = (y << 1) + bity
        z = (z << 1) + bitz
        sense *= _SENSE[quad]
        rotation = _next_rotation(rotation, quad)
    return x, y, z


def peano_hilbert_order(
    keys: Sequence[int],
    n_gas: int,
    grav_types: Sequence[int] | None = None,
) -> list[int]:
    """Return the permutation that puts particles into Peano-Hilbert order.

    The result lists old indices in their new order. Gas particles (the first
    ``n_gas``) stay in front and are sorted by key among themselves. The other
    particles are sorted by key, or, when ``grav_types`` is given, grouped by
    gravitational type first and sorted by key within each group.
    """
    n = len(keys)
    if not 0 <= n_gas <= n:
        raise ValueError(f"n_gas={n_gas} outside [0, {n}]")
    if grav_types is not None and len(grav_types) != n:
        raise ValueError("grav_types must have one entry per particle")

    gas = sorted(range(n_gas), key=lambda i: keys[i])
    if grav_types is None:
        rest = sorted(range(n_gas, n), key=lambda i: keys[i])
    else:
        rest = sorted(range(n_gas, n), key=lambda i: (grav_types[i], keys[i]))
    return gas + rest