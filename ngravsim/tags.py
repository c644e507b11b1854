"""Message tags used to keep the parallel exchanges in step."""

from __future__ import annotations

from enum import IntEnum

__all__ = ["Tag", "interaction_tag"]

_TYPE_BITS = 3
_TYPE_LIMIT = 1 << _TYPE_BITS


class Tag(IntEnum):
    """Tags labelling the kinds of message exchanged between tasks."""

    N = 10
    HEADER = 11
    PDATA = 12
    SPHDATA = 13
    KEY = 14
    DMOM = 15
    NODELEN = 16
    HMAX = 17
    GRAV_A = 18
    GRAV_B = 19
    DIRECT_A = 20
    DIRECT_B = 21
    HYDRO_A = 22
    HYDRO_B = 23
    NFORTHISTASK = 24
    PERIODIC_A = 25
    PERIODIC_B = 26
    PERIODIC_C = 27
    PERIODIC_D = 28
    NONPERIOD_A = 29
    NONPERIOD_B = 30
    NONPERIOD_C = 31
    NONPERIOD_D = 32
    POTENTIAL_A = 33
    POTENTIAL_B = 34
    DENS_A = 35
    DENS_B = 36
    LOCALN = 37


def interaction_tag(base: int, na: int, nb: int) -> int:
    """Combine a base tag with source type ``na`` (bits 6-8) and receiver type ``nb`` (bits 9-11)."""
    for name, value in (("na", na), ("nb", nb)):
        if not 0 <= value < _TYPE_LIMIT:
            raise ValueError(f"{name}={value} outside [0, {_TYPE_LIMIT})")
    return int(base) | (na << 6) | (nb << 9)