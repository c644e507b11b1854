"""Reading initial conditions from snapshot files in the binary formats 1 and 2."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field, replace
from enum import IntEnum
from pathlib import Path
from typing import BinaryIO

import numpy as np

from .predict import GAMMA

__all__ = [
    "BOLTZMANN",
    "PROTONMASS",
    "HYDROGEN_MASSFRAC",
    "SnapshotFormatError",
    "IOBlock",
    "SnapshotHeader",
    "Snapshot",
    "find_files",
    "distribute_file",
    "read_file",
    "read_ic",
    "initial_internal_energy",
]

BOLTZMANN = 1.3806e-16
PROTONMASS = 1.6726e-24
HYDROGEN_MASSFRAC = 0.76
GAMMA_MINUS1 = GAMMA - 1.0

NTYPES = 6
HEADER_SIZE = 256

_HEADER_STRUCT = struct.Struct("<6i6d2d2i6I2i4d2i6Ii60x")
_MARKER = struct.Struct("<i")


class SnapshotFormatError(ValueError):
    """Raised when a snapshot file does not have the expected structure."""


class IOBlock(IntEnum):
    """Data blocks of a snapshot file, in the order they appear."""

    POS = 0
    VEL = 1
    ID = 2
    MASS = 3
    U = 4
    RHO = 5
    HSML = 6
    POT = 7
    ACCEL = 8
    DTENTR = 9
    TSTP = 10

    @property
    def label(self) -> str:
        """Four-character block label used in format 2."""
        return _LABELS[self]

    @property
    def values_per_element(self) -> int:
        return 3 if self in (IOBlock.POS, IOBlock.VEL, IOBlock.ACCEL) else 1

    @property
    def dtype(self) -> str:
        return "<u4" if self is IOBlock.ID else "<f4"

    @property
    def bytes_per_element(self) -> int:
        return 4 * self.values_per_element


_LABELS = {
    IOBlock.POS: "POS ",
    IOBlock.VEL: "VEL ",
    IOBlock.ID: "ID  ",
    IOBlock.MASS: "MASS",
    IOBlock.U: "U   ",
    IOBlock.RHO: "RHO ",
    IOBlock.HSML: "HSML",
    IOBlock.POT: "POT ",
    IOBlock.ACCEL: "ACCE",
    IOBlock.DTENTR: "ENDT",
    IOBlock.TSTP: "TSTP",
}

_PRESENT_BLOCKS = (
    IOBlock.POS,
    IOBlock.VEL,
    IOBlock.ID,
    IOBlock.MASS,
    IOBlock.U,
    IOBlock.RHO,
    IOBlock.HSML,
)

_GAS_BLOCKS = (IOBlock.U, IOBlock.RHO, IOBlock.HSML)


@dataclass(frozen=True)
class SnapshotHeader:
    """The 256-byte header at the start of every snapshot file."""

    npart: tuple[int, ...] = (0,) * NTYPES
    mass: tuple[float, ...] = (0.0,) * NTYPES
    time: float = 0.0
    redshift: float = 0.0
    flag_sfr: int = 0
    flag_feedback: int = 0
    npart_total: tuple[int, ...] = (0,) * NTYPES
    flag_cooling: int = 0
    num_files: int = 0
    box_size: float = 0.0
    omega0: float = 0.0
    omega_lambda: float = 0.0
    hubble_param: float = 0.0
    flag_stellarage: int = 0
    flag_metals: int = 0
    npart_total_high_word: tuple[int, ...] = (0,) * NTYPES
    flag_entropy_instead_u: int = 0

    def __post_init__(self) -> None:
        for name in ("npart", "mass", "npart_total", "npart_total_high_word"):
            value = tuple(getattr(self, name))
            if len(value) != NTYPES:
                raise ValueError(f"{name} must hold {NTYPES} values")
            object.__setattr__(self, name, value)

    @classmethod
    def from_bytes(cls, data: bytes) -> SnapshotHeader:
        if len(data) != HEADER_SIZE:
            raise SnapshotFormatError(f"header must be {HEADER_SIZE} bytes, got {len(data)}")
        v = _HEADER_STRUCT.unpack(data)
        return cls(
            npart=v[0:6],
            mass=v[6:12],
            time=v[12],
            redshift=v[13],
            flag_sfr=v[14],
            flag_feedback=v[15],
            npart_total=v[16:22],
            flag_cooling=v[22],
            num_files=v[23],
            box_size=v[24],
            omega0=v[25],
            omega_lambda=v[26],
            hubble_param=v[27],
            flag_stellarage=v[28],
            flag_metals=v[29],
            npart_total_high_word=v[30:36],
            flag_entropy_instead_u=v[36],
        )

    def to_bytes(self) -> bytes:
        return _HEADER_STRUCT.pack(
            *self.npart,
            *self.mass,
            self.time,
            self.redshift,
            self.flag_sfr,
            self.flag_feedback,
            *self.npart_total,
            self.flag_cooling,
            self.num_files,
            self.box_size,
            self.omega0,
            self.omega_lambda,
            self.hubble_param,
            self.flag_stellarage,
            self.flag_metals,
            *self.npart_total_high_word,
            self.flag_entropy_instead_u,
        )

    @property
    def total_particles(self) -> int:
        return sum(self.npart_total) + sum(hw << 32 for hw in self.npart_total_high_word)

    @property
    def total_gas(self) -> int:
        return self.npart_total[0] + (self.npart_total_high_word[0] << 32)


@dataclass
class Snapshot:
    """Particle data read from one or more snapshot files; gas particles lead."""

    header: SnapshotHeader
    pos: np.ndarray
    vel: np.ndarray
    ids: np.ndarray
    mass: np.ndarray
    types: np.ndarray
    entropy: np.ndarray
    density: np.ndarray = field(default_factory=lambda: np.zeros(0))
    hsml: np.ndarray = field(default_factory=lambda: np.zeros(0))

    @property
    def n_gas(self) -> int:
        return len(self.entropy)

    def __len__(self) -> int:
        return len(self.pos)


def _read_exact(f: BinaryIO, n: int) -> bytes:
    data = f.read(n)
    if len(data) != n:
        raise SnapshotFormatError("unexpected end of file")
    return data


def _read_marker(f: BinaryIO) -> int:
    return _MARKER.unpack(_read_exact(f, 4))[0]


def _read_label(f: BinaryIO) -> str:
    _read_marker(f)
    label = _read_exact(f, 4).decode("ascii", errors="replace")
    _read_marker(f)  # size of the following block
    _read_marker(f)
    return label


def _check_format(ic_format: int) -> None:
    if ic_format == 3:
        raise SnapshotFormatError("HDF5 snapshots (format 3) are not supported")
    if ic_format not in (1, 2):
        raise SnapshotFormatError(f"unknown snapshot format {ic_format}")


def _peek_header(path: Path, ic_format: int) -> SnapshotHeader | None:
    with path.open("rb") as f:
        if ic_format == 2:
            f.read(16)
        f.read(4)
        raw = f.read(HEADER_SIZE)
    if len(raw) != HEADER_SIZE:
        return None
    return SnapshotHeader.from_bytes(raw)


def find_files(fname, ic_format: int = 1) -> int:
    """Return the number of files the snapshot ``fname`` is spread over."""
    _check_format(ic_format)
    multi = Path(f"{fname}.0")
    single = Path(f"{fname}")

    if multi.is_file():
        header = _peek_header(multi, ic_format)
        if header is not None and header.num_files > 0:
            return header.num_files

    if single.is_file():
        return 1

    raise FileNotFoundError(
        f"can't find initial conditions file, neither as '{multi}' nor as '{single}'"
    )


def distribute_file(
    nfiles: int, firstfile: int, firsttask: int, lasttask: int, this_task: int
) -> tuple[int, int, int] | None:
    """Assign files to tasks as evenly as possible.

    Returns ``(filenr, master_task, last_task)`` for ``this_task``, or None if
    the task lies outside ``[firsttask, lasttask]``.
    """
    if nfiles > 1:
        ntask = lasttask - firsttask + 1
        filesleft = int(((ntask // 2) / ntask) * nfiles)
        filesleft = max(filesleft, 1)
        filesleft = min(filesleft, nfiles - 1)
        filesright = nfiles - filesleft
        tasksleft = ntask // 2

        left = distribute_file(
            filesleft, firstfile, firsttask, firsttask + tasksleft - 1, this_task
        )
        right = distribute_file(
            filesright, firstfile + filesleft, firsttask + tasksleft, lasttask, this_task
        )
        return right if right is not None else left

    if firsttask <= this_task <= lasttask:
        return firstfile, firsttask, lasttask
    return None


def _block_types(block: IOBlock, header: SnapshotHeader) -> list[bool]:
    if block in _GAS_BLOCKS:
        return [t == 0 and header.npart[0] > 0 for t in range(NTYPES)]
    if block is IOBlock.MASS:
        return [header.npart[t] > 0 and header.mass[t] == 0 for t in range(NTYPES)]
    return [header.npart[t] > 0 for t in range(NTYPES)]


def read_file(fname, ic_format: int = 1, restart_flag: int = 0) -> Snapshot:
    """Read a single snapshot file.

    With ``restart_flag`` 0 only the blocks up to the internal energy are read.
    """
    _check_format(ic_format)
    with open(fname, "rb") as f:
        if ic_format == 2:
            _read_label(f)
        size1 = _read_marker(f)
        raw = _read_exact(f, HEADER_SIZE)
        size2 = _read_marker(f)
        if size1 != HEADER_SIZE or size2 != HEADER_SIZE:
            raise SnapshotFormatError("incorrect header format")
        header = SnapshotHeader.from_bytes(raw)

        counts = header.npart
        if any(c < 0 for c in counts):
            raise SnapshotFormatError("negative particle count in header")
        n = sum(counts)
        n_gas = counts[0]
        starts = np.concatenate(([0], np.cumsum(counts)))

        pos = np.zeros((n, 3))
        vel = np.zeros((n, 3))
        ids = np.zeros(n, dtype=np.int64)
        mass = np.zeros(n)
        types = np.repeat(np.arange(NTYPES), counts)
        entropy = np.zeros(n_gas)
        density = np.zeros(n_gas)
        hsml = np.zeros(n_gas)

        targets = {
            IOBlock.POS: pos,
            IOBlock.VEL: vel,
            IOBlock.ID: ids,
            IOBlock.MASS: mass,
            IOBlock.U: entropy,
            IOBlock.RHO: density,
            IOBlock.HSML: hsml,
        }

        for block in _PRESENT_BLOCKS:
            if restart_flag == 0 and block > IOBlock.U:
                continue
            typelist = _block_types(block, header)
            npart = sum(c for c, present in zip(counts, typelist) if present)
            if npart == 0:
                continue

            if ic_format == 2:
                label = _read_label(f)
                if label != block.label:
                    raise SnapshotFormatError(
                        f"incorrect block-structure: expected '{block.label}' but found '{label}'"
                    )

            size1 = _read_marker(f)
            data = _read_exact(f, npart * block.bytes_per_element)
            size2 = _read_marker(f)
            if size1 != size2:
                raise SnapshotFormatError(
                    f"incorrect block-sizes in block {block.name}: {size1} != {size2}"
                )

            values = np.frombuffer(data, dtype=block.dtype)
            if block.values_per_element > 1:
                values = values.reshape(-1, block.values_per_element)

            target = targets[block]
            read = 0
            for t, present in enumerate(typelist):
                if not present:
                    continue
                cnt = counts[t]
                target[starts[t] : starts[t] + cnt] = values[read : read + cnt]
                read += cnt

    for t in range(NTYPES):
        if header.mass[t] != 0:
            mass[starts[t] : starts[t + 1]] = header.mass[t]

    return Snapshot(header, pos, vel, ids, mass, types, entropy, density, hsml)


def _merge(existing: Snapshot | None, new: Snapshot) -> Snapshot:
    """Insert ``new`` after the gas of ``existing``, keeping all gas in front."""
    if existing is None:
        return new
    g = existing.n_gas

    def splice(old: np.ndarray, fresh: np.ndarray) -> np.ndarray:
        return np.concatenate((old[:g], fresh, old[g:]))

    return Snapshot(
        header=existing.header,
        pos=splice(existing.pos, new.pos),
        vel=splice(existing.vel, new.vel),
        ids=splice(existing.ids, new.ids),
        mass=splice(existing.mass, new.mass),
        types=splice(existing.types, new.types),
        entropy=np.concatenate((existing.entropy, new.entropy)),
        density=np.concatenate((existing.density, new.density)),
        hsml=np.concatenate((existing.hsml, new.hsml)),
    )


def initial_internal_energy(
    init_gas_temp: float,
    unit_mass_in_g: float,
    unit_energy_in_cgs: float,
    isothermal: bool = False,
) -> float:
    """Return the specific internal energy, in code units, of gas at ``init_gas_temp``.

    Gas above 1e4 K is taken to be fully ionised, otherwise neutral.
    """
    u_init = (BOLTZMANN / PROTONMASS) * init_gas_temp
    u_init *= unit_mass_in_g / unit_energy_in_cgs
    if isothermal:
        return u_init
    u_init /= GAMMA_MINUS1
    if init_gas_temp > 1.0e4:
        molecular_weight = 4 / (8 - 5 * (1 - HYDROGEN_MASSFRAC))
    else:
        molecular_weight = 4 / (1 + 3 * HYDROGEN_MASSFRAC)
    return u_init / molecular_weight


def read_ic(
    fname,
    ic_format: int = 1,
    restart_flag: int = 0,
    init_gas_temp: float = 0.0,
    unit_mass_in_g: float = 1.989e43,
    unit_energy_in_cgs: float = 1.989e53,
    min_egy_spec: float = 0.0,
) -> Snapshot:
    """Read initial conditions spread over one or several files."""
    num_files = find_files(fname, ic_format)
    if num_files > 1:
        paths = [f"{fname}.{nr}" for nr in range(num_files - 1, -1, -1)]
    else:
        paths = [f"{fname}"]

    snapshot: Snapshot | None = None
    for path in paths:
        snapshot = _merge(snapshot, read_file(path, ic_format, restart_flag))
    assert snapshot is not None

    header = snapshot.header
    if header.num_files <= 1:
        header = replace(header, npart_total=header.npart)
    snapshot.header = header

    for t in range(NTYPES):
        if header.mass[t] != 0:
            snapshot.mass[snapshot.types == t] = header.mass[t]

    if restart_flag == 0 and init_gas_temp > 0:
        u_init = initial_internal_energy(init_gas_temp, unit_mass_in_g, unit_energy_in_cgs)
        snapshot.entropy[snapshot.entropy == 0] = u_init

    np.maximum(snapshot.entropy, min_egy_spec, out=snapshot.entropy)
    return snapshot