"""Writing and reading per-task restart files."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import numpy as np

__all__ = ["RestartError", "restart_path", "writer_groups", "write_restart", "read_restart"]


class RestartError(RuntimeError):
    """Raised when a restart file cannot be written, found or read."""


def restart_path(output_dir, restart_file: str, task: int) -> Path:
    """Return the restart file of ``task``: the output directory, file name and task number.

    ``output_dir`` is used as a prefix, so it should end with a separator.
    """
    if task < 0:
        raise ValueError("task must be non-negative")
    return Path(f"{os.fspath(output_dir)}{restart_file}.{task}")


def writer_groups(ntask: int, files_in_parallel: int) -> list[list[int]]:
    """Return, turn by turn, the tasks that access their restart files together.

    At most ``files_in_parallel`` files are open at once.
    """
    if files_in_parallel < 1:
        raise RestartError("the number of files written in parallel must be positive")
    if ntask < files_in_parallel:
        raise RestartError(
            "number of processors must be smaller or equal than the number of files "
            "written in parallel"
        )
    nprocgroup = -(-ntask // files_in_parallel)
    return [[t for t in range(ntask) if t % nprocgroup == turn] for turn in range(nprocgroup)]


def write_restart(state: Mapping[str, Any], output_dir, restart_file: str, task: int) -> Path:
    """Write ``state`` to the restart file of ``task`` and return its path.

    An existing restart file is kept with the suffix ``.bak``. Values are
    stored as numeric arrays; objects that are not numeric are rejected.
    """
    path = restart_path(output_dir, restart_file, task)
    arrays: dict[str, np.ndarray] = {}
    for name, value in state.items():
        if not isinstance(name, str):
            raise RestartError(f"state keys must be strings, got {name!r}")
        arr = np.asarray(value)
        if arr.dtype.hasobject:
            raise RestartError(f"state entry {name!r} is not numeric data")
        arrays[name] = arr

    try:
        if path.exists():
            os.replace(path, path.with_name(path.name + ".bak"))
        with path.open("wb") as f:
            np.savez(f, **arrays)
    except OSError as exc:
        raise RestartError(f"restart file '{path}' cannot be opened: {exc}") from exc
    return path


def read_restart(output_dir, restart_file: str, task: int) -> dict[str, Any]:
    """Read the restart file of ``task``; scalars come back as Python numbers."""
    path = restart_path(output_dir, restart_file, task)
    if not path.is_file():
        raise RestartError(f"restart file '{path}' not found")
    try:
        with np.load(path, allow_pickle=False) as data:
            return {
                name: data[name].item() if data[name].ndim == 0 else data[name]
                for name in data.files
            }
    except (OSError, ValueError) as exc:
        raise RestartError(f"restart file '{path}' cannot be read: {exc}") from exc