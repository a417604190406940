"""Downstream access to a converted data set: memory mapping and transient-file cleanup."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from raw_volume_converter.convert.layout import probe_file_size, validate_expected_size
from raw_volume_converter.models.result import ConversionResult

LOGGER = logging.getLogger(__name__)


def open_raw_volume(result: ConversionResult, mode: str = "r") -> np.memmap:
    """
    Memory-map the samples described by ``result``.

    The array is shaped (z, y, x), or (z, y, x, c) for multi-component data, so
    that x varies fastest as in the file. The dtype carries the file's byte order,
    so values read back correctly even when ``convert_endianness`` is set.
    """
    if mode not in ("r", "c"):
        raise ValueError(f"mode must be 'r' or 'c', got {mode!r}")
    path = Path(result.intermediate_path)
    need = int(result.header_skip) + result.payload_size
    validate_expected_size(need, probe_file_size(path), source=path)

    x, y, z = (int(v) for v in result.volume_size)
    shape = (z, y, x) if result.component_count == 1 else (z, y, x, int(result.component_count))
    return np.memmap(path, dtype=result.dtype, mode=mode, offset=int(result.header_skip), shape=shape)


def release_intermediate(result: ConversionResult) -> bool:
    """
    Delete the intermediate file if it is transient.

    Returns True when a file was removed. A non-transient result points at the
    caller's source file and is never touched.
    """
    if not result.intermediate_is_transient:
        return False
    path = Path(result.intermediate_path)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    LOGGER.debug("Removed transient intermediate file %s", path)
    return True
