"""
Pure decision helpers used by the converter before any data is touched.

- probe_file_size: byte length of the source file.
- resolve_component_layout: quantization code -> (bits, float, signed).
- resolve_endianness_conversion: whether samples need byte swapping.
- compute_expected_size / validate_expected_size: geometry vs available bytes.

Host byte order is passed in explicitly (None means "ask the interpreter"),
so both orders can be exercised on any machine.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from raw_volume_converter.errors import ConversionIOError, InvalidParameterError, SizeMismatchError
from raw_volume_converter.models.request import EncodingCode, QuantizationCode
from raw_volume_converter.models.result import ComponentLayout

LOGGER = logging.getLogger(__name__)

# code -> (component_size_bits, is_float)
_QUANTIZATION_TABLE: Dict[int, Tuple[int, bool]] = {
    QuantizationCode.BITS_8: (8, False),
    QuantizationCode.BITS_16: (16, False),
    QuantizationCode.BITS_32: (32, False),
    QuantizationCode.FLOAT_32: (32, True),
    QuantizationCode.FLOAT_64: (64, True),
}


def host_is_big_endian() -> bool:
    return sys.byteorder == "big"


def probe_file_size(path: str | Path) -> int:
    """Open ``path`` read-only, measure its length and close it again."""
    fp = Path(path)
    try:
        with open(fp, "rb") as fh:
            size = fh.seek(0, os.SEEK_END)
    except OSError as e:
        raise ConversionIOError(f"Cannot open '{fp}' for reading: {e.strerror or e}") from e
    return int(size)


def resolve_component_layout(quantization_code: int, signed_override: bool) -> ComponentLayout:
    """
    Map a quantization code to its component layout.

    Float quantizations (3, 4) are always signed; the user's signedness flag only
    matters for the integer codes.
    """
    try:
        bits, is_float = _QUANTIZATION_TABLE[int(quantization_code)]
    except (KeyError, TypeError, ValueError):
        raise InvalidParameterError(
            f"quantization_code must be in 0..4, got {quantization_code!r}"
        ) from None
    is_signed = bool(signed_override) or int(quantization_code) >= QuantizationCode.FLOAT_32
    return ComponentLayout(component_size=bits, is_float=is_float, is_signed=is_signed)


def resolve_endianness_conversion(
    encoding_code: int,
    declared_big_endian: bool,
    host_big_endian: Optional[bool] = None,
) -> bool:
    """Text sources are parsed straight into native order, so they never need swapping."""
    host = host_is_big_endian() if host_big_endian is None else bool(host_big_endian)
    return int(encoding_code) != EncodingCode.TEXT and bool(declared_big_endian) != host


def compute_expected_size(
    dimensions: Sequence[int],
    component_size: int,
    component_count: int = 1,
    header_skip: int = 0,
) -> int:
    """header_skip + component_count * (component_size / 8) * x * y * z, in bytes."""
    x, y, z = (int(d) for d in dimensions)
    return int(header_skip) + int(component_count) * (int(component_size) // 8) * x * y * z


def validate_expected_size(expected: int, actual: int, *, source: str | Path = "") -> None:
    """Equal sizes are fine; only a file that is too short is rejected."""
    if expected > actual:
        where = f" in '{source}'" if source else ""
        raise SizeMismatchError(
            f"Declared geometry needs {expected} bytes but only {actual} bytes are available{where}.",
            expected=expected,
            actual=actual,
        )
    if expected < actual:
        LOGGER.debug("%d trailing bytes beyond the declared volume will be ignored", actual - expected)
