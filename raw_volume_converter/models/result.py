from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Tuple

import numpy as np


class ElementSemantic(str, Enum):
    """Semantic type tag of the volume elements; opaque to the converter."""

    UNDEFINED = "undefined"


@dataclass(frozen=True)
class ComponentLayout:
    """Numeric layout of one sample component derived from a quantization code."""
    component_size: int  # bits
    is_float: bool
    is_signed: bool

    @property
    def bytes_per_component(self) -> int:
        return self.component_size // 8

    def native_dtype(self) -> np.dtype:
        """numpy dtype of one component in native byte order."""
        if self.is_float:
            kind = "f"
        else:
            kind = "i" if self.is_signed else "u"
        return np.dtype(f"={kind}{self.bytes_per_component}")


@dataclass(frozen=True)
class ConversionResult:
    """
    Normalized description of a converted data set.

    intermediate_path holds the raw samples. When intermediate_is_transient is
    False it is the source file itself, and header_skip / convert_endianness
    describe that file. When True it is a freshly written native-order stream
    with no header, which the caller must delete once consumed.

    Notes
    - component_count is always 1 for this converter.
    - warnings collects non-fatal diagnostics (e.g. trailing bytes ignored).
    """
    header_skip: int
    component_size: int
    component_count: int
    convert_endianness: bool
    is_signed: bool
    is_float: bool
    volume_size: Tuple[int, int, int]
    volume_aspect: Tuple[float, float, float]
    intermediate_path: Path
    intermediate_is_transient: bool
    title: str = "Raw data"
    semantic_type: ElementSemantic = ElementSemantic.UNDEFINED
    warnings: Tuple[str, ...] = ()

    @property
    def layout(self) -> ComponentLayout:
        return ComponentLayout(self.component_size, self.is_float, self.is_signed)

    @property
    def n_voxels(self) -> int:
        x, y, z = self.volume_size
        return int(x) * int(y) * int(z)

    @property
    def bytes_per_sample(self) -> int:
        return self.component_count * (self.component_size // 8)

    @property
    def payload_size(self) -> int:
        return self.bytes_per_sample * self.n_voxels

    @property
    def dtype(self) -> np.dtype:
        """Component dtype as stored in the intermediate file."""
        dt = self.layout.native_dtype()
        if self.convert_endianness:
            dt = dt.newbyteorder("S")
        return dt
