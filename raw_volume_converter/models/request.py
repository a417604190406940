from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, Mapping, Tuple

from raw_volume_converter.errors import InvalidParameterError


class QuantizationCode(IntEnum):
    """Numeric representation of one sample component, as offered by the RAW dialog."""

    BITS_8 = 0
    BITS_16 = 1
    BITS_32 = 2
    FLOAT_32 = 3
    FLOAT_64 = 4


class EncodingCode(IntEnum):
    """Container/transport format of the source file."""

    RAW = 0
    TEXT = 1
    GZIP = 2
    BZIP2 = 3


_REQUIRED_KEYS = ("dimensions", "quantization_code", "encoding_code")


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be an integer, got bool")
    try:
        iv = int(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}") from None
    if iv != value and not (isinstance(value, str) and value.strip().lstrip("+-").isdigit()):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    return iv


def _as_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be True or False, got {value!r}")
    return value


def _as_triple_int(name: str, value: Any) -> Tuple[int, int, int]:
    try:
        items = tuple(value)
    except TypeError:
        raise InvalidParameterError(f"{name} must be a 3-tuple, got {value!r}") from None
    if len(items) != 3:
        raise InvalidParameterError(f"{name} must have 3 entries, got {len(items)}")
    out = tuple(_as_int(f"{name}[{k}]", v) for k, v in enumerate(items))
    return out  # type: ignore[return-value]


def _as_triple_float(name: str, value: Any) -> Tuple[float, float, float]:
    try:
        items = tuple(value)
    except TypeError:
        raise InvalidParameterError(f"{name} must be a 3-tuple, got {value!r}") from None
    if len(items) != 3:
        raise InvalidParameterError(f"{name} must have 3 entries, got {len(items)}")
    try:
        out = tuple(float(v) for v in items)
    except (TypeError, ValueError):
        raise InvalidParameterError(f"{name} must be numeric, got {value!r}") from None
    return out  # type: ignore[return-value]


@dataclass(frozen=True)
class ConversionRequest:
    """
    Fully populated parameter set for one conversion attempt.

    A request is built once (by a dialog, a batch script or a heuristic) and is
    read-only afterwards. It only carries values; all interpretation happens in
    :class:`~raw_volume_converter.convert.orchestrator.RawConverter`.

    dimensions:
      voxel counts (x, y, z), all > 0.
    aspect:
      physical spacing per axis, all finite and > 0.
    header_skip:
      bytes preceding the sample data in the source file.
    quantization_code / encoding_code:
      see :class:`QuantizationCode` and :class:`EncodingCode`.
    big_endian:
      byte order the source claims (meaningful for binary encodings only).
    signed:
      user-declared signedness; float quantizations are signed regardless.
    """
    source_path: Path
    temp_dir: Path
    dimensions: Tuple[int, int, int]
    quantization_code: int
    encoding_code: int
    aspect: Tuple[float, float, float] = (1.0, 1.0, 1.0)
    header_skip: int = 0
    big_endian: bool = False
    signed: bool = False
    title: str = "Raw data"

    def __post_init__(self) -> None:
        # Normalise without relaxing immutability for callers.
        object.__setattr__(self, "source_path", Path(self.source_path).expanduser())
        object.__setattr__(self, "temp_dir", Path(self.temp_dir).expanduser())
        object.__setattr__(self, "dimensions", _as_triple_int("dimensions", self.dimensions))
        object.__setattr__(self, "aspect", _as_triple_float("aspect", self.aspect))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "ConversionRequest":
        """Build a request from the plain dict a parameter-collection surface hands over."""
        missing = [k for k in ("source_path", "temp_dir") + _REQUIRED_KEYS if mapping.get(k) is None]
        if missing:
            raise InvalidParameterError(f"Missing required conversion parameters: {', '.join(missing)}")
        req = cls(
            source_path=mapping["source_path"],
            temp_dir=mapping["temp_dir"],
            dimensions=mapping["dimensions"],
            quantization_code=_as_int("quantization_code", mapping["quantization_code"]),
            encoding_code=_as_int("encoding_code", mapping["encoding_code"]),
            aspect=mapping.get("aspect", (1.0, 1.0, 1.0)),
            header_skip=_as_int("header_skip", mapping.get("header_skip", 0)),
            big_endian=_as_bool("big_endian", mapping.get("big_endian", False)),
            signed=_as_bool("signed", mapping.get("signed", False)),
            title=str(mapping.get("title", "Raw data")),
        )
        return req

    @property
    def n_voxels(self) -> int:
        x, y, z = self.dimensions
        return int(x) * int(y) * int(z)

    def validate(self) -> None:
        """Range-check every field; raises :class:`InvalidParameterError`."""
        if any(d <= 0 for d in self.dimensions):
            raise InvalidParameterError(f"dimensions must all be > 0, got {self.dimensions}")
        if any(not math.isfinite(a) or a <= 0 for a in self.aspect):
            raise InvalidParameterError(f"aspect must be finite and > 0, got {self.aspect}")
        if _as_int("header_skip", self.header_skip) < 0:
            raise InvalidParameterError(f"header_skip must be >= 0, got {self.header_skip}")
        try:
            QuantizationCode(_as_int("quantization_code", self.quantization_code))
        except ValueError:
            raise InvalidParameterError(
                f"quantization_code must be in 0..4, got {self.quantization_code!r}"
            ) from None
        try:
            EncodingCode(_as_int("encoding_code", self.encoding_code))
        except ValueError:
            raise InvalidParameterError(
                f"encoding_code must be in 0..3, got {self.encoding_code!r}"
            ) from None
