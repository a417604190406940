"""Raw Volume Converter -- turn arbitrary scientific data files into raw volumetric grids.

Used when a data set is not recognized by any dedicated reader: given the layout
parameters (dimensions, quantization, encoding, header size, byte order), the
converter produces a normalized description of the volume and a file holding its
raw samples, ready to be memory-mapped.

This package provides tools for:
- Validating declared volume geometry against the file size
- Deriving sample component layout and byte-order conversion
- Extracting raw samples from binary, delimited text, gzip and bzip2 sources
- Memory-mapping the result and releasing transient intermediate files

Key principles:
- Fail fast: any inconsistency aborts the conversion, no partial results
- The source file is never modified or deleted
- Intermediate files are header-free and in native byte order

Main subpackages:
- convert: Decision helpers, RawConverter orchestrator, parameter-collection boundary
- ingest: Extractors and raw volume access
- models: ConversionRequest, ConversionResult
"""

from raw_volume_converter.convert import (
    ConverterConfig,
    RawConverter,
    StaticParameterSource,
    convert_to_raw,
    converted_volume,
)
from raw_volume_converter.errors import (
    ConversionIOError,
    DecompressionError,
    InvalidParameterError,
    ParseError,
    RawConversionError,
    SizeMismatchError,
    UserDeclinedError,
)
from raw_volume_converter.ingest import open_raw_volume, release_intermediate
from raw_volume_converter.models import ConversionRequest, ConversionResult

__all__ = [
    "ConverterConfig",
    "RawConverter",
    "StaticParameterSource",
    "convert_to_raw",
    "converted_volume",
    "ConversionIOError",
    "DecompressionError",
    "InvalidParameterError",
    "ParseError",
    "RawConversionError",
    "SizeMismatchError",
    "UserDeclinedError",
    "open_raw_volume",
    "release_intermediate",
    "ConversionRequest",
    "ConversionResult",
]
