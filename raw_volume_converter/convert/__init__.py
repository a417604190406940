"""Conversion package - decide how a data set is read, then materialize it.

Design principle:
  - Parameter acquisition (dialogs, scripts) stays outside; this package only
    interprets a fully populated ConversionRequest.
  - Decisions (layout, byte order, size) are pure functions in ``layout``.
"""

from .layout import (
    compute_expected_size,
    probe_file_size,
    resolve_component_layout,
    resolve_endianness_conversion,
    validate_expected_size,
)
from .orchestrator import ConversionState, ConverterConfig, RawConverter, converted_volume
from .collect import ParameterSource, StaticParameterSource, convert_to_raw

__all__ = [
    "compute_expected_size",
    "probe_file_size",
    "resolve_component_layout",
    "resolve_endianness_conversion",
    "validate_expected_size",
    "ConversionState",
    "ConverterConfig",
    "RawConverter",
    "converted_volume",
    "ParameterSource",
    "StaticParameterSource",
    "convert_to_raw",
]
