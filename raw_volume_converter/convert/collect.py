"""
Boundary between parameter collection and conversion.

A data set that no built-in reader recognizes can still be loaded if someone
(a dialog, a batch script, a heuristic) supplies its layout. That collaborator is
modelled as a :class:`ParameterSource`; :func:`convert_to_raw` asks it once and
hands the answer to :class:`~raw_volume_converter.convert.orchestrator.RawConverter`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol

from raw_volume_converter.convert.layout import probe_file_size
from raw_volume_converter.convert.orchestrator import RawConverter
from raw_volume_converter.errors import UserDeclinedError
from raw_volume_converter.models.request import ConversionRequest
from raw_volume_converter.models.result import ConversionResult

LOGGER = logging.getLogger(__name__)


class ParameterSource(Protocol):
    def request_parameters(self, source_path: Path, file_size: int) -> Optional[Mapping[str, Any]]:
        """
        Return the data set parameters, or None if the user cancelled.

        Expected keys: dimensions, quantization_code, encoding_code and optionally
        aspect, header_skip, big_endian, signed, title.
        """
        ...


class StaticParameterSource:
    """Non-interactive source that always answers with the same parameters."""

    def __init__(self, parameters: Optional[Mapping[str, Any]]):
        self.parameters = None if parameters is None else dict(parameters)

    def request_parameters(self, source_path: Path, file_size: int) -> Optional[Mapping[str, Any]]:
        return self.parameters


def convert_to_raw(
    source_path: str | Path,
    temp_dir: str | Path,
    parameter_source: ParameterSource,
    *,
    no_user_interaction: bool = False,
    converter: Optional[RawConverter] = None,
) -> ConversionResult:
    """
    Collect parameters for ``source_path`` and convert it.

    With ``no_user_interaction`` the source is never consulted and the call is
    declined outright, since nothing about an unrecognized file can be assumed.
    """
    src = Path(source_path).expanduser()
    if no_user_interaction:
        raise UserDeclinedError(f"'{src.name}' needs manual parameters but user interaction is disabled.")

    size = probe_file_size(src)
    answer = parameter_source.request_parameters(src, size)
    if answer is None:
        LOGGER.info("Parameter entry for %s was cancelled", src)
        raise UserDeclinedError(f"Parameter entry for '{src.name}' was cancelled.")

    fields: Dict[str, Any] = dict(answer)
    fields["source_path"] = src
    fields["temp_dir"] = Path(temp_dir)
    request = ConversionRequest.from_mapping(fields)
    return (converter or RawConverter()).convert(request)
