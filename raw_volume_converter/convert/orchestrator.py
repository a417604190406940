"""
Raw conversion orchestrator.

Turns a :class:`~raw_volume_converter.models.request.ConversionRequest` into a
:class:`~raw_volume_converter.models.result.ConversionResult`:

  IDLE -> VALIDATING -> LAYOUT_RESOLVED -> EXTRACTING -> DONE
                 \\              \\               \\
                  +--------------+---------------+--> ABORTED

Validation
----------
The source is probed and the declared geometry checked *before* any extractor
runs, so that no decompression or parsing is spent on data that cannot match.
For raw sources the check is authoritative: header_skip plus the sample payload
must fit in the file (an exact fit is accepted). For text and compressed sources
the size on disk says nothing about the decoded size, so only the header is
checked against the file and the extractor validates its own output. Setting
``ConverterConfig.strict_source_size`` applies the full check to every encoding.

Normalization
-------------
Extractors that write a new file (text, gzip, bzip2) consume the header and emit
native byte order. Their results therefore always report header_skip = 0 and
convert_endianness = False. The raw passthrough keeps the resolved values because
the consumer reads the source file itself.

The converter keeps no state between calls; every call gets a private run record.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional

from raw_volume_converter.convert.layout import (
    compute_expected_size,
    probe_file_size,
    resolve_component_layout,
    resolve_endianness_conversion,
    validate_expected_size,
)
from raw_volume_converter.errors import InvalidParameterError, RawConversionError, SizeMismatchError
from raw_volume_converter.ingest.extractors_base import ExtractionParams, Extractor, PassthroughExtractor
from raw_volume_converter.ingest.extractors_compressed import (
    Bzip2Extractor,
    CompressedExtractorConfig,
    GzipExtractor,
)
from raw_volume_converter.ingest.extractors_text import TextExtractor, TextExtractorConfig
from raw_volume_converter.ingest.raw_volume import release_intermediate
from raw_volume_converter.models.request import ConversionRequest, EncodingCode
from raw_volume_converter.models.result import ComponentLayout, ConversionResult, ElementSemantic

LOGGER = logging.getLogger(__name__)

# This converter always produces scalar volumes.
COMPONENT_COUNT = 1


class ConversionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    LAYOUT_RESOLVED = "layout_resolved"
    EXTRACTING = "extracting"
    DONE = "done"
    ABORTED = "aborted"


_ALLOWED = {
    ConversionState.IDLE: {ConversionState.VALIDATING},
    ConversionState.VALIDATING: {ConversionState.LAYOUT_RESOLVED, ConversionState.ABORTED},
    ConversionState.LAYOUT_RESOLVED: {ConversionState.EXTRACTING, ConversionState.ABORTED},
    ConversionState.EXTRACTING: {ConversionState.DONE, ConversionState.ABORTED},
}


@dataclass(frozen=True)
class ConverterConfig:
    """
    Converter configuration.

    host_big_endian:
      Byte order of the consuming host. None means the running interpreter's order.
    strict_source_size:
      Apply the expected-size check to the on-disk size of every encoding, not only
      raw. Rejects most compressed and text data sets; kept for callers that rely on
      that behaviour.
    text / compressed:
      Configuration handed to the text and gzip/bzip2 extractors.
    extractors:
      Extra or replacement extractor per encoding code.
    """
    host_big_endian: Optional[bool] = None
    strict_source_size: bool = False
    text: TextExtractorConfig = field(default_factory=TextExtractorConfig)
    compressed: CompressedExtractorConfig = field(default_factory=CompressedExtractorConfig)
    extractors: Mapping[int, Extractor] = field(default_factory=dict)


def build_extractors(config: ConverterConfig) -> Dict[int, Extractor]:
    """Encoding code -> extractor instance; one variant per code."""
    table: Dict[int, Extractor] = {
        EncodingCode.RAW: PassthroughExtractor(),
        EncodingCode.TEXT: TextExtractor(config.text),
        EncodingCode.GZIP: GzipExtractor(config.compressed),
        EncodingCode.BZIP2: Bzip2Extractor(config.compressed),
    }
    for code, extractor in config.extractors.items():
        table[int(code)] = extractor
    return table


@dataclass
class _Run:
    """Per-call bookkeeping; never shared between calls."""
    request: ConversionRequest
    state: ConversionState = ConversionState.IDLE

    def advance(self, new: ConversionState) -> None:
        if new not in _ALLOWED.get(self.state, set()):
            raise RuntimeError(f"illegal conversion state transition {self.state.value} -> {new.value}")
        LOGGER.debug("%s: %s -> %s", self.request.source_path.name, self.state.value, new.value)
        self.state = new


class RawConverter:
    """
    Decide how to read a data set and materialize its raw samples.

    Usage:
      result = RawConverter().convert(request)
      vol = open_raw_volume(result)
      ...
      release_intermediate(result)
    """

    def __init__(self, config: Optional[ConverterConfig] = None):
        self.config = config or ConverterConfig()
        self._extractors = build_extractors(self.config)

    def convert(self, request: ConversionRequest) -> ConversionResult:
        run = _Run(request)
        run.advance(ConversionState.VALIDATING)
        try:
            return self._run(run)
        except RawConversionError as e:
            e.aborted_in = run.state
            LOGGER.warning("Conversion of %s aborted while %s: %s", request.source_path, run.state.value, e)
            run.advance(ConversionState.ABORTED)
            raise

    def _run(self, run: _Run) -> ConversionResult:
        req = run.request
        cfg = self.config

        # --- Validating ---
        req.validate()
        encoding = EncodingCode(int(req.encoding_code))
        extractor = self._extractors.get(int(encoding))
        if extractor is None:
            raise InvalidParameterError(f"No extractor registered for encoding code {int(encoding)}")

        actual = probe_file_size(req.source_path)
        layout = resolve_component_layout(req.quantization_code, req.signed)
        LOGGER.info("setting component size to: %d", layout.component_size)
        self._check_size(req, encoding, layout, actual)

        convert_endianness = resolve_endianness_conversion(
            encoding, req.big_endian, host_big_endian=cfg.host_big_endian
        )
        run.advance(ConversionState.LAYOUT_RESOLVED)

        # --- Extracting ---
        params = ExtractionParams(
            header_skip=int(req.header_skip),
            component_size=layout.component_size,
            component_count=COMPONENT_COUNT,
            is_signed=layout.is_signed,
            is_float=layout.is_float,
            volume_size=req.dimensions,
            temp_dir=req.temp_dir,
            swap_bytes=convert_endianness,
        )
        run.advance(ConversionState.EXTRACTING)
        name = getattr(extractor, "name", type(extractor).__name__)
        LOGGER.info("Extracting %s with the %s extractor", req.source_path, name)
        output = extractor.extract(req.source_path, params)

        warnings: List[str] = []
        if output.is_transient:
            header_skip = 0
            convert_endianness = False
        else:
            header_skip = int(req.header_skip)
            expected = compute_expected_size(req.dimensions, layout.component_size, COMPONENT_COUNT, header_skip)
            surplus = actual - expected
            if surplus > 0:
                warnings.append(f"{surplus} trailing bytes beyond the declared volume are ignored")
        warnings.extend(output.warnings)

        result = ConversionResult(
            header_skip=header_skip,
            component_size=layout.component_size,
            component_count=COMPONENT_COUNT,
            convert_endianness=convert_endianness,
            is_signed=layout.is_signed,
            is_float=layout.is_float,
            volume_size=req.dimensions,
            volume_aspect=req.aspect,
            intermediate_path=Path(output.path),
            intermediate_is_transient=bool(output.is_transient),
            title=req.title,
            semantic_type=ElementSemantic.UNDEFINED,
            warnings=tuple(warnings),
        )
        run.advance(ConversionState.DONE)
        return result

    def _check_size(
        self,
        req: ConversionRequest,
        encoding: EncodingCode,
        layout: ComponentLayout,
        actual: int,
    ) -> None:
        if encoding == EncodingCode.RAW or self.config.strict_source_size:
            expected = compute_expected_size(
                req.dimensions, layout.component_size, COMPONENT_COUNT, req.header_skip
            )
            validate_expected_size(expected, actual, source=req.source_path)
            return
        # Decoded size is unknown until extraction; the header must still be inside the file.
        if int(req.header_skip) > actual:
            raise SizeMismatchError(
                f"header_skip of {req.header_skip} bytes exceeds the {actual}-byte file '{req.source_path}'.",
                expected=int(req.header_skip),
                actual=actual,
            )


@contextmanager
def converted_volume(
    request: ConversionRequest,
    converter: Optional[RawConverter] = None,
) -> Iterator[ConversionResult]:
    """Convert, yield the result, then delete the intermediate file if it is transient."""
    result = (converter or RawConverter()).convert(request)
    try:
        yield result
    finally:
        release_intermediate(result)
