from __future__ import annotations

import abc
import bz2
import gzip
import logging
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional

import numpy as np

from raw_volume_converter.errors import ConversionIOError, DecompressionError, RawConversionError
from raw_volume_converter.ingest.extractors_base import (
    ExtractionParams,
    ExtractorOutput,
    discard_partial_output,
    intermediate_path,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompressedExtractorConfig:
    """
    Configuration shared by the gzip and bzip2 extractors.

    chunk_size:
      Bytes requested from the decoder per read; bounds memory use for large volumes.
    keep_failed_output:
      Leave the partially decoded .uncompressed file on disk after a failure.
      It is never returned as a result either way.
    """
    chunk_size: int = 1 << 20
    keep_failed_output: bool = False


class _StreamExtractor(abc.ABC):
    """
    Decode a whole compressed stream into ``<temp_dir>/<name>.uncompressed``.

    header_skip bytes of the *compressed* file are skipped before the stream
    starts. The decoded file holds raw samples with no header, in host byte order
    (samples are swapped while streaming when params.swap_bytes is set). It is
    valid only if the stream ends cleanly and decodes to at least the declared
    payload.
    """

    name = "stream"
    suffix = ".uncompressed"

    def __init__(self, config: Optional[CompressedExtractorConfig] = None):
        self.config = config or CompressedExtractorConfig()

    @abc.abstractmethod
    def _open_decoder(self, fh: BinaryIO) -> BinaryIO:
        """Wrap the positioned source file in a decompressing reader."""

    def extract(self, source_path: Path, params: ExtractionParams) -> ExtractorOutput:
        cfg = self.config
        src_path = Path(source_path)
        out = intermediate_path(src_path, params.temp_dir, self.suffix)

        try:
            src = open(src_path, "rb")
        except OSError as e:
            raise ConversionIOError(f"Cannot open '{src_path}' for reading: {e.strerror or e}") from e

        with src:
            src.seek(int(params.header_skip))
            try:
                dst = open(out, "wb")
            except OSError as e:
                raise ConversionIOError(f"Cannot create '{out}': {e.strerror or e}") from e
            try:
                with dst, self._open_decoder(src) as dec:
                    itemsize = params.component_size // 8 if params.swap_bytes else 1
                    decoded = self._pump(dec, dst, src_path, out, itemsize)
            except RawConversionError:
                discard_partial_output(out, cfg.keep_failed_output)
                raise

        need = params.payload_size
        if decoded < need:
            discard_partial_output(out, cfg.keep_failed_output)
            raise DecompressionError(
                f"{self.name} stream '{src_path}' decoded to {decoded} bytes, "
                f"but the declared volume needs {need}."
            )

        warnings: List[str] = []
        if decoded > need:
            warnings.append(f"{self.name}: {decoded - need} decoded bytes beyond the declared volume are ignored")
        LOGGER.info("Decoded %s stream %s -> %s (%d bytes)", self.name, src_path, out, decoded)
        return ExtractorOutput(path=out, is_transient=True, warnings=tuple(warnings))

    def _pump(self, dec: BinaryIO, dst: BinaryIO, src_path: Path, out: Path, itemsize: int) -> int:
        total = 0
        carry = b""
        while True:
            try:
                chunk = dec.read(self.config.chunk_size)
            except (EOFError, OSError, zlib.error) as e:
                raise DecompressionError(
                    f"{self.name} stream '{src_path}' is malformed or truncated after {total} decoded bytes: {e}"
                ) from e
            if not chunk:
                break
            total += len(chunk)
            if itemsize > 1:
                # samples may straddle chunk boundaries
                chunk = carry + chunk
                cut = len(chunk) - len(chunk) % itemsize
                chunk, carry = _swap_samples(chunk[:cut], itemsize), chunk[cut:]
            self._write(dst, chunk, out)
        if carry:
            self._write(dst, carry, out)
        return total

    @staticmethod
    def _write(dst: BinaryIO, data: bytes, out: Path) -> None:
        try:
            dst.write(data)
        except OSError as e:
            raise ConversionIOError(f"Cannot write '{out}': {e.strerror or e}") from e


def _swap_samples(data: bytes, itemsize: int) -> bytes:
    return np.frombuffer(data, dtype=f"u{itemsize}").byteswap().tobytes()


class GzipExtractor(_StreamExtractor):
    """gzip container (multi-member streams are decoded back to back)."""

    name = "gzip"

    def _open_decoder(self, fh: BinaryIO) -> BinaryIO:
        return gzip.GzipFile(fileobj=fh, mode="rb")


class Bzip2Extractor(_StreamExtractor):
    name = "bzip2"

    def _open_decoder(self, fh: BinaryIO) -> BinaryIO:
        return bz2.BZ2File(fh, mode="rb")
