from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Tuple

import numpy as np

from raw_volume_converter.errors import ConversionIOError, InvalidParameterError
from raw_volume_converter.models.result import ComponentLayout

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionParams:
    """
    Everything an extractor needs to know about the declared data set.

    header_skip is measured in the *source* file: extractors that produce a new
    file consume it (skip those bytes before decoding), the passthrough extractor
    leaves it to the consumer.

    swap_bytes tells binary extractors that decoded samples are stored in the
    opposite of the host byte order and must be swapped on the way out.
    """
    header_skip: int
    component_size: int
    component_count: int
    is_signed: bool
    is_float: bool
    volume_size: Tuple[int, int, int]
    temp_dir: Path
    swap_bytes: bool = False

    @property
    def layout(self) -> ComponentLayout:
        return ComponentLayout(self.component_size, self.is_float, self.is_signed)

    @property
    def n_samples(self) -> int:
        x, y, z = self.volume_size
        return int(self.component_count) * int(x) * int(y) * int(z)

    @property
    def payload_size(self) -> int:
        """Bytes of decoded sample data the declared geometry needs."""
        return self.n_samples * (self.component_size // 8)

    @property
    def sample_dtype(self) -> np.dtype:
        return self.layout.native_dtype()


@dataclass(frozen=True)
class ExtractorOutput:
    path: Path
    is_transient: bool
    warnings: Tuple[str, ...] = ()


class Extractor(Protocol):
    """One variant per encoding code; each must leave no header and native order behind."""

    name: str

    def extract(self, source_path: Path, params: ExtractionParams) -> ExtractorOutput:
        ...


def intermediate_path(source_path: Path, temp_dir: Path, suffix: str) -> Path:
    """
    ``<temp_dir>/<source basename><suffix>``, checked for use as an output location.

    The temp dir must exist, be writable and differ from the source's directory.
    """
    src = Path(source_path)
    tdir = Path(temp_dir).expanduser()
    if not tdir.is_dir():
        raise ConversionIOError(f"Temporary directory does not exist: '{tdir}'")
    if not os.access(tdir, os.W_OK):
        raise ConversionIOError(f"Temporary directory is not writable: '{tdir}'")
    if tdir.resolve() == src.expanduser().resolve().parent:
        raise InvalidParameterError(
            f"Temporary directory '{tdir}' must not be the directory holding the source file."
        )
    return tdir / f"{src.name}{suffix}"


def discard_partial_output(path: Path, keep: bool) -> None:
    """Remove a half-written intermediate file after a failed extraction."""
    if keep:
        LOGGER.info("Keeping failed intermediate file for inspection: %s", path)
        return
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        LOGGER.warning("Could not remove failed intermediate file %s: %s", path, e)


class PassthroughExtractor:
    """The source already holds raw samples; hand it back untouched."""

    name = "raw"

    def extract(self, source_path: Path, params: ExtractionParams) -> ExtractorOutput:
        return ExtractorOutput(path=Path(source_path), is_transient=False)
