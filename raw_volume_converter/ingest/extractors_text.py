from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from raw_volume_converter.errors import ConversionIOError, ParseError
from raw_volume_converter.ingest.extractors_base import (
    ExtractionParams,
    ExtractorOutput,
    discard_partial_output,
    intermediate_path,
)

LOGGER = logging.getLogger(__name__)

_INT_TOKEN = r"[+-]?[0-9]+"
_FLOAT_TOKEN = r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
# Longer literals cannot fit the widest integer quantization (32 bit) and would
# overflow the int64 staging array.
_MAX_INT_DIGITS = 18

_SPECIAL_FLOATS = {
    "nan": np.nan,
    "+nan": np.nan,
    "-nan": np.nan,
    "inf": np.inf,
    "+inf": np.inf,
    "-inf": -np.inf,
    "infinity": np.inf,
    "+infinity": np.inf,
    "-infinity": -np.inf,
}


@dataclass(frozen=True)
class TextExtractorConfig:
    """
    Configuration for delimited text volumes.

    separators:
      Regex of token separators. Default accepts whitespace, commas and semicolons
      in any mix, so one-value-per-line, space separated and CSV files all work.
    comment_char:
      Everything from this character to the end of the line is ignored. None disables.
    encoding:
      Text encoding of the file (after header_skip).
    keep_failed_output:
      Leave a partially written .binary file on disk after a write failure.
    """
    separators: str = r"[\s,;]+"
    comment_char: Optional[str] = "#"
    encoding: str = "utf-8"
    keep_failed_output: bool = False


class TextExtractor:
    """
    Parse a delimited text data set into a native-order raw binary file.

    Contract:
      - header_skip bytes at the start of the file are ignored.
      - token count MUST equal component_count * x * y * z (no truncation, no padding).
      - every token MUST parse as the declared type: integer literals within the
        range of the declared width/signedness, or float literals (nan/inf allowed)
        representable in the declared float width.
      - nothing is written unless the whole file parses.
    """

    name = "text"
    suffix = ".binary"

    def __init__(self, config: Optional[TextExtractorConfig] = None):
        self.config = config or TextExtractorConfig()

    def extract(self, source_path: Path, params: ExtractionParams) -> ExtractorOutput:
        out = intermediate_path(source_path, params.temp_dir, self.suffix)
        tokens = self._read_tokens(Path(source_path), int(params.header_skip))

        need = params.n_samples
        if len(tokens) != need:
            raise ParseError(
                f"Text data set '{source_path}' holds {len(tokens)} values, "
                f"but the declared volume needs exactly {need}."
            )

        if params.is_float:
            values = self._parse_float(tokens, params.sample_dtype)
        else:
            values = self._parse_int(tokens, params.sample_dtype)

        try:
            values.tofile(out)
        except OSError as e:
            discard_partial_output(out, self.config.keep_failed_output)
            raise ConversionIOError(f"Cannot write '{out}': {e.strerror or e}") from e

        LOGGER.info("Parsed %d %s values from %s into %s", need, values.dtype.name, source_path, out)
        return ExtractorOutput(path=out, is_transient=True)

    def _read_tokens(self, path: Path, header_skip: int) -> pd.Series:
        cfg = self.config
        try:
            with open(path, "rb") as fh:
                fh.seek(header_skip)
                raw = fh.read()
        except OSError as e:
            raise ConversionIOError(f"Cannot read '{path}': {e.strerror or e}") from e

        try:
            text = raw.decode(cfg.encoding)
        except UnicodeDecodeError as e:
            raise ParseError(
                f"'{path}' is not valid {cfg.encoding} text (byte offset {header_skip + e.start})."
            ) from e

        if cfg.comment_char:
            text = re.sub(re.escape(cfg.comment_char) + r"[^\n]*", "", text)
        text = text.strip()
        if not text:
            return pd.Series([], dtype=object)
        return pd.Series([t for t in re.split(cfg.separators, text) if t], dtype=object)

    @staticmethod
    def _first_bad(mask: pd.Series, tokens: pd.Series, what: str) -> ParseError:
        idx = int(np.argmax(mask.to_numpy()))
        return ParseError(f"Value #{idx} ({tokens.iloc[idx]!r}) is not {what}.")

    def _parse_int(self, tokens: pd.Series, dtype: np.dtype) -> np.ndarray:
        kind = "signed" if dtype.kind == "i" else "unsigned"
        what = f"a valid {dtype.itemsize * 8}-bit {kind} integer"

        bad = ~tokens.str.fullmatch(_INT_TOKEN).astype(bool)
        bad |= tokens.str.lstrip("+-").str.len() > _MAX_INT_DIGITS
        if bad.any():
            raise self._first_bad(bad, tokens, what)

        staged = pd.to_numeric(tokens.str.lstrip("+")).astype(np.int64)
        info = np.iinfo(dtype)
        bad = (staged < int(info.min)) | (staged > int(info.max))
        if bad.any():
            raise self._first_bad(bad, tokens, what)
        return staged.to_numpy().astype(dtype)

    def _parse_float(self, tokens: pd.Series, dtype: np.dtype) -> np.ndarray:
        what = f"a valid {dtype.itemsize * 8}-bit float"

        lowered = tokens.str.lower()
        special = lowered.isin(list(_SPECIAL_FLOATS))
        bad = ~(special | tokens.str.fullmatch(_FLOAT_TOKEN).astype(bool))
        if bad.any():
            raise self._first_bad(bad, tokens, what)
        # Series.astype goes through float(), which rounds correctly
        staged = tokens.mask(special, "0").astype(np.float64)
        if special.any():
            staged[special] = lowered[special].map(_SPECIAL_FLOATS)

        arr = staged.to_numpy()
        with np.errstate(over="ignore"):
            out = arr.astype(dtype)
        # literals that overflow the declared width
        overflow = ~special & pd.Series(~np.isfinite(out), index=tokens.index)
        if overflow.any():
            raise self._first_bad(overflow, tokens, what)
        return out
