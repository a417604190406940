"""Ingest package - extractors that turn a source file into raw samples.

This package handles:
- Passing through files that already hold raw binary samples
- Parsing delimited text data sets into native-order binary
- Decoding gzip and bzip2 compressed data sets
- Memory-mapping the resulting raw file for downstream consumers

Key classes:
- PassthroughExtractor, TextExtractor, GzipExtractor, Bzip2Extractor

Design principle:
- Every extractor that writes a file writes it header-free and in native byte order
- A failed extraction never returns an output path
"""
from .extractors_base import ExtractionParams, Extractor, ExtractorOutput, PassthroughExtractor
from .extractors_compressed import Bzip2Extractor, CompressedExtractorConfig, GzipExtractor
from .extractors_text import TextExtractor, TextExtractorConfig
from .raw_volume import open_raw_volume, release_intermediate

__all__ = [
    "ExtractionParams",
    "Extractor",
    "ExtractorOutput",
    "PassthroughExtractor",
    "TextExtractor",
    "TextExtractorConfig",
    "GzipExtractor",
    "Bzip2Extractor",
    "CompressedExtractorConfig",
    "open_raw_volume",
    "release_intermediate",
]
