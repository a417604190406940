import bz2
import gzip
import os
import tempfile
import unittest
from pathlib import Path

import numpy as np

from raw_volume_converter.convert.orchestrator import ConversionState, ConverterConfig, RawConverter
from raw_volume_converter.errors import (
    DecompressionError,
    InvalidParameterError,
    ParseError,
    SizeMismatchError,
)
from raw_volume_converter.ingest.extractors_base import ExtractorOutput
from raw_volume_converter.models.request import ConversionRequest
from raw_volume_converter.models.result import ElementSemantic


class _SpyExtractor:
    name = "spy"

    def __init__(self):
        self.calls = 0

    def extract(self, source_path, params):
        self.calls += 1
        return ExtractorOutput(path=Path(source_path), is_transient=False)


class TestRawConverter(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.src_dir = root / "data"
        self.tmp_dir = root / "scratch"
        self.src_dir.mkdir()
        self.tmp_dir.mkdir()

    def tearDown(self):
        self._tmp.cleanup()

    def _request(self, name, **kw):
        kw.setdefault("temp_dir", self.tmp_dir)
        return ConversionRequest(source_path=self.src_dir / name, **kw)

    # --- raw passthrough ---------------------------------------------------

    def test_exact_million_byte_cube_accepted(self):
        (self.src_dir / "cube.raw").write_bytes(bytes(1_000_000))
        req = self._request("cube.raw", dimensions=(100, 100, 100), quantization_code=0, encoding_code=0)
        res = RawConverter().convert(req)
        self.assertEqual(res.volume_size, (100, 100, 100))
        self.assertEqual(res.component_size, 8)
        self.assertEqual(res.component_count, 1)
        self.assertEqual(res.payload_size, 1_000_000)
        self.assertEqual(res.warnings, ())

    def test_one_slice_too_many_rejected_before_extraction(self):
        (self.src_dir / "cube.raw").write_bytes(bytes(1_000_000))
        spy = _SpyExtractor()
        conv = RawConverter(ConverterConfig(extractors={0: spy}))
        req = self._request("cube.raw", dimensions=(100, 100, 101), quantization_code=0, encoding_code=0)
        with self.assertRaises(SizeMismatchError) as cm:
            conv.convert(req)
        self.assertEqual(cm.exception.expected, 1_010_000)
        self.assertEqual(cm.exception.actual, 1_000_000)
        self.assertEqual(cm.exception.aborted_in, ConversionState.VALIDATING)
        self.assertEqual(spy.calls, 0)
        self.assertEqual(os.listdir(self.tmp_dir), [])

    def test_header_counts_toward_expected_size(self):
        (self.src_dir / "vol.raw").write_bytes(bytes(64 + 16))
        req = self._request("vol.raw", dimensions=(4, 4, 4), quantization_code=0, encoding_code=0, header_skip=17)
        with self.assertRaises(SizeMismatchError):
            RawConverter().convert(req)

    def test_passthrough_keeps_resolved_header_and_byte_order(self):
        p = self.src_dir / "vol.raw"
        p.write_bytes(bytes(32 + 2 * 2 * 2 * 2 * 4))
        req = self._request(
            "vol.raw",
            dimensions=(2, 2, 4),
            quantization_code=1,
            encoding_code=0,
            header_skip=32,
            big_endian=True,
            signed=True,
            aspect=(1.0, 0.5, 2.0),
        )
        res = RawConverter(ConverterConfig(host_big_endian=False)).convert(req)
        self.assertEqual(res.intermediate_path, p)
        self.assertFalse(res.intermediate_is_transient)
        self.assertEqual(res.header_skip, 32)
        self.assertTrue(res.convert_endianness)
        self.assertTrue(res.is_signed)
        self.assertFalse(res.is_float)
        self.assertEqual(res.volume_aspect, (1.0, 0.5, 2.0))
        self.assertEqual(res.title, "Raw data")
        self.assertEqual(res.semantic_type, ElementSemantic.UNDEFINED)
        # surplus bytes are reported, not rejected
        self.assertTrue(any("trailing" in w for w in res.warnings))

    def test_passthrough_is_idempotent(self):
        (self.src_dir / "vol.raw").write_bytes(bytes(8 * 27))
        req = self._request("vol.raw", dimensions=(3, 3, 3), quantization_code=4, encoding_code=0)
        before_src = sorted(os.listdir(self.src_dir))
        conv = RawConverter()
        r1 = conv.convert(req)
        r2 = conv.convert(req)
        self.assertEqual(r1, r2)
        self.assertEqual(sorted(os.listdir(self.src_dir)), before_src)
        self.assertEqual(os.listdir(self.tmp_dir), [])

    # --- normalized encodings ----------------------------------------------

    def _write_sources(self, values: np.ndarray, header: bytes = b""):
        text = "\n".join(str(int(v)) for v in values).encode("ascii")
        (self.src_dir / "vol.txt").write_bytes(header + text)
        raw = values.astype("<u2").tobytes()
        (self.src_dir / "vol.gz").write_bytes(header + gzip.compress(raw))
        (self.src_dir / "vol.bz2").write_bytes(header + bz2.compress(raw))

    def test_normalized_encodings_reset_header_and_byte_order(self):
        values = np.arange(2 * 3 * 4, dtype=np.uint16) * 100
        header = b"HDR-0123"
        self._write_sources(values, header=header)
        conv = RawConverter(ConverterConfig(host_big_endian=True))
        for name, enc, suffix in (("vol.txt", 1, ".binary"), ("vol.gz", 2, ".uncompressed"), ("vol.bz2", 3, ".uncompressed")):
            with self.subTest(encoding=enc):
                req = self._request(
                    name,
                    dimensions=(2, 3, 4),
                    quantization_code=1,
                    encoding_code=enc,
                    header_skip=len(header),
                    big_endian=False,
                )
                res = conv.convert(req)
                self.assertEqual(res.header_skip, 0)
                self.assertFalse(res.convert_endianness)
                self.assertTrue(res.intermediate_is_transient)
                self.assertNotEqual(res.intermediate_path, req.source_path)
                self.assertEqual(res.intermediate_path, self.tmp_dir / (name + suffix))
                self.assertTrue(res.intermediate_path.exists())

    def test_text_result_holds_native_values(self):
        values = np.arange(24, dtype=np.uint16) * 100
        self._write_sources(values)
        req = self._request("vol.txt", dimensions=(2, 3, 4), quantization_code=1, encoding_code=1)
        res = RawConverter().convert(req)
        got = np.fromfile(res.intermediate_path, dtype=np.uint16)
        np.testing.assert_array_equal(got, values)

    def test_compressed_source_smaller_than_volume_is_not_prechecked(self):
        (self.src_dir / "zeros.gz").write_bytes(gzip.compress(bytes(100_000)))
        self.assertLess((self.src_dir / "zeros.gz").stat().st_size, 100_000)
        req = self._request("zeros.gz", dimensions=(100, 100, 10), quantization_code=0, encoding_code=2)
        res = RawConverter().convert(req)
        self.assertEqual(res.intermediate_path.stat().st_size, 100_000)

        with self.assertRaises(SizeMismatchError):
            RawConverter(ConverterConfig(strict_source_size=True)).convert(req)

    def test_header_beyond_compressed_file_rejected(self):
        (self.src_dir / "vol.gz").write_bytes(gzip.compress(bytes(8)))
        req = self._request("vol.gz", dimensions=(2, 2, 2), quantization_code=0, encoding_code=2, header_skip=10_000)
        with self.assertRaises(SizeMismatchError):
            RawConverter().convert(req)
        self.assertEqual(os.listdir(self.tmp_dir), [])

    def test_truncated_gzip_aborts_without_result(self):
        (self.src_dir / "vol.gz").write_bytes(gzip.compress(bytes(range(64)))[:-1])
        req = self._request("vol.gz", dimensions=(4, 4, 4), quantization_code=0, encoding_code=2)
        with self.assertRaises(DecompressionError) as cm:
            RawConverter().convert(req)
        self.assertEqual(cm.exception.aborted_in, ConversionState.EXTRACTING)
        self.assertFalse((self.tmp_dir / "vol.gz.uncompressed").exists())

    def test_text_count_mismatch_is_parse_error(self):
        (self.src_dir / "vol.txt").write_text("1 2 3 4 5 6 7")
        req = self._request("vol.txt", dimensions=(2, 2, 2), quantization_code=0, encoding_code=1)
        with self.assertRaises(ParseError):
            RawConverter().convert(req)
        self.assertEqual(os.listdir(self.tmp_dir), [])

    def test_non_ascii_digit_is_parse_error_and_aborts(self):
        (self.src_dir / "vol.txt").write_text("\u0663 1 2 3 4 5 6 7", encoding="utf-8")
        req = self._request("vol.txt", dimensions=(2, 2, 2), quantization_code=0, encoding_code=1)
        with self.assertRaises(ParseError) as cm:
            RawConverter().convert(req)
        self.assertEqual(cm.exception.aborted_in, ConversionState.EXTRACTING)
        self.assertEqual(os.listdir(self.tmp_dir), [])

    # --- parameter validation ------------------------------------------------

    def test_out_of_range_codes_rejected(self):
        (self.src_dir / "vol.raw").write_bytes(bytes(8))
        for kw in ({"quantization_code": 5, "encoding_code": 0}, {"quantization_code": 0, "encoding_code": 4}):
            with self.subTest(**kw):
                req = self._request("vol.raw", dimensions=(2, 2, 2), **kw)
                with self.assertRaises(InvalidParameterError) as cm:
                    RawConverter().convert(req)
                self.assertEqual(cm.exception.aborted_in, ConversionState.VALIDATING)

    def test_zero_dimension_rejected(self):
        (self.src_dir / "vol.raw").write_bytes(bytes(8))
        req = self._request("vol.raw", dimensions=(2, 0, 2), quantization_code=0, encoding_code=0)
        with self.assertRaises(InvalidParameterError):
            RawConverter().convert(req)

    def test_missing_source_is_os_error(self):
        req = self._request("nope.raw", dimensions=(2, 2, 2), quantization_code=0, encoding_code=0)
        with self.assertRaises(OSError):
            RawConverter().convert(req)

    def test_temp_dir_next_to_source_rejected(self):
        (self.src_dir / "vol.gz").write_bytes(gzip.compress(bytes(8)))
        req = self._request("vol.gz", dimensions=(2, 2, 2), quantization_code=0, encoding_code=2, temp_dir=self.src_dir)
        with self.assertRaises(InvalidParameterError):
            RawConverter().convert(req)
        self.assertEqual(sorted(os.listdir(self.src_dir)), ["vol.gz"])

    def test_custom_extractor_replaces_default(self):
        (self.src_dir / "vol.raw").write_bytes(bytes(8))
        spy = _SpyExtractor()
        conv = RawConverter(ConverterConfig(extractors={2: spy}))
        req = self._request("vol.raw", dimensions=(2, 2, 2), quantization_code=0, encoding_code=2)
        res = conv.convert(req)
        self.assertEqual(spy.calls, 1)
        self.assertFalse(res.intermediate_is_transient)


if __name__ == "__main__":
    unittest.main()
