# Python imports
import unittest

# Library imports
import numpy as np

# Project imports
from halfbits import decode
from halfbits.bitcasts import bitcast_f32_to_u32, bitcast_u32_to_f32
from half_reference import (
    all_half_patterns,
    alt_half_to_single_bits,
    is_half_nan,
    is_single_nan,
    torch_half_to_single_bits,
)


class DecodeIEEETests(unittest.TestCase):
    def setUp(self):
        self.patterns = all_half_patterns()
        self.nan = is_half_nan(self.patterns)

    def test_exhaustive_against_torch(self):
        expected = torch_half_to_single_bits(self.patterns)
        actual = decode.decode_ieee_bits(self.patterns)
        self.assertEqual(actual.dtype, np.uint32)
        np.testing.assert_array_equal(actual[~self.nan], expected[~self.nan])

    def test_known_patterns(self):
        cases = {
            0x0000: 0x00000000,
            0x8000: 0x80000000,
            0x0001: 0x33800000,  # 2**-24
            0x0002: 0x34000000,
            0x0003: 0x34400000,
            0x0200: 0x38000000,  # 2**-15
            0x03FF: 0x387FC000,  # largest subnormal
            0x0400: 0x38800000,  # 2**-14
            0x3C00: 0x3F800000,
            0x3C01: 0x3F802000,
            0xC000: 0xC0000000,
            0x7BFF: 0x477FE000,  # 65504
            0x7C00: 0x7F800000,
            0xFC00: 0xFF800000,
        }
        for h, bits in cases.items():
            with self.subTest(h=hex(h)):
                self.assertEqual(int(decode.decode_ieee_bits(np.array([h]))[0]), bits)

    def test_nans_are_quieted_and_keep_payload(self):
        patterns = self.patterns[self.nan]
        widened = decode.decode_ieee_bits(patterns)
        self.assertTrue(np.all(is_single_nan(widened)))
        self.assertTrue(np.all(widened & 0x00400000))
        np.testing.assert_array_equal(widened & 0x003FE000, (patterns & 0x1FF) << 13)
        np.testing.assert_array_equal(widened >> 31, patterns >> 15)
        # Signaling half NaN with only its low payload bit set.
        self.assertEqual(int(decode.decode_ieee_bits(np.array([0x7D00]))[0]), 0x7FE00000)

    def test_subnormals_are_exact(self):
        mant = np.arange(1, 1024, dtype=np.uint32)
        values = bitcast_u32_to_f32(decode.decode_ieee_bits(mant)).astype(np.float64)
        np.testing.assert_array_equal(values, mant * 2.0 ** -24)
        negative = bitcast_u32_to_f32(decode.decode_ieee_bits(mant | 0x8000)).astype(np.float64)
        np.testing.assert_array_equal(negative, mant * -(2.0 ** -24))

    def test_sign_is_preserved(self):
        widened = decode.decode_ieee_bits(self.patterns)
        np.testing.assert_array_equal(widened >> 31, self.patterns >> 15)

    def test_fp_strategy_agrees(self):
        by_bits = decode.decode_ieee_bits(self.patterns)
        by_fp = bitcast_f32_to_u32(decode.decode_ieee_fp(self.patterns))
        np.testing.assert_array_equal(by_fp[~self.nan], by_bits[~self.nan])
        self.assertTrue(np.all(is_single_nan(by_fp[self.nan])))
        np.testing.assert_array_equal(by_fp[self.nan] >> 31, by_bits[self.nan] >> 31)

    def test_fp_strategy_returns_float32(self):
        values = decode.decode_ieee_fp(np.array([0x3C00, 0x3555, 0xFBFF]))
        self.assertEqual(values.dtype, np.float32)
        np.testing.assert_array_equal(values, np.array([1.0, 0.333251953125, -65504.0], dtype=np.float32))


class DecodeAltTests(unittest.TestCase):
    def setUp(self):
        self.patterns = all_half_patterns()

    def test_exhaustive_against_reference(self):
        np.testing.assert_array_equal(decode.decode_alt_bits(self.patterns), alt_half_to_single_bits(self.patterns))

    def test_top_binade_is_finite(self):
        cases = {
            0x7C00: 0x47800000,  # 65536
            0x7E00: 0x47C00000,  # 98304
            0x7FFF: 0x47FFE000,  # 131008
            0xFFFF: 0xC7FFE000,
        }
        for h, bits in cases.items():
            with self.subTest(h=hex(h)):
                self.assertEqual(int(decode.decode_alt_bits(np.array([h]))[0]), bits)

    def test_below_top_binade_matches_ieee(self):
        low = self.patterns[(self.patterns & 0x7C00) != 0x7C00]
        np.testing.assert_array_equal(decode.decode_alt_bits(low), decode.decode_ieee_bits(low))

    def test_never_produces_inf_or_nan(self):
        widened = decode.decode_alt_bits(self.patterns)
        self.assertFalse(np.any((widened & 0x7F800000) == 0x7F800000))

    def test_fp_strategy_agrees(self):
        by_bits = decode.decode_alt_bits(self.patterns)
        by_fp = bitcast_f32_to_u32(decode.decode_alt_fp(self.patterns))
        np.testing.assert_array_equal(by_fp, by_bits)


if __name__ == '__main__':
    unittest.main()
