# Python imports
import unittest

# Library imports
import numpy as np

# Project imports
from halfbits.bitcasts import bitcast_f32_to_u32, bitcast_u16_to_f16, bitcast_u32_to_f32, count_leading_zero_bits


class BitcastTests(unittest.TestCase):
    def test_scalar_reinterpretation(self):
        one = bitcast_u32_to_f32(0x3F800000)
        self.assertIsInstance(one, np.float32)
        self.assertEqual(one, np.float32(1.0))
        self.assertEqual(bitcast_f32_to_u32(np.float32(-2.0)), 0xC0000000)
        self.assertEqual(bitcast_u16_to_f16(0x3C00), np.float16(1.0))

    def test_signed_zero_keeps_its_sign_bit(self):
        self.assertEqual(bitcast_f32_to_u32(np.float32(-0.0)), 0x80000000)
        self.assertEqual(bitcast_f32_to_u32(np.float32(0.0)), 0)

    def test_nan_payloads_survive(self):
        # A numeric cast through a Python float would quiet the signaling NaN.
        for bits in (0x7F800001, 0x7FA00000, 0xFFC00001, 0x7FFFFFFF):
            with self.subTest(bits=hex(bits)):
                value = bitcast_u32_to_f32(bits)
                self.assertTrue(np.isnan(value))
                self.assertEqual(int(bitcast_f32_to_u32(value)), bits)

    def test_array_shape_is_kept(self):
        bits = np.arange(0x3F800000, 0x3F800000 + 24, dtype=np.uint32).reshape(2, 3, 4)
        values = bitcast_u32_to_f32(bits)
        self.assertEqual(values.shape, (2, 3, 4))
        self.assertEqual(values.dtype, np.float32)
        np.testing.assert_array_equal(bitcast_f32_to_u32(values), bits)

    def test_non_contiguous_input(self):
        bits = np.arange(0x40000000, 0x40000000 + 20, dtype=np.uint32)[::2]
        np.testing.assert_array_equal(bitcast_f32_to_u32(bitcast_u32_to_f32(bits)), bits)


class CountLeadingZeroBitsTests(unittest.TestCase):
    def test_every_single_bit(self):
        words = np.uint32(1) << np.arange(32, dtype=np.uint32)
        np.testing.assert_array_equal(count_leading_zero_bits(words), 31 - np.arange(32))

    def test_low_bits_do_not_matter(self):
        words = np.array([0xFFFFFFFF, 0x7FFFFFFF, 0x0001FFFF, 0x00000003, 0x000003FF], dtype=np.uint32)
        np.testing.assert_array_equal(count_leading_zero_bits(words), [0, 1, 15, 30, 22])

    def test_zero_counts_every_bit(self):
        self.assertEqual(int(count_leading_zero_bits(0)), 32)

    def test_result_dtype(self):
        self.assertEqual(count_leading_zero_bits(np.array([1, 2], dtype=np.uint32)).dtype, np.uint32)


if __name__ == '__main__':
    unittest.main()
