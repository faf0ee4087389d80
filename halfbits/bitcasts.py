import numpy as np

__all__ = ["bitcast_u32_to_f32", "bitcast_f32_to_u32", "bitcast_u16_to_f16", "count_leading_zero_bits"]


def _reinterpret(value, src_dtype, dst_dtype):
    """Reinterpret the bytes of `value` as `dst_dtype` without any value conversion.

    The source is first brought to `src_dtype`; both dtypes must have the same width. A 0-d input comes back as a
    numpy scalar, anything else as an array of the same shape.
    """
    array = np.asarray(value, dtype=src_dtype)
    flat = np.ascontiguousarray(array.reshape(-1))
    out = flat.view(dst_dtype).reshape(array.shape)
    if array.ndim == 0:
        return out[()]
    return out


def bitcast_u32_to_f32(bits):
    """Exact reinterpretation of 32 bits as a single precision value. Signaling NaN payloads survive."""
    return _reinterpret(bits, np.uint32, np.float32)


def bitcast_f32_to_u32(value):
    """Exact reinterpretation of a single precision value as its 32 bit pattern."""
    return _reinterpret(value, np.float32, np.uint32)


def bitcast_u16_to_f16(bits):
    return _reinterpret(bits, np.uint16, np.float16)


def count_leading_zero_bits(x):
    """Number of zero bits above the most significant set bit of a 32 bit word.

    Every uint32 is exact in float64, so the binary exponent reported by frexp is the bit length of the word.
    An all-zero word has bit length 0 and reports 32.
    """
    x = np.asarray(x, dtype=np.uint32)
    _, bit_length = np.frexp(x.astype(np.float64))
    return (32 - bit_length).astype(np.uint32)
