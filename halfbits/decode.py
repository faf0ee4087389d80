"""Half precision -> single precision.

Widening is exact: every half value, subnormals included, is a single precision value. Two independent strategies
are provided for each flavor:

    * ``decode_*_bits``: integer only. Fields are extracted, subnormals are renormalized with a leading zero count,
      and the pieces are recombined.
    * ``decode_*_fp``: float assisted. Two single precision candidates are built, one that assumes a normal exponent
      and one that rebuilds a subnormal through a magic bias subtraction, and the exponent field picks one.

All kernels take uint16 compatible arrays and work lane by lane with numpy selects, no Python branching.
"""
import numpy as np

from halfbits.bitcasts import bitcast_f32_to_u32, bitcast_u32_to_f32, count_leading_zero_bits
from halfbits.constants import (
    BIAS_DIFF,
    FP16_EXP_MASK,
    FP16_EXP_MAX,
    FP16_EXP_SHIFT,
    FP16_MANT_MASK,
    FP16_SIGN_MASK,
    FP32_EXP_MAX,
    FP32_EXP_SHIFT,
    FP32_INF,
    FP32_QUIET_BIT,
    FP32_SIGN_MASK,
    MANT_SHIFT,
    MIN_NORMAL_EXP,
    SIGN_SHIFT,
)

__all__ = ["decode_ieee_bits", "decode_alt_bits", "decode_ieee_fp", "decode_alt_fp"]

# Leading zeros of a mantissa whose top bit sits right below the implicit bit (bit 10).
_MANT_TOP_CLZ = 32 - FP16_EXP_SHIFT - 1

# Exponent 31 is offset straight to 255, then 2**-112 brings finite lanes back to the single precision bias.
_IEEE_EXP_OFFSET = (FP32_EXP_MAX - FP16_EXP_MAX) << FP32_EXP_SHIFT
_IEEE_EXP_SCALE = np.float32(2.0 ** -BIAS_DIFF)
_ALT_EXP_OFFSET = BIAS_DIFF << FP32_EXP_SHIFT

# 0.5 with the half mantissa in its low bits, so one ulp is 2**-24.
_DENORMAL_MAGIC = 126 << FP32_EXP_SHIFT
_DENORMAL_BIAS = np.float32(0.5)
# Doubled half pattern below this has a zero exponent field.
_DENORMAL_CUTOFF = 1 << 27


def _fields(h):
    h = np.asarray(h, dtype=np.uint32)
    sign = (h & FP16_SIGN_MASK) << SIGN_SHIFT
    exp = (h & FP16_EXP_MASK) >> FP16_EXP_SHIFT
    mant = h & FP16_MANT_MASK
    return sign, exp, mant


def _widen_finite(sign, exp, mant):
    normal = sign | ((exp + BIAS_DIFF) << FP32_EXP_SHIFT) | (mant << MANT_SHIFT)

    # Move the leading mantissa bit onto the implicit position and take the exponent down by the same amount.
    renorm_shift = count_leading_zero_bits(mant) - _MANT_TOP_CLZ
    subnormal = (
        sign
        | ((MIN_NORMAL_EXP - renorm_shift) << FP32_EXP_SHIFT)
        | (((mant << renorm_shift) & FP16_MANT_MASK) << MANT_SHIFT)
    )

    return np.where(exp == 0, np.where(mant == 0, sign, subnormal), normal)


def decode_ieee_bits(h):
    """IEEE half patterns to single precision patterns. NaNs come out quiet with their payload kept."""
    sign, exp, mant = _fields(h)
    inf_nan = sign | FP32_INF | (mant << MANT_SHIFT)
    inf_nan = np.where(mant != 0, inf_nan | FP32_QUIET_BIT, inf_nan)
    return np.where(exp == FP16_EXP_MAX, inf_nan, _widen_finite(sign, exp, mant))


def decode_alt_bits(h):
    """Alt half patterns to single precision patterns. Exponent 31 is an ordinary binade."""
    return _widen_finite(*_fields(h))


def _decode_fp(h, exp_offset, exp_scale=None):
    w = np.asarray(h, dtype=np.uint32) << SIGN_SHIFT
    sign = w & FP32_SIGN_MASK
    # Exponent and mantissa at the top of the word, sign shifted out.
    two_w = w << 1

    normalized = bitcast_u32_to_f32((two_w >> 4) + exp_offset)
    if exp_scale is not None:
        # Signaling NaNs raise the invalid flag here; the product is the quieted NaN we want.
        with np.errstate(invalid="ignore"):
            normalized = normalized * exp_scale

    denormalized = bitcast_u32_to_f32((two_w >> 17) | _DENORMAL_MAGIC) - _DENORMAL_BIAS

    magnitude = np.where(
        two_w < _DENORMAL_CUTOFF,
        bitcast_f32_to_u32(denormalized),
        bitcast_f32_to_u32(normalized),
    )
    return bitcast_u32_to_f32(sign | magnitude)


def decode_ieee_fp(h):
    """IEEE half patterns to float32 values, using float arithmetic for the exponent adjustment."""
    return _decode_fp(h, _IEEE_EXP_OFFSET, _IEEE_EXP_SCALE)


def decode_alt_fp(h):
    """Alt half patterns to float32 values. The bias adjustment alone never reaches exponent 255."""
    return _decode_fp(h, _ALT_EXP_OFFSET)
