"""Single precision -> half precision, round to nearest even.

Strategies:

    * ``encode_*_bits``: integer only, guard/sticky rounding. This is the production path.
    * ``encode_ieee_bits_biased``: integer only, adds half an ulp unless the dropped bits are an exact tie below an
      even mantissa. Kept as a second opinion for cross validation.
    * ``encode_*_fp``: float assisted. The magnitude is scaled and added to a constructed float whose ulp is exactly
      the half ulp, so the FPU's own round to nearest even does the rounding and carry. Requires the host to add in
      round to nearest even mode.

Overflow saturates to infinity (IEEE) or to 131008.0 (alt). Any NaN encodes to a signed 0x7E00 (IEEE); alt has no
NaN so NaN and infinity are treated as huge magnitudes and saturate.

Kernels expect arrays with at least one dimension so that wrapped lanes stay silent.
"""
import numpy as np

from halfbits.bitcasts import bitcast_f32_to_u32, bitcast_u32_to_f32
from halfbits.constants import (
    BIAS_DIFF,
    FP16_BIAS,
    FP16_EXP_MASK,
    FP16_EXP_SHIFT,
    FP16_INF,
    FP16_QNAN,
    FP16_SIGN_MASK,
    FP32_ALT_MAX,
    FP32_EXP_MASK,
    FP32_EXP_SHIFT,
    FP32_IMPLICIT_BIT,
    FP32_INF,
    FP32_MANT_MASK,
    FP32_NONSIGN_MASK,
    FP32_SIGN_MASK,
    MANT_SHIFT,
    MAX_NORMAL_EXP,
    MAX_SUBNORMAL_SHIFT,
    MIN_NORMAL_EXP,
    SIGN_SHIFT,
)

__all__ = ["encode_ieee_bits", "encode_alt_bits", "encode_ieee_bits_biased", "encode_ieee_fp", "encode_alt_fp"]

_U32_ZERO = np.uint32(0)

# A single exponent `e` at or below BIAS_DIFF lands in the half subnormals after a right shift of 126 - e.
_SUBNORMAL_SHIFT_BASE = BIAS_DIFF + MANT_SHIFT + 1

########################################################################################################################
# Guard/sticky rounding
########################################################################################################################

def _round_increment(significand, shift, kept):
    """1 where dropping the low `shift` bits of `significand` has to round `kept` up, 0 elsewhere."""
    guard = (significand >> (shift - 1)) & 1
    sticky = ((significand & ((1 << (shift - 1)) - 1)) != 0).astype(np.uint32)
    return guard & (sticky | (kept & 1))


def _round_magnitude(mag):
    """Round a sign-free single pattern with biased exponent <= 143 to a sign-free half pattern.

    Exponent 143 is only reached by the alt encoder; IEEE lanes above 142 are replaced by the caller.
    """
    exp = mag >> FP32_EXP_SHIFT
    mant = mag & FP32_MANT_MASK

    # Normal: the increment may carry out of the mantissa into the exponent, up to infinity from exponent 30.
    kept = ((np.maximum(exp, BIAS_DIFF) - BIAS_DIFF) << FP16_EXP_SHIFT) | (mant >> MANT_SHIFT)
    normal = kept + _round_increment(mant, MANT_SHIFT, kept)

    # Subnormal: shift 25 leaves neither kept bits nor a guard bit, which also covers single subnormals and zero.
    shift = np.minimum(_SUBNORMAL_SHIFT_BASE - np.minimum(exp, BIAS_DIFF), MAX_SUBNORMAL_SHIFT)
    significand = mant | FP32_IMPLICIT_BIT
    kept = significand >> shift
    subnormal = kept + _round_increment(significand, shift, kept)

    return np.where(exp > BIAS_DIFF, normal, subnormal)


def encode_ieee_bits(x):
    """Single precision patterns to IEEE half patterns."""
    x = np.asarray(x, dtype=np.uint32)
    sign = (x >> SIGN_SHIFT) & FP16_SIGN_MASK
    mag = x & FP32_NONSIGN_MASK

    special = np.where(mag > FP32_INF, np.uint32(FP16_QNAN), np.uint32(FP16_INF))
    half = np.where((mag >> FP32_EXP_SHIFT) > MAX_NORMAL_EXP, special, _round_magnitude(mag))
    return (sign | half).astype(np.uint16)


def encode_alt_bits(x):
    """Single precision patterns to alt half patterns, saturating at 131008.0."""
    x = np.asarray(x, dtype=np.uint32)
    sign = (x >> SIGN_SHIFT) & FP16_SIGN_MASK
    mag = np.minimum(x & FP32_NONSIGN_MASK, FP32_ALT_MAX)
    return (sign | _round_magnitude(mag)).astype(np.uint16)

########################################################################################################################
# Rounding bias
########################################################################################################################

_HALF_BIAS_FIELD = BIAS_DIFF << FP32_EXP_SHIFT                        # 2**-15, top of the subnormal range
_ZERO_CUTOFF_FIELD = (BIAS_DIFF - FP16_EXP_SHIFT) << FP32_EXP_SHIFT   # 2**-25
_OVERFLOW_FIELD = (MAX_NORMAL_EXP + 1) << FP32_EXP_SHIFT              # 2**16
_HALF_ULP = 1 << (MANT_SHIFT - 1)
_TIE_MASK = (1 << (MANT_SHIFT + 1)) - 1


def encode_ieee_bits_biased(x):
    """Single precision patterns to IEEE half patterns by adding a rounding bias before truncation."""
    x = np.asarray(x, dtype=np.uint32)
    sign = (x >> SIGN_SHIFT) & FP16_SIGN_MASK
    f_exp = x & FP32_EXP_MASK
    f_sig = x & FP32_MANT_MASK

    # Normal: rebias the exponent in place; a carry out of the mantissa lands in the exponent.
    normal_sig = f_sig + np.where((f_sig & _TIE_MASK) != _HALF_ULP, np.uint32(_HALF_ULP), _U32_ZERO)
    normal = ((f_exp - _HALF_BIAS_FIELD) >> MANT_SHIFT) + (normal_sig >> MANT_SHIFT)

    # Subnormal: the alignment shift drops up to 11 bits, so the tie test also needs them to be zero.
    exp = np.clip(f_exp >> FP32_EXP_SHIFT, BIAS_DIFF - FP16_EXP_SHIFT, BIAS_DIFF)
    sub_sig = (f_sig + FP32_IMPLICIT_BIT) >> (MIN_NORMAL_EXP - exp)
    tie = ((sub_sig & _TIE_MASK) == _HALF_ULP) & ((x & 0x7FF) == 0)
    sub_sig = sub_sig + np.where(tie, _U32_ZERO, np.uint32(_HALF_ULP))
    subnormal = sub_sig >> MANT_SHIFT

    half = np.where(f_exp < _ZERO_CUTOFF_FIELD, _U32_ZERO, subnormal)
    half = np.where(f_exp > _HALF_BIAS_FIELD, normal, half)
    special = np.where((f_exp == FP32_EXP_MASK) & (f_sig != 0), np.uint32(FP16_QNAN), np.uint32(FP16_INF))
    half = np.where(f_exp >= _OVERFLOW_FIELD, special, half)
    return (sign | half).astype(np.uint16)

########################################################################################################################
# Float assisted
########################################################################################################################

_SCALE_TO_INF = np.float32(2.0 ** BIAS_DIFF)
_SCALE_TO_ZERO = np.float32(2.0 ** -(BIAS_DIFF - 2))
_SHL1_EXP_MASK = 0xFF000000
_SHL1_INF = FP32_INF << 1
_SHL1_MIN_BIAS = MIN_NORMAL_EXP << (FP32_EXP_SHIFT + 1)
_SHL1_ALT_MAX = FP32_ALT_MAX << 1
_MAGIC_EXP_OFFSET = FP16_BIAS << FP32_EXP_SHIFT
_ALT_MAGIC_EXP_OFFSET = (MANT_SHIFT + 2) << FP32_EXP_SHIFT
_ALT_QUADRUPLE = 2 << FP32_EXP_SHIFT
_ROUNDED_MANT_MASK = 0x0FFF


def _assemble(sign, rounded):
    """Pull the half exponent and mantissa out of the rounded float.

    The magic addend leaves the half mantissa in the low 10 bits. Its exponent field, read 13 bits down, is one
    short of the half exponent; the implicit bit at bit 10, or the carry of a round up, is added on top.
    """
    bits = bitcast_f32_to_u32(rounded)
    return (sign >> SIGN_SHIFT) | (((bits >> MANT_SHIFT) & FP16_EXP_MASK) + (bits & _ROUNDED_MANT_MASK))


def encode_ieee_fp(f):
    """float32 values to IEEE half patterns using the FPU's round to nearest even addition."""
    f = np.asarray(f, dtype=np.float32)
    w = bitcast_f32_to_u32(f)
    sign = w & FP32_SIGN_MASK
    shl1_w = w << 1

    with np.errstate(over="ignore", invalid="ignore"):
        # Past the half range this overflows to infinity; everything else gains 2 in its exponent.
        base = (np.abs(f) * _SCALE_TO_INF) * _SCALE_TO_ZERO

        # Addend with the same exponent plus 13, floored at the smallest normal half exponent.
        bias = np.maximum(shl1_w & _SHL1_EXP_MASK, _SHL1_MIN_BIAS)
        rounded = bitcast_u32_to_f32((bias >> 1) + _MAGIC_EXP_OFFSET) + base

    half = _assemble(sign, rounded)
    half = np.where(shl1_w > _SHL1_INF, (sign >> SIGN_SHIFT) | FP16_QNAN, half)
    return half.astype(np.uint16)


def encode_alt_fp(f):
    """float32 values to alt half patterns. The magnitude is clamped before rounding, NaN included."""
    f = np.asarray(f, dtype=np.float32)
    w = bitcast_f32_to_u32(f)
    sign = w & FP32_SIGN_MASK

    shl1_base = np.minimum(w << 1, _SHL1_ALT_MAX)
    shl1_bias = np.maximum(shl1_base & _SHL1_EXP_MASK, _SHL1_MIN_BIAS)

    bias = bitcast_u32_to_f32((shl1_bias >> 1) + _ALT_MAGIC_EXP_OFFSET)
    rounded = bitcast_u32_to_f32((shl1_base >> 1) + _ALT_QUADRUPLE) + bias
    return _assemble(sign, rounded).astype(np.uint16)
