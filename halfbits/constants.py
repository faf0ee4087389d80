from enum import IntEnum

########################################################################################################################
# Single precision: 1 sign, 8 exponent, 23 mantissa bits
########################################################################################################################
FP32_SIGN_MASK = 0x80000000
FP32_NONSIGN_MASK = 0x7FFFFFFF
FP32_EXP_MASK = 0x7F800000
FP32_MANT_MASK = 0x007FFFFF
FP32_EXP_SHIFT = 23
FP32_EXP_MAX = 0xFF
FP32_BIAS = 127
FP32_IMPLICIT_BIT = 0x00800000
FP32_QUIET_BIT = 0x00400000
FP32_INF = 0x7F800000

########################################################################################################################
# Half precision: 1 sign, 5 exponent, 10 mantissa bits
########################################################################################################################
FP16_SIGN_MASK = 0x8000
FP16_EXP_MASK = 0x7C00
FP16_MANT_MASK = 0x03FF
FP16_EXP_SHIFT = 10
FP16_EXP_MAX = 0x1F
FP16_BIAS = 15

FP16_INF = 0x7C00
# Canonical quiet NaN produced by the IEEE encoder for every NaN input.
FP16_QNAN = 0x7E00
FP16_IEEE_MAX = 0x7BFF  # 65504.0
FP16_ALT_MAX = 0x7FFF   # 131008.0

########################################################################################################################
# Conversion between the two
########################################################################################################################
SIGN_SHIFT = 16
MANT_SHIFT = FP32_EXP_SHIFT - FP16_EXP_SHIFT  # 13
BIAS_DIFF = FP32_BIAS - FP16_BIAS             # 112

# Biased single exponents that bound the half ranges.
MIN_NORMAL_EXP = BIAS_DIFF + 1                # 113 -> 2**-14
MAX_NORMAL_EXP = BIAS_DIFF + FP16_EXP_MAX - 1 # 142 -> 2**15
# Right shift of the 24-bit significand that leaves nothing to round.
MAX_SUBNORMAL_SHIFT = 25

# Largest alt value (131008.0) as a single precision pattern.
FP32_ALT_MAX = 0x47FFE000


class HalfFormat(IntEnum):
    IEEE = 0
    ALT  = 1
