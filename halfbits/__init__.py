from halfbits import ops
from halfbits.constants import HalfFormat
from halfbits.ops import (
    half_to_single_bits,
    half_to_single_value,
    single_bits_to_half_bits,
    single_value_to_half_bits,
)

__all__ = [
    "HalfFormat",
    "half_to_single_bits",
    "half_to_single_value",
    "single_bits_to_half_bits",
    "single_value_to_half_bits",
]
