import numpy as np
from typing import Tuple, Union

from halfbits import decode, encode
from halfbits.constants import HalfFormat

__all__ = ["half_to_single_bits", "half_to_single_value", "single_bits_to_half_bits", "single_value_to_half_bits"]

FormatLike = Union[HalfFormat, int, str]

_DECODE_BITS = {HalfFormat.IEEE: decode.decode_ieee_bits, HalfFormat.ALT: decode.decode_alt_bits}
_DECODE_FP = {HalfFormat.IEEE: decode.decode_ieee_fp, HalfFormat.ALT: decode.decode_alt_fp}
_ENCODE_BITS = {HalfFormat.IEEE: encode.encode_ieee_bits, HalfFormat.ALT: encode.encode_alt_bits}
_ENCODE_FP = {HalfFormat.IEEE: encode.encode_ieee_fp, HalfFormat.ALT: encode.encode_alt_fp}

########################################################################################################################
# Argument handling
########################################################################################################################

def resolve_format(fmt: FormatLike) -> HalfFormat:
    """Accept HalfFormat members, their integer values, or the names "ieee" / "alt"."""
    if isinstance(fmt, str):
        try:
            return HalfFormat[fmt.upper()]
        except KeyError:
            raise ValueError(f"fmt must be 'ieee' or 'alt', got {fmt!r}.") from None
    try:
        return HalfFormat(fmt)
    except ValueError:
        raise ValueError(f"fmt must be a HalfFormat, got {fmt!r}.") from None


def _bits_argument(value, name: str, width: int) -> Tuple[np.ndarray, tuple]:
    array = np.asarray(value)
    if array.dtype.kind not in ("i", "u"):
        raise ValueError(f"{name} must be a {width}-bit unsigned integer.")
    if array.size and (int(array.min()) < 0 or int(array.max()) >= 1 << width):
        raise ValueError(f"{name} must be a {width}-bit unsigned integer.")
    return np.atleast_1d(array).astype(np.uint32), array.shape


def _value_argument(value, name: str) -> Tuple[np.ndarray, tuple]:
    array = np.asarray(value)
    if array.dtype.kind not in ("f", "i", "u"):
        raise ValueError(f"{name} must be a real number.")
    # Doubles beyond the single range become infinities.
    with np.errstate(over="ignore"):
        return np.atleast_1d(array).astype(np.float32), array.shape


def _bits_result(result: np.ndarray, shape: tuple) -> Union[int, np.ndarray]:
    result = result.reshape(shape)
    return int(result) if result.ndim == 0 else result

########################################################################################################################
# Half -> single
########################################################################################################################

def half_to_single_bits(h, fmt: FormatLike = HalfFormat.IEEE) -> Union[int, np.ndarray]:
    """Widen half precision bit patterns to single precision bit patterns with integer arithmetic only."""
    bits, shape = _bits_argument(h, "h", 16)
    return _bits_result(_DECODE_BITS[resolve_format(fmt)](bits), shape)


def half_to_single_value(h, fmt: FormatLike = HalfFormat.IEEE) -> Union[np.float32, np.ndarray]:
    """Widen half precision bit patterns to float32 values using float arithmetic. NaN payloads are kept."""
    bits, shape = _bits_argument(h, "h", 16)
    return _DECODE_FP[resolve_format(fmt)](bits).reshape(shape)[()]

########################################################################################################################
# Single -> half
########################################################################################################################

def single_bits_to_half_bits(x, fmt: FormatLike = HalfFormat.IEEE) -> Union[int, np.ndarray]:
    """Narrow single precision bit patterns to half precision bit patterns, round to nearest even."""
    bits, shape = _bits_argument(x, "x", 32)
    return _bits_result(_ENCODE_BITS[resolve_format(fmt)](bits), shape)


def single_value_to_half_bits(f, fmt: FormatLike = HalfFormat.IEEE) -> Union[int, np.ndarray]:
    """Narrow values to half precision bit patterns through float32, using the FPU's round to nearest even."""
    values, shape = _value_argument(f, "f")
    return _bits_result(_ENCODE_FP[resolve_format(fmt)](values), shape)
