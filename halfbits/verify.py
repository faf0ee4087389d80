#!/usr/bin/env python3
"""Cross-validation sweeps between the conversion strategies.

A wrong but well formed bit pattern cannot be detected at run time, so the strategies are checked against each other
over whole input spaces: all 65536 half patterns for decoding and round trips, and any range of the 2**32 single
patterns for encoding.

    python -m halfbits.verify --format ieee --start 0x38000000 --stop 0x48000000
"""
import argparse
import sys
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from halfbits import decode, encode
from halfbits.bitcasts import bitcast_f32_to_u32, bitcast_u32_to_f32
from halfbits.constants import (
    FP16_EXP_MASK,
    FP16_MANT_MASK,
    FP32_EXP_MASK,
    FP32_INF,
    FP32_MANT_MASK,
    FP32_QUIET_BIT,
    FP32_SIGN_MASK,
    HalfFormat,
)

HALF_SPACE = 1 << 16
SINGLE_SPACE = 1 << 32
DEFAULT_CHUNK = 1 << 22
DEFAULT_MAX_REPORT = 16

_STRATEGIES = {
    HalfFormat.IEEE: (decode.decode_ieee_bits, decode.decode_ieee_fp, encode.encode_ieee_bits, encode.encode_ieee_fp),
    HalfFormat.ALT: (decode.decode_alt_bits, decode.decode_alt_fp, encode.encode_alt_bits, encode.encode_alt_fp),
}


@dataclass
class Mismatch:
    pattern: int
    expected: int
    actual: int


@dataclass
class SweepReport:
    name: str
    checked: int = 0
    mismatch_count: int = 0
    mismatches: List[Mismatch] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.mismatch_count == 0

    def record(self, patterns: np.ndarray, expected: np.ndarray, actual: np.ndarray, max_report: int = DEFAULT_MAX_REPORT):
        bad = expected != actual
        self.checked += patterns.size
        count = int(np.count_nonzero(bad))
        if count == 0:
            return
        self.mismatch_count += count
        room = max(max_report - len(self.mismatches), 0)
        for i in np.flatnonzero(bad)[:room]:
            self.mismatches.append(Mismatch(int(patterns[i]), int(expected[i]), int(actual[i])))

    def summary(self) -> str:
        status = "OK" if self.ok else f"{self.mismatch_count} mismatches"
        return f"{self.name:<36} | {self.checked:>12} | {status}"


def half_patterns() -> np.ndarray:
    """Every 16 bit pattern, held in uint32 lanes."""
    return np.arange(HALF_SPACE, dtype=np.uint32)


def single_patterns(start: int, stop: int) -> np.ndarray:
    return np.arange(start, stop, dtype=np.int64).astype(np.uint32)


def _collapse_nans(bits: np.ndarray) -> np.ndarray:
    """Keep only sign and NaN-ness of NaN lanes; the payload a float unit leaves behind is not portable."""
    is_nan = ((bits & FP32_EXP_MASK) == FP32_EXP_MASK) & ((bits & FP32_MANT_MASK) != 0)
    return np.where(is_nan, (bits & FP32_SIGN_MASK) | FP32_INF | FP32_QUIET_BIT, bits)


def check_decoders(fmt: HalfFormat, max_report: int = DEFAULT_MAX_REPORT) -> SweepReport:
    """Integer and float assisted decoders agree on all half patterns."""
    decode_bits, decode_fp, _, _ = _STRATEGIES[fmt]
    patterns = half_patterns()
    report = SweepReport(f"decode {fmt.name.lower()}: bits vs fp")
    expected = _collapse_nans(decode_bits(patterns))
    actual = _collapse_nans(bitcast_f32_to_u32(decode_fp(patterns)))
    report.record(patterns, expected, actual, max_report)
    return report


def check_round_trip(fmt: HalfFormat, max_report: int = DEFAULT_MAX_REPORT) -> SweepReport:
    """Every non-NaN half pattern comes back unchanged from widening and narrowing, through both encoders."""
    decode_bits, _, encode_bits, encode_fp = _STRATEGIES[fmt]
    patterns = half_patterns()
    if fmt == HalfFormat.IEEE:
        is_nan = ((patterns & FP16_EXP_MASK) == FP16_EXP_MASK) & ((patterns & FP16_MANT_MASK) != 0)
        patterns = patterns[~is_nan]

    report = SweepReport(f"round trip {fmt.name.lower()}")
    widened = decode_bits(patterns)
    report.record(patterns, patterns, encode_bits(widened), max_report)
    report.record(patterns, patterns, encode_fp(bitcast_u32_to_f32(widened)), max_report)
    return report


def check_encoders(fmt: HalfFormat,
                   start: int = 0,
                   stop: int = SINGLE_SPACE,
                   chunk: int = DEFAULT_CHUNK,
                   max_report: int = DEFAULT_MAX_REPORT,
                   verbose: bool = False) -> List[SweepReport]:
    """Integer encoders against the float assisted one (and the rounding bias one for IEEE) over [start, stop)."""
    _, _, encode_bits, encode_fp = _STRATEGIES[fmt]
    name = fmt.name.lower()
    fp_report = SweepReport(f"encode {name}: bits vs fp")
    reports = [fp_report]
    biased_report: Optional[SweepReport] = None
    if fmt == HalfFormat.IEEE:
        biased_report = SweepReport(f"encode {name}: bits vs biased")
        reports.append(biased_report)

    for lo in range(start, stop, chunk):
        hi = min(lo + chunk, stop)
        patterns = single_patterns(lo, hi)
        expected = encode_bits(patterns)
        fp_report.record(patterns, expected, encode_fp(bitcast_u32_to_f32(patterns)), max_report)
        if biased_report is not None:
            biased_report.record(patterns, expected, encode.encode_ieee_bits_biased(patterns), max_report)
        if verbose:
            print(f"encode {name}: {hi:#011x} / {stop:#011x}")

    return reports


def run_checks(formats: List[HalfFormat],
               start: int = 0,
               stop: int = SINGLE_SPACE,
               chunk: int = DEFAULT_CHUNK,
               max_report: int = DEFAULT_MAX_REPORT,
               verbose: bool = False) -> List[SweepReport]:
    reports = []
    for fmt in formats:
        reports.append(check_decoders(fmt, max_report))
        reports.append(check_round_trip(fmt, max_report))
        reports.extend(check_encoders(fmt, start, stop, chunk, max_report, verbose))
    return reports


def _pattern(text: str) -> int:
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}")
    if not 0 <= value <= SINGLE_SPACE:
        raise argparse.ArgumentTypeError(f"{text} is outside [0, 2**32]")
    return value


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Cross-check the half precision conversion strategies against each other.')
    parser.add_argument('--format', choices=['ieee', 'alt', 'both'], default='both',
                        help='Half precision flavor to check (default: both)')
    parser.add_argument('--start', type=_pattern, default=0,
                        help='First single precision pattern to encode (default: 0)')
    parser.add_argument('--stop', type=_pattern, default=SINGLE_SPACE,
                        help='End of the encoded pattern range, exclusive (default: 2**32)')
    parser.add_argument('--chunk', type=int, default=DEFAULT_CHUNK,
                        help='Patterns converted per numpy batch (default: 2**22)')
    parser.add_argument('--max-report', type=int, default=DEFAULT_MAX_REPORT,
                        help='Mismatches listed per check (default: 16)')
    parser.add_argument('--verbose', action='store_true', help='Print progress after every chunk')
    args = parser.parse_args(argv)

    if args.start >= args.stop:
        parser.error('--start must be below --stop')
    if args.chunk <= 0:
        parser.error('--chunk must be positive')

    formats = list(HalfFormat) if args.format == 'both' else [HalfFormat[args.format.upper()]]
    reports = run_checks(formats, args.start, args.stop, args.chunk, args.max_report, args.verbose)

    print(f"{'Check':<36} | {'Checked':>12} | Result")
    print("-" * 64)
    for report in reports:
        print(report.summary())
        for mismatch in report.mismatches:
            print(f"    {mismatch.pattern:#010x}: expected {mismatch.expected:#x}, got {mismatch.actual:#x}")

    return 0 if all(report.ok for report in reports) else 1


if __name__ == "__main__":
    sys.exit(main())
