# hdrgamma/cli.py
"""
Dump a LUT for inspection.

    hdrgamma 2.4 200                 # print every 100th sample
    hdrgamma 2.2 80 lut.csv          # write all 1024 samples as CSV
    hdrgamma 2.2 80 --brightness 60 --temperature -20 --algorithm blue_reduction
"""
from __future__ import annotations

import argparse
import csv
import logging
import sys
from typing import List, Optional, TextIO

from hdrgamma.lut import LUT_SIZE, Lut, generate_lut
from hdrgamma.settings import CalibrationSettings, GammaMode, SettingsError, TemperatureAlgorithm
from hdrgamma.transfer import pq_eotf, srgb_eotf

logger = logging.getLogger("hdrgamma")

SAMPLE_STEP = 100
CSV_HEADER = ["Index", "Input_Normalized", "Input_Nits", "Output_Normalized", "Output_Nits"]


def _gamma_mode(text: str) -> GammaMode:
    try:
        return GammaMode.parse(text)
    except SettingsError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _algorithm(text: str) -> TemperatureAlgorithm:
    try:
        return TemperatureAlgorithm.parse(text)
    except SettingsError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hdrgamma", description="HDR gamma correction LUT generator")
    parser.add_argument("mode", type=_gamma_mode, help="target gamma: 2.2, 2.4 or default")
    parser.add_argument("white", type=float, help="SDR white level in nits (e.g. 80, 200, 480)")
    parser.add_argument("output", nargs="?", help="write all samples to this CSV file")
    parser.add_argument("--sdr", action="store_true", help="build an SDR (gamma 2.2) ramp instead of PQ")
    parser.add_argument("--brightness", type=float, default=100.0, help="brightness 10..100 (default: 100)")
    parser.add_argument("--temperature", type=float, default=0.0, help="temperature -50..50, negative = warmer")
    parser.add_argument("--tint", type=float, default=0.0, help="tint -50..50, negative = green")
    parser.add_argument("--algorithm", type=_algorithm, default=TemperatureAlgorithm.STANDARD,
                        help="standard, accurate_cie1931 or blue_reduction")
    parser.add_argument("--linear-brightness", action="store_true", help="dim linearly instead of perceptually")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def _nits(signal: float, white: float, is_hdr: bool) -> float:
    return pq_eotf(signal) if is_hdr else srgb_eotf(signal, white)


def write_csv(lut: Lut, out: TextIO, white: float, is_hdr: bool = True) -> None:
    """Grey channel as CSV: index, input/output signal and nits."""
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for i, y in enumerate(lut.grey):
        x = i / (LUT_SIZE - 1)
        writer.writerow([
            i,
            f"{x:.6f}",
            f"{_nits(x, white, is_hdr):.2f}",
            f"{y:.6f}",
            f"{_nits(float(y), white, is_hdr):.2f}",
        ])


def print_samples(lut: Lut, out: TextIO, white: float, is_hdr: bool = True) -> None:
    indices = list(range(0, LUT_SIZE, SAMPLE_STEP))
    if indices[-1] != LUT_SIZE - 1:
        indices.append(LUT_SIZE - 1)
    print(f"Sample Output (every {SAMPLE_STEP}th point):", file=out)
    for i in indices:
        x = i / (LUT_SIZE - 1)
        y = float(lut.grey[i])
        print(f"[{i}] In: {_nits(x, white, is_hdr):.2f} nits -> Out: {_nits(y, white, is_hdr):.2f} nits", file=out)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[hdrgamma] %(message)s",
    )

    calibration = CalibrationSettings(
        brightness=args.brightness,
        temperature=args.temperature,
        tint=args.tint,
        algorithm=args.algorithm,
        use_linear_brightness=args.linear_brightness,
    )
    is_hdr = not args.sdr
    logger.info("Generating LUT: %s, SDR white %.0f nits%s", args.mode.name, args.white, "" if is_hdr else " (SDR)")
    lut = generate_lut(args.mode, args.white, calibration, is_hdr)

    if args.output:
        with open(args.output, "w", encoding="utf-8", newline="") as f:
            write_csv(lut, f, args.white, is_hdr)
        logger.info("LUT saved to %s", args.output)
    else:
        print_samples(lut, sys.stdout, args.white, is_hdr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
