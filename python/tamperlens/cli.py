"""Command-line interface for Tamperlens."""
import argparse
import json
import logging
import sys
from pathlib import Path

from .analyzer import ForensicsAnalyzer
from .errors import ImageDecodeError, InvalidOptionsError, TamperlensError
from .types import AnalysisOptions


def _render_block_map(result) -> str:
    """ASCII view of the highlight mask: '#' suspicious, '.' clear."""
    return "\n".join(
        "  " + "".join("#" if flagged else "." for flagged in row)
        for row in result.mask
    )


def analyze_command(args):
    """Analyze image command."""
    image_path = Path(args.file)
    if not image_path.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        sys.exit(1)

    try:
        options = AnalysisOptions(
            block_size=args.block_size,
            threshold_percent=args.threshold,
        )
    except InvalidOptionsError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    analyzer = ForensicsAnalyzer(options, max_workers=getattr(args, "workers", 1))

    try:
        result = analyzer.analyze_bytes(image_path.read_bytes())
    except ImageDecodeError as e:
        print(f"Error: Could not load image {args.file}: {e}", file=sys.stderr)
        sys.exit(1)
    except TamperlensError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        data = result.to_dict(include_maps=args.verbose)
        data["file"] = str(image_path.resolve())
        data["highlight_rects"] = [list(rect) for rect in result.highlight_rects()]
        print(json.dumps(data, indent=2))
    else:
        grid = result.grid
        total = grid.by_count * grid.bx_count
        print(f"\n{'='*60}")
        print("  Tamper Suspicion Report")
        print(f"{'='*60}\n")
        print(f"File: {image_path.resolve()}")
        print(f"Size: {grid.width}x{grid.height}")
        print(f"Blocks: {grid.by_count} rows x {grid.bx_count} cols ({grid.block_size}px)")
        print(f"Threshold: {result.threshold:.4f} ({options.threshold_percent:g}th percentile)")
        print(f"Suspicious: {result.suspicious_count}/{total}")

        if result.warnings:
            print("\nWarnings:")
            for warning in result.warnings:
                print(f"  • {warning}")

        print("\nBlock map:")
        print(_render_block_map(result))

        print(f"\n{'='*60}\n")

    sys.exit(0)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="tamperlens",
        description="Highlight image regions that look locally edited"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser("analyze", help="Build a block suspicion map")
    analyze_parser.add_argument("file", help="Image to analyze")
    analyze_parser.add_argument("-b", "--block-size", type=int, default=32, help="Block size in pixels (default: 32)")
    analyze_parser.add_argument("-t", "--threshold", type=float, default=80, help="Percentile at which blocks are flagged (default: 80)")
    analyze_parser.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    analyze_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output and raw detector maps")
    analyze_parser.add_argument("-w", "--workers", type=int, default=1, help="Number of parallel threads for detectors (default: 1)")
    analyze_parser.set_defaults(func=analyze_command)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    args.func(args)


if __name__ == "__main__":
    main()
