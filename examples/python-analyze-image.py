import os
import sys
import asyncio
from pathlib import Path

# Add python directory to path to import tamperlens
sys.path.append(os.path.join(os.path.dirname(__file__), '../python'))

from tamperlens import AnalysisOptions, ForensicsAnalyzer, decode_image


def print_result(name, result):
    print(f"\n[{name}]")
    print(f"Blocks: {result.grid.by_count}x{result.grid.bx_count}")
    print(f"Threshold: {result.threshold:.4f}")
    print(f"Suspicious blocks: {result.suspicious_count}")
    for row in result.mask:
        print("  " + "".join("#" if flagged else "." for flagged in row))
    for warning in result.warnings:
        print(f"Warning: {warning}")


async def main():
    print("--- Testing Tamper Suspicion Maps (Python) ---")

    base_dir = Path(__file__).parent.parent
    images = [
        base_dir / "test-data" / "original" / "sample-photo.jpg",
        base_dir / "test-data" / "tampered" / "sample-smoothed.jpg",
        base_dir / "test-data" / "tampered" / "sample-recompressed.jpg",
    ]

    missing = [p for p in images if not p.exists()]
    if missing:
        print("Test data not found! Run scripts/generate-test-data.py first.")
        for p in missing:
            print(f"Missing: {p}")
        sys.exit(1)

    analyzer = ForensicsAnalyzer(AnalysisOptions(block_size=32, threshold_percent=90))

    for image_path in images:
        pixels = decode_image(image_path.read_bytes())
        print(f"\nAnalyzing image: {image_path.name} ({pixels.width}x{pixels.height})")
        result = await analyzer.analyze_async(pixels)
        print_result(image_path.name, result)


if __name__ == "__main__":
    asyncio.run(main())
