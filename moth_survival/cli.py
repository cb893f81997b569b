"""
Command-line interface for moth_survival package.
"""

import logging
import sys
from pathlib import Path

from . import report


def main():
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print("Usage: moth-survival <input_file> [output_dir]")
        print("\nExample:")
        print("  moth-survival data/moth_survival.csv output/")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    input_path = Path(sys.argv[1])
    output_dir = Path(sys.argv[2]) if len(sys.argv) > 2 else Path("survival_analysis_results")

    try:
        result = report.run_analysis(input_path, output_dir)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"\nAnalysed {len(result.survival)} individuals ({len(result.intervals)} half-day intervals)")
    print("\nModel ranking (AICc):")
    print(result.ranking[["rank", "model", "AICc", "delta_AICc", "akaike_weight"]].to_string(index=False))
    if not result.failures.empty:
        print(f"\nNot ranked (fit failed): {', '.join(result.failures['model'])}")
    print(f"\nHazard ratios ({result.best.name}):")
    print(result.hazard_ratios.drop(columns=["model"]).round(4).to_string(index=False))
    print(f"\nResults saved to: {result.workbook}")


if __name__ == "__main__":
    main()
