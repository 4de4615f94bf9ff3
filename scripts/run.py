"""
@module: scripts.run
@depends: css
@exports: run_comparison, main
@data_flow: csv/parquet -> covariance -> selectors -> comparison table -> json

Benchmark runner for column subset selection.

Usage:
    python scripts/run.py --input data/items.csv --k 5
    python scripts/run.py --input data/items.parquet --k 5 --preset thorough --seed 1
    python scripts/run.py --input data/items.csv --k 3 --methods swapping matching_pursuit
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import numpy as np
import pandas as pd

# Add parent to path for css imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from css import SelectionMethod, compare_selectors, resolve_selector_config

logger = logging.getLogger(__name__)


def load_matrix(path: Path, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Load a numeric matrix from CSV or parquet; non-numeric columns are dropped."""
    logger.info(f"Loading matrix from: {path}")
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")

    if path.suffix == ".parquet":
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path)

    if columns:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise ValueError(f"Columns not found in input: {missing}")
        df = df[columns]

    numeric = df.select_dtypes(include=[np.number])
    dropped = [c for c in df.columns if c not in numeric.columns]
    if dropped:
        logger.warning(f"Dropping {len(dropped)} non-numeric column(s): {dropped}")

    logger.info(
        f"Matrix loaded: {len(numeric)} rows, {len(numeric.columns)} columns, "
        f"{numeric.isna().mean().mean():.1%} missing"
    )
    return numeric


def run_comparison(
    df: pd.DataFrame,
    k: int,
    preset: str = "default",
    seed: Optional[int] = None,
    methods: Optional[List[str]] = None,
    restarts: Optional[int] = None,
) -> pd.DataFrame:
    """Run all requested selectors on ``df`` and return the comparison table."""
    overrides = {"swapping": {"restarts": restarts}} if restarts is not None else None
    settings = resolve_selector_config(preset, overrides=overrides)
    selected_methods = [SelectionMethod(m) for m in methods] if methods else None

    table = compare_selectors(
        df,
        k,
        methods=selected_methods,
        swapping_config=settings.swapping,
        bisection_config=settings.bisection,
        covariance_config=settings.covariance,
        random_state=seed,
    )
    table["columns"] = pd.Series(
        [[str(df.columns[i]) for i in subset] for subset in table["subset"]],
        index=table.index,
        dtype=object,
    )
    return table


def _to_jsonable(table: pd.DataFrame) -> List[dict[str, Any]]:
    records = []
    for row in table.to_dict(orient="records"):
        record = {}
        for key, value in row.items():
            if isinstance(value, np.generic):
                value = value.item()
            if isinstance(value, float) and np.isnan(value):
                value = None
            record[key] = value
        records.append(record)
    return records


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Column subset selection benchmark")
    parser.add_argument("--input", type=Path, required=True, help="CSV or parquet file")
    parser.add_argument("--k", type=int, required=True, help="Number of columns to select")
    parser.add_argument("--columns", nargs="+", help="Restrict to these columns")
    parser.add_argument("--preset", default="default", help="Preset from configs/selectors.toml")
    parser.add_argument("--restarts", type=int, help="Override swapping restarts")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument(
        "--methods",
        nargs="+",
        choices=[m.value for m in SelectionMethod],
        help="Selectors to run (default: all)",
    )
    parser.add_argument("--output", type=Path, help="Write results as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    df = load_matrix(args.input, args.columns)
    table = run_comparison(
        df,
        args.k,
        preset=args.preset,
        seed=args.seed,
        methods=args.methods,
        restarts=args.restarts,
    )

    print(table[["method", "columns", "objective", "explained_ratio", "found"]].to_string(index=False))

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with args.output.open("w") as f:
            json.dump(_to_jsonable(table), f, indent=2, default=str)
        logger.info(f"Results written to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
