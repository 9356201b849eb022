from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


def _format_mean_std(mean_val: float | None, std_val: float | None, precision: int = 3) -> str:
    if mean_val is None or std_val is None or np.isnan(mean_val):
        return "N/A"
    if np.isnan(std_val):
        std_val = 0.0
    fmt = f"{{:.{precision}f}} ± {{:.{precision}f}}"
    return fmt.format(mean_val, std_val)


def _load_raw(raw_root: Path) -> pd.DataFrame:
    parts: List[pd.DataFrame] = []
    parquet_files = list(raw_root.glob("*.parquet"))
    if not parquet_files:
        raise FileNotFoundError(
            f"No Parquet files found under {raw_root}. "
            f"Make sure experiments completed successfully and generated result files."
        )
    print(f"Loading {len(parquet_files)} result files from {raw_root}")
    for path in parquet_files:
        parts.append(pd.read_parquet(path))
    return pd.concat(parts, ignore_index=True)


def _aggregate(df: pd.DataFrame) -> pd.DataFrame:
    """Mean/std of every measure per (algorithm, k, p, lower), solved runs only."""
    solved = df[df["status"] == "ok"].copy()
    if "ratio_to_exact" not in solved.columns:
        solved["ratio_to_exact"] = np.nan
    group_cols = ["algorithm", "k", "p", "lower"]
    measures = ["objective", "ratio_to_exact", "max_load", "runtime_sec"]

    agg = solved.groupby(group_cols, dropna=False)[measures].agg(["mean", "std"])
    agg.columns = [f"{m}_{stat}" for m, stat in agg.columns]
    agg = agg.reset_index()

    failed = df.assign(failed=(df["status"] != "ok").astype(int))
    failures = failed.groupby(group_cols)["failed"].sum().rename("failures").reset_index()
    agg = agg.merge(failures, on=group_cols, how="right")
    agg["failures"] = agg["failures"].fillna(0).astype(int)
    return agg


def _create_ratio_table(summary: pd.DataFrame) -> pd.DataFrame:
    """Approximation ratio and load of the rounded solutions per (k, p, lower)."""
    approx = summary[summary["algorithm"] == "approximate"].sort_values(["k", "p", "lower"])
    rows = []
    for _, row in approx.iterrows():
        rows.append({
            "k": int(row["k"]),
            "p": int(row["p"]),
            "lower": int(row["lower"]),
            "Ratio": _format_mean_std(row["ratio_to_exact_mean"], row["ratio_to_exact_std"]),
            "Max load": _format_mean_std(row["max_load_mean"], row["max_load_std"], precision=1),
            "Runtime (s)": _format_mean_std(
                row["runtime_sec_mean"], row["runtime_sec_std"], precision=4
            ),
        })
    return pd.DataFrame(rows)


def _save_table_artifacts(summary: pd.DataFrame, output_root: Path) -> None:
    output_root.mkdir(parents=True, exist_ok=True)

    summary.to_parquet(output_root / "summary.parquet", index=False)
    summary.to_csv(output_root / "summary.csv", index=False)

    ratio_table = _create_ratio_table(summary)
    latex = ratio_table.to_latex(index=False, escape=False, float_format=None)
    latex = latex.replace(" ± ", " $\\pm$ ")
    (output_root / "table_ratio.tex").write_text(latex, encoding="utf-8")
    ratio_table.to_csv(output_root / "table_ratio.csv", index=False)

    meta: Dict = {
        "tables": ["table_ratio"],
        "description": "Approximation ratio of LP rounding against the exact solver.",
    }
    (output_root / "summary.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")


def _plot_ratio(summary: pd.DataFrame, output_root: Path) -> None:
    """Bar plot of the mean approximation ratio per k, one bar group per p."""
    approx = summary[summary["algorithm"] == "approximate"]
    plot_df = approx.groupby(["k", "p"])["ratio_to_exact_mean"].mean().reset_index()

    fig, ax = plt.subplots(figsize=(8, 4))
    ks = sorted(plot_df["k"].unique())
    ps = sorted(plot_df["p"].unique())
    x = np.arange(len(ks))
    width = 0.8 / max(1, len(ps))

    for i, p_val in enumerate(ps):
        sub = plot_df[plot_df["p"] == p_val]
        heights = [sub[sub["k"] == k]["ratio_to_exact_mean"].mean() for k in ks]
        ax.bar(x + i * width, heights, width=width, label=f"p={p_val}")

    ax.axhline(1.0, color="black", linewidth=0.8, linestyle="--")
    ax.set_xticks(x + width * (len(ps) - 1) / 2)
    ax.set_xticklabels([f"k={k}" for k in ks])
    ax.set_ylabel("Rounded / exact objective")
    ax.set_title("Approximation ratio by k and p")
    ax.legend()
    fig.tight_layout()

    img_path = output_root / "ratio_by_k.png"
    fig.savefig(img_path, dpi=200)
    plt.close(fig)

    description = (
        "Mean ratio between the rounded and the exact k-median objective, "
        "averaged over instances and lower bounds. Values close to 1 are better."
    )
    (output_root / "ratio_by_k.txt").write_text(description, encoding="utf-8")
    meta = {
        "figure": img_path.name,
        "metric": "ratio_to_exact",
        "group_by": ["k", "p"],
        "description": description,
    }
    (output_root / "ratio_by_k.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Aggregate k-median rounding experiment results.")
    parser.add_argument(
        "--raw",
        type=Path,
        required=True,
        help="Directory containing raw Parquet logs.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Directory for summary tables and plots.",
    )

    args = parser.parse_args(argv)

    raw_df = _load_raw(args.raw)
    summary = _aggregate(raw_df)
    _save_table_artifacts(summary, args.output)
    _plot_ratio(summary, args.output)


if __name__ == "__main__":
    main()
