"""
Result Files Module
===================

Every analysis run writes into one folder per day and analysis, and every
file in it carries the same stamp so tables, figures and reports from one
run sort together.

Layout:
    {base}/{DATE}-{ANALYSIS}/{DATE}-{ANALYSIS}-{SUFFIX}.{EXT}
    e.g. outputs/2024-02-09-personality/2024-02-09-personality-loadings.csv
"""

from datetime import date
from pathlib import Path

import pandas as pd
import matplotlib.pyplot as plt

from . import config


def _stamp(analysis: str) -> str:
    return f"{date.today().isoformat()}-{analysis}"


def _result_path(output_dir, analysis: str, suffix: str, ext: str) -> Path:
    return Path(output_dir) / f"{_stamp(analysis)}-{suffix}.{ext}"


def get_output_dir(analysis: str, base: str = None) -> Path:
    """
    Folder for today's results of an analysis, created if needed.

    Parameters:
        analysis: Short lowercase-hyphen name, e.g. 'personality'
        base: Parent folder. Defaults to config.DEFAULT_OUTPUT_BASE

    Returns:
        Path of the (existing) run folder
    """
    base = config.DEFAULT_OUTPUT_BASE if base is None else base
    run_dir = Path(base) / _stamp(analysis)
    run_dir.mkdir(parents=True, exist_ok=True)
    print(f"Writing results to {run_dir}")
    return run_dir


def save_csv(
    table: pd.DataFrame,
    output_dir,
    analysis: str,
    suffix: str,
    index: bool = False
) -> Path:
    """
    Write a result table.

    Parameters:
        table: DataFrame to write
        output_dir: Run folder from get_output_dir()
        analysis: Analysis name used in the file stamp
        suffix: What the table holds, e.g. 'describe' or 'emmeans'
        index: Keep the index as the first column (loadings, descriptives)

    Returns:
        Path of the written file
    """
    path = _result_path(output_dir, analysis, suffix, 'csv')
    table.to_csv(path, index=index)
    print(f"  table  -> {path.name}")
    return path


def save_figure(fig: plt.Figure, output_dir, analysis: str, suffix: str, dpi: int = None) -> Path:
    """Write a figure as PNG on a white background, then close it."""
    path = _result_path(output_dir, analysis, suffix, 'png')
    fig.savefig(path, dpi=dpi or config.DEFAULT_DPI, bbox_inches='tight', facecolor='white')
    plt.close(fig)
    print(f"  figure -> {path.name}")
    return path


def save_report(text: str, output_dir, analysis: str, suffix: str = 'report') -> Path:
    """Write the plain-text summary of a run."""
    path = _result_path(output_dir, analysis, suffix, 'txt')
    path.write_text(text, encoding='utf-8')
    print(f"  report -> {path.name}")
    return path


def list_outputs(output_dir) -> list[str]:
    """File names in a run folder, sorted; empty if the folder is missing."""
    run_dir = Path(output_dir)
    if not run_dir.is_dir():
        return []
    return sorted(p.name for p in run_dir.iterdir() if p.is_file())


def print_summary(output_dir) -> None:
    files = list_outputs(output_dir)
    if not files:
        print(f"\nNothing was written to {output_dir}")
        return
    print(f"\n{len(files)} file(s) in {output_dir}:")
    for name in files:
        print(f"  - {name}")
