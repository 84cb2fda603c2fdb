"""
Writer — all output writes go through here.

No other module should call df.write_csv / df.write_parquet directly.
"""

import polars as pl
from pathlib import Path
from typing import Optional

from grainsigma.io.reader import SEPARATORS


def _safe_write(df: pl.DataFrame, path: Path, verbose: bool = True) -> bool:
    """
    Guard against writing invalid files.

    Returns True if a file was written, False if skipped.
    """
    if df is None:
        return False

    if len(df.columns) == 0:
        if verbose:
            print(f"  !! Skipped {path} (empty schema — 0 columns)")
        return False

    suffix = path.suffix.lower()
    if suffix == '.parquet':
        df.write_parquet(str(path))
    elif suffix in SEPARATORS:
        df.write_csv(str(path), separator=SEPARATORS[suffix])
    else:
        raise ValueError(f"Unsupported output format '{suffix}' for {path}")
    return True


def write_output(
    df: pl.DataFrame,
    path: str,
    verbose: bool = True,
) -> Optional[Path]:
    """
    Write a result table, format chosen by suffix.

    Args:
        df: DataFrame to write (None or empty-schema -> skip)
        path: Destination (.csv, .tsv, .txt, .parquet); parents are created
        verbose: Print path on write

    Returns:
        Path to written file, or None if skipped
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)

    if not _safe_write(df, out, verbose=verbose):
        return None

    if verbose:
        print(f"  -> {out} ({len(df)} rows)")

    return out
