"""
Reader — all sample-table reads go through here.

No other module should call pl.read_csv / pl.read_parquet directly.
"""

import polars as pl
from pathlib import Path
from typing import Dict, Optional

# File suffix -> field separator for delimited text
SEPARATORS = {
    '.csv': ',',
    '.tsv': '\t',
    '.txt': '\t',
}


def load_samples(path: str, columns: Optional[Dict[str, str]] = None) -> pl.DataFrame:
    """
    Load a samples table and rename source columns to canonical names.

    Args:
        path: .csv, .tsv, .txt or .parquet file
        columns: canonical name -> source column (e.g. {'value': 'date'})

    Returns:
        DataFrame with canonical column names where mapped; other
        columns pass through untouched.
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"No samples file at {path}")

    suffix = p.suffix.lower()
    if suffix == '.parquet':
        df = pl.read_parquet(str(p))
    elif suffix in SEPARATORS:
        df = pl.read_csv(str(p), separator=SEPARATORS[suffix], infer_schema_length=None)
    else:
        raise ValueError(f"Unsupported samples format '{suffix}' for {path}")

    if columns:
        rename = {src: canon for canon, src in columns.items() if src in df.columns and src != canon}
        if rename:
            df = df.rename(rename)

    return df
