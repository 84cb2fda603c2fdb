"""
Samples I/O — every file read and write goes through here.

    reader.py    load_samples (CSV / TSV / parquet)
    writer.py    write_output
    manifest.py  manifest.yaml and path resolution
"""

from grainsigma.io.manifest import load_manifest, resolve_path
from grainsigma.io.reader import load_samples
from grainsigma.io.writer import write_output

__all__ = ['load_manifest', 'resolve_path', 'load_samples', 'write_output']
