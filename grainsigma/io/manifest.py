"""
Manifest — parse manifest.yaml into run settings.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional


def load_manifest(data_path: str) -> Dict[str, Any]:
    """
    Load manifest.yaml from a data directory.

    Tries:
        1. data_path itself (if it's a .yaml file)
        2. data_path/manifest.yaml
    """
    p = Path(data_path)

    if p.is_file() and p.suffix in ('.yaml', '.yml'):
        manifest_path = p
    else:
        manifest_path = p / 'manifest.yaml'

    if not manifest_path.exists():
        raise FileNotFoundError(f"No manifest.yaml in {data_path}")

    with open(manifest_path) as f:
        manifest = yaml.safe_load(f) or {}

    # Stash the manifest location for resolving relative paths
    manifest['_manifest_path'] = str(manifest_path)
    manifest['_data_dir'] = str(manifest_path.parent)

    return manifest


def resolve_path(manifest: Dict[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    """Absolute path for paths.<key>, relative entries taken from the manifest's directory."""
    rel = (manifest.get('paths') or {}).get(key, default)
    if rel is None:
        return None
    p = Path(rel).expanduser()
    if not p.is_absolute():
        p = Path(manifest.get('_data_dir', '.')) / p
    return str(p)
