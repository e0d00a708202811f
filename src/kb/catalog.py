"""
Built-in seed catalog of question/answer pairs.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "seed_catalog.yaml"


def load_seed_catalog(path: Optional[Union[str, Path]] = None) -> List[Dict[str, Any]]:
    """
    Load seed pairs from a YAML catalog.

    Each entry has ``question``, ``answer``, optional ``keywords`` and
    optional ``category``.

    Args:
        path: Catalog file; defaults to the packaged catalog

    Returns:
        List of seed entries in file order
    """
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH

    with open(catalog_path, "r", encoding="utf-8") as f:
        catalog = yaml.safe_load(f) or {}

    pairs = catalog.get("pairs", [])
    if not isinstance(pairs, list):
        raise ValueError(f"Seed catalog {catalog_path} must contain a 'pairs' list")

    logger.debug(f"Loaded {len(pairs)} seed pairs from {catalog_path}")
    return pairs
