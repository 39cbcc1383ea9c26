"""
Catalog Loader

Loads the static addon catalog from JSON files into immutable CanonicalEntry records.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..exceptions import CatalogError
from ..models import CanonicalEntry

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / 'data' / 'k8s_addons.json'


class CatalogLoader:
    """Loader for addon catalog files."""

    def __init__(self):
        self._loaded_files: List[str] = []

    @property
    def loaded_files(self) -> List[str]:
        return list(self._loaded_files)

    def load_default(self) -> Tuple[CanonicalEntry, ...]:
        """
        Load the catalog dataset bundled with the package.

        Returns:
            Tuple of catalog entries
        """
        return self.load_multiple([str(DEFAULT_CATALOG_PATH)])

    def load_multiple(self, file_paths: Sequence[str]) -> Tuple[CanonicalEntry, ...]:
        """
        Load and concatenate several catalog files.

        Args:
            file_paths: List of paths to catalog JSON files

        Returns:
            Tuple of catalog entries in file order

        Raises:
            CatalogError: If any file is missing or malformed
        """
        self._loaded_files.clear()
        entries: List[CanonicalEntry] = []

        for file_path in file_paths:
            entries.extend(self._load_file(file_path))
            self._loaded_files.append(file_path)

        logger.info(f"Loaded {len(entries)} catalog entries from {len(self._loaded_files)} file(s)")
        return tuple(entries)

    def load_single(self, file_path: str) -> Tuple[CanonicalEntry, ...]:
        """
        Load a single catalog file.

        Args:
            file_path: Path to catalog JSON file

        Returns:
            Tuple of catalog entries
        """
        return self.load_multiple([file_path])

    def load_from_config(self, catalog_config) -> Tuple[CanonicalEntry, ...]:
        """Load the files named in a CatalogConfig, or the bundled dataset when none are set."""
        if catalog_config.files:
            return self.load_multiple(catalog_config.files)
        return self.load_default()

    def _load_file(self, file_path: str) -> List[CanonicalEntry]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.error(f"Catalog file not found: {file_path}")
            raise CatalogError("file not found", file_path=file_path)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in catalog file {file_path}: {e}")
            raise CatalogError(f"invalid JSON: {e}", file_path=file_path)

        return parse_catalog(data, file_path)


def parse_catalog(data: Any, file_path: Optional[str] = None) -> List[CanonicalEntry]:
    """
    Validate the catalog document structure and build entries.

    Args:
        data: Parsed JSON document with an "addons" list
        file_path: Optional source path used in error messages

    Returns:
        List of catalog entries

    Raises:
        CatalogError: If the structure is invalid
    """
    if not isinstance(data, dict):
        raise CatalogError("catalog must be a JSON object", file_path=file_path)

    if "addons" not in data:
        raise CatalogError("missing 'addons' key", file_path=file_path)

    if not isinstance(data["addons"], list):
        raise CatalogError("'addons' must be a list", file_path=file_path)

    entries = []
    for i, record in enumerate(data["addons"]):
        _validate_record(record, i, file_path)
        entries.append(CanonicalEntry.from_dict(record))
    return entries


def _validate_record(record: Dict[str, Any], position: int, file_path: Optional[str]) -> None:
    """Check the fields every catalog record must carry."""
    if not isinstance(record, dict):
        raise CatalogError(f"addon entry {position} must be an object", file_path=file_path)

    name = record.get("name")
    if not isinstance(name, str) or not name.strip():
        raise CatalogError(f"addon entry {position} missing 'name' field", file_path=file_path)

    matrix = record.get("kubernetes_compatibility")
    if matrix is not None:
        if not isinstance(matrix, dict):
            raise CatalogError(f"'kubernetes_compatibility' of '{name}' must be an object", file_path=file_path)
        for key, versions in matrix.items():
            if not isinstance(versions, list) or not all(isinstance(v, str) for v in versions):
                raise CatalogError(
                    f"'kubernetes_compatibility[{key}]' of '{name}' must be a list of strings",
                    file_path=file_path,
                )
