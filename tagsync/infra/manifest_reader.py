"""
Package manifest reading for tagsync.

Reads the canonical package name a directory declares in its manifest.
Supported formats:
- composer.json / package.json: top-level "name"
- pyproject.toml: [project].name
"""

import json
import logging
import tomllib
from pathlib import Path
from typing import List

from ..exit_codes import IdentityMismatchError, ConfigurationError

logger = logging.getLogger(__name__)

SUPPORTED_MANIFESTS = ('composer.json', 'package.json', 'pyproject.toml')


class ManifestReader:
    """
    Reads the canonical name from a component's manifest.

    Example:
        reader = ManifestReader("composer.json")
        reader.read_canonical_name("/mirrors/zend-http")  # "zendframework/zend-http"
    """

    def __init__(self, filename: str = "composer.json"):
        if filename not in SUPPORTED_MANIFESTS:
            raise ConfigurationError(
                f"Unsupported manifest '{filename}' "
                f"(expected one of: {', '.join(SUPPORTED_MANIFESTS)})"
            )
        self.filename = filename

    def manifest_path(self, path: str) -> Path:
        return Path(path) / self.filename

    def read_canonical_name(self, path: str) -> str:
        """
        Return the name declared by the manifest in ``path``.

        Raises:
            IdentityMismatchError: If the manifest is missing, unreadable
                or declares no name
        """
        manifest = self.manifest_path(path)
        if not manifest.is_file():
            raise IdentityMismatchError(f'"{path}" has no {self.filename}')

        try:
            if manifest.suffix == '.toml':
                with open(manifest, 'rb') as f:
                    data = tomllib.load(f)
                name = data.get('project', {}).get('name')
            else:
                with open(manifest, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                name = data.get('name') if isinstance(data, dict) else None
        except (OSError, ValueError) as e:
            # tomllib.TOMLDecodeError and json.JSONDecodeError are ValueErrors
            raise IdentityMismatchError(f'Could not read {manifest}: {e}') from e

        if not isinstance(name, str) or not name:
            raise IdentityMismatchError(f'{manifest} does not declare a package name')

        logger.debug(f"{manifest} declares {name}")
        return name

    def read_replaced_names(self, path: str) -> List[str]:
        """
        Package names listed under ``replace`` in a composer manifest.

        Only composer.json knows ``replace``; other manifests, or a
        directory without a manifest, yield an empty list.

        Raises:
            IdentityMismatchError: If the manifest cannot be parsed
        """
        manifest = self.manifest_path(path)
        if manifest.name != 'composer.json' or not manifest.is_file():
            return []

        try:
            with open(manifest, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise IdentityMismatchError(f'Could not read {manifest}: {e}') from e

        replace = data.get('replace') if isinstance(data, dict) else None
        if not isinstance(replace, dict):
            return []
        return sorted(str(name) for name in replace)
