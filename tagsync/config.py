#!/usr/bin/env python3

import os
import json
import tomllib
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import logging
import sys

import yaml

from .exit_codes import ConfigurationError
from .infra.directory_sync import MIRROR_TOOLS
from .infra.manifest_reader import SUPPORTED_MANIFESTS

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("tagsync")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']
ENV_PREFIX = "TAGSYNC_"


def get_config_path() -> Path:
    """Get the path to the configuration file.

    Checks in order:
    1. TAGSYNC_CONFIG environment variable
    2. ~/.tagsync/ directory
    """
    if 'TAGSYNC_CONFIG' in os.environ:
        return Path(os.environ['TAGSYNC_CONFIG']).expanduser()

    tagsync_dir = Path.home() / '.tagsync'
    for filename in CONFIG_FILENAMES:
        path = tagsync_dir / filename
        if path.exists() and path.stat().st_size > 0:
            return path

    # If no file exists, return default path
    return tagsync_dir / 'config.json'


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        "sync": {
            "monorepo_path": "",
            "mirrors_root": "",
            "source_tag": "",
            "destination_tag": "",
            "remote": "origin",
            "branch": "master",
            "monorepo_name": "",
            "components": [],
        },
        "layout": {
            "library_prefix": "library/Zend",
            "boundary_segment": "Zend",
            "namespace_separator": "\\",
            "manifest_filename": "composer.json",
        },
        "git": {
            "user_name": "",
            "user_email": "",
            "sign": False,
            "force_tag": True,
            "force_push": False,
            "push": True,
            "timeout": 0,  # seconds, 0 = no timeout
        },
        "mirror": {
            "tool": "python",
        },
        "init": {
            "monorepo_url": "",
            "mirror_url_template": "",
            "exclude": ["zendframework/zend-resources"],
        },
        "logging": {
            "level": "INFO",
        },
    }


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    suffix = config_path.suffix.lower()
    try:
        if suffix == '.toml':
            with open(config_path, 'rb') as f:
                return tomllib.load(f)
        if suffix in ('.yaml', '.yml'):
            with open(config_path, 'r') as f:
                return yaml.safe_load(f) or {}
        # Default to JSON format
        with open(config_path, 'r') as f:
            return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Error loading config from {config_path}: {e}") from e


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration.

    Defaults are merged with the config file (explicit ``path``,
    TAGSYNC_CONFIG or ~/.tagsync/config.*), then TAGSYNC_* environment
    variables are applied on top.

    Raises:
        ConfigurationError: If an explicit file is missing or a file
            cannot be parsed
    """
    config = get_default_config()

    if path:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
    else:
        config_path = get_config_path()

    if config_path.exists():
        file_config = _read_config_file(config_path)
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")
        logger.debug(f"Loaded config from {config_path}")
        config = merge_configs(config, file_config)

    return apply_env_overrides(config)


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: TAGSYNC_SECTION_KEY
    For example: TAGSYNC_SYNC_DESTINATION_TAG=release-2.4.0
    """
    for env_key, value in os.environ.items():
        if not env_key.startswith(ENV_PREFIX):
            continue

        key_parts = env_key[len(ENV_PREFIX):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts_from_key = config_key.split('_')
                if key_parts[i : i + len(config_key_parts_from_key)] == config_key_parts_from_key:
                    if len(config_key_parts_from_key) > best_match_len:
                        best_match_len = len(config_key_parts_from_key)
                        matched_key = config_key

            if matched_key:
                # If we are at the end of the env var, we have found the key to set
                if i + best_match_len == len(key_parts):
                    current = current_level[matched_key]
                    if isinstance(current, list) and isinstance(typed_value, str):
                        typed_value = [v.strip() for v in typed_value.split(',') if v.strip()]
                    current_level[matched_key] = typed_value
                    break

                # Otherwise, we descend into the dictionary
                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    # Path conflict, e.g., env var is longer but we found a non-dict value
                    break
            else:
                # No match found
                break

    return config


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ('true', '1', 'yes', 'on'):
        return True
    if isinstance(value, str) and value.lower() in ('false', '0', 'no', 'off', ''):
        return False
    if isinstance(value, int):
        return bool(value)
    raise ConfigurationError(f"Setting '{key}' must be a boolean, got {value!r}")


def _as_timeout(value: Any) -> Optional[int]:
    try:
        timeout = int(value or 0)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Setting 'git.timeout' must be an integer, got {value!r}") from None
    if timeout < 0:
        raise ConfigurationError("Setting 'git.timeout' must not be negative")
    return timeout or None


@dataclass(frozen=True)
class SyncConfig:
    """
    Validated settings for one sync run.

    Built once by ``load_sync_config`` and never modified afterwards.
    """
    monorepo_path: str
    mirrors_root: str
    destination_tag: str
    remote: str = "origin"
    source_tag: str = ""
    branch: str = "master"
    monorepo_name: str = ""
    components: Tuple[str, ...] = ()
    library_prefix: str = "library/Zend"
    boundary_segment: str = "Zend"
    namespace_separator: str = "\\"
    manifest_filename: str = "composer.json"
    mirror_tool: str = "python"
    git_user_name: str = ""
    git_user_email: str = ""
    sign: bool = False
    force_tag: bool = True
    force_push: bool = False
    push: bool = True
    git_timeout: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def origin_name(self) -> str:
        """Name used for the monorepo in provenance messages."""
        return self.monorepo_name or Path(self.monorepo_path).name

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result.pop('extra')
        result['components'] = list(self.components)
        return result


def _require(section: Dict[str, Any], key: str) -> str:
    value = section.get(key)
    if value is None or str(value).strip() == "":
        raise ConfigurationError(f"Missing required setting 'sync.{key}'")
    return str(value).strip()


def _existing_dir(value: str, key: str) -> str:
    path = Path(value).expanduser().resolve()
    if not path.is_dir():
        raise ConfigurationError(f"Setting 'sync.{key}' is not a directory: {path}")
    return str(path)


def load_sync_config(config: Dict[str, Any]) -> SyncConfig:
    """
    Validate a configuration dict and build the SyncConfig for a run.

    Raises:
        ConfigurationError: If a required setting is missing or invalid
    """
    sync = config.get('sync', {})
    layout = config.get('layout', {})
    git = config.get('git', {})
    mirror = config.get('mirror', {})

    monorepo_path = _existing_dir(_require(sync, 'monorepo_path'), 'monorepo_path')
    if not (Path(monorepo_path) / '.git').exists():
        raise ConfigurationError(f"Monorepo is not a git working copy: {monorepo_path}")

    mirrors_root = _existing_dir(_require(sync, 'mirrors_root'), 'mirrors_root')

    components = sync.get('components') or []
    if isinstance(components, str):
        components = [c.strip() for c in components.split(',') if c.strip()]

    mirror_tool = str(mirror.get('tool', 'python'))
    if mirror_tool not in MIRROR_TOOLS:
        raise ConfigurationError(
            f"Unknown mirror tool '{mirror_tool}' (expected one of: {', '.join(sorted(MIRROR_TOOLS))})"
        )

    manifest_filename = str(layout.get('manifest_filename', 'composer.json'))
    if manifest_filename not in SUPPORTED_MANIFESTS:
        raise ConfigurationError(
            f"Unsupported manifest '{manifest_filename}' "
            f"(expected one of: {', '.join(SUPPORTED_MANIFESTS)})"
        )

    separator = str(layout.get('namespace_separator', '\\'))
    if not separator:
        raise ConfigurationError("Setting 'layout.namespace_separator' must not be empty")

    return SyncConfig(
        monorepo_path=monorepo_path,
        mirrors_root=mirrors_root,
        destination_tag=_require(sync, 'destination_tag'),
        remote=_require(sync, 'remote'),
        source_tag=str(sync.get('source_tag') or '').strip(),
        branch=str(sync.get('branch') or 'master'),
        monorepo_name=str(sync.get('monorepo_name') or ''),
        components=tuple(str(c) for c in components),
        library_prefix=str(layout.get('library_prefix', 'library/Zend')).strip('/'),
        boundary_segment=str(layout.get('boundary_segment', 'Zend')),
        namespace_separator=separator,
        manifest_filename=manifest_filename,
        mirror_tool=mirror_tool,
        git_user_name=str(git.get('user_name') or ''),
        git_user_email=str(git.get('user_email') or ''),
        sign=_as_bool(git.get('sign', False), 'git.sign'),
        force_tag=_as_bool(git.get('force_tag', True), 'git.force_tag'),
        force_push=_as_bool(git.get('force_push', False), 'git.force_push'),
        push=_as_bool(git.get('push', True), 'git.push'),
        git_timeout=_as_timeout(git.get('timeout', 0)),
        extra={k: v for k, v in config.items() if k not in ('sync', 'layout', 'git', 'mirror', 'init')},
    )


@dataclass(frozen=True)
class BootstrapConfig:
    """
    Validated settings for creating the monorepo and mirror working copies.

    Unlike SyncConfig, neither directory has to exist yet.
    """
    monorepo_path: str
    mirrors_root: str
    monorepo_url: str = ""
    mirror_url_template: str = ""
    exclude: Tuple[str, ...] = ()
    library_prefix: str = "library/Zend"
    boundary_segment: str = "Zend"
    namespace_separator: str = "\\"
    manifest_filename: str = "composer.json"
    git_user_name: str = ""
    git_user_email: str = ""
    git_timeout: Optional[int] = None

    def mirror_url(self, package: str) -> str:
        """Clone URL of the mirror publishing ``package``."""
        return self.mirror_url_template.format(package=package, name=package.rsplit('/', 1)[-1])


def load_bootstrap_config(config: Dict[str, Any]) -> BootstrapConfig:
    """
    Validate a configuration dict and build the BootstrapConfig for ``init``.

    Raises:
        ConfigurationError: If a required setting is missing or invalid
    """
    sync = config.get('sync', {})
    layout = config.get('layout', {})
    git = config.get('git', {})
    init = config.get('init', {})

    monorepo_path = str(Path(_require(sync, 'monorepo_path')).expanduser().resolve())
    mirrors_root = str(Path(_require(sync, 'mirrors_root')).expanduser().resolve())

    template = str(init.get('mirror_url_template') or '').strip()
    if template:
        try:
            template.format(package="vendor/name", name="name")
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigurationError(
                f"Setting 'init.mirror_url_template' may only use {{package}} and {{name}}: {e}"
            ) from None

    exclude = init.get('exclude') or []
    if isinstance(exclude, str):
        exclude = [e.strip() for e in exclude.split(',') if e.strip()]

    manifest_filename = str(layout.get('manifest_filename', 'composer.json'))
    if manifest_filename not in SUPPORTED_MANIFESTS:
        raise ConfigurationError(
            f"Unsupported manifest '{manifest_filename}' "
            f"(expected one of: {', '.join(SUPPORTED_MANIFESTS)})"
        )

    return BootstrapConfig(
        monorepo_path=monorepo_path,
        mirrors_root=mirrors_root,
        monorepo_url=str(init.get('monorepo_url') or '').strip(),
        mirror_url_template=template,
        exclude=tuple(str(e) for e in exclude),
        library_prefix=str(layout.get('library_prefix', 'library/Zend')).strip('/'),
        boundary_segment=str(layout.get('boundary_segment', 'Zend')),
        namespace_separator=str(layout.get('namespace_separator') or '\\'),
        manifest_filename=manifest_filename,
        git_user_name=str(git.get('user_name') or ''),
        git_user_email=str(git.get('user_email') or ''),
        git_timeout=_as_timeout(git.get('timeout', 0)),
    )


def configure_logging(config: Optional[Dict[str, Any]] = None, verbose: bool = False) -> None:
    """Set the tagsync logger level from config or the verbose flag."""
    level_name = "DEBUG" if verbose else str((config or {}).get('logging', {}).get('level', 'INFO'))
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level '{level_name}'")
    logger.setLevel(level)
