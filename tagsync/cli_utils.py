"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import sys
import click
from functools import wraps
from typing import Any, Dict, Optional

from .config import load_config, load_sync_config, configure_logging, SyncConfig
from .exit_codes import (
    SUCCESS, INTERRUPTED,
    CommandError, ConsistencyError,
)


def sync_options(f):
    """Decorator to add the settings every sync command accepts."""
    f = click.option('--verbose', '-v', is_flag=True, help='Log every git invocation')(f)
    f = click.option('--component', '-c', 'components', multiple=True,
                     help='Only this component (name or namespace), repeatable')(f)
    f = click.option('--branch', help='Mirror primary branch')(f)
    f = click.option('--remote', help='Remote to fetch from and push to')(f)
    f = click.option('--to-tag', 'destination_tag', help='Tag to synchronize to')(f)
    f = click.option('--from-tag', 'source_tag', help='Tag the mirrors are already at')(f)
    f = click.option('--mirrors', 'mirrors_root', type=click.Path(file_okay=False),
                     help='Directory holding the mirror repositories')(f)
    f = click.option('--monorepo', 'monorepo_path', type=click.Path(file_okay=False),
                     help='Monorepo working copy')(f)
    f = click.option('--config', 'config_path', type=click.Path(dir_okay=False),
                     help='Configuration file (JSON, TOML or YAML)')(f)
    return f


def build_sync_config(config_path: Optional[str] = None, verbose: bool = False, **overrides) -> SyncConfig:
    """
    Load configuration, apply command-line overrides and validate.

    Overrides with a None or empty value are ignored.
    """
    config = load_config(config_path)
    configure_logging(config, verbose=verbose)

    sync: Dict[str, Any] = dict(config.get('sync', {}))
    for key, value in overrides.items():
        if value is None or value == () or value == '':
            continue
        sync[key] = list(value) if isinstance(value, tuple) else value
    config['sync'] = sync

    return load_sync_config(config)


def echo_progress(message: str) -> None:
    """Progress goes to stderr, stdout stays clean for data."""
    click.echo(message, err=True)


def handle_errors(json_flag: str = 'output_json'):
    """
    Decorator translating tagsync errors into exit codes.

    - CommandError subclasses exit with their own code
    - ConsistencyError also prints the full diff
    - KeyboardInterrupt exits with 130
    """
    def decorator(func):

        @wraps(func)
        def wrapper(*args, **kwargs):
            output_json = kwargs.get(json_flag, False)
            try:
                func(*args, **kwargs)
            except KeyboardInterrupt:
                click.echo("Interrupted by user", err=True)
                sys.exit(INTERRUPTED)
            except click.ClickException:
                # Click exceptions already have their exit code
                raise
            except CommandError as e:
                click.echo(f"Error: {e}", err=True)
                if isinstance(e, ConsistencyError) and e.diff:
                    click.echo(e.diff, err=True, nl=not e.diff.endswith('\n'))
                if output_json:
                    error_obj = {
                        "error": str(e),
                        "type": type(e).__name__,
                        "exit_code": e.exit_code,
                    }
                    if isinstance(e, ConsistencyError):
                        error_obj['diff'] = e.diff
                    print(json.dumps(error_obj, ensure_ascii=False), flush=True)
                sys.exit(e.exit_code)
            sys.exit(SUCCESS)

        return wrapper
    return decorator
