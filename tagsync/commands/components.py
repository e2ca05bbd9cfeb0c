"""
Component listing for tagsync.
"""

import json

import click

from ..cli_utils import sync_options, build_sync_config, handle_errors
from ..exit_codes import NoComponentsFoundError
from ..render import render_components_table
from ..services.locator import ComponentLocator


@click.command('components')
@sync_options
@click.option('--json', 'output_json', is_flag=True, help='Output as JSONL')
@handle_errors()
def components_handler(config_path, monorepo_path, mirrors_root, source_tag, destination_tag,
                       remote, branch, components, verbose, output_json):
    """List the mirrors found and the monorepo subtree each one tracks.

    Reads both manifests of every component, so a name mismatch is
    reported here before any sync touches a repository.

    Examples:

    \b
        tagsync components --config tagsync.yaml
        tagsync components --monorepo ~/zf2 --mirrors ~/mirrors --to-tag release-2.4.0 --json
    """
    config = build_sync_config(
        config_path,
        verbose=verbose,
        monorepo_path=monorepo_path,
        mirrors_root=mirrors_root,
        source_tag=source_tag,
        destination_tag=destination_tag,
        remote=remote,
        branch=branch,
        components=components,
    )

    found = ComponentLocator(config).locate()
    if not found:
        raise NoComponentsFoundError(f"No mirror repositories found under {config.mirrors_root}")

    if output_json:
        for component in found:
            print(json.dumps(component.to_dict()), flush=True)
    else:
        render_components_table(found, title=f"Components under {config.mirrors_root}")
