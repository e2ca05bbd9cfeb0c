"""
Sync and verify commands for tagsync.
"""

import json
from dataclasses import replace

import click

from ..cli_utils import sync_options, build_sync_config, echo_progress, handle_errors
from ..render import render_summary_table
from ..services.sync_service import SyncService


def _drain(progress_iter):
    """Echo progress messages and return the generator's result."""
    while True:
        try:
            echo_progress(next(progress_iter))
        except StopIteration as stop:
            return stop.value


def _output(summary, output_json: bool) -> None:
    if output_json:
        for detail in summary.details:
            print(json.dumps(detail.to_dict()), flush=True)
        print(json.dumps(summary.to_dict()), flush=True)
    else:
        render_summary_table(summary)


@click.command('sync')
@sync_options
@click.option('--no-push', is_flag=True, help='Tag and verify, but do not push')
@click.option('--dry-run', is_flag=True, help='Only report what would be replayed')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSONL')
@handle_errors()
def sync_handler(config_path, monorepo_path, mirrors_root, source_tag, destination_tag,
                 remote, branch, components, verbose, no_push, dry_run, output_json):
    """Replay monorepo history into every mirror and publish the tag.

    For each mirror under the mirrors root: skip it if it already has the
    destination tag after fetching the remote's tags, otherwise replay
    every monorepo commit that touches its subtree, tag, verify that
    mirror and subtree are identical and push branch and tag.

    Examples:

    \b
        tagsync sync --config tagsync.yaml
        tagsync sync --monorepo ~/zf2 --mirrors ~/mirrors --from-tag release-2.3.0 --to-tag release-2.4.0
        tagsync sync --config tagsync.yaml -c Http --dry-run
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
    if no_push:
        config = replace(config, push=False)

    service = SyncService(config)
    summary = _drain(service.run(dry_run=dry_run))
    _output(summary, output_json)


@click.command('verify')
@sync_options
@click.option('--json', 'output_json', is_flag=True, help='Output as JSONL')
@handle_errors()
def verify_handler(config_path, monorepo_path, mirrors_root, source_tag, destination_tag,
                   remote, branch, components, verbose, output_json):
    """Check every mirror is identical to the monorepo at the tag.

    Exits non-zero and prints the diff on the first mismatch.

    Examples:

    \b
        tagsync verify --config tagsync.yaml
        tagsync verify --config tagsync.yaml --to-tag release-2.4.0
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

    service = SyncService(config)
    summary = _drain(service.verify_all())
    _output(summary, output_json)
