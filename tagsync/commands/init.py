"""
Bootstrap command for tagsync.
"""

import json

import click

from ..cli_utils import echo_progress, handle_errors
from ..config import load_config, load_bootstrap_config, configure_logging
from ..render import render_summary_table
from ..services.bootstrap import MirrorBootstrapper


@click.command('init')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='Configuration file (JSON, TOML or YAML)')
@click.option('--monorepo', 'monorepo_path', type=click.Path(file_okay=False),
              help='Where the monorepo working copy lives or is cloned to')
@click.option('--mirrors', 'mirrors_root', type=click.Path(file_okay=False),
              help='Directory the mirror repositories are cloned into')
@click.option('--monorepo-url', help='Clone URL of the monorepo')
@click.option('--mirror-url', 'mirror_url_template',
              help='Mirror clone URL, with {package} or {name} placeholders')
@click.option('--exclude', multiple=True, help='Package not to mirror, repeatable')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSONL')
@click.option('--verbose', '-v', is_flag=True, help='Log every git invocation')
@handle_errors()
def init_handler(config_path, monorepo_path, mirrors_root, monorepo_url,
                 mirror_url_template, exclude, output_json, verbose):
    """Clone the monorepo and one mirror per package it publishes.

    Packages are read from the "replace" section of the monorepo's
    composer.json. Working copies already present are left alone, so
    init can be rerun after new components appear.

    Examples:

    \b
        tagsync init --config tagsync.yaml
        tagsync init --monorepo ~/zf2 --mirrors ~/mirrors \\
            --monorepo-url git@github.com:zendframework/zf2.git \\
            --mirror-url git@github.com:{package}.git
    """
    config = load_config(config_path)
    configure_logging(config, verbose=verbose)

    sync = dict(config.get('sync', {}))
    init = dict(config.get('init', {}))
    for section, key, value in (
        (sync, 'monorepo_path', monorepo_path),
        (sync, 'mirrors_root', mirrors_root),
        (init, 'monorepo_url', monorepo_url),
        (init, 'mirror_url_template', mirror_url_template),
        (init, 'exclude', list(exclude)),
    ):
        if value:
            section[key] = value
    config['sync'] = sync
    config['init'] = init

    bootstrapper = MirrorBootstrapper(load_bootstrap_config(config))
    progress = bootstrapper.run()
    while True:
        try:
            echo_progress(next(progress))
        except StopIteration as stop:
            summary = stop.value
            break

    if output_json:
        for detail in summary.details:
            print(json.dumps(detail.to_dict()), flush=True)
        print(json.dumps(summary.to_dict()), flush=True)
    else:
        render_summary_table(summary)
