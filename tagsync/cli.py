#!/usr/bin/env python3

import click

from tagsync.commands.sync import sync_handler, verify_handler
from tagsync.commands.components import components_handler
from tagsync.commands.init import init_handler
from tagsync.commands.config import config_cmd


@click.group()
@click.version_option(package_name="tagsync")
def cli():
    """tagsync - Keep component mirrors in step with a monorepo.

    Replays monorepo history commit by commit into one mirror repository
    per component, stamps the release tag, verifies every mirror is
    identical to its monorepo subtree and publishes branch and tag.
    """
    pass


# Core commands
cli.add_command(sync_handler, name='sync')
cli.add_command(verify_handler, name='verify')
cli.add_command(components_handler, name='components')
cli.add_command(init_handler, name='init')

# Command groups
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
