"""
Main CLI entry point for Buzzberry
"""

import logging

import click

from .. import __version__
from ..core.observability import setup_logfire
from .discover import discover_group


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
def cli(verbose: bool):
    """
    Buzzberry - Creator discovery

    Browse, filter and sort influencer creators by niche, platform,
    location, audience size, engagement and buzz score.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    setup_logfire()


# Register command groups
cli.add_command(discover_group)


if __name__ == '__main__':
    cli()
