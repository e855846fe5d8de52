import click

from srt import __version__
from srt.srt_commands import environment, replicate, config


@click.group()
@click.version_option(version=__version__)
def cli():
    """Schema Refresh Tool: refresh a database environment from another one"""
    pass


cli.add_command(replicate.replicate)
cli.add_command(environment.environment)
cli.add_command(config.config)


if __name__ == '__main__':
    cli()
