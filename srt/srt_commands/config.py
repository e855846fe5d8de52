import json

import click

from srt.core import config as core_config


class AliasedGroup(click.Group):
    def get_command(self, ctx, cmd_name):
        try:
            cmd_name = ALIASES[cmd_name].name
        except KeyError:
            pass
        return super().get_command(ctx, cmd_name)


@click.group(cls=AliasedGroup)
def config():
    """Configuration management commands.

    Examples:

        Show the current configuration:
          srt config show

        Set the default source environment:
          srt config set SOURCE_ENV prod-ora
    """
    pass


@config.command()
def show():
    """Show the current configuration and the files it is stored in."""
    result = core_config.show_config_info()
    if not result.success:
        raise click.ClickException(result.message)

    print("Paths:")
    for key, value in result.data["paths"].items():
        print(f"  {key} = {value}")
    print("")
    print("Settings:")
    for key, value in result.data["config"].items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        print(f"  {key} = {value}")


@config.command()
@click.argument('key')
@click.argument('value')
def set(key, value):
    """Set a configuration value.

    Examples:

        Process four tables at a time:
          srt config set PARALLEL_WORKERS 4

        Fail any single step that takes longer than ten minutes:
          srt config set UNIT_TIMEOUT 600

        Statements to run on target after every refresh:
          srt config set POST_REPLICATION_SQL "UPDATE app_settings SET env_name = 'TEST'"
    """
    result = core_config.set_config(key.upper(), value)
    if not result.success:
        raise click.UsageError(result.message)
    print(result.message)


@config.command()
@click.confirmation_option(prompt="Reset all settings to their defaults?")
def reset():
    """Reset every setting to its default value."""
    result = core_config.reset_config()
    if not result.success:
        raise click.ClickException(result.message)
    print(result.message)


ALIASES = {
    "ls": show,
    "list": show,
    "inspect": show,
    "update": set,
}
