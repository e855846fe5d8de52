import click

from srt.core import environment as core_env


class AliasedGroup(click.Group):
    def get_command(self, ctx, cmd_name):
        try:
            cmd_name = ALIASES[cmd_name].name
        except KeyError:
            pass
        return super().get_command(ctx, cmd_name)


def _check(result):
    """Turn a failed OperationResult into a usage error."""
    if not result.success:
        raise click.UsageError(result.message)
    return result


@click.group(cls=AliasedGroup)
def environment():
    """Environment management commands.

    An environment is a named database connection. Replication reads from a
    source environment and refreshes a target environment.

    Examples:

        List all available commands:
          srt environment --help

        List all environments:
          srt environment list
    """
    pass


@environment.command()
@click.argument('name')
@click.option("-h", "--host", required=True, help="Host of the environment")
@click.option("-p", "--port", required=True, help="Port of the environment", type=int)
@click.option("-u", "--user", required=True, help="User of the environment")
@click.option("-P", "--password", required=True, help="Password of the environment")
@click.option("-s", "--service", required=True, help="Service name (or SID) of the environment")
@click.option("-t", "--type", required=True, type=click.Choice(['ORACLE', 'POSTGRES', 'MYSQL', 'MSSQL'], case_sensitive=False), help="Type of the environment")
@click.option("-c", "--connection-type", required=False, type=click.Choice(['service_name', 'sid'], case_sensitive=False), help="Oracle connection type (default: service_name)")
@click.option("-o", "--overwrite", is_flag=True, default=False, help="Overwrite existing environment definition")
@click.option("-e", "--encrypt", is_flag=True, default=False, help="Encrypt sensitive environment information")
@click.option("-k", "--encryption-key", required=False, help="The key to use for encryption. Required if --encrypt is used.")
def create(name, host, port, user, password, service, type, connection_type, overwrite, encrypt, encryption_key):
    """Create a new environment.

    Examples:

        Create an Oracle environment:
          srt environment create prod-ora --host oraserver --port 1521 --user app --password secret --service ORCLPDB1 --type oracle

        Create an Oracle environment that connects by SID:
          srt environment create test-ora --host testserver --port 1521 --user app --password secret --service TEST --type oracle --connection-type sid

        Create an encrypted environment:
          srt environment create prod-ora --host oraserver --port 1521 --user app --password secret --service ORCLPDB1 --type oracle --encrypt --encryption-key mypassword
    """
    if encrypt and not encryption_key:
        raise click.UsageError("Option '--encryption-key' / '-k' is required when using '--encrypt' / '-e'.")

    result = _check(core_env.create_environment(
        name=name,
        host=host,
        port=port,
        user=user,
        password=password,
        service=service,
        db_type=type,
        encrypt=encrypt,
        encryption_key=encryption_key,
        overwrite=overwrite,
        connection_type=connection_type,
    ))
    print(result.message)


@environment.command()
@click.option("-a", "--all", is_flag=True, default=False, help="Show all details of the environments (passwords are masked)")
def list(all):
    """List all environments.

    Examples:

        List all environments:
          srt environment list

        Show all details of all environments:
          srt environment list --all
    """
    result = _check(core_env.list_environments(show_all=all))

    if not result.data:
        print("No environments defined.")
        return

    for env in result.data:
        if env.get('is_encrypted') == 'True':
            print(f"[{env['name']}] (ENCRYPTED)")
        else:
            print(f"[{env['name']}]")
            for key, value in env.items():
                if key not in ('name', 'is_encrypted'):
                    print(f"{key} = {value}")
        print("")


@environment.command()
@click.argument('name')
@click.option("-k", "--encryption-key", required=False, help="The key to decrypt the environment if it's encrypted")
def show(name, encryption_key):
    """Show an environment. The password is always masked.

    Examples:

        Show an environment:
          srt environment show prod-ora

        Show an encrypted environment:
          srt environment show prod-ora --encryption-key mypassword
    """
    result = _check(core_env.get_environment(name, encryption_key))

    env = result.data
    print(f"[{name}]")
    for key, value in env.items():
        if key != 'name':
            print(f"{key} = {value}")


@environment.command()
@click.argument('name')
def delete(name):
    """Remove an environment.

    Examples:

        Delete an environment:
          srt environment delete old-ora

        Using the alias:
          srt environment rm old-ora
    """
    result = _check(core_env.delete_environment(name))
    print(result.message)


@environment.command()
@click.argument('name')
@click.option("-k", "--encryption-key", required=False, help="The key to decrypt the environment if it's encrypted")
def test(name, encryption_key):
    """Test the database connection of an environment.

    Examples:

        Test an environment:
          srt environment test prod-ora

        Test an encrypted environment:
          srt environment test prod-ora --encryption-key mypassword
    """
    result = core_env.test_environment(name, encryption_key)
    if not result.success:
        raise click.ClickException(result.message)
    print(result.message)


ALIASES = {
    "new": create,
    "ls": list,
    "rm": delete,
    "remove": delete,
    "inspect": show,
    "validate": test,
}
