"""
SRT Tool Core Environment Management

Environment definitions (named database connections) used for the source and
target of a replication. Environments live in an ini file and can optionally
be encrypted with a user supplied key.
"""

from typing import Optional
from sqlalchemy import create_engine, text

from srt.core.types import DatabaseType, OperationResult
from srt.core.exceptions import EnvironmentError, ValidationError, EncryptionError
from srt.core.utils import (
    validate_database_type, load_environment_config, save_environment_config,
    create_success_result, handle_exception, validate_required_params
)
from srt.srt_utils import encryption


def create_environment(
    name: str,
    host: str,
    port: int,
    user: str,
    password: str,
    service: str,
    db_type: str,
    encrypt: bool = False,
    encryption_key: Optional[str] = None,
    overwrite: bool = False,
    connection_type: Optional[str] = None
) -> OperationResult:
    """
    Create a new database environment.

    Args:
        name: Environment name
        host: Database host
        port: Database port
        user: Database username
        password: Database password
        service: Database service name (or SID for Oracle)
        db_type: Database type (ORACLE, POSTGRES, MYSQL, MSSQL)
        encrypt: Whether to encrypt the environment
        encryption_key: Encryption key (required if encrypt=True)
        overwrite: Whether to overwrite if environment already exists
        connection_type: Oracle connection type ('service_name' or 'sid'). Defaults to 'service_name'

    Returns:
        OperationResult with success status and message
    """
    try:
        validate_required_params(
            {'name': name, 'host': host, 'port': port, 'user': user,
             'password': password, 'service': service, 'db_type': db_type},
            ['name', 'host', 'port', 'user', 'password', 'service', 'db_type']
        )

        if name == "*":
            raise ValidationError("Cannot use '*' as environment name")

        db_type_enum = validate_database_type(db_type)

        if encrypt and not encryption_key:
            raise ValidationError("Encryption key is required when encrypt=True")

        config = load_environment_config()

        if name in config.sections() and not overwrite:
            raise EnvironmentError(f"Environment '{name}' already exists. Use overwrite=True to replace it.")

        if name in config.sections():
            config.remove_section(name)
        config.add_section(name)

        env_data = {
            "host": host,
            "port": str(port),
            "user": user,
            "password": password,
            "service": service,
            "type": db_type_enum.value
        }

        if db_type_enum == DatabaseType.ORACLE:
            connection_type = (connection_type or "service_name").lower()
            if connection_type not in ['service_name', 'sid']:
                raise ValidationError("Oracle connection_type must be 'service_name' or 'sid'")
            env_data["connection_type"] = connection_type

        if encrypt:
            try:
                encrypted_env = encryption.encrypt_environment(env_data, encryption_key)
            except Exception as e:
                raise EncryptionError(f"Failed to encrypt environment: {str(e)}")
            for key, value in encrypted_env.items():
                config[name][key] = value
        else:
            config[name]["is_encrypted"] = 'False'
            for key, value in env_data.items():
                config[name][key] = value

        save_environment_config(config)

        return create_success_result(f"Environment '{name}' created successfully")

    except Exception as e:
        return handle_exception(e, "environment creation")


def list_environments(show_all: bool = False) -> OperationResult:
    """
    List all environments.

    Args:
        show_all: Whether to show all details (passwords will be masked)

    Returns:
        OperationResult with list of environment dictionaries
    """
    try:
        config = load_environment_config()

        environments = []
        for section in config.sections():
            env = {'name': section}

            if show_all:
                for key in config[section]:
                    if key == 'password':
                        env[key] = '********'
                    else:
                        env[key] = config[section][key]

            environments.append(env)

        message = f"Found {len(environments)} environment(s)"
        return create_success_result(message, data=environments, record_count=len(environments))

    except Exception as e:
        return handle_exception(e, "environment listing")


def get_environment(name: str, encryption_key: Optional[str] = None) -> OperationResult:
    """
    Get details of a specific environment. The password is always masked.

    Args:
        name: Environment name
        encryption_key: Encryption key for encrypted environments

    Returns:
        OperationResult with environment details
    """
    try:
        validate_required_params({'name': name}, ['name'])

        config = load_environment_config()

        if name not in config.sections():
            raise EnvironmentError(f"Environment '{name}' not found")

        section = dict(config[name])
        is_encrypted = section.get('is_encrypted', 'False') == 'True'

        if is_encrypted and encryption_key:
            try:
                section = encryption.decrypt_environment(section, encryption_key)
            except Exception:
                raise EncryptionError(f"Failed to decrypt environment '{name}'. Check your encryption key.")

        env = {'name': name}
        for key, value in section.items():
            if key in ('salt',):
                continue
            env[key] = '********' if key == 'password' else value
        env['is_encrypted'] = str(is_encrypted)

        return create_success_result(f"Environment '{name}' retrieved successfully", data=env)

    except Exception as e:
        return handle_exception(e, "environment retrieval")


def delete_environment(name: str) -> OperationResult:
    """
    Delete an environment.

    Args:
        name: Environment name

    Returns:
        OperationResult with success status and message
    """
    try:
        validate_required_params({'name': name}, ['name'])

        config = load_environment_config()

        if name not in config.sections():
            raise EnvironmentError(f"Environment '{name}' not found")

        config.remove_section(name)
        save_environment_config(config)

        return create_success_result(f"Environment '{name}' deleted successfully")

    except Exception as e:
        return handle_exception(e, "environment deletion")


def test_environment(name: str, encryption_key: Optional[str] = None) -> OperationResult:
    """
    Test database connection for an environment.

    Args:
        name: Environment name
        encryption_key: Encryption key for encrypted environments

    Returns:
        OperationResult with test results
    """
    try:
        validate_required_params({'name': name}, ['name'])

        connection_url = get_connection_url(name, encryption_key)
        if 'oracle' in connection_url:
            _initialize_oracle_client()
            probe = "SELECT 1 FROM DUAL"
        else:
            probe = "SELECT 1"

        engine = create_engine(connection_url)
        try:
            with engine.connect() as connection:
                connection.execute(text(probe)).fetchall()
        finally:
            engine.dispose()

        return create_success_result(f"Successfully connected to environment '{name}'")

    except Exception as e:
        return handle_exception(e, "environment connection test")


def get_connection_url(env_name: str, encryption_key: Optional[str] = None) -> str:
    """
    Get a SQLAlchemy connection URL for the specified environment.

    Args:
        env_name: Environment name
        encryption_key: Encryption key for encrypted environments

    Returns:
        SQLAlchemy connection URL string

    Raises:
        EnvironmentError: If environment not found
        ValidationError: If encryption key required but not provided
        EncryptionError: If decryption fails
    """
    config = load_environment_config()

    if env_name not in config.sections():
        raise EnvironmentError(f"Environment '{env_name}' not found")

    env = dict(config[env_name])

    if env.get("is_encrypted", 'False') == 'True':
        if not encryption_key:
            raise ValidationError(f"Environment '{env_name}' is encrypted. Provide an encryption key.")
        try:
            env = encryption.decrypt_environment(env, encryption_key)
        except Exception as e:
            raise EncryptionError(f"Failed to decrypt environment: {str(e)}. Check your encryption key.")

    env_type = env["type"].upper()
    host = env["host"]
    port = env["port"]
    user = env["user"]
    password = env["password"]
    service = env["service"]
    connection_type = env.get("connection_type", "service_name")

    if env_type == "ORACLE":
        if connection_type == "sid":
            return f"oracle+oracledb://{user}:{password}@{host}:{port}/{service}"
        return f"oracle+oracledb://{user}:{password}@{host}:{port}?service_name={service}"
    elif env_type == "POSTGRES":
        return f"postgresql://{user}:{password}@{host}:{port}/{service}"
    elif env_type == "MYSQL":
        return f"mysql+pymysql://{user}:{password}@{host}:{port}/{service}"
    elif env_type == "MSSQL":
        return f"mssql+pyodbc://{user}:{password}@{host}:{port}/{service}?driver=ODBC+Driver+17+for+SQL+Server"
    else:
        raise ValidationError(f"Unsupported database type: {env_type}")


_oracle_client_initialized = False
_oracle_client_attempted = False


def _initialize_oracle_client() -> bool:
    """
    Switch python-oracledb to thick mode when an Oracle client is installed.

    Thick mode has to be enabled before the first connection is opened. When
    no client library is available the driver stays in thin mode, which is
    fine for everything this tool does.
    """
    global _oracle_client_initialized, _oracle_client_attempted
    if _oracle_client_attempted:
        return _oracle_client_initialized

    _oracle_client_attempted = True
    try:
        import oracledb
        oracledb.init_oracle_client()
        _oracle_client_initialized = True
    except Exception:
        # No Instant Client on this machine, thin mode it is
        _oracle_client_initialized = False
    return _oracle_client_initialized
