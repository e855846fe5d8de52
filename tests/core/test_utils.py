"""
Tests for the core utils module.
"""
import pytest
from sqlalchemy.exc import DBAPIError

from srt.core import utils
from srt.core.exceptions import EnvironmentError, ValidationError
from srt.core.types import DatabaseType


class OracleLikeError:
    """Shape of the first argument of a python-oracledb DatabaseError."""

    def __init__(self, code, message):
        self.code = code
        self.message = message

    def __str__(self):
        return self.message


class DriverError(Exception):
    pass


class TestValidationFunctions:
    """Test validation utility functions."""

    def test_validate_database_type_valid(self):
        assert utils.validate_database_type('ORACLE') == DatabaseType.ORACLE
        assert utils.validate_database_type('oracle') == DatabaseType.ORACLE
        assert utils.validate_database_type('postgres') == DatabaseType.POSTGRES

    def test_validate_database_type_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            utils.validate_database_type('INVALID')

        assert "Invalid database type 'INVALID'" in str(exc_info.value)

    def test_validate_required_params(self):
        utils.validate_required_params({'a': 1, 'b': 'x'}, ['a', 'b'])

        with pytest.raises(ValidationError) as exc_info:
            utils.validate_required_params({'a': None}, ['a', 'b'])

        assert "Missing required parameters: a, b" in str(exc_info.value)

    @pytest.mark.parametrize("value,expected", [
        (True, True), ('true', True), ('YES', True), ('1', True), ('on', True),
        (False, False), ('false', False), ('No', False), ('0', False), ('off', False),
    ])
    def test_normalize_boolean_param(self, value, expected):
        assert utils.normalize_boolean_param(value, 'flag') is expected

    def test_normalize_boolean_param_invalid(self):
        with pytest.raises(ValidationError):
            utils.normalize_boolean_param('maybe', 'flag')


class TestResultHelpers:
    """Test OperationResult helpers."""

    def test_create_success_result(self):
        result = utils.create_success_result("done", data={'x': 1}, record_count=3)

        assert result.success is True
        assert result.message == "done"
        assert result.data == {'x': 1}
        assert result.record_count == 3

    def test_create_error_result(self):
        result = utils.create_error_result("failed", "details", data=[1])

        assert result.success is False
        assert result.error_details == "details"
        assert result.data == [1]

    def test_handle_srt_error(self):
        result = utils.handle_exception(EnvironmentError("Environment 'x' not found"), "lookup")

        assert result.success is False
        assert result.message == "Environment 'x' not found"

    def test_handle_other_error(self):
        result = utils.handle_exception(KeyError('host'), "lookup")

        assert result.message == "Error during lookup: 'host'"
        assert result.error_details == "KeyError"


class TestErrorFormatting:
    """Test rendering driver errors for the run log."""

    def test_oracle_style_code(self):
        error = DriverError(OracleLikeError(942, "ORA-00942: table or view does not exist"))

        assert utils.get_error_code(error) == '942'

    def test_code_attribute(self):
        error = DriverError("duplicate key")
        error.pgcode = '23505'

        assert utils.get_error_code(error) == '23505'

    def test_fallback_to_class_name(self):
        assert utils.get_error_code(ValueError("x")) == 'ValueError'

    def test_sqlalchemy_wrapper_is_unwrapped(self):
        orig = DriverError(OracleLikeError(1400, "ORA-01400: cannot insert NULL"))
        wrapped = DBAPIError("INSERT INTO T VALUES (:p0)", {}, orig)

        assert utils.get_error_code(wrapped) == '1400'
        assert utils.get_error_detail(wrapped) == "ORA-01400: cannot insert NULL"

    def test_format_error_message(self):
        error = DriverError(OracleLikeError(1400, "ORA-01400: " + "x" * 200))

        message = utils.format_error_message(error, 100)

        first, second = message.split("\n")
        assert first == "error number: 1400"
        assert second == "err message: " + ("ORA-01400: " + "x" * 200)[:100]

    def test_truncate(self):
        assert utils.truncate(None, 5) == ''
        assert utils.truncate("abcdefgh", 5) == "abcde"


def test_safe_print(capsys):
    utils.safe_print("✓ done")

    assert "done" in capsys.readouterr().out


def test_environment_config_roundtrip(envs_file):
    config = utils.load_environment_config()
    config.add_section('prod')
    config['prod']['host'] = 'dbhost'

    utils.save_environment_config(config)

    assert utils.load_environment_config()['prod']['host'] == 'dbhost'
