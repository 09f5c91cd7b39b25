"""
Unit tests for Records, destructuring and the builtin functions.
"""
import pytest

from promptlang.runtime import get_preamble


@pytest.fixture
def runtime_env():
    """Create a namespace with the runtime loaded."""
    env = {}
    exec(get_preamble(), env)
    return env


class TestRecord:

    def test_attribute_access(self, runtime_env):
        record = runtime_env['Record']({"name": "Ada", "age": 36})
        assert record.name == "Ada"
        assert record["age"] == 36

    def test_missing_attribute(self, runtime_env):
        record = runtime_env['Record']()
        with pytest.raises(AttributeError, match="Record has no property 'nope'"):
            record.nope

    def test_missing_attribute_with_getattr_default(self, runtime_env):
        record = runtime_env['Record']()
        assert getattr(record, "nope", None) is None

    def test_set_and_delete(self, runtime_env):
        record = runtime_env['Record']()
        record.score = 0.5
        assert record == {"score": 0.5}
        del record.score
        assert record == {}

    def test_dict_methods_win_over_keys(self, runtime_env):
        record = runtime_env['Record']({"items": [1]})
        assert callable(record.items)
        assert record["items"] == [1]

    def test_to_record_is_recursive(self, runtime_env):
        value = runtime_env['to_record']({"a": [{"b": 1}], "c": {"d": "x"}})
        assert value.a[0].b == 1
        assert value.c.d == "x"
        assert isinstance(value.a, list)

    def test_to_record_leaves_scalars(self, runtime_env):
        to_record = runtime_env['to_record']
        assert to_record("text") == "text"
        assert to_record(None) is None


class TestDestructure:

    def test_from_dict(self, runtime_env):
        destructure = runtime_env['destructure']
        assert destructure({"a": 1, "b": 2, "c": 3}, ("b", "a")) == (2, 1)

    def test_missing_property_is_none(self, runtime_env):
        destructure = runtime_env['destructure']
        assert destructure({"a": 1}, ("a", "b")) == (1, None)

    def test_from_object(self, runtime_env):
        class Point:
            x = 3
        assert runtime_env['destructure'](Point(), ("x", "y")) == (3, None)

    def test_single_name(self, runtime_env):
        (value,) = runtime_env['destructure']({"a": 1}, ("a",))
        assert value == 1


class TestBuiltins:

    def test_print_returns_last_argument(self, runtime_env, capsys):
        result = runtime_env['_builtins'].print("a", 2)
        assert result == 2
        assert capsys.readouterr().out == "a 2\n"

    def test_print_without_arguments(self, runtime_env, capsys):
        assert runtime_env['_builtins'].print() is None
        assert capsys.readouterr().out == "\n"

    def test_stringify(self, runtime_env):
        text = runtime_env['_builtins'].stringify(runtime_env['Record']({"a": [1, 2]}))
        assert text == '{\n  "a": [\n    1,\n    2\n  ]\n}'

    def test_parse(self, runtime_env):
        value = runtime_env['_builtins'].parse('{"user": {"name": "Ada"}}')
        assert value.user.name == "Ada"

    def test_parse_invalid_json(self, runtime_env, capsys):
        with pytest.raises(ValueError, match="Failed to parse JSON"):
            runtime_env['_builtins'].parse("{nope")
        assert "Error parsing JSON" in capsys.readouterr().err
