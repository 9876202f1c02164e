"""
Input normalisation: precedence, required fields and value parsing.

Run with:
$ pytest -q
"""

from pathlib import Path

import pytest

from cortex_agent_action.core.inputs import (
    ConfigurationError,
    first_non_blank,
    parse_boolean,
    parse_messages,
    parse_optional_integer,
    parse_timeout,
    parse_tool_choice,
    resolve_action_inputs,
    resolve_coordinates,
    resolve_persist_dir,
)

COORDS = {"agent-database": "DB", "agent-schema": "SC", "agent-name": "AG"}


def test_first_non_blank_skips_none_and_whitespace() -> None:
    """The first candidate with visible characters wins and is returned untouched."""

    assert first_non_blank([None, "   ", "\t", " x ", "y"]) == " x "
    assert first_non_blank([None, ""]) is None
    assert first_non_blank([]) is None


def test_explicit_coordinates_override_environment(monkeypatch, make_settings) -> None:
    """Explicit inputs beat AGENT_* which beat SNOWFLAKE_* values."""

    monkeypatch.setenv("AGENT_DATABASE", "ENV_DB")
    monkeypatch.setenv("SNOWFLAKE_DATABASE", "SF_DB")
    monkeypatch.setenv("AGENT_SCHEMA", "ENV_SC")
    monkeypatch.setenv("AGENT_NAME", "ENV_AG")
    settings = make_settings()

    coords = resolve_coordinates(settings, COORDS)
    assert (coords.database, coords.schema_name, coords.agent_name) == ("DB", "SC", "AG")

    coords = resolve_coordinates(settings, {})
    assert coords.qualified_name == "ENV_DB.ENV_SC.ENV_AG"


def test_secondary_environment_fallback_is_trimmed(make_settings) -> None:
    """SNOWFLAKE_DATABASE / SNOWFLAKE_SCHEMA are used when AGENT_* are blank."""

    settings = make_settings(
        AGENT_DATABASE="  ",
        SNOWFLAKE_DATABASE="  SF_DB ",
        SNOWFLAKE_SCHEMA="SF_SC",
        AGENT_NAME=" bot\n",
    )
    coords = resolve_coordinates(settings)
    assert coords.qualified_name == "SF_DB.SF_SC.bot"


@pytest.mark.parametrize("missing", ["agent-database", "agent-schema", "agent-name"])
def test_missing_coordinate_names_the_field(make_settings, missing) -> None:
    """A blank field after every fallback fails with a message naming it."""

    explicit = dict(COORDS, **{missing: "   "})
    try:
        resolve_coordinates(make_settings(), explicit)
    except ConfigurationError as exc:
        assert missing in str(exc)
    else:  # pragma: no cover
        raise AssertionError("ConfigurationError was not raised")


def test_messages_json_array_is_parsed() -> None:
    """A JSON array of messages is validated and kept in order."""

    raw = (
        '[{"role":"user","content":[{"type":"text","text":"hi"}]},'
        '{"role":"assistant","content":[{"type":"text","text":"hello"}]}]'
    )
    messages = parse_messages(raw, "ignored")
    assert [m.role for m in messages] == ["user", "assistant"]
    assert messages[0].content[0].text == "hi"


@pytest.mark.parametrize("raw", ['{"role": "user"}', "[not json", "[]", '[{"content": []}]'])
def test_invalid_messages_json_is_rejected(raw) -> None:
    """Non-arrays, parse errors, empty arrays and malformed messages all fail."""

    try:
        parse_messages(raw, "fallback")
    except ConfigurationError as exc:
        assert str(exc).startswith("Invalid messages JSON:")
    else:  # pragma: no cover
        raise AssertionError("ConfigurationError was not raised")


def test_single_message_is_wrapped_as_user_text() -> None:
    """Without a messages array the plain prompt becomes one user message."""

    messages = parse_messages("   ", "  What changed?  ")
    assert len(messages) == 1
    assert messages[0].model_dump(exclude_none=True) == {
        "role": "user",
        "content": [{"type": "text", "text": "What changed?"}],
    }


def test_no_message_at_all_fails() -> None:
    """Both sources blank is a configuration error."""

    try:
        parse_messages(None, " ")
    except ConfigurationError as exc:
        assert "AGENT_MESSAGE" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("ConfigurationError was not raised")


def test_optional_integer() -> None:
    """Numbers are floored, blanks are unset and junk is rejected."""

    assert parse_optional_integer("3.9") == 3
    assert parse_optional_integer(" 42 ") == 42
    assert parse_optional_integer("-1.5") == -2
    assert parse_optional_integer("1e3") == 1000
    assert parse_optional_integer(None) is None
    assert parse_optional_integer("  ") is None

    for junk in ("abc", "nan", "inf", "1_000"):
        try:
            parse_optional_integer(junk)
        except ConfigurationError as exc:
            assert junk in str(exc)
        else:  # pragma: no cover
            raise AssertionError(f"ConfigurationError was not raised for {junk!r}")


def test_tool_choice() -> None:
    """Shorthand strings are promoted; JSON objects pass through unchanged."""

    assert parse_tool_choice("auto") == {"type": "auto"}
    assert parse_tool_choice("  required ") == {"type": "required"}
    assert parse_tool_choice('{"type":"auto","name":["X"]}') == {"type": "auto", "name": ["X"]}
    assert parse_tool_choice("") is None
    assert parse_tool_choice(None) is None

    try:
        parse_tool_choice('{"type": auto}')
    except ConfigurationError as exc:
        assert str(exc).startswith("Invalid tool-choice JSON:")
    else:  # pragma: no cover
        raise AssertionError("ConfigurationError was not raised")


def test_boolean() -> None:
    """Only true / 1 / yes (any case) count as true."""

    assert parse_boolean("TRUE")
    assert parse_boolean(" yes ")
    assert parse_boolean("1")
    assert not parse_boolean("on")
    assert not parse_boolean("")
    assert not parse_boolean(None)


def test_persist_dir_fallback_chain(monkeypatch, make_settings, tmp_path: Path) -> None:
    """persist-dir > AGENT_PERSIST_DIR > RUN_SQL_RESULT_DIR > RUNNER_TEMP > CWD."""

    monkeypatch.chdir(tmp_path)
    assert resolve_persist_dir(make_settings()) == Path.cwd()

    settings = make_settings(RUNNER_TEMP="/runner/tmp", RUN_SQL_RESULT_DIR="/sql/results")
    assert resolve_persist_dir(settings) == Path("/sql/results")
    assert resolve_persist_dir(settings, {"persist-dir": "out"}) == Path("out")


def test_resolve_action_inputs_bundles_everything(make_settings) -> None:
    """Every field flows into the request; env fills what the explicit inputs leave blank."""

    settings = make_settings(
        AGENT_MESSAGE="hello",
        AGENT_THREAD_ID="7",
        AGENT_TOOL_CHOICE="auto",
        AGENT_PERSIST_RESULTS="yes",
        AGENT_PERSIST_DIR="/tmp/results",
    )
    inputs = resolve_action_inputs(settings, dict(COORDS, **{"parent-message-id": "12.2"}))

    request = inputs.request
    assert request.coordinates.qualified_name == "DB.SC.AG"
    assert request.thread_id == 7
    assert request.parent_message_id == 12
    assert request.tool_choice == {"type": "auto"}
    assert inputs.persist_results is True
    assert inputs.persist_dir == Path("/tmp/results")
    assert request.to_request_body() == {
        "messages": [{"role": "user", "content": [{"type": "text", "text": "hello"}]}],
        "thread_id": 7,
        "parent_message_id": 12,
        "tool_choice": {"type": "auto"},
    }


def test_timeout() -> None:
    """Blank means the default; junk and non-positive values are configuration errors."""

    assert parse_timeout(None) == 600.0
    assert parse_timeout("  ") == 600.0
    assert parse_timeout("2.5") == 2.5

    for junk in ("ten", "0", "-5", "1_0"):
        try:
            parse_timeout(junk)
        except ConfigurationError as exc:
            assert "AGENT_HTTP_TIMEOUT" in str(exc)
        else:  # pragma: no cover
            raise AssertionError(f"ConfigurationError was not raised for {junk!r}")
