"""Tests for agent/parser.py - tool call extraction from model output."""

from __future__ import annotations

import pytest

from agentgate.agent.models import ToolCall
from agentgate.agent.parser import ToolCallParser, parse_attributes


@pytest.fixture
def parser() -> ToolCallParser:
    return ToolCallParser()


class TestBuiltinTags:
    def test_write_file(self, parser: ToolCallParser) -> None:
        text = 'I will create it.\n<write_file path="src/a.py">print("hi")\n</write_file>'
        call = parser.parse(text)
        assert call == ToolCall(tool="write_file", args={"path": "src/a.py"}, content='print("hi")\n')

    def test_write_file_content_is_not_stripped(self, parser: ToolCallParser) -> None:
        call = parser.parse('<write_file path="a.txt">\n  indented\n</write_file>')
        assert call is not None
        assert call.content == "\n  indented\n"

    def test_write_file_empty_content(self, parser: ToolCallParser) -> None:
        call = parser.parse('<write_file path="empty.txt"></write_file>')
        assert call is not None
        assert call.content == ""

    @pytest.mark.parametrize(
        "text", ['<read_file path="README.md" />', '<read_file path="README.md"/>', '<read_file  path="README.md"   />']
    )
    def test_read_file(self, text: str, parser: ToolCallParser) -> None:
        assert parser.parse(text) == ToolCall(tool="read_file", args={"path": "README.md"})

    def test_execute_command_keeps_raw_content(self, parser: ToolCallParser) -> None:
        call = parser.parse("<execute_command>\n  npm test  \n</execute_command>")
        assert call == ToolCall(tool="execute_command", content="\n  npm test  \n")

    def test_list_files(self, parser: ToolCallParser) -> None:
        call = parser.parse('<list_files path="." />')
        assert call == ToolCall(tool="list_files", args={"path": "."})

    def test_browser_action_keeps_known_attributes(self, parser: ToolCallParser) -> None:
        call = parser.parse(
            '<browser_action action="type" selector="#q" text="hello world" extra="x" />'
        )
        assert call is not None
        assert call.tool == "browser_action"
        assert call.args == {"action": "type", "selector": "#q", "text": "hello world"}

    def test_browser_action_empty_attribute(self, parser: ToolCallParser) -> None:
        call = parser.parse('<browser_action action="read" text="" />')
        assert call is not None
        assert call.args == {"action": "read", "text": ""}


class TestPrecedence:
    def test_first_builtin_pattern_wins_regardless_of_position(self, parser: ToolCallParser) -> None:
        text = '<read_file path="first.txt" />\n<write_file path="second.txt">x</write_file>'
        call = parser.parse(text)
        assert call is not None
        assert call.tool == "write_file"

    def test_only_one_call_is_returned(self, parser: ToolCallParser) -> None:
        text = '<read_file path="a.txt" /> and <read_file path="b.txt" />'
        call = parser.parse(text)
        assert call is not None
        assert call.args["path"] == "a.txt"

    def test_builtin_wins_over_external(self) -> None:
        parser = ToolCallParser(lambda: ["search"])
        call = parser.parse('<search>{"q": "x"}</search> <list_files path="." />')
        assert call is not None
        assert call.tool == "list_files"


class TestNoCall:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "Just a plain answer.",
            "<read_file />",
            '<read_file path="">',
            "<execute_command>ls",
            '<write_file path="a">unterminated',
        ],
    )
    def test_returns_none(self, text: str, parser: ToolCallParser) -> None:
        assert parser.parse(text) is None

    def test_unregistered_tag_is_ignored(self, parser: ToolCallParser) -> None:
        assert parser.parse('<search>{"q": "x"}</search>') is None


class TestExternalTools:
    def test_json_content_becomes_arguments(self) -> None:
        parser = ToolCallParser(lambda: ["search_docs"])
        call = parser.parse('Let me look.\n<search_docs>{"query": "asyncio", "limit": 3}</search_docs>')
        assert call == ToolCall(tool="search_docs", args={"query": "asyncio", "limit": 3}, content=None)

    def test_non_json_content_is_kept(self) -> None:
        parser = ToolCallParser(lambda: ["echo"])
        call = parser.parse("<echo>hello there</echo>")
        assert call == ToolCall(tool="echo", args={}, content="hello there")

    def test_invalid_json_is_kept_as_content(self) -> None:
        parser = ToolCallParser(lambda: ["echo"])
        call = parser.parse("<echo>{not json}</echo>")
        assert call is not None
        assert call.content == "{not json}"
        assert call.args == {}

    def test_attributes_and_content(self) -> None:
        parser = ToolCallParser(lambda: ["fetch"])
        call = parser.parse('<fetch url="https://example.com">summary</fetch>')
        assert call == ToolCall(tool="fetch", args={"url": "https://example.com"}, content="summary")

    def test_self_closing(self) -> None:
        parser = ToolCallParser(lambda: ["get-time"])
        call = parser.parse('<get-time zone="UTC" />')
        assert call == ToolCall(tool="get-time", args={"zone": "UTC"})

    def test_earliest_form_wins(self) -> None:
        parser = ToolCallParser(lambda: ["ping"])
        call = parser.parse('<ping host="a" /> later <ping>{"host": "b"}</ping>')
        assert call is not None
        assert call.args == {"host": "a"}

    def test_registration_order_decides_between_tools(self) -> None:
        parser = ToolCallParser(lambda: ["beta", "alpha"])
        call = parser.parse("<alpha>1</alpha> <beta>2</beta>")
        assert call is not None
        assert call.tool == "beta"

    def test_names_are_consulted_on_every_parse(self) -> None:
        names: list[str] = []
        parser = ToolCallParser(lambda: names)
        assert parser.parse("<late>x</late>") is None
        names.append("late")
        assert parser.parse("<late>x</late>") is not None

    def test_tag_names_are_escaped(self) -> None:
        parser = ToolCallParser(lambda: ["a.b"])
        assert parser.parse("<axb>1</axb>") is None
        assert parser.parse("<a.b>1</a.b>") is not None


def test_parse_attributes() -> None:
    assert parse_attributes('a="1" data-x="two words" empty=""') == {
        "a": "1",
        "data-x": "two words",
        "empty": "",
    }
