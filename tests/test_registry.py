"""Tests for ToolRegistry."""

import pytest

from nanocode.llm.errors import ToolDispatchError
from nanocode.tools.base import ToolRisk
from nanocode.tools.builtin import default_registry
from nanocode.tools.registry import ToolRegistry
from nanocode.types import ErrorCode
from tests.mock_tools import EchoTool, ExplodingTool, FailingTool, RecordingTool


@pytest.fixture
def reg():
    r = ToolRegistry()
    r.register(EchoTool())
    r.register(RecordingTool())
    r.register(FailingTool())
    r.register(ExplodingTool())
    return r


class TestToolRegistry:
    """Test suite for ToolRegistry."""

    def test_register_and_get(self):
        reg = ToolRegistry()
        tool = EchoTool()
        reg.register(tool)
        assert reg.get("echo") is tool

    def test_get_returns_none_for_unknown(self):
        assert ToolRegistry().get("nonexistent") is None

    def test_require_raises_dispatch_error_for_unknown(self):
        with pytest.raises(ToolDispatchError, match="unknown tool nonexistent") as exc_info:
            ToolRegistry().require("nonexistent")
        assert exc_info.value.code == ErrorCode.UNKNOWN_TOOL

    def test_duplicate_registration_raises_valueerror(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        with pytest.raises(ValueError, match="already registered"):
            reg.register(EchoTool())

    def test_duplicate_registration_with_overwrite(self):
        reg = ToolRegistry()
        tool2 = EchoTool()
        reg.register(EchoTool())
        reg.register(tool2, overwrite=True)
        assert reg.get("echo") is tool2

    def test_list_sorted_by_name(self, reg):
        names = [t.name for t in reg.list()]
        assert names == sorted(names)
        assert len(names) == 4

    def test_list_with_max_risk(self, reg):
        assert [t.name for t in reg.list(max_risk=ToolRisk.READ_ONLY)] == ["echo", "failing"]
        assert len(reg.list(max_risk=ToolRisk.WRITE)) == 3
        assert len(reg.list(max_risk=ToolRisk.SHELL)) == 4

    def test_definitions_normalize_schema(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        (d,) = reg.definitions()
        assert d.name == "echo"
        assert d.parameters["type"] == "object"
        assert "message" in d.parameters["properties"]

    def test_empty_registry(self):
        reg = ToolRegistry()
        assert reg.list() == []
        assert reg.definitions() == []


class TestInvoke:
    async def test_success(self, reg):
        result = await reg.invoke("echo", {"message": "hi"})
        assert result.success
        assert result.text == "hi"

    async def test_unknown_tool_raises(self, reg):
        with pytest.raises(ToolDispatchError) as exc_info:
            await reg.invoke("frobnicate", {})
        assert exc_info.value.code == ErrorCode.UNKNOWN_TOOL

    async def test_non_object_arguments_raise(self, reg):
        with pytest.raises(ToolDispatchError) as exc_info:
            await reg.invoke("echo", ["not", "an", "object"])
        assert exc_info.value.code == ErrorCode.INVALID_ARGUMENTS

    async def test_reported_failure_gets_code(self, reg):
        result = await reg.invoke("failing", {})
        assert not result.success
        assert result.text == "error: it broke"
        assert result.error_code == ErrorCode.TOOL_FAILED

    async def test_exception_becomes_failed_result(self, reg):
        result = await reg.invoke("exploding", {})
        assert not result.success
        assert result.text == "error: kaboom"
        assert result.error_code == ErrorCode.TOOL_EXCEPTION


class TestDefaultRegistry:
    def test_builtin_names(self):
        names = {t.name for t in default_registry().list()}
        assert names == {
            "bash",
            "edit",
            "execute_python",
            "fetch_url",
            "glob",
            "grep",
            "read",
            "write",
        }

    def test_disabled_tools_are_left_out(self):
        names = {t.name for t in default_registry(disabled=["bash", "execute_python"]).list()}
        assert "bash" not in names
        assert "execute_python" not in names
        assert "read" in names
