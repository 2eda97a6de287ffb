"""Tool registry for the MCP Git worktree server"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from mcp.types import Tool

logger = logging.getLogger(__name__)


class GitTools(str, Enum):
    """Enumeration of all available Git tools, in registry order"""
    STATUS = "git_status"
    CREATE_BRANCH = "create_branch"
    SWITCH_BRANCH = "switch_branch"
    LIST_BRANCHES = "list_branches"
    MERGE_BRANCH = "merge_branch"
    CREATE_WORKTREE = "create_worktree"
    LIST_WORKTREES = "list_worktrees"
    REMOVE_WORKTREE = "remove_worktree"
    COMMIT_CHANGES = "commit_changes"
    PUSH_CHANGES = "push_changes"
    PULL_CHANGES = "pull_changes"

    @classmethod
    def resolve(cls, name: Any) -> Optional["GitTools"]:
        try:
            return cls(name)
        except (ValueError, TypeError):
            return None


class ParamType(str, Enum):
    STRING = "string"
    STRING_ARRAY = "array<string>"


@dataclass(frozen=True)
class ToolParam:
    name: str
    type: ParamType
    description: str
    required: bool = False

    def json_schema(self) -> Dict[str, Any]:
        if self.type is ParamType.STRING_ARRAY:
            schema: Dict[str, Any] = {"type": "array", "items": {"type": "string"}}
        else:
            schema = {"type": "string"}
        schema["description"] = self.description
        return schema


@dataclass(frozen=True)
class ToolDefinition:
    """Immutable tool descriptor; purely descriptive, never enforced"""
    name: GitTools
    description: str
    params: Tuple[ToolParam, ...] = ()

    def input_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {
            "type": "object",
            "properties": {param.name: param.json_schema() for param in self.params},
        }
        schema["required"] = [param.name for param in self.params if param.required]
        return schema

    def to_tool(self) -> Tool:
        return Tool(
            name=self.name.value,
            description=self.description,
            inputSchema=self.input_schema(),
        )


def _string(name: str, description: str, required: bool = False) -> ToolParam:
    return ToolParam(name, ParamType.STRING, description, required)


DEFAULT_TOOLS: Tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name=GitTools.STATUS,
        description="Get the current Git repository status",
    ),
    ToolDefinition(
        name=GitTools.CREATE_BRANCH,
        description="Create a new Git branch",
        params=(
            _string("branchName", "Name of the new branch", required=True),
            _string("fromBranch", "Source branch to create from (optional)"),
        ),
    ),
    ToolDefinition(
        name=GitTools.SWITCH_BRANCH,
        description="Switch to a different Git branch",
        params=(_string("branchName", "Name of the branch to switch to", required=True),),
    ),
    ToolDefinition(
        name=GitTools.LIST_BRANCHES,
        description="List all Git branches",
    ),
    ToolDefinition(
        name=GitTools.MERGE_BRANCH,
        description="Merge branches",
        params=(
            _string("sourceBranch", "Branch to merge from", required=True),
            _string("targetBranch", "Branch to merge into (optional)"),
        ),
    ),
    ToolDefinition(
        name=GitTools.CREATE_WORKTREE,
        description="Create a new Git worktree",
        params=(
            _string("path", "Path for the new worktree", required=True),
            _string("branch", "Branch for the worktree (optional)"),
        ),
    ),
    ToolDefinition(
        name=GitTools.LIST_WORKTREES,
        description="List all Git worktrees",
    ),
    ToolDefinition(
        name=GitTools.REMOVE_WORKTREE,
        description="Remove a Git worktree",
        params=(_string("path", "Path of the worktree to remove", required=True),),
    ),
    ToolDefinition(
        name=GitTools.COMMIT_CHANGES,
        description="Commit changes",
        params=(
            _string("message", "Commit message", required=True),
            ToolParam(
                "files",
                ParamType.STRING_ARRAY,
                "Specific files to commit (optional)",
            ),
        ),
    ),
    ToolDefinition(
        name=GitTools.PUSH_CHANGES,
        description="Push changes to remote",
        params=(
            _string("remote", "Remote name (optional, defaults to 'origin')"),
            _string("branch", "Branch to push (optional)"),
        ),
    ),
    ToolDefinition(
        name=GitTools.PULL_CHANGES,
        description="Pull changes from remote",
        params=(
            _string("remote", "Remote name (optional, defaults to 'origin')"),
            _string("branch", "Branch to pull (optional)"),
        ),
    ),
)


class ToolRegistry:
    """Ordered, read-only table of the server's tools"""

    def __init__(self, definitions: Tuple[ToolDefinition, ...] = DEFAULT_TOOLS):
        self._tools: Dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.name.value in self._tools:
                raise ValueError(f"Duplicate tool name: {definition.name.value}")
            self._tools[definition.name.value] = definition
        logger.debug(f"Initialized tool registry with {len(self._tools)} tools")

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._tools

    def names(self) -> List[str]:
        return list(self._tools)

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def list_tools(self) -> List[Tool]:
        """Get all tools as MCP Tool objects"""
        return [definition.to_tool() for definition in self._tools.values()]

    def as_wire(self) -> List[Dict[str, Any]]:
        """Tool list as sent in a ``tools/list`` response."""
        return [
            tool.model_dump(mode="json", by_alias=True, exclude_none=True)
            for tool in self.list_tools()
        ]
