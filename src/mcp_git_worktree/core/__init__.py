"""Core tool registry, dispatch and result types"""

from ..results import Err, Failure, InvocationResult, Ok, Success, to_call_result
from .dispatcher import Dispatcher, worktree_branch_for
from .tools import GitTools, ToolDefinition, ToolParam, ToolRegistry

__all__ = [
    "Dispatcher",
    "worktree_branch_for",
    "GitTools",
    "ToolDefinition",
    "ToolParam",
    "ToolRegistry",
    "Ok",
    "Err",
    "Success",
    "Failure",
    "InvocationResult",
    "to_call_result",
]
