"""Dispatch of tool calls onto repository primitives.

``Dispatcher.dispatch`` is the single entry point: it resolves the tool
name, validates the arguments, runs the git primitives through a fresh
``RepositoryHandle`` and collapses every outcome into an
``InvocationResult``. It never raises.
"""

import logging
import os
import time
from typing import Any, Callable, Dict, Mapping, Optional

from ..config import ServerConfig
from ..errors import UnknownToolError, describe_error
from ..git.repository import RepositoryHandle, create_handle
from ..git.validation import (
    validate_branch_name,
    validate_commit_message,
    validate_file_list,
    validate_path,
)
from ..results import Err, Failure, InvocationResult, Result, Success
from .tools import GitTools, ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"
DEFAULT_WORKTREE_BRANCH = "worktree-branch"

ERROR_PREFIXES: Dict[GitTools, str] = {
    GitTools.STATUS: "Git status error:",
    GitTools.CREATE_BRANCH: "Create branch error:",
    GitTools.SWITCH_BRANCH: "Switch branch error:",
    GitTools.LIST_BRANCHES: "List branches error:",
    GitTools.MERGE_BRANCH: "Merge error:",
    GitTools.CREATE_WORKTREE: "Create worktree error:",
    GitTools.LIST_WORKTREES: "List worktrees error:",
    GitTools.REMOVE_WORKTREE: "Remove worktree error:",
    GitTools.COMMIT_CHANGES: "Commit error:",
    GitTools.PUSH_CHANGES: "Push error:",
    GitTools.PULL_CHANGES: "Pull error:",
}

HandleFactory = Callable[[Any], Result[RepositoryHandle]]
Arguments = Mapping[str, Any]


def worktree_branch_for(path: str) -> str:
    """Default branch for a new worktree: the last path segment."""
    return path.split("/")[-1] or DEFAULT_WORKTREE_BRANCH


def _optional(arguments: Arguments, key: str) -> Any:
    value = arguments.get(key)
    if value is None or value == "":
        return None
    return value


def _failure(tool: GitTools, err: Err) -> Failure:
    return Failure(f"{ERROR_PREFIXES[tool]} {err.message}")


class Dispatcher:
    """Maps ``(tool name, arguments)`` to an ``InvocationResult``."""

    def __init__(
        self,
        config: ServerConfig,
        registry: Optional[ToolRegistry] = None,
        handle_factory: HandleFactory = create_handle,
    ):
        self.config = config
        self.registry = registry or ToolRegistry()
        self._handle_factory = handle_factory

    async def dispatch(self, name: Any, arguments: Optional[Arguments] = None) -> InvocationResult:
        request_id = os.urandom(4).hex()
        tool = GitTools.resolve(name) if name in self.registry else None
        if tool is None:
            logger.warning(f"[{request_id}] Unknown tool: {name}", extra={"request_id": request_id})
            return Failure(str(UnknownToolError(name)))

        log_extra = {"request_id": request_id, "tool": tool.value}
        logger.info(f"[{request_id}] Tool call: {tool.value}", extra=log_extra)
        logger.debug(f"[{request_id}] Arguments: {arguments}", extra=log_extra)

        start_time = time.time()
        try:
            if arguments is None:
                arguments = {}
            if not isinstance(arguments, Mapping):
                result: InvocationResult = Failure(
                    f"{ERROR_PREFIXES[tool]} arguments must be an object"
                )
            else:
                result = await self._route(tool, arguments)
        except Exception as e:
            logger.exception(f"[{request_id}] Tool {tool.value} raised: {e}", extra=log_extra)
            result = Failure(f"{ERROR_PREFIXES[tool]} {describe_error(e)}")

        duration_ms = round((time.time() - start_time) * 1000, 2)
        log_extra["duration_ms"] = duration_ms
        if result.is_error:
            logger.warning(f"[{request_id}] {result.text}", extra=log_extra)
        else:
            logger.info(f"[{request_id}] Tool '{tool.value}' completed in {duration_ms}ms", extra=log_extra)
        return result

    async def _route(self, tool: GitTools, arguments: Arguments) -> InvocationResult:
        match tool:
            case GitTools.STATUS:
                return await self.git_status(arguments)
            case GitTools.CREATE_BRANCH:
                return await self.create_branch(arguments)
            case GitTools.SWITCH_BRANCH:
                return await self.switch_branch(arguments)
            case GitTools.LIST_BRANCHES:
                return await self.list_branches(arguments)
            case GitTools.MERGE_BRANCH:
                return await self.merge_branch(arguments)
            case GitTools.CREATE_WORKTREE:
                return await self.create_worktree(arguments)
            case GitTools.LIST_WORKTREES:
                return await self.list_worktrees(arguments)
            case GitTools.REMOVE_WORKTREE:
                return await self.remove_worktree(arguments)
            case GitTools.COMMIT_CHANGES:
                return await self.commit_changes(arguments)
            case GitTools.PUSH_CHANGES:
                return await self.push_changes(arguments)
            case GitTools.PULL_CHANGES:
                return await self.pull_changes(arguments)
        raise UnknownToolError(tool.value)

    def _handle(self) -> Result[RepositoryHandle]:
        return self._handle_factory(self.config.repository)

    async def git_status(self, arguments: Arguments) -> InvocationResult:
        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(GitTools.STATUS, handle)
        status = await handle.value.status()
        if isinstance(status, Err):
            return _failure(GitTools.STATUS, status)
        return Success(status.value.to_text())

    async def create_branch(self, arguments: Arguments) -> InvocationResult:
        tool = GitTools.CREATE_BRANCH
        branch = validate_branch_name(arguments.get("branchName"))
        if isinstance(branch, Err):
            return _failure(tool, branch)

        from_branch = _optional(arguments, "fromBranch")
        if from_branch is not None:
            validated = validate_branch_name(from_branch)
            if isinstance(validated, Err):
                return _failure(tool, validated)
            from_branch = validated.value

        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(tool, handle)
        created = await handle.value.checkout_new_branch(branch.value, from_branch)
        if isinstance(created, Err):
            return _failure(tool, created)

        suffix = f" from '{from_branch}'" if from_branch else ""
        return Success(f"Branch '{branch.value}' created successfully{suffix}")

    async def switch_branch(self, arguments: Arguments) -> InvocationResult:
        tool = GitTools.SWITCH_BRANCH
        branch = validate_branch_name(arguments.get("branchName"))
        if isinstance(branch, Err):
            return _failure(tool, branch)

        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(tool, handle)
        switched = await handle.value.checkout(branch.value)
        if isinstance(switched, Err):
            return _failure(tool, switched)
        return Success(f"Switched to branch '{branch.value}'")

    async def list_branches(self, arguments: Arguments) -> InvocationResult:
        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(GitTools.LIST_BRANCHES, handle)
        branches = await handle.value.branches()
        if isinstance(branches, Err):
            return _failure(GitTools.LIST_BRANCHES, branches)
        return Success(branches.value.to_text())

    async def merge_branch(self, arguments: Arguments) -> InvocationResult:
        tool = GitTools.MERGE_BRANCH
        source = validate_branch_name(arguments.get("sourceBranch"))
        if isinstance(source, Err):
            return _failure(tool, source)

        target = _optional(arguments, "targetBranch")
        if target is not None:
            validated = validate_branch_name(target)
            if isinstance(validated, Err):
                return _failure(tool, validated)
            target = validated.value

        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(tool, handle)
        if target:
            switched = await handle.value.checkout(target)
            if isinstance(switched, Err):
                return _failure(tool, switched)
        merged = await handle.value.merge(source.value)
        if isinstance(merged, Err):
            return _failure(tool, merged)
        return Success(f"Merged '{source.value}' into '{target or 'current branch'}'")

    async def create_worktree(self, arguments: Arguments) -> InvocationResult:
        tool = GitTools.CREATE_WORKTREE
        path = validate_path(arguments.get("path"))
        if isinstance(path, Err):
            return _failure(tool, path)

        branch = _optional(arguments, "branch")
        if branch is not None:
            validated = validate_branch_name(branch)
            if isinstance(validated, Err):
                return _failure(tool, validated)
            branch = validated.value
        else:
            branch = worktree_branch_for(path.value)

        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(tool, handle)
        added = await handle.value.raw("worktree", "add", "-b", branch, "--", path.value)
        if isinstance(added, Err):
            return _failure(tool, added)
        return Success(f"Worktree created at '{path.value}' on new branch '{branch}'")

    async def list_worktrees(self, arguments: Arguments) -> InvocationResult:
        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(GitTools.LIST_WORKTREES, handle)
        listing = await handle.value.raw("worktree", "list")
        if isinstance(listing, Err):
            return _failure(GitTools.LIST_WORKTREES, listing)
        return Success(listing.value)

    async def remove_worktree(self, arguments: Arguments) -> InvocationResult:
        tool = GitTools.REMOVE_WORKTREE
        path = validate_path(arguments.get("path"))
        if isinstance(path, Err):
            return _failure(tool, path)

        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(tool, handle)
        removed = await handle.value.raw("worktree", "remove", "--", path.value)
        if isinstance(removed, Err):
            return _failure(tool, removed)
        return Success(f"Worktree at '{path.value}' removed successfully")

    async def commit_changes(self, arguments: Arguments) -> InvocationResult:
        tool = GitTools.COMMIT_CHANGES
        message = validate_commit_message(arguments.get("message"))
        if isinstance(message, Err):
            return _failure(tool, message)

        files: list = []
        if arguments.get("files") is not None:
            validated = validate_file_list(arguments["files"])
            if isinstance(validated, Err):
                return _failure(tool, validated)
            files = validated.value

        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(tool, handle)
        staged = await handle.value.add(files)
        if isinstance(staged, Err):
            return _failure(tool, staged)
        committed = await handle.value.commit(message.value)
        if isinstance(committed, Err):
            return _failure(tool, committed)
        return Success(f"Changes committed: {committed.value}")

    async def push_changes(self, arguments: Arguments) -> InvocationResult:
        tool = GitTools.PUSH_CHANGES
        remote, branch = self._remote_and_branch(arguments)
        for checked in (remote, branch):
            if isinstance(checked, Err):
                return _failure(tool, checked)

        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(tool, handle)
        branch_name = branch.value if branch else None
        pushed = await handle.value.push(remote.value, branch_name)
        if isinstance(pushed, Err):
            return _failure(tool, pushed)
        return Success(f"Changes pushed to {remote.value}{_branch_suffix(branch_name)}")

    async def pull_changes(self, arguments: Arguments) -> InvocationResult:
        tool = GitTools.PULL_CHANGES
        remote, branch = self._remote_and_branch(arguments)
        for checked in (remote, branch):
            if isinstance(checked, Err):
                return _failure(tool, checked)

        handle = self._handle()
        if isinstance(handle, Err):
            return _failure(tool, handle)
        branch_name = branch.value if branch else None
        pulled = await handle.value.pull(remote.value, branch_name)
        if isinstance(pulled, Err):
            return _failure(tool, pulled)
        return Success(f"Changes pulled from {remote.value}{_branch_suffix(branch_name)}")

    @staticmethod
    def _remote_and_branch(arguments: Arguments):
        remote = validate_branch_name(
            _optional(arguments, "remote") or DEFAULT_REMOTE, label="remote name"
        )
        branch = _optional(arguments, "branch")
        if branch is not None:
            branch = validate_branch_name(branch)
        return remote, branch


def _branch_suffix(branch: Optional[str]) -> str:
    return f"/{branch}" if branch else ""
