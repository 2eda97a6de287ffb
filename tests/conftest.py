"""
Shared fixtures for the MCP Git worktree server test suite.

Provides:
1. Temporary git repositories built with GitPython
2. A local bare repository wired up as ``origin``
3. A mocked repository handle for dispatcher tests that do not need git
4. JSON-RPC message factories
"""

import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import git
import pytest

from mcp_git_worktree.config import ServerConfig
from mcp_git_worktree.core.dispatcher import Dispatcher
from mcp_git_worktree.git.models import BranchSummary, StatusSummary
from mcp_git_worktree.git.repository import RepositoryHandle
from mcp_git_worktree.results import Ok


def configure_test_identity(repo: git.Repo) -> None:
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
        writer.set_value("commit", "gpgsign", "false")
        writer.set_value("pull", "rebase", "false")


@pytest.fixture
def git_repo(tmp_path: Path):
    """A repository on ``master`` with a single committed README."""
    repo_path = tmp_path / "test_repo"
    repo = git.Repo.init(repo_path, initial_branch="master")
    configure_test_identity(repo)

    (repo_path / "README.md").write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    yield repo

    repo.close()
    shutil.rmtree(repo_path, ignore_errors=True)


@pytest.fixture
def repo_path(git_repo: git.Repo) -> Path:
    return Path(git_repo.working_dir)


@pytest.fixture
def bare_remote(tmp_path: Path, git_repo: git.Repo) -> git.Repo:
    """A bare repository registered as ``origin`` of ``git_repo``."""
    remote = git.Repo.init(tmp_path / "remote.git", bare=True, initial_branch="master")
    git_repo.create_remote("origin", str(tmp_path / "remote.git"))
    return remote


@pytest.fixture
def server_config(repo_path: Path) -> ServerConfig:
    return ServerConfig(repository=repo_path)


@pytest.fixture
def dispatcher(server_config: ServerConfig) -> Dispatcher:
    return Dispatcher(server_config)


@pytest.fixture
def mock_handle() -> MagicMock:
    """Repository handle whose primitives all succeed without touching git."""
    handle = MagicMock(spec=RepositoryHandle)
    handle.status.return_value = Ok(StatusSummary(current="master"))
    handle.branches.return_value = Ok(BranchSummary(current="master", all=["master"]))
    handle.checkout_new_branch.return_value = Ok("")
    handle.checkout.return_value = Ok("")
    handle.merge.return_value = Ok("Already up to date.")
    handle.raw.return_value = Ok("")
    handle.add.return_value = Ok("")
    handle.commit.return_value = Ok("abc1234")
    handle.push.return_value = Ok("")
    handle.pull.return_value = Ok("")
    return handle


@pytest.fixture
def mock_dispatcher(tmp_path: Path, mock_handle: MagicMock) -> Dispatcher:
    config = ServerConfig(repository=tmp_path)
    return Dispatcher(config, handle_factory=lambda root: Ok(mock_handle))


class MCPMessageFactory:
    """Factory for line-protocol JSON-RPC requests."""

    @staticmethod
    def initialize_request(request_id: int = 1) -> Dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "initialize",
            "params": {
                "protocolVersion": "2024-11-05",
                "capabilities": {},
                "clientInfo": {"name": "test-client", "version": "1.0.0"},
            },
        }

    @staticmethod
    def list_tools_request(request_id: int = 2) -> Dict[str, Any]:
        return {"jsonrpc": "2.0", "id": request_id, "method": "tools/list", "params": {}}

    @staticmethod
    def call_tool_request(
        name: str, arguments: Optional[Dict[str, Any]] = None, request_id: int = 3
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"name": name}
        if arguments is not None:
            params["arguments"] = arguments
        return {"jsonrpc": "2.0", "id": request_id, "method": "tools/call", "params": params}


@pytest.fixture
def messages() -> type:
    return MCPMessageFactory


def pytest_configure(config):
    config.addinivalue_line("markers", "requires_git: Tests that run real git commands")
    config.addinivalue_line("markers", "integration: Tests that drive the full protocol stack")


def pytest_collection_modifyitems(config, items):
    """Mark tests by the fixtures and directories they use."""
    for item in items:
        if "git_repo" in getattr(item, "fixturenames", ()):
            item.add_marker(pytest.mark.requires_git)
        if "integration" in item.path.parts:
            item.add_marker(pytest.mark.integration)
