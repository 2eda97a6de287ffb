"""Repository handle: the only place that talks to git.

A handle is bound to one working tree root and lives for a single tool call.
The underlying ``git.Repo`` is opened lazily on the first primitive, so a bad
root is reported by that primitive rather than by ``create_handle``.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Callable, List, Optional, Sequence, TypeVar

import git
from git.exc import GitCommandError, GitError, InvalidGitRepositoryError, NoSuchPathError

from ..errors import OperationError, RepositoryInitError
from ..results import Err, Ok, Result
from .models import BranchInfo, BranchSummary, FileStatus, RenamedFile, StatusSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONFLICT_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}

_TRACKING = re.compile(r"^(?P<current>.+?)\.\.\.(?P<tracking>\S+)(?: \[(?P<counts>[^\]]*)\])?$")
_BRANCH_LINE = re.compile(r"^(?P<marker>[*+ ]) (?P<name>\(.*?\)|\S+)\s+(?P<commit>[0-9a-f]+) ?(?P<label>.*)$")


def _unwrap(text: Optional[str], stream: str) -> str:
    # GitPython renders captured output as "\n  stderr: '<text>'"
    text = (text or "").strip()
    prefix = f"{stream}: '"
    if text.startswith(prefix):
        text = text[len(prefix):]
        if text.endswith("'"):
            text = text[:-1]
    return text.strip()


def git_error_message(error: GitCommandError) -> str:
    """Reduce a GitCommandError to git's own output: stderr, then stdout."""
    return (
        _unwrap(error.stderr, "stderr")
        or _unwrap(error.stdout, "stdout")
        or str(error)
    )


class RepositoryHandle:
    """Thin async facade over ``git.Repo`` returning result values."""

    def __init__(self, root: Path):
        self.root = root
        self._repo: Optional[git.Repo] = None

    def _open(self) -> git.Repo:
        if self._repo is None:
            self._repo = git.Repo(self.root, search_parent_directories=True)
        return self._repo

    async def _run(self, label: str, operation: Callable[[git.Repo], T]) -> Result[T]:
        def call() -> T:
            return operation(self._open())

        try:
            value = await asyncio.to_thread(call)
        except (NoSuchPathError, InvalidGitRepositoryError) as e:
            return Err(
                RepositoryInitError(
                    f"Failed to initialize git repository at {self.root}: {e}"
                )
            )
        except GitCommandError as e:
            logger.debug(f"git {label} failed: {e}")
            return Err(OperationError(git_error_message(e), command=label))
        except (GitError, OSError) as e:
            logger.debug(f"git {label} failed: {e}")
            return Err(OperationError(str(e), command=label))
        return Ok(value)

    async def status(self) -> Result[StatusSummary]:
        return await self._run(
            "status",
            lambda repo: parse_status(repo.git.status("--porcelain=v1", "-b", "-z")),
        )

    async def branches(self) -> Result[BranchSummary]:
        return await self._run(
            "branch",
            lambda repo: parse_branches(repo.git.branch("-a", "-v", "--no-abbrev")),
        )

    async def checkout_new_branch(
        self, name: str, start_point: Optional[str] = None
    ) -> Result[str]:
        args = ["-b", name]
        if start_point:
            args += ["--end-of-options", start_point]
        return await self._run("checkout", lambda repo: repo.git.checkout(*args))

    async def checkout(self, name: str) -> Result[str]:
        return await self._run("checkout", lambda repo: repo.git.checkout("--end-of-options", name))

    async def merge(self, source: str) -> Result[str]:
        return await self._run("merge", lambda repo: repo.git.merge("--end-of-options", source))

    async def raw(self, *args: str) -> Result[str]:
        """Run an arbitrary git subcommand and return its stdout."""
        label = args[0] if args else "raw"
        return await self._run(label, lambda repo: repo.git.execute(["git", *args]))

    async def add(self, paths: Sequence[str] = ()) -> Result[str]:
        if paths:
            return await self._run("add", lambda repo: repo.git.add("--", *paths))
        return await self._run("add", lambda repo: repo.git.add("."))

    async def commit(self, message: str) -> Result[str]:
        """Commit the index and return the new short commit id."""

        def commit_index(repo: git.Repo) -> str:
            repo.git.commit("-m", message)
            return repo.git.rev_parse("--short", "HEAD")

        return await self._run("commit", commit_index)

    async def push(self, remote: str, branch: Optional[str] = None) -> Result[str]:
        args = ["--end-of-options", remote] + ([branch] if branch else [])
        return await self._run("push", lambda repo: repo.git.push(*args))

    async def pull(self, remote: str, branch: Optional[str] = None) -> Result[str]:
        args = ["--end-of-options", remote] + ([branch] if branch else [])
        return await self._run("pull", lambda repo: repo.git.pull(*args))


def create_handle(root: Path | str) -> Result[RepositoryHandle]:
    """Bind a handle to ``root``; git itself is not touched until first use."""
    try:
        path = Path(root).expanduser()
    except (TypeError, RuntimeError) as e:
        return Err(
            RepositoryInitError(f"Failed to initialize git repository at {root}: {e}")
        )
    return Ok(RepositoryHandle(path))


def parse_status(output: str) -> StatusSummary:
    """Parse ``git status --porcelain=v1 -b -z`` output."""
    summary = StatusSummary()
    entries: List[str] = output.split("\0") if output else []
    position = 0

    while position < len(entries):
        entry = entries[position]
        position += 1
        if not entry:
            continue
        if entry.startswith("## "):
            _parse_status_header(entry[3:], summary)
            continue

        code, path = entry[:2], entry[3:]
        index, working_dir = code[0], code[1]
        summary.files.append(FileStatus(path=path, index=index, working_dir=working_dir))

        if code == "??":
            summary.not_added.append(path)
            continue
        if code in _CONFLICT_CODES:
            summary.conflicted.append(path)
            continue

        if index == "R":
            # with -z the rename source follows as its own entry
            source = entries[position] if position < len(entries) else ""
            position += 1
            summary.renamed.append(RenamedFile(from_path=source, to=path))
        if index == "A":
            summary.created.append(path)
        if "D" in code:
            summary.deleted.append(path)
        if "M" in code:
            summary.modified.append(path)
        if index not in (" ", "?"):
            summary.staged.append(path)

    return summary


def _parse_status_header(header: str, summary: StatusSummary) -> None:
    for prefix in ("No commits yet on ", "Initial commit on "):
        if header.startswith(prefix):
            summary.current = header[len(prefix):]
            return

    if header.startswith("HEAD (no branch)"):
        summary.detached = True
        summary.current = "HEAD"
        return

    match = _TRACKING.match(header)
    if not match:
        summary.current = header
        return

    summary.current = match.group("current")
    summary.tracking = match.group("tracking")
    for part in (match.group("counts") or "").split(","):
        part = part.strip()
        if part.startswith("ahead "):
            summary.ahead = int(part[len("ahead "):])
        elif part.startswith("behind "):
            summary.behind = int(part[len("behind "):])


def parse_branches(output: str) -> BranchSummary:
    """Parse ``git branch -a -v --no-abbrev`` output."""
    summary = BranchSummary()

    for line in output.splitlines():
        if " -> " in line:
            # symbolic refs such as remotes/origin/HEAD
            continue
        match = _BRANCH_LINE.match(line)
        if not match:
            continue

        name = match.group("name")
        is_current = match.group("marker") == "*"
        if name.startswith("("):
            summary.detached = summary.detached or is_current
            name = match.group("commit")

        summary.all.append(name)
        summary.branches[name] = BranchInfo(
            current=is_current,
            name=name,
            commit=match.group("commit"),
            label=match.group("label"),
        )
        if is_current:
            summary.current = name

    return summary
