"""Input validation for paths, branch names and commit messages.

Checks reject known-bad patterns (path traversal, absolute paths and shell
metacharacters) before anything reaches git. Every validator returns a
result value; none of them raise.
"""

import re
from typing import Any, List

from ..errors import ValidationError
from ..results import Err, Ok, Result

DANGEROUS_CHARACTERS = frozenset("<>|&;$`")

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


def has_dangerous_characters(candidate: str) -> bool:
    return any(char in DANGEROUS_CHARACTERS for char in candidate)


def _path_problem(candidate: Any) -> str | None:
    if not isinstance(candidate, str) or not candidate:
        return "path must be a non-empty string"
    if (
        ".." in candidate
        or candidate.startswith(("/", "\\"))
        or _DRIVE_PREFIX.match(candidate)
    ):
        return "path traversal not allowed"
    if has_dangerous_characters(candidate):
        return "dangerous characters not allowed"
    return None


def validate_path(candidate: Any) -> Result[str]:
    """Accept relative paths only; returns the candidate unchanged."""
    problem = _path_problem(candidate)
    if problem:
        return Err(ValidationError(f"Invalid path: {problem}"))
    return Ok(candidate)


def validate_branch_name(candidate: Any, label: str = "branch name") -> Result[str]:
    """Returns the name with surrounding whitespace removed.

    ``label`` names the kind of ref in messages, e.g. ``"remote name"``.
    """
    if not isinstance(candidate, str) or not candidate:
        return Err(ValidationError(f"Invalid {label}: {label} must be a non-empty string"))
    if has_dangerous_characters(candidate):
        return Err(ValidationError(f"Invalid {label}: dangerous characters not allowed"))
    if ".." in candidate:
        return Err(ValidationError(f"Invalid {label}: '..' not allowed"))

    trimmed = candidate.strip()
    if not trimmed:
        return Err(ValidationError(f"Invalid {label}: {label} cannot be only whitespace"))
    return Ok(trimmed)


def validate_commit_message(candidate: Any) -> Result[str]:
    """Free text: ``..`` and whitespace are kept as given."""
    if not isinstance(candidate, str) or not candidate:
        return Err(
            ValidationError("Invalid commit message: message must be a non-empty string")
        )
    if has_dangerous_characters(candidate):
        return Err(
            ValidationError("Invalid commit message: dangerous characters not allowed")
        )
    return Ok(candidate)


def validate_file_list(candidates: Any) -> Result[List[str]]:
    """Validate every entry; the first bad entry fails the whole batch."""
    if not isinstance(candidates, list):
        return Err(ValidationError("Invalid file list: files must be an array of strings"))

    for index, entry in enumerate(candidates):
        if not isinstance(entry, str):
            return Err(
                ValidationError(
                    f"Invalid file list: entry at index {index} is not a string: {entry!r}"
                )
            )
        problem = _path_problem(entry)
        if problem:
            return Err(
                ValidationError(f"Invalid file list: invalid path '{entry}': {problem}")
            )
    return Ok(list(candidates))
