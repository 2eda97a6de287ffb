"""Git access and input validation for the MCP Git worktree server"""

from .models import BranchInfo, BranchSummary, FileStatus, RenamedFile, StatusSummary
from .repository import RepositoryHandle, create_handle, parse_branches, parse_status
from .validation import (
    DANGEROUS_CHARACTERS,
    validate_branch_name,
    validate_commit_message,
    validate_file_list,
    validate_path,
)

__all__ = [
    # Repository access
    "RepositoryHandle",
    "create_handle",
    "parse_status",
    "parse_branches",
    # Query models
    "StatusSummary",
    "BranchSummary",
    "BranchInfo",
    "FileStatus",
    "RenamedFile",
    # Validation
    "DANGEROUS_CHARACTERS",
    "validate_path",
    "validate_branch_name",
    "validate_commit_message",
    "validate_file_list",
]
