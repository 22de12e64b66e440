"""Git queries used by the provenance hooks.

Every query degrades to an empty string or a fallback value when git is
missing, the directory is not a repository, or the command fails. Version
control problems are never fatal for the hooks.
"""

import logging
import os
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

# Default timeout for git commands
DEFAULT_TIMEOUT = 10

UNKNOWN_BRANCH = "unknown"
UNKNOWN_COMMIT = "0000000"


def run_git(args: list[str], cwd: Path | None = None, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Run a git command and return its stdout.

    Args:
        args: Arguments after ``git``
        cwd: Working directory (default: current directory)
        timeout: Maximum seconds to wait

    Returns:
        Command stdout, or "" if the command failed for any reason
    """
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        logger.debug("git %s timed out after %ss", " ".join(args), timeout)
        return ""
    except OSError as e:
        logger.debug("git %s could not run: %s", " ".join(args), e)
        return ""

    if result.returncode != 0:
        logger.debug(
            "git %s exited %s: %s", " ".join(args), result.returncode, result.stderr.strip()
        )
        return ""
    return result.stdout


def current_branch(cwd: Path | None = None) -> str:
    """Current branch name, or "unknown"."""
    return run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd).strip() or UNKNOWN_BRANCH


def current_commit(cwd: Path | None = None) -> str:
    """Current commit SHA, or "0000000"."""
    return run_git(["rev-parse", "HEAD"], cwd).strip() or UNKNOWN_COMMIT


def parse_porcelain(output: str) -> list[str]:
    """Extract paths from ``git status --porcelain`` output.

    Renames (``R  old -> new``) resolve to the new path.
    """
    files = []
    for line in output.splitlines():
        if not line.strip():
            continue
        raw = line[3:].strip()
        if " -> " in raw:
            raw = raw.split(" -> ", 1)[1].strip()
        if raw:
            files.append(raw)
    return files


def status_changed_files(cwd: Path | None = None) -> list[str]:
    """Paths with uncommitted changes in the working tree."""
    return parse_porcelain(run_git(["status", "--porcelain"], cwd))


def diff_changed_files(diff_range: str, cwd: Path | None = None) -> list[str]:
    """Paths changed within a diff range such as ``origin/main...HEAD``."""
    output = run_git(["diff", "--name-only", diff_range], cwd)
    return [line for line in output.splitlines() if line.strip()]


def toplevel(cwd: Path | None = None) -> Path | None:
    """Repository root, or None outside a repository."""
    output = run_git(["rev-parse", "--show-toplevel"], cwd).strip()
    return Path(output) if output else None


def scope_prefix(cwd: Path) -> str:
    """Path of ``cwd`` relative to the repository root, with a trailing slash.

    Returns "" at the repository root or outside a repository.
    """
    root = toplevel(cwd)
    if root is None:
        return ""
    relative = Path(os.path.relpath(cwd.resolve(), root.resolve())).as_posix()
    if not relative or relative == ".":
        return ""
    return relative.rstrip("/") + "/"
