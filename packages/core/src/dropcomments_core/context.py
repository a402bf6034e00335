"""Per-file context for the heuristics: referenced symbols and git history.

Symbol resolution is a language-agnostic identifier scan over the file with
its comments masked out, so a comment never resolves its own references. It
works identically for every language in the comment-token table. A scan also
indexes the identifiers of the whole workspace once, for references that may
resolve in another file. Version
control is strictly optional: any git failure (not installed, not a
repository, untracked file, timeout) yields ``vcs=None`` and the file is still
scored by every heuristic that does not need history.
"""

from __future__ import annotations

import logging
import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path

from dropcomments_core.extractor import MAX_FILE_BYTES, language_for_path, mask_comments
from dropcomments_core.models import FileContext, VcsInfo
from dropcomments_core.utils.code import looks_binary

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
# SHA-1 or SHA-256 object names.
_REVISION_RE = re.compile(r"[0-9a-f]{40}(?:[0-9a-f]{24})?")

# git blame on a large file can take a while; never let one file stall a batch.
_GIT_TIMEOUT = 10


def extract_symbols(text: str) -> frozenset[str]:
    """Return every identifier-shaped token in text."""
    return frozenset(_IDENTIFIER_RE.findall(text))


class GitHistory:
    """Thin wrapper around the git CLI for one working tree."""

    def __init__(self, root: str):
        self.root = root
        self._shown: dict[tuple[str, str], str | None] = {}

    def _run(self, *args: str) -> str | None:
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=_GIT_TIMEOUT,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
            logger.debug("git %s failed: %s", args[0], e)
            return None
        if result.returncode != 0:
            logger.debug("git %s exited %d: %s", args[0], result.returncode, result.stderr.strip())
            return None
        return result.stdout

    def blame(self, rel_path: str) -> VcsInfo | None:
        """Return per-line history for a tracked file, or None."""
        output = self._run("blame", "--line-porcelain", "--", rel_path)
        if not output:
            return None

        line_times: dict[int, datetime] = {}
        line_revisions: dict[int, str] = {}
        revision = ""
        final_line = 0
        committed: datetime | None = None
        for raw in output.splitlines():
            if raw.startswith("\t"):
                # Content line closes the current header block.
                if committed is not None:
                    line_times[final_line - 1] = committed
                line_revisions[final_line - 1] = revision
                continue
            parts = raw.split(" ")
            if len(parts) >= 3 and _REVISION_RE.fullmatch(parts[0]) and parts[1].isdigit():
                revision = parts[0]
                final_line = int(parts[2])
                committed = None
            elif parts[0] == "committer-time" and len(parts) > 1:
                committed = datetime.fromtimestamp(int(parts[1]), tz=timezone.utc)

        if not line_times:
            return None

        newest_line = max(line_times, key=line_times.get)
        return VcsInfo(
            last_modified=line_times[newest_line],
            revision=line_revisions.get(newest_line, ""),
            line_times=line_times,
            line_revisions=line_revisions,
            content_at=lambda rev: self.show(rev, rel_path),
        )

    def show(self, revision: str, rel_path: str) -> str | None:
        if not revision or set(revision) == {"0"}:
            # All-zero hash marks uncommitted lines in blame output.
            return None
        key = (revision, rel_path)
        if key not in self._shown:
            self._shown[key] = self._run("show", f"{revision}:{rel_path}")
        return self._shown[key]


class ContextBuilder:
    def __init__(self, root: str, use_vcs: bool = True):
        self.root = str(Path(root).resolve())
        self.git = GitHistory(self.root) if use_vcs else None
        self.workspace_symbols: frozenset[str] = frozenset()

    def index_workspace(self, rel_paths: list[str]) -> frozenset[str]:
        """Collect the code identifiers of every file so references can resolve across files.

        Unreadable, oversized or binary files are left out; the scan reports them.
        """
        symbols: set[str] = set()
        root = Path(self.root)
        for rel_path in rel_paths:
            path = root / rel_path
            try:
                if path.stat().st_size > MAX_FILE_BYTES:
                    continue
                data = path.read_bytes()
            except OSError as e:
                logger.debug("Not indexing %s: %s", rel_path, e)
                continue
            if looks_binary(data):
                continue
            text = data.decode("utf-8", errors="replace")
            symbols.update(extract_symbols(mask_comments(text, language_for_path(rel_path))))
        self.workspace_symbols = frozenset(symbols)
        logger.debug("Indexed %d identifiers across %d files", len(symbols), len(rel_paths))
        return self.workspace_symbols

    def build(self, path: str, text: str, language_id: str) -> FileContext:
        """Build the FileContext for one file. Never raises for missing history."""
        vcs = None
        if self.git is not None:
            rel_path = self._relative(path)
            try:
                vcs = self.git.blame(rel_path)
            except Exception as e:
                # History is advisory; the file is still scored without it.
                logger.debug("No version-control info for %s: %s", rel_path, e)
                vcs = None
        return FileContext(
            file_path=path,
            language_id=language_id,
            symbols=extract_symbols(mask_comments(text, language_id)),
            workspace_root=self.root,
            vcs=vcs,
            workspace_symbols=self.workspace_symbols,
        )

    def _relative(self, path: str) -> str:
        if not Path(path).is_absolute():
            return Path(path).as_posix()
        try:
            return Path(path).resolve().relative_to(self.root).as_posix()
        except ValueError:
            return path
