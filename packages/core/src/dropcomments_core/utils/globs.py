"""Workspace glob matching with ``**`` semantics.

fnmatch lets ``*`` cross directory separators and has no notion of ``**``,
so ``**/generated/**`` would miss ``generated/x.ts`` at the root. Patterns
are translated to regular expressions instead:

- ``**/`` matches zero or more whole directories
- ``**`` matches anything, separators included
- ``*`` and ``?`` never cross a ``/``
- ``{a,b}`` alternation
"""

from __future__ import annotations

import re
from functools import lru_cache


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern:
    i, n = 0, len(pattern)
    out: list[str] = []
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern[i : i + 3] == "**/":
                out.append("(?:.*/)?")
                i += 3
                continue
            if pattern[i : i + 2] == "**":
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "{":
            end = pattern.find("}", i)
            if end == -1:
                out.append(re.escape(c))
            else:
                options = pattern[i + 1 : end].split(",")
                out.append("(?:" + "|".join(glob_to_regex(o).pattern[4:-3] for o in options) + ")")
                i = end + 1
                continue
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("(?s:" + "".join(out) + r")\Z")


def matches_glob(path: str, pattern: str) -> bool:
    """Return True if a workspace-relative POSIX path matches pattern.

    Supports:
    - full-path globs: "src/generated/*.py", "**/generated/**"
    - basename globs for patterns without a slash: "*.lock" matches "a/b/yarn.lock"
    - directory names/prefixes: "migrations/" matches "app/migrations/0001.py"
    """
    if glob_to_regex(pattern).match(path):
        return True
    if "/" not in pattern and glob_to_regex(pattern).match(path.rsplit("/", 1)[-1]):
        return True
    if pattern.endswith("/"):
        prefix = pattern
        return path.startswith(prefix) or ("/" + prefix) in path
    return False


def matches_any(path: str, patterns: list[str]) -> bool:
    return any(matches_glob(path, p) for p in patterns)
