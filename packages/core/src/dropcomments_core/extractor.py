"""Comment extraction driven by a per-language comment-token table.

The scan is deliberately shallow: it tracks string quotes on a single line so
that ``"http://x"`` is not taken for a comment, follows block comments across
lines, and otherwise knows nothing about the language's grammar.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from dropcomments_core.models import CodeWindow, CommentCandidate, CommentKind, Range


MAX_FILE_BYTES = 1024 * 1024
DEFAULT_WINDOW_LINES = 10


@dataclass(frozen=True)
class CommentTokens:
    line: str | None = None
    block_start: str | None = None
    block_end: str | None = None


_C_STYLE = CommentTokens("//", "/*", "*/")
_HASH = CommentTokens("#")
_MARKUP = CommentTokens(None, "<!--", "-->")

COMMENT_TOKENS: dict[str, CommentTokens] = {
    "typescript": _C_STYLE,
    "typescriptreact": _C_STYLE,
    "javascript": _C_STYLE,
    "javascriptreact": _C_STYLE,
    "java": _C_STYLE,
    "c": _C_STYLE,
    "cpp": _C_STYLE,
    "csharp": _C_STYLE,
    "go": _C_STYLE,
    "rust": _C_STYLE,
    "php": _C_STYLE,
    "swift": _C_STYLE,
    "kotlin": _C_STYLE,
    "scala": _C_STYLE,
    "dart": _C_STYLE,
    "scss": _C_STYLE,
    "less": _C_STYLE,
    "python": _HASH,
    "ruby": _HASH,
    "perl": _HASH,
    "shellscript": _HASH,
    "powershell": _HASH,
    "yaml": _HASH,
    "toml": _HASH,
    "sql": CommentTokens("--", "/*", "*/"),
    "html": _MARKUP,
    "xml": _MARKUP,
    "css": CommentTokens(None, "/*", "*/"),
    "sass": CommentTokens("//"),
}

_DEFAULT_TOKENS = CommentTokens("//")

EXTENSION_LANGUAGES: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".py": "python",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".swift": "swift",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".scala": "scala",
    ".dart": "dart",
    ".rb": "ruby",
    ".pl": "perl",
    ".pm": "perl",
    ".sh": "shellscript",
    ".bash": "shellscript",
    ".zsh": "shellscript",
    ".ps1": "powershell",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".sql": "sql",
    ".html": "html",
    ".htm": "html",
    ".xml": "xml",
    ".css": "css",
    ".scss": "scss",
    ".sass": "sass",
    ".less": "less",
}

# Tool directives and file headers that are not prose about the code.
_DIRECTIVE_RE = re.compile(
    r"^\s*(?:-\*-|noqa\b|type:\s*ignore|pragma\b|pylint:|eslint-|prettier-ignore|"
    r"@ts-|istanbul\b|nolint\b|fmt:|isort:|region\b|endregion\b|#region|#endregion|"
    r"<reference\b|sourceMappingURL)",
    re.IGNORECASE,
)
_WORD_RE = re.compile(r"[A-Za-z]{2,}")
_QUOTES = ("'", '"', "`")


def get_comment_tokens(language_id: str) -> CommentTokens:
    return COMMENT_TOKENS.get(language_id, _DEFAULT_TOKENS)


def language_for_path(path: str) -> str:
    return EXTENSION_LANGUAGES.get(PurePosixPath(path).suffix.lower(), "plaintext")


def strip_comment_markers(text: str, tokens: CommentTokens) -> str:
    """Return the prose of a comment with its tokens and gutter stars removed."""
    body = []
    for raw in text.splitlines():
        line = raw.strip()
        for tok in (tokens.block_start, tokens.block_end, tokens.line):
            if tok and line.startswith(tok):
                line = line[len(tok) :]
        if tokens.block_end and line.endswith(tokens.block_end):
            line = line[: -len(tokens.block_end)]
        line = line.strip().lstrip("*/!").strip()
        body.append(line)
    return "\n".join(body).strip()


def _is_noise(text: str, tokens: CommentTokens) -> bool:
    if text.startswith("#!"):
        return True
    body = strip_comment_markers(text, tokens)
    return not _WORD_RE.search(body) or bool(_DIRECTIVE_RE.match(body))


def _find_token(line: str, start: int, tokens: CommentTokens) -> tuple[int, str] | None:
    """Return (column, 'line'|'block') of the first comment token outside a string."""
    quote: str | None = None
    i = start
    while i < len(line):
        ch = line[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif tokens.block_start and line.startswith(tokens.block_start, i):
            return i, "block"
        elif tokens.line and line.startswith(tokens.line, i):
            return i, "line"
        i += 1
    return None


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _build_window(
    lines: list[str],
    after_line: int,
    tokens: CommentTokens,
    window_lines: int,
    leading: str | None = None,
) -> CodeWindow:
    """Collect the code following a comment, stopping when its block closes."""
    collected: list[str] = [leading] if leading else []
    first_line = after_line if leading else None
    last_line = after_line
    base_indent: int | None = None
    nested = False
    idx = after_line + 1
    while idx < len(lines) and len(collected) < window_lines:
        line = lines[idx]
        stripped = line.strip()
        idx += 1
        if not stripped:
            continue
        if tokens.line and stripped.startswith(tokens.line):
            continue
        indent = _indent(line)
        if base_indent is None:
            base_indent = indent
        elif indent < base_indent:
            break
        elif indent > base_indent:
            nested = True
        elif nested:
            # Back at the declaration's level: the block is closed.
            if stripped[0] in "}])":
                collected.append(line)
                last_line = idx - 1
            break
        collected.append(line)
        if first_line is None:
            first_line = idx - 1
        last_line = idx - 1
    declaration = collected[0].strip() if collected else None
    return CodeWindow(
        start_line=after_line + 1 if first_line is None else first_line,
        end_line=last_line,
        lines=tuple(collected),
        declaration=declaration,
    )


def extract_comments(
    text: str,
    language_id: str,
    window_lines: int = DEFAULT_WINDOW_LINES,
) -> list[CommentCandidate]:
    """Locate comment spans in text and pair each with its surrounding code."""
    tokens = get_comment_tokens(language_id)
    lines = text.splitlines()
    candidates: list[CommentCandidate] = []

    run: list[tuple[int, int]] = []  # (line, column) of consecutive full-line comments

    def flush_run() -> None:
        if not run:
            return
        first_line, first_col = run[0]
        last_line = run[-1][0]
        parts = [lines[first_line][first_col:]] + [lines[n] for n in range(first_line + 1, last_line + 1)]
        comment_text = "\n".join(parts)
        run.clear()
        if _is_noise(comment_text, tokens):
            return
        candidates.append(
            CommentCandidate(
                text=comment_text,
                range=Range.from_lines(first_line, first_col, last_line, len(lines[last_line])),
                kind=CommentKind.LINE,
                window=_build_window(lines, last_line, tokens, window_lines),
            )
        )

    n = 0
    while n < len(lines):
        line = lines[n]
        found = _find_token(line, 0, tokens)
        if found is None:
            flush_run()
            n += 1
            continue

        col, kind = found
        code_before = line[:col].rstrip()

        if kind == "line":
            if not code_before:
                if run and run[-1][0] != n - 1:
                    flush_run()
                run.append((n, col))
            else:
                flush_run()
                comment_text = line[col:]
                if not _is_noise(comment_text, tokens):
                    candidates.append(
                        CommentCandidate(
                            text=comment_text,
                            range=Range.from_lines(n, col, n, len(line)),
                            kind=CommentKind.LINE,
                            window=_build_window(lines, n, tokens, window_lines, leading=code_before),
                        )
                    )
            n += 1
            continue

        # Block comment: find its end on this line or a later one.
        flush_run()
        end_line, end_col = n, -1
        search_from = col + len(tokens.block_start)
        while end_line < len(lines):
            pos = lines[end_line].find(tokens.block_end, search_from) if tokens.block_end else -1
            if pos != -1:
                end_col = pos + len(tokens.block_end)
                break
            end_line += 1
            search_from = 0
        if end_col == -1:
            end_line = len(lines) - 1
            end_col = len(lines[end_line])

        if end_line == n:
            comment_text = line[col:end_col]
        else:
            comment_text = "\n".join([line[col:]] + lines[n + 1 : end_line] + [lines[end_line][:end_col]])

        if not _is_noise(comment_text, tokens):
            trailing_code = lines[end_line][end_col:].strip()
            leading = code_before or (trailing_code if trailing_code else None)
            candidates.append(
                CommentCandidate(
                    text=comment_text,
                    range=Range.from_lines(n, col, end_line, end_col),
                    kind=CommentKind.BLOCK,
                    window=_build_window(lines, end_line, tokens, window_lines, leading=leading),
                )
            )
        n = end_line + 1

    flush_run()
    return candidates


def mask_comments(text: str, language_id: str) -> str:
    """Return text with every comment span removed, line structure preserved."""
    tokens = get_comment_tokens(language_id)
    out: list[str] = []
    in_block = False
    for line in text.splitlines():
        kept: list[str] = []
        i = 0
        while True:
            if in_block:
                end = line.find(tokens.block_end, i)
                if end == -1:
                    break
                i = end + len(tokens.block_end)
                in_block = False
                continue
            found = _find_token(line, i, tokens)
            if found is None:
                kept.append(line[i:])
                break
            col, kind = found
            kept.append(line[i:col])
            if kind == "line":
                break
            in_block = True
            i = col + len(tokens.block_start)
        out.append("".join(kept))
    return "\n".join(out)


def strip_markdown_fences(text: str) -> str:
    """Remove an outer ```lang ... ``` fence wrapped around model output."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```[a-zA-Z0-9_+-]*\s*", "", cleaned)
        cleaned = re.sub(r"\s*```$", "", cleaned).strip()
    return cleaned


def extract_comment_lines(response: str, language_id: str) -> str:
    """Keep only the comment-shaped lines of a model response.

    Falls back to the full (fence-stripped) response when no line looks like a
    comment, so a model that answers with bare prose still yields text.
    """
    text = strip_markdown_fences(response)
    tokens = get_comment_tokens(language_id)
    comment_lines: list[str] = []
    for line in text.split("\n"):
        trimmed = line.strip()
        if tokens.line and trimmed.startswith(tokens.line):
            comment_lines.append(line)
        elif tokens.block_start and trimmed.startswith(tokens.block_start):
            comment_lines.append(line)
        elif tokens.block_end and trimmed.endswith(tokens.block_end):
            comment_lines.append(line)
        elif comment_lines and trimmed and not re.match(r"^[A-Za-z_$]", trimmed):
            # continuation of a block comment (e.g. " * more text")
            comment_lines.append(line)
    return "\n".join(comment_lines) or text
