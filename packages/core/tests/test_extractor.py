"""Tests for comment extraction and model-output cleanup."""

from dropcomments_core.extractor import (
    extract_comment_lines,
    extract_comments,
    language_for_path,
    mask_comments,
    strip_markdown_fences,
)
from dropcomments_core.models import CommentKind

PY_SOURCE = """\
#!/usr/bin/env python
import os  # noqa: F401


# Compute the mean of the values.
# Raises on empty input.
def average(values):
    total = 0
    for v in values:
        total += v
    return total / len(values)


def other():
    pass
"""

JS_SOURCE = """\
/**
 * Adds two numbers.
 * @param a first
 */
function add(a, b) {
  const url = "http://example.com"; // the endpoint
  return a + b;
}
"""


class TestLanguageForPath:
    def test_known_extensions(self):
        assert language_for_path("src/app.ts") == "typescript"
        assert language_for_path("lib/mod.py") == "python"
        assert language_for_path("main.GO") == "go"

    def test_unknown_extension_is_plaintext(self):
        assert language_for_path("notes.xyz") == "plaintext"


class TestExtractComments:
    def test_consecutive_line_comments_merge(self):
        candidates = extract_comments(PY_SOURCE, "python")
        assert len(candidates) == 1
        c = candidates[0]
        assert c.kind == CommentKind.LINE
        assert c.text == "# Compute the mean of the values.\n# Raises on empty input."
        assert c.range.start.line == 4
        assert c.range.end.line == 5

    def test_shebang_and_directives_are_skipped(self):
        texts = [c.text for c in extract_comments(PY_SOURCE, "python")]
        assert not any("noqa" in t or t.startswith("#!") for t in texts)

    def test_window_covers_function_body_only(self):
        window = extract_comments(PY_SOURCE, "python")[0].window
        assert window.declaration == "def average(values):"
        assert window.start_line == 6
        assert window.end_line == 10
        assert "def other" not in window.text

    def test_block_comment_spans_lines(self):
        candidates = extract_comments(JS_SOURCE, "javascript")
        block = candidates[0]
        assert block.kind == CommentKind.BLOCK
        assert block.text.startswith("/**")
        assert block.text.endswith("*/")
        assert block.range.start.line == 0
        assert block.range.end.line == 3
        assert block.window.declaration == "function add(a, b) {"

    def test_window_includes_closing_brace(self):
        block = extract_comments(JS_SOURCE, "javascript")[0]
        assert block.window.lines[-1].strip() == "}"

    def test_token_inside_string_is_not_a_comment(self):
        candidates = extract_comments(JS_SOURCE, "javascript")
        trailing = candidates[1]
        assert trailing.text == "// the endpoint"
        assert trailing.range.start.line == 5
        assert trailing.range.start.character == JS_SOURCE.splitlines()[5].index("// the")

    def test_trailing_comment_window_leads_with_its_code(self):
        trailing = extract_comments(JS_SOURCE, "javascript")[1]
        assert trailing.window.declaration.startswith('const url = "http://example.com";')

    def test_range_slices_exact_source(self):
        lines = JS_SOURCE.splitlines()
        trailing = extract_comments(JS_SOURCE, "javascript")[1]
        r = trailing.range
        assert lines[r.start.line][r.start.character : r.end.character] == trailing.text

    def test_unknown_language_uses_double_slash(self):
        candidates = extract_comments("// describe the thing\nthing()\n", "plaintext")
        assert len(candidates) == 1

    def test_wordless_comments_are_noise(self):
        assert extract_comments("# ----------\nx = 1\n", "python") == []

    def test_separated_runs_stay_separate(self):
        text = "# first comment here\n\n# second comment here\nx = 1\n"
        assert len(extract_comments(text, "python")) == 2

    def test_window_is_bounded(self):
        body = "\n".join(f"x{i} = {i}" for i in range(50))
        candidates = extract_comments(f"# set many values\n{body}\n", "python", window_lines=5)
        assert len(candidates[0].window.lines) == 5


class TestMaskComments:
    def test_removes_line_and_block_comments(self):
        masked = mask_comments(JS_SOURCE, "javascript")
        assert "Adds two numbers" not in masked
        assert "the endpoint" not in masked
        assert "function add(a, b)" in masked
        assert "http://example.com" in masked

    def test_preserves_line_count(self):
        assert len(mask_comments(JS_SOURCE, "javascript").splitlines()) == len(JS_SOURCE.splitlines())


class TestModelOutputCleanup:
    def test_strips_fences(self):
        assert strip_markdown_fences("```python\n# hello\n```") == "# hello"

    def test_leaves_unfenced_text(self):
        assert strip_markdown_fences("  # hello  ") == "# hello"

    def test_extracts_comment_lines_only(self):
        response = "```python\n# Return the mean.\ndef average(values):\n    pass\n```"
        assert extract_comment_lines(response, "python") == "# Return the mean."

    def test_keeps_block_continuation(self):
        response = "/**\n * Adds numbers.\n */\nfunction add() {}"
        assert extract_comment_lines(response, "javascript") == "/**\n * Adds numbers.\n */"

    def test_falls_back_to_full_text(self):
        assert extract_comment_lines("Adds numbers.", "python") == "Adds numbers."
