"""Tests for regeneration prompt rendering."""

from dropcomments_core.prompting import (
    DEFAULT_TEMPLATE,
    MAX_CODE_CHARS,
    RegenerationRequest,
    StyleOptions,
    build_prompt,
    render_template,
    truncate_code,
)


def _request(**kwargs):
    defaults = dict(
        language_id="python",
        original_comment="# returns sum",
        surrounding_code="def average(values):\n    return total / len(values)",
        reasons=["Comment claims to return 'sum' but the code does not"],
    )
    defaults.update(kwargs)
    return RegenerationRequest(**defaults)


class TestRenderTemplate:
    def test_substitutes_known_placeholders(self):
        assert render_template("Fix {comment} in {language}", {"comment": "# x", "language": "go"}) == (
            "Fix # x in go"
        )

    def test_unknown_tokens_left_verbatim(self):
        template = "{comment} then {unknown} and {"
        assert render_template(template, {"comment": "# x"}) == "# x then {unknown} and {"

    def test_code_braces_survive(self):
        template = "Example: function f() { return {a: 1}; }\n{code}"
        rendered = render_template(template, {"code": "x = 1"})
        assert rendered == "Example: function f() { return {a: 1}; }\nx = 1"


class TestTruncateCode:
    def test_short_code_untouched(self):
        assert truncate_code("x = 1", "python") == "x = 1"

    def test_long_code_truncated_with_language_marker(self):
        code = "y" * (MAX_CODE_CHARS + 100)
        truncated = truncate_code(code, "javascript")
        assert truncated.startswith("y" * MAX_CODE_CHARS)
        assert truncated.endswith("// ... (truncated)")
        assert len(truncated) < len(code)


class TestBuildPrompt:
    def test_default_template_contains_inputs(self):
        prompt = build_prompt(_request())
        assert '"# returns sum"' in prompt
        assert "def average(values):" in prompt
        assert "python" in prompt
        assert "- Comment claims to return 'sum' but the code does not" in prompt

    def test_no_placeholders_remain(self):
        prompt = build_prompt(_request())
        for name in ("{comment}", "{code}", "{language}", "{reasons}", "{style_instruction}"):
            assert name not in prompt

    def test_succinct_style(self):
        assert "succinct" in build_prompt(_request())

    def test_detailed_style(self):
        prompt = build_prompt(_request(style=StyleOptions(comment_style="detailed")))
        assert "more detailed" in prompt

    def test_emoji_instruction(self):
        assert "Do not use emojis." in build_prompt(_request())
        assert "MAY add occasional emojis" in build_prompt(_request(style=StyleOptions(use_emojis=True)))

    def test_comment_only_output_instruction(self):
        assert "Return ONLY the updated comment" in build_prompt(_request())
        full = build_prompt(_request(style=StyleOptions(comment_only=False)))
        assert "code block with the updated comment" in full

    def test_custom_template(self):
        prompt = build_prompt(_request(), "Rewrite {comment} for {language}.")
        assert prompt == "Rewrite # returns sum for python."

    def test_blank_custom_template_falls_back_to_default(self):
        assert build_prompt(_request(), "   \n") == build_prompt(_request())

    def test_default_template_uses_every_placeholder(self):
        for name in ("language", "comment", "code", "reasons", "style_instruction", "emoji_instruction"):
            assert "{" + name + "}" in DEFAULT_TEMPLATE
