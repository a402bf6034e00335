"""Tests for file filtering and glob utilities."""

from dropcomments_core.utils.code import is_code_file, looks_binary
from dropcomments_core.utils.globs import matches_any, matches_glob


class TestIsCodeFile:
    def test_python_file_is_code(self):
        assert is_code_file("app/services/user.py") is True

    def test_js_file_is_code(self):
        assert is_code_file("src/components/Button.tsx") is True

    def test_image_is_not_code(self):
        assert is_code_file("assets/logo.png") is False

    def test_lock_file_is_not_code(self):
        assert is_code_file("poetry.lock") is False

    def test_minified_bundle_is_not_code(self):
        assert is_code_file("static/app.min.js") is False

    def test_json_has_no_comments(self):
        assert is_code_file("package.json") is False

    def test_case_insensitive(self):
        assert is_code_file("image.PNG") is False


class TestLooksBinary:
    def test_nul_byte_is_binary(self):
        assert looks_binary(b"abc\x00def") is True

    def test_plain_text_is_not_binary(self):
        assert looks_binary("print('héllo')\n".encode()) is False

    def test_only_leading_bytes_are_checked(self):
        assert looks_binary(b"a" * 9000 + b"\x00") is False


class TestMatchesGlob:
    def test_double_star_matches_at_root(self):
        assert matches_glob("generated/x.ts", "**/generated/**") is True

    def test_double_star_matches_nested(self):
        assert matches_glob("src/generated/deep/x.ts", "**/generated/**") is True

    def test_double_star_does_not_match_similar_name(self):
        assert matches_glob("src/regenerated/x.ts", "**/generated/**") is False

    def test_single_star_does_not_cross_directories(self):
        assert matches_glob("src/a/b.py", "src/*.py") is False
        assert matches_glob("src/b.py", "src/*.py") is True

    def test_basename_pattern(self):
        assert matches_glob("a/b/yarn.lock", "*.lock") is True

    def test_directory_prefix(self):
        assert matches_glob("app/migrations/0001.py", "migrations/") is True
        assert matches_glob("migrations/0001.py", "migrations/") is True

    def test_brace_alternation(self):
        assert matches_glob("src/x.ts", "**/*.{ts,tsx}") is True
        assert matches_glob("src/x.tsx", "**/*.{ts,tsx}") is True
        assert matches_glob("src/x.js", "**/*.{ts,tsx}") is False

    def test_everything_pattern(self):
        assert matches_glob("a.py", "**/*") is True
        assert matches_glob("deep/dir/a.py", "**/*") is True

    def test_matches_any(self):
        assert matches_any("vendor/lib.js", ["*.lock", "vendor/"]) is True
        assert matches_any("src/lib.js", ["*.lock", "vendor/"]) is False
        assert matches_any("src/lib.js", []) is False
