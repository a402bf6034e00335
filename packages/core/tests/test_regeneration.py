"""Tests for the regeneration driver's lifecycle and wave scheduling."""

import threading

import pytest

from dropcomments_core.config import RegenerationSettings
from dropcomments_core.errors import GenerationError, GenerationErrorKind, InvalidStateError
from dropcomments_core.models import Range, StaleCommentItem, Status
from dropcomments_core.providers.base import BaseGenerator
from dropcomments_core.regeneration import RegenerationDriver


class _StubGenerator(BaseGenerator):
    """Returns a fixed response, or raises for comments listed in ``fail_on``."""

    MAX_RETRIES = 1

    def __init__(self, response="# Returns the mean of values.", fail_on=()):
        self.response = response
        self.fail_on = set(fail_on)
        self.prompts = []
        self._lock = threading.Lock()

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        with self._lock:
            self.prompts.append(user_prompt)
        if any(marker in user_prompt for marker in self.fail_on):
            raise RuntimeError("model exploded")
        return self.response


def _make_item(n=0, **kwargs):
    return StaleCommentItem(
        id=f"item{n}",
        file_path="calc.py",
        range=Range.from_lines(n, 0, n, 14),
        original_comment_text=f"# returns sum {n}",
        surrounding_code="def average(values):\n    return total / len(values)",
        score=60.0,
        language_id="python",
        reasons=["Signature Mismatch"],
        **kwargs,
    )


class TestRegenerate:
    def test_success_sets_text_and_status(self):
        item = _make_item()
        result = RegenerationDriver(_StubGenerator()).regenerate(item)
        assert result.ok is True
        assert item.status == Status.UPDATED
        assert item.regenerated_text == "# Returns the mean of values."

    def test_prompt_carries_comment_and_reasons(self):
        generator = _StubGenerator()
        item = _make_item(reason_messages=["Comment claims to return 'sum' but the code does not"])
        RegenerationDriver(generator).regenerate(item)
        assert "# returns sum 0" in generator.prompts[0]
        assert "claims to return 'sum'" in generator.prompts[0]

    def test_custom_template_used(self):
        generator = _StubGenerator()
        RegenerationDriver(generator, template="Fix: {comment}").regenerate(_make_item())
        assert generator.prompts == ["Fix: # returns sum 0"]

    def test_comment_only_keeps_comment_lines(self):
        generator = _StubGenerator(response="```python\n# Mean of values.\ndef average(values):\n```")
        item = _make_item()
        RegenerationDriver(generator).regenerate(item)
        assert item.regenerated_text == "# Mean of values."

    def test_full_output_mode_keeps_code(self):
        generator = _StubGenerator(response="```python\n# Mean.\ndef average(values):\n```")
        item = _make_item()
        RegenerationDriver(generator, RegenerationSettings(comment_only=False)).regenerate(item)
        assert item.regenerated_text == "# Mean.\ndef average(values):"

    def test_failure_reverts_to_detected(self):
        item = _make_item()
        result = RegenerationDriver(_StubGenerator(fail_on={"returns sum"})).regenerate(item)
        assert result.ok is False
        assert isinstance(result.error, GenerationError)
        assert item.status == Status.DETECTED
        assert item.regenerated_text is None

    def test_auth_failure_is_classified(self):
        class _Unauthorized(Exception):
            status_code = 401

        class _AuthFailGenerator(_StubGenerator):
            def _call_api(self, system_prompt, user_prompt):
                raise _Unauthorized("bad key")

        item = _make_item()
        result = RegenerationDriver(_AuthFailGenerator()).regenerate(item)
        assert result.error.kind == GenerationErrorKind.AUTH
        assert item.status == Status.DETECTED

    def test_empty_response_is_a_failure(self):
        item = _make_item()
        result = RegenerationDriver(_StubGenerator(response="   ")).regenerate(item)
        assert result.ok is False
        assert item.status == Status.DETECTED

    @pytest.mark.parametrize("status", [Status.UPDATED, Status.DISMISSED, Status.APPLIED, Status.REGENERATING])
    def test_non_detected_item_rejected(self, status):
        item = _make_item(status=status)
        with pytest.raises(InvalidStateError):
            RegenerationDriver(_StubGenerator()).regenerate(item)
        assert item.status == status


class TestRegenerateAll:
    def test_waves_report_progress(self):
        items = [_make_item(n) for n in range(7)]
        progress = []
        driver = RegenerationDriver(_StubGenerator(), RegenerationSettings(batch_concurrency=3))

        results = driver.regenerate_all(items, lambda done, total: progress.append((done, total)))

        assert len(results) == 7
        assert progress == [(3, 7), (6, 7), (7, 7)]
        assert all(item.status == Status.UPDATED for item in items)

    def test_failures_are_isolated(self):
        items = [_make_item(n) for n in range(4)]
        driver = RegenerationDriver(_StubGenerator(fail_on={"returns sum 2"}))

        results = driver.regenerate_all(items)

        assert [r.ok for r in results] == [True, True, False, True]
        assert items[2].status == Status.DETECTED
        assert all(item.status is not Status.REGENERATING for item in items)

    def test_failure_in_first_wave_does_not_stop_later_waves(self):
        items = [_make_item(n) for n in range(7)]
        progress = []
        driver = RegenerationDriver(
            _StubGenerator(fail_on={"returns sum 1"}), RegenerationSettings(batch_concurrency=3)
        )

        results = driver.regenerate_all(items, lambda done, total: progress.append((done, total)))

        assert progress == [(3, 7), (6, 7), (7, 7)]
        assert [r.ok for r in results] == [True, False, True, True, True, True, True]
        assert items[1].status == Status.DETECTED
        assert items[1].regenerated_text is None
        assert [item.status for item in items[3:]] == [Status.UPDATED] * 4

    def test_only_pending_items_selected(self):
        done = _make_item(1, status=Status.UPDATED, regenerated_text="# already")
        dismissed = _make_item(2, status=Status.DISMISSED)
        pending = _make_item(3)
        generator = _StubGenerator()

        results = RegenerationDriver(generator).regenerate_all([done, dismissed, pending])

        assert [r.item.id for r in results] == ["item3"]
        assert done.regenerated_text == "# already"
        assert len(generator.prompts) == 1

    def test_nothing_pending(self):
        progress = []
        results = RegenerationDriver(_StubGenerator()).regenerate_all([], lambda d, t: progress.append(d))
        assert results == []
        assert progress == []
