"""Weighted staleness heuristics.

Each heuristic maps (candidate, context) to a subscore in [0, 1] and an
optional human-readable reason. The engine combines them:

    total = clip(Σ weight_i × subscore_i, 0, 100)

A heuristic is reported in ``reasons`` only when its subscore exceeds
SIGNIFICANCE_FLOOR; reasons are ordered by weighted contribution, strongest
first, with ties kept in declaration order. A heuristic that raises counts as
zero for that candidate and is logged; it never fails the item or the scan.

All techniques here are token-level approximations: they trade precision for
working uniformly across every language in the comment-token table.
"""

from __future__ import annotations

import functools
import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from dropcomments_core.extractor import extract_comments, get_comment_tokens, strip_comment_markers
from dropcomments_core.models import CommentCandidate, FileContext, StaleCommentItem, make_item_id

logger = logging.getLogger(__name__)

SIGNIFICANCE_FLOOR = 0.2
MAX_SCORE = 100.0
DEFAULT_AGE_HALF_LIFE_DAYS = 90.0

# (id, display name, default weight)
DEFAULT_WEIGHTS: list[tuple[str, str, float]] = [
    ("symbol_drift", "Symbol Drift", 25),
    ("signature_mismatch", "Signature Mismatch", 20),
    ("divergence", "Divergence", 15),
    ("age", "Age", 20),
    ("dead_reference", "Dead Reference", 15),
    ("complexity_delta", "Complexity Delta", 10),
]

_STOPWORDS = frozenset(
    """
    a an the and or but if then else when while for to of in on at by with from as is are was were be been
    being it its this that these those there here we you they he she i me my our your their them us do does
    did done not no yes so than too very can could should would will shall may might must have has had
    get gets set sets use uses used using also just only all any each every some such other into onto out
    up down over under again more most less least same own now new old which who whom what where why how
    return returns returned returning function functions method methods value values code todo fixme note
    xxx hack see e g ie eg etc via per make makes made need needs needed one two first last call calls
    called true false null none nil undefined var let const def fn func public private static void
    """.split()
)

_IDENT_WORD_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_CAMEL_SPLIT_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")
_BACKTICK_RE = re.compile(r"`([^`\n]+)`")
_CALL_RE = re.compile(r"\b([A-Za-z_$][\w$]*)\(")
_SNAKE_RE = re.compile(r"\b[A-Za-z$][\w$]*_[\w$]+\b")
_CAMEL_RE = re.compile(r"\b[a-z][a-z0-9]*[A-Z][A-Za-z0-9]*\b|\b[A-Z][a-z0-9]+[A-Z][A-Za-z0-9]*\b")
_URL_RE = re.compile(r"\b[a-z][a-z0-9+.-]*://\S+", re.IGNORECASE)
_PATH_RE = re.compile(
    r"(?<![\w/.])((?:\.{1,2}/)?(?:[\w.-]+/)+[\w.-]+\.[A-Za-z]{1,5}|[\w-]+\.(?:py|js|ts|tsx|jsx|go|rs|rb|java|"
    r"c|h|cpp|hpp|cs|php|swift|kt|scala|dart|sh|sql|yml|yaml|toml|json|md))\b"
)
_DOTTED_CALL_RE = re.compile(r"\b([A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)+)\(")
_PARAM_TAG_RE = re.compile(
    r"@param\s+(?:\{[^}]*\}\s*)?\[?([A-Za-z_$][\w$]*)|:param\s+(?:[\w\[\], ]+\s+)?([A-Za-z_$][\w$]*)\s*:"
)
_ARGS_HEADER_RE = re.compile(r"^\s*(?:args|arguments|parameters|params)\s*:?\s*$", re.IGNORECASE)
_ARGS_ENTRY_RE = re.compile(r"^\s*\*?\s*([A-Za-z_$][\w$]*)\s*(?:\([^)]*\))?\s*:")
_RETURNS_RE = re.compile(
    r"(?:@returns?\s+(?:\{[^}]*\}\s*)?|:returns?:\s*|\breturns?\s+)(?:the\s+|a\s+|an\s+)?([^.,;:\n]*)",
    re.IGNORECASE,
)
_RETURN_STMT_RE = re.compile(r"\breturn\b\s*([^;\n]*)")
_RETURN_TYPE_RE = re.compile(r"(?:->|\)\s*:)\s*([\w\[\]<>., |]+)")
_BRANCH_RE = re.compile(
    r"\b(?:if|elif|elsif|for|foreach|while|case|catch|except|when|unless|until|guard)\b|&&|\|\||\?\?|\band\b|\bor\b"
)
_NON_PARAMS = frozenset({"self", "cls", "this"})


@dataclass
class HeuristicResult:
    score: float
    reason: str | None = None


HeuristicFunc = Callable[[CommentCandidate, FileContext], HeuristicResult]


@dataclass
class Heuristic:
    id: str
    name: str
    weight: float
    func: HeuristicFunc


@dataclass
class ScoreBreakdown:
    total: float
    reasons: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    subscores: dict[str, float] = field(default_factory=dict)


# --------------------------------------------------------------------------- #
# Token helpers                                                               #
# --------------------------------------------------------------------------- #


def _normalize(word: str) -> str:
    word = word.lower()
    if word in _STOPWORDS:
        return word
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def split_words(text: str) -> list[str]:
    """Split identifiers and prose into normalized lowercase words."""
    words: list[str] = []
    for ident in _IDENT_WORD_RE.findall(text):
        for part in ident.replace("$", "_").split("_"):
            words.extend(_normalize(w) for w in _CAMEL_SPLIT_RE.findall(part))
    return words


def content_words(text: str) -> set[str]:
    return {w for w in split_words(text) if len(w) > 2 and w not in _STOPWORDS and not w.isdigit()}


def _comment_body(candidate: CommentCandidate, context: FileContext) -> str:
    return strip_comment_markers(candidate.text, get_comment_tokens(context.language_id))


def comment_identifiers(body: str) -> list[str]:
    """Identifier-shaped references in comment prose, in first-seen order."""
    body = _URL_RE.sub(" ", body)
    found: list[str] = []
    for inner in _BACKTICK_RE.findall(body):
        found.extend(_IDENT_WORD_RE.findall(inner))
    for pattern in (_CALL_RE, _SNAKE_RE, _CAMEL_RE):
        for match in pattern.finditer(body):
            found.append(match.group(1) if pattern.groups else match.group(0))
    seen: dict[str, None] = {}
    for ident in found:
        if ident.lower() not in _STOPWORDS:
            seen.setdefault(ident, None)
    return list(seen)


def _declared_params(declaration: str) -> list[str] | None:
    """Parameter names from the first parenthesised list in a declaration."""
    open_idx = declaration.find("(")
    if open_idx == -1:
        return None
    depth = 0
    for close_idx in range(open_idx, len(declaration)):
        if declaration[close_idx] == "(":
            depth += 1
        elif declaration[close_idx] == ")":
            depth -= 1
            if depth == 0:
                break
    else:
        close_idx = len(declaration)
    inner = declaration[open_idx + 1 : close_idx]
    params: list[str] = []
    for part in inner.split(","):
        part = part.split("=", 1)[0]
        if ":" in part:
            part = part.split(":", 1)[0]
        idents = _IDENT_WORD_RE.findall(part)
        if idents and idents[-1] not in _NON_PARAMS:
            params.append(idents[-1])
    return params


def _documented_params(body: str) -> list[str]:
    params = [a or b for a, b in _PARAM_TAG_RE.findall(body)]
    in_args = False
    for line in body.splitlines():
        if _ARGS_HEADER_RE.match(line):
            in_args = True
            continue
        if in_args:
            match = _ARGS_ENTRY_RE.match(line)
            if match:
                params.append(match.group(1))
            elif line.strip() and not line.startswith((" ", "\t")):
                in_args = False
    return list(dict.fromkeys(params))


def _declaration_name(declaration: str) -> str:
    idx = declaration.find("(")
    head = declaration[:idx] if idx != -1 else declaration
    idents = _IDENT_WORD_RE.findall(head)
    return idents[-1] if idents else ""


def complexity(code: str) -> int:
    """Cyclomatic-style proxy: one plus the number of branch points."""
    return 1 + len(_BRANCH_RE.findall(code))


def _clip(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# --------------------------------------------------------------------------- #
# Heuristics                                                                  #
# --------------------------------------------------------------------------- #


def symbol_drift(candidate: CommentCandidate, context: FileContext) -> HeuristicResult:
    """Fraction of identifiers named in the comment that no longer exist in the file."""
    refs = comment_identifiers(_comment_body(candidate, context))
    if not refs:
        return HeuristicResult(0.0)
    missing = [r for r in refs if r not in context.symbols]
    if not missing:
        return HeuristicResult(0.0)
    return HeuristicResult(
        len(missing) / len(refs),
        f"References {', '.join(f'`{m}`' for m in missing[:3])} no longer found in the file",
    )


def signature_mismatch(candidate: CommentCandidate, context: FileContext) -> HeuristicResult:
    """Disagreement between documented parameters/return value and the declaration."""
    declaration = candidate.window.declaration
    if not declaration:
        return HeuristicResult(0.0)
    body = _comment_body(candidate, context)

    param_score, reasons = 0.0, []
    declared = _declared_params(declaration)
    documented = _documented_params(body)
    if declared is not None and documented:
        unknown = [p for p in documented if p not in declared]
        if unknown:
            param_score = len(unknown) / len(documented)
            reasons.append(f"documents parameter(s) {', '.join(unknown)} not in the signature")

    return_score = 0.0
    match = _RETURNS_RE.search(body)
    if match:
        claimed = [w for w in split_words(match.group(1)) if len(w) > 2 and w not in _STOPWORDS][:3]
        if claimed:
            evidence = set(split_words(_declaration_name(declaration)))
            for line in candidate.window.lines:
                for expr in _RETURN_STMT_RE.findall(line):
                    evidence.update(split_words(expr))
            type_match = _RETURN_TYPE_RE.search(declaration)
            if type_match:
                evidence.update(split_words(type_match.group(1)))
            if not evidence.intersection(claimed):
                return_score = 1.0
                reasons.append(f"claims to return '{' '.join(claimed)}' but the code does not")

    score = max(param_score, return_score)
    if score == 0:
        return HeuristicResult(0.0)
    return HeuristicResult(score, "Comment " + "; ".join(reasons))


def divergence(candidate: CommentCandidate, context: FileContext) -> HeuristicResult:
    """Share of the comment's content words that the surrounding code never mentions."""
    comment_words = content_words(_comment_body(candidate, context))
    if not comment_words:
        return HeuristicResult(0.0)
    code_words = set(split_words(candidate.window.text))
    missing = comment_words - code_words
    score = len(missing) / len(comment_words)
    if not missing:
        return HeuristicResult(0.0)
    return HeuristicResult(score, f"Comment terms {', '.join(sorted(missing)[:3])} do not appear in the code")


def age(
    candidate: CommentCandidate,
    context: FileContext,
    half_life_days: float = DEFAULT_AGE_HALF_LIFE_DAYS,
    now: datetime | None = None,
) -> HeuristicResult:
    """Grows toward 1 as the code moves on without the comment, halving distance per half-life."""
    vcs = context.vcs
    if vcs is None:
        return HeuristicResult(0.0)

    comment_lines = range(candidate.range.start.line, candidate.range.end.line + 1)
    code_lines = range(candidate.window.start_line, candidate.window.end_line + 1)
    comment_times = [vcs.line_times[n] for n in comment_lines if n in vcs.line_times]
    code_times = [vcs.line_times[n] for n in code_lines if n in vcs.line_times and n not in comment_lines]

    if comment_times and code_times:
        gap = max(code_times) - max(comment_times)
        message = "Code changed {days} day(s) after the comment was last edited"
    else:
        gap = (now or datetime.now(timezone.utc)) - vcs.last_modified
        message = "Code last changed {days} day(s) ago"

    gap_days = gap.total_seconds() / 86400
    if gap_days <= 0:
        return HeuristicResult(0.0)
    score = 1 - 0.5 ** (gap_days / max(half_life_days, 1e-9))
    return HeuristicResult(score, message.format(days=int(gap_days)))


def dead_reference(candidate: CommentCandidate, context: FileContext) -> HeuristicResult:
    """Paths and dotted API references in the comment that resolve nowhere in the workspace."""
    body = _URL_RE.sub(" ", _comment_body(candidate, context))
    refs: list[tuple[str, bool]] = []  # (reference, resolves)

    root = Path(context.workspace_root) if context.workspace_root else None
    file_dir = Path(context.file_path).parent
    for path_ref in dict.fromkeys(_PATH_RE.findall(body)):
        if root is None:
            continue
        options = [root / path_ref, root / file_dir / path_ref]
        refs.append((path_ref, any(p.exists() for p in options)))

    dotted = set(_DOTTED_CALL_RE.findall(body))
    for inner in _BACKTICK_RE.findall(body):
        dotted.update(m.group(0) for m in re.finditer(r"[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)+", inner))
    for ref in sorted(dotted):
        member = ref.rsplit(".", 1)[-1]
        if _PATH_RE.fullmatch(ref):
            continue
        refs.append((ref, member in context.symbols or member in context.workspace_symbols))

    if not refs:
        return HeuristicResult(0.0)
    dead = [ref for ref, ok in refs if not ok]
    if not dead:
        return HeuristicResult(0.0)
    return HeuristicResult(
        len(dead) / len(refs),
        f"Unresolvable reference(s): {', '.join(f'`{d}`' for d in dead[:3])}",
    )


def complexity_delta(candidate: CommentCandidate, context: FileContext) -> HeuristicResult:
    """Relative change in branch complexity of the code since the comment's revision."""
    vcs = context.vcs
    if vcs is None or vcs.content_at is None:
        return HeuristicResult(0.0)
    comment_rev = vcs.line_revisions.get(candidate.range.start.line)
    if not comment_rev:
        return HeuristicResult(0.0)
    code_revs = {
        vcs.line_revisions.get(n) for n in range(candidate.window.start_line, candidate.window.end_line + 1)
    }
    if code_revs <= {comment_rev, None}:
        return HeuristicResult(0.0)

    old_text = vcs.content_at(comment_rev)
    if not old_text:
        return HeuristicResult(0.0)
    wanted = candidate.text.strip()
    old_window = next(
        (c.window for c in extract_comments(old_text, context.language_id) if c.text.strip() == wanted),
        None,
    )
    if old_window is None:
        return HeuristicResult(0.0)

    before, after = complexity(old_window.text), complexity(candidate.window.text)
    if before == after:
        return HeuristicResult(0.0)
    return HeuristicResult(
        abs(after - before) / max(after, before),
        f"Complexity changed from {before} to {after} since the comment was written",
    )


# --------------------------------------------------------------------------- #
# Engine                                                                      #
# --------------------------------------------------------------------------- #


def default_heuristics(
    weights: dict | None = None,
    age_half_life_days: float = DEFAULT_AGE_HALF_LIFE_DAYS,
) -> list[Heuristic]:
    """Build the built-in heuristic set, applying per-id weight overrides."""
    funcs: dict[str, HeuristicFunc] = {
        "symbol_drift": symbol_drift,
        "signature_mismatch": signature_mismatch,
        "divergence": divergence,
        "age": functools.partial(age, half_life_days=age_half_life_days),
        "dead_reference": dead_reference,
        "complexity_delta": complexity_delta,
    }
    overrides = weights or {}
    unknown = set(overrides) - set(funcs)
    if unknown:
        logger.warning("Ignoring weights for unknown heuristic(s): %s", ", ".join(sorted(unknown)))
    return [
        Heuristic(id=hid, name=name, weight=float(overrides.get(hid, weight)), func=funcs[hid])
        for hid, name, weight in DEFAULT_WEIGHTS
    ]


class HeuristicEngine:
    def __init__(self, heuristics: list[Heuristic] | None = None):
        self.heuristics = heuristics if heuristics is not None else default_heuristics()
        self._lock = threading.Lock()
        self.invocations = 0

    @classmethod
    def from_config(cls, config: dict) -> HeuristicEngine:
        return cls(
            default_heuristics(
                weights=config.get("heuristic_weights") or {},
                age_half_life_days=float(config.get("age_half_life_days", DEFAULT_AGE_HALF_LIFE_DAYS)),
            )
        )

    def score(self, candidate: CommentCandidate, context: FileContext) -> ScoreBreakdown:
        with self._lock:
            self.invocations += 1

        contributions: list[tuple[float, Heuristic, HeuristicResult]] = []
        subscores: dict[str, float] = {}
        for heuristic in self.heuristics:
            try:
                result = heuristic.func(candidate, context)
                sub = _clip(float(result.score), 0.0, 1.0)
            except Exception as e:
                logger.warning(
                    "Heuristic %s failed for %s:%d: %s",
                    heuristic.name,
                    context.file_path,
                    candidate.range.start.line + 1,
                    e,
                )
                result, sub = HeuristicResult(0.0), 0.0
            subscores[heuristic.name] = sub
            contributions.append((heuristic.weight * sub, heuristic, result))

        total = round(_clip(sum(c for c, _, _ in contributions), 0.0, MAX_SCORE), 2)
        significant = [c for c in contributions if subscores[c[1].name] > SIGNIFICANCE_FLOOR]
        significant.sort(key=lambda c: c[0], reverse=True)
        return ScoreBreakdown(
            total=total,
            reasons=[h.name for _, h, _ in significant],
            messages=[r.reason or h.name for _, h, r in significant],
            subscores=subscores,
        )

    def build_item(self, candidate: CommentCandidate, context: FileContext) -> StaleCommentItem:
        """Score a candidate and wrap it as a detected StaleCommentItem."""
        breakdown = self.score(candidate, context)
        return StaleCommentItem(
            id=make_item_id(context.file_path, candidate.range, candidate.text),
            file_path=context.file_path,
            range=candidate.range,
            original_comment_text=candidate.text,
            surrounding_code=candidate.window.text,
            score=breakdown.total,
            language_id=context.language_id,
            reasons=breakdown.reasons,
            reason_messages=breakdown.messages,
            last_modified=context.vcs.last_modified if context.vcs else datetime.now(timezone.utc),
        )
