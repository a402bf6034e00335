"""Prompt construction for comment regeneration.

A template is plain text with ``{name}`` placeholders. Only the names in
PLACEHOLDERS are substituted; any other ``{token}`` (including braces that
belong to code samples in a custom template) is left exactly as written,
which is why str.format is not used here.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from dropcomments_core.extractor import get_comment_tokens

logger = logging.getLogger(__name__)

# Rough cap on the code context sent with each request.
MAX_CODE_CHARS = 3000

PLACEHOLDERS = (
    "language",
    "comment",
    "code",
    "reasons",
    "style_instruction",
    "emoji_instruction",
    "output_instruction",
)

DEFAULT_TEMPLATE = """You are a senior developer helping update stale code comments.
The following comment appears to be stale or outdated:
Original comment: "{comment}"

Current code context:
{code}

Update the comment to accurately reflect the current code in {language}.
{style_instruction}
{emoji_instruction}
Ensure the comment is relevant, accurate, and adds value.
{output_instruction}

Stale comment reasons:
{reasons}"""

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass
class StyleOptions:
    use_emojis: bool = False
    comment_style: str = "succinct"  # "succinct" | "detailed"
    comment_only: bool = True


@dataclass
class RegenerationRequest:
    language_id: str
    original_comment: str
    surrounding_code: str
    reasons: list[str] = field(default_factory=list)
    style: StyleOptions = field(default_factory=StyleOptions)


def style_instruction(style: StyleOptions) -> str:
    if style.comment_style == "detailed":
        return "Make comments more detailed and explanatory, including rationale and context where helpful."
    return "Keep comments succinct and focused only on key logic."


def emoji_instruction(style: StyleOptions) -> str:
    return "You MAY add occasional emojis in comments." if style.use_emojis else "Do not use emojis."


def output_instruction(style: StyleOptions) -> str:
    if style.comment_only:
        return (
            "Return ONLY the updated comment, written with the language's comment markers "
            "(no code, no markdown fences)."
        )
    return "Return the code block with the updated comment in place."


def truncate_code(code: str, language_id: str, limit: int = MAX_CODE_CHARS) -> str:
    if len(code) <= limit:
        return code
    tokens = get_comment_tokens(language_id)
    marker = tokens.line or tokens.block_start or "//"
    logger.debug("Code context truncated from %d to %d characters", len(code), limit)
    return f"{code[:limit]}\n{marker} ... (truncated)"


def render_template(template: str, values: dict[str, str]) -> str:
    """Substitute recognized ``{name}`` placeholders, leaving others verbatim."""

    def _sub(match: re.Match) -> str:
        name = match.group(1)
        if name in PLACEHOLDERS and name in values:
            return values[name]
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_sub, template)


def build_prompt(request: RegenerationRequest, template: str | None = None) -> str:
    values = {
        "language": request.language_id,
        "comment": request.original_comment,
        "code": truncate_code(request.surrounding_code, request.language_id),
        "reasons": "\n".join(f"- {reason}" for reason in request.reasons),
        "style_instruction": style_instruction(request.style),
        "emoji_instruction": emoji_instruction(request.style),
        "output_instruction": output_instruction(request.style),
    }
    if template is not None and not template.strip():
        template = None
    return render_template(template or DEFAULT_TEMPLATE, values)
