"""Structural validation of markdown content against a template.

The context types only depend on the `Validator` protocol; the markdown
heading check below is the default implementation.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol, runtime_checkable

import frontmatter

from ctxkeeper.context.models import ValidationIssue, ValidationResponse

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*#*[ \t]*$")
_FENCE_RE = re.compile(r"^(```|~~~)")
_TEMPLATE_VAR_RE = re.compile(r"\{\{\s*[^}]+\s*\}\}")


@runtime_checkable
class Validator(Protocol):
    """Checks content structure against template text."""

    def validate(self, content: str, template: str) -> ValidationResponse: ...


class MarkdownTemplateValidator:
    """Require every template heading to appear in the content at the same level.

    YAML front matter is ignored on both sides. A `{{ name }}` placeholder in a
    template heading matches any text at that position.
    """

    def validate(self, content: str, template: str) -> ValidationResponse:
        template_headings = extract_headings(template)
        content_headings = extract_headings(content)

        issues: list[ValidationIssue] = []
        for depth, text in template_headings:
            pattern = _heading_pattern(text)
            depths = [d for d, t in content_headings if pattern.fullmatch(t)]
            if not depths:
                issues.append(
                    ValidationIssue(
                        type="missing_header",
                        section=text,
                        message=f'Missing required header: "{text}"',
                    )
                )
            elif depth not in depths:
                issues.append(
                    ValidationIssue(
                        type="wrong_level",
                        section=text,
                        message=(
                            f'Header "{text}" should be level {depth}, found level {depths[0]}'
                        ),
                    )
                )

        if not issues:
            return ValidationResponse(is_valid=True, template_used=template)

        logger.debug("Content failed template check: %d issue(s)", len(issues))
        guidance = ["Include these headers in this order:"]
        guidance += [f"{'#' * depth} {text}" for depth, text in template_headings]
        return ValidationResponse(
            is_valid=False,
            validation_errors=issues,
            correction_guidance=guidance,
            template_used=template,
        )


def extract_headings(markdown: str) -> list[tuple[int, str]]:
    """ATX headings as (depth, text), skipping front matter and fenced code."""
    try:
        body = frontmatter.loads(markdown).content
    except Exception:
        # Unparseable front matter block: treat the whole text as body
        body = markdown
    headings: list[tuple[int, str]] = []
    in_fence = False
    for line in body.splitlines():
        if _FENCE_RE.match(line.strip()):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING_RE.match(line)
        if match:
            headings.append((len(match.group(1)), match.group(2)))
    return headings


def _heading_pattern(text: str) -> re.Pattern[str]:
    parts = _TEMPLATE_VAR_RE.split(text)
    return re.compile(".*".join(re.escape(p) for p in parts))
