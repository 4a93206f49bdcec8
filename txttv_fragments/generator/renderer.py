"""Literal placeholder substitution for TxtTV page templates.

Only the fixed placeholder names in :data:`PLACEHOLDER_NAMES` are replaced.
This is deliberately not a templating engine: values are inserted verbatim in
a single pass, so markup in page content is never re-scanned for
placeholders, and unknown ``{{NAME}}`` tokens are left where they are.
"""

from __future__ import annotations

import logging
import re

from txttv_fragments._constants import PLACEHOLDER_NAMES, PLACEHOLDER_TEMPLATE
from txttv_fragments.errors import InputError, TemplateError

from .models import PLACEHOLDER_PATTERN, PageNavigation, PageTemplate, RenderedPage

logger = logging.getLogger(__name__)


def navigation_for(page_number: int, min_page: int, max_page: int) -> PageNavigation:
    """Return previous/next page numbers, wrapping at both ends of the range.

    Raises
    ------
    InputError
        If ``page_number`` lies outside ``[min_page, max_page]``.

    Examples
    --------
    >>> navigation_for(100, 100, 110)
    PageNavigation(page=100, prev_page=110, next_page=101)
    >>> navigation_for(110, 100, 110).next_page
    100
    """
    if not min_page <= page_number <= max_page:
        msg = f"Page {page_number} is outside the range {min_page}-{max_page}."
        raise InputError(msg)
    prev_page = max_page if page_number == min_page else page_number - 1
    next_page = min_page if page_number == max_page else page_number + 1
    return PageNavigation(page=page_number, prev_page=prev_page, next_page=next_page)


def require_placeholders(template: PageTemplate) -> None:
    """Raise :class:`TemplateError` when ``{{CONTENT}}`` is missing."""
    if not template.has_placeholder("CONTENT"):
        where = f" in {template.source}" if template.source else ""
        token = PLACEHOLDER_TEMPLATE.format(name="CONTENT")
        msg = f"Required placeholder {token} not found{where}."
        raise TemplateError(msg)


def render_page(
    template: PageTemplate,
    page_number: int,
    content: str,
    style: str,
    script: str,
    min_page: int,
    max_page: int,
) -> RenderedPage:
    """Substitute the fixed placeholders for one page.

    Parameters
    ----------
    template : PageTemplate
        Shared page template; must contain ``{{CONTENT}}``.
    page_number : int
        Page being rendered.
    content : str
        Per-page body text, inserted verbatim.
    style, script : str
        Shared style and script blocks, inserted verbatim.
    min_page, max_page : int
        Inclusive page range used for wraparound navigation.

    Returns
    -------
    RenderedPage
        The rendered HTML along with any placeholder names left unresolved.

    Raises
    ------
    TemplateError
        If the template lacks ``{{CONTENT}}``.
    InputError
        If ``page_number`` is outside the page range.
    """
    require_placeholders(template)
    navigation = navigation_for(page_number, min_page, max_page)
    substitutions = (
        str(page_number),
        content,
        style,
        script,
        str(navigation.prev_page),
        str(navigation.next_page),
    )
    values = dict(zip(PLACEHOLDER_NAMES, substitutions, strict=True))
    unresolved: list[str] = []

    def _repl(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in values:
            return values[name]
        if name not in unresolved:
            unresolved.append(name)
        return match.group(0)

    html = PLACEHOLDER_PATTERN.sub(_repl, template.text)
    if unresolved:
        logger.warning(
            "Page %d: template placeholders left unresolved: %s",
            page_number,
            ", ".join(unresolved),
        )
    return RenderedPage(
        page_number=page_number,
        html=html,
        navigation=navigation,
        unresolved_placeholders=tuple(unresolved),
    )


__all__ = ["navigation_for", "render_page", "require_placeholders"]
