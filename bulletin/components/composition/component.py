"""
Composition component.

Builds a newsletter from selected news items: finds or creates the
newsletter, allocates items into display slots, renders the HTML body
and validates the result before saving.
"""

from __future__ import annotations

import logging

from bulletin.components.slots.component import (
    allocate,
    build_limits,
    content_statistics,
    validate_content,
)
from bulletin.domain.display import status_label
from bulletin.domain.entities import Newsletter
from bulletin.domain.errors import CapacityExceeded, ContentNotEligible
from bulletin.domain.state import can_edit
from bulletin.rules.models import Rules

from .models import ComposeInput, ComposeOutput
from .ports import ContentRepoPort, NewsletterRepoPort, RendererPort, TimePort

logger = logging.getLogger(__name__)


def _failure(*errors: str, newsletter: Newsletter | None = None) -> ComposeOutput:
    return ComposeOutput(newsletter=newsletter, errors=list(errors), success=False)


def run_compose(
    inp: ComposeInput,
    newsletter_repo: NewsletterRepoPort,
    content_repo: ContentRepoPort,
    renderer: RendererPort,
    time: TimePort,
    rules: Rules | None = None,
) -> ComposeOutput:
    """
    Compose (or recompose) a newsletter.

    Allocation errors are reported as-is; nothing is retried or dropped.
    """
    news_ids = list(dict.fromkeys(i for i in inp.news_ids if i > 0))
    if not news_ids:
        return _failure("No news items selected")

    items = content_repo.find_by_ids(news_ids)
    if not items:
        return _failure("No valid news items found")

    now = time.now_utc()
    number = inp.number if inp.number is not None else newsletter_repo.next_number()

    newsletter = newsletter_repo.find_by_number(number)
    if newsletter is not None:
        if not can_edit(newsletter.status):
            return _failure(
                f"Newsletter #{number} cannot be edited in status "
                f"{status_label(newsletter.status)}",
                newsletter=newsletter,
            )
        newsletter.header_text = inp.header_text
        newsletter.news_ids = news_ids
        newsletter.categorized_news = {}
        newsletter.html_content = None
        newsletter.updated_at = now
    else:
        newsletter = Newsletter(
            number=number,
            header_text=inp.header_text,
            news_ids=news_ids,
            created_at=now,
        )

    try:
        newsletter.categorized_news = allocate(items, news_ids, build_limits(rules))
    except (ContentNotEligible, CapacityExceeded) as e:
        logger.warning("Newsletter #%s: allocation failed: %s", number, e)
        return _failure(str(e), newsletter=newsletter)

    html = renderer.render(newsletter)
    newsletter.html_content = html

    errors = validate_content(newsletter)
    if errors:
        return _failure(*errors, newsletter=newsletter)

    if inp.save:
        newsletter = newsletter_repo.save(newsletter)
        associated = content_repo.associate_with_newsletter(news_ids, number)
        logger.info(
            "Newsletter #%s composed: %d items associated", number, associated
        )

    return ComposeOutput(
        newsletter=newsletter,
        html=html,
        statistics=content_statistics(newsletter.categorized_news),
    )


def run(
    inp: ComposeInput,
    *,
    newsletter_repo: NewsletterRepoPort,
    content_repo: ContentRepoPort,
    renderer: RendererPort,
    time: TimePort,
    rules: Rules | None = None,
) -> ComposeOutput:
    """Main entry point for the composition component."""
    if isinstance(inp, ComposeInput):
        return run_compose(inp, newsletter_repo, content_repo, renderer, time, rules)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
