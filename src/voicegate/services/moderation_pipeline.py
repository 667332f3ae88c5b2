"""Decide whether an incoming stream event should be spoken, and as what text.

    payload → event_extraction → TemplateReplacer → remove_emotes
            → SpamCleaner → FilterManager.check_string → PipelineOutcome

Only outcomes with ``accepted=True`` carry text on to speech synthesis.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from ..schemas.events import PipelineOutcome
from ..schemas.filters import CheckOptions
from .emotes import remove_emotes
from .event_extraction import event_name_of, process_event_payload, select_display_text
from .filter_manager import FilterManager
from .spam_cleaner import SpamCleaner
from .template_replacer import TemplateReplacer

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "user msg"
DEFAULT_IGNORED_EVENTS = ("server", "join", "leave", "unknown")


class ModerationPipeline:
    """Run the render → clean → classify chain for one event at a time."""

    def __init__(
        self,
        replacer: TemplateReplacer,
        cleaner: SpamCleaner,
        filters: FilterManager,
        *,
        template: Any = DEFAULT_TEMPLATE,
        ignored_event_names: Iterable[str] = DEFAULT_IGNORED_EVENTS,
        check_options: Optional[CheckOptions] = None,
    ) -> None:
        self._replacer = replacer
        self._cleaner = cleaner
        self._filters = filters
        self._template = template
        self._ignored = frozenset(name.lower() for name in ignored_event_names)
        self._check_options = check_options or CheckOptions()

    @property
    def replacer(self) -> TemplateReplacer:
        return self._replacer

    @property
    def cleaner(self) -> SpamCleaner:
        return self._cleaner

    @property
    def filters(self) -> FilterManager:
        return self._filters

    def process_event(self, payload: Mapping[str, Any] | Any) -> PipelineOutcome:
        event_name = event_name_of(payload)
        user, msg = select_display_text(process_event_payload(payload))

        if not user and not msg:
            logger.info("Ignoring event %s without user or message", event_name)
            return PipelineOutcome(accepted=False, event_name=event_name, reason="empty")

        if event_name is not None and event_name.lower() in self._ignored:
            logger.info("Ignoring %s event from %s", event_name, user)
            return PipelineOutcome(
                accepted=False,
                user=user,
                msg=msg,
                event_name=event_name,
                reason="ignored_event",
            )

        rendered = self._replacer.replace(self._template, {"user": user, "msg": msg})
        outcome = self._moderate(remove_emotes(rendered))
        return outcome.model_copy(update={"user": user, "msg": msg, "event_name": event_name})

    def process_text(self, text: Optional[str]) -> PipelineOutcome:
        """Clean and classify free text that needs no template rendering."""
        return self._moderate(remove_emotes(text))

    def _moderate(self, text: str) -> PipelineOutcome:
        cleaning = self._cleaner.clean(text)
        verdict = self._filters.check_string(cleaning.cleaned, self._check_options)

        if verdict.is_blocked:
            logger.info("Blocked text (%s): %s", verdict.reason, cleaning.cleaned)
            return PipelineOutcome(
                accepted=False, reason="blocked", verdict=verdict, cleaning=cleaning
            )
        if not cleaning.cleaned:
            return PipelineOutcome(
                accepted=False, reason="cleaned_empty", verdict=verdict, cleaning=cleaning
            )

        logger.debug("Accepted text: %s", cleaning.cleaned)
        return PipelineOutcome(
            accepted=True,
            text=cleaning.cleaned,
            verdict=verdict,
            cleaning=cleaning,
        )


__all__ = ["DEFAULT_IGNORED_EVENTS", "DEFAULT_TEMPLATE", "ModerationPipeline"]
