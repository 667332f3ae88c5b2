"""Repetition normalizer for chat messages bound for speech.

Cleaning runs as an ordered pipeline of pure passes::

    strip_urls → collapse_char_runs → collapse_phrase_runs
               → collapse_word_runs → truncate

Each pass takes the running :class:`CleaningState` and returns a new one.
``was_spam`` is OR-ed across passes, ``repetitions_found`` keeps the
maximum and ``pattern`` keeps the first one reported.

A message that is nothing but a URL is dropped entirely before any pass
runs; URLs embedded in a longer message are cut out by ``strip_urls``.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from ..schemas.cleaning import CleanerOptions, CleaningResult

logger = logging.getLogger(__name__)

ELLIPSIS = "..."
MAX_PHRASE_WORDS = 5
MIN_PHRASE_WORDS = 2

_CHAR_RUN = re.compile(r"(.)\1{2,}")
_WHITESPACE = re.compile(r"\s+")
_BARE_HOST = re.compile(r"^(www\.)?[a-z0-9-]+(\.[a-z0-9-]+)+([/?].*)?$", re.IGNORECASE)
_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*$", re.IGNORECASE)

# Applied in order; each pattern sees the output of the previous one.
_EMBEDDED_URLS: Tuple["re.Pattern[str]", ...] = (
    re.compile(r"https?://\S+", re.IGNORECASE),
    re.compile(r"www\.\S+", re.IGNORECASE),
    re.compile(r"\S+\.(?:com|net|org|edu|gov|mil|info|biz|tv)\S*", re.IGNORECASE),
    re.compile(r"\S+\.twitch\.\S+", re.IGNORECASE),
    re.compile(r"tmi\.twitch\.tv", re.IGNORECASE),
    # Channel names
    re.compile(r"#[a-zA-Z0-9_]+"),
    # Colon-prefixed domains (IRC prefixes)
    re.compile(r":[a-zA-Z0-9_]+\.\S+"),
)


@dataclass(frozen=True)
class CleaningState:
    """Intermediate text plus the spam evidence gathered so far."""

    text: str
    was_spam: bool = False
    repetitions_found: int = 0
    pattern: Optional[str] = None

    def merge(self, text: str, repetitions: int, pattern: Optional[str]) -> "CleaningState":
        """Fold one spam-positive pass into the running state."""
        return replace(
            self,
            text=text,
            was_spam=True,
            repetitions_found=max(self.repetitions_found, repetitions),
            pattern=self.pattern or pattern or None,
        )


CleaningPass = Callable[[CleaningState, CleanerOptions], CleaningState]


def is_url(text: Any) -> bool:
    """Return True when ``text`` as a whole is a URL, with or without a scheme."""
    if not isinstance(text, str):
        return False
    candidate = text.strip()
    if not candidate or _WHITESPACE.search(candidate):
        return False

    try:
        parts = urlsplit(candidate)
    except ValueError:
        parts = None
    if parts is not None and parts.scheme and _SCHEME.match(parts.scheme) and parts.netloc:
        return True

    return bool(_BARE_HOST.match(candidate))


def _fold(text: str, options: CleanerOptions) -> str:
    return text if options.case_sensitive else text.lower()


def _reduction_percentage(original: str, cleaned: str) -> int:
    if not original:
        return 0
    # Half-up rounding, independent of round()'s banker's rounding.
    return int(math.floor((1 - len(cleaned) / len(original)) * 100 + 0.5))


# ----------------------------------------------------------------------
# Passes
# ----------------------------------------------------------------------


def strip_urls(state: CleaningState, options: CleanerOptions) -> CleaningState:
    """Remove embedded links and chat-protocol tokens, then tidy whitespace."""
    text = state.text
    for pattern in _EMBEDDED_URLS:
        text = pattern.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return replace(state, text=text)


def collapse_char_runs(state: CleaningState, options: CleanerOptions) -> CleaningState:
    """Squash runs like ``!!!!!`` down to two characters."""
    longest = 0
    spam_char: Optional[str] = None
    for match in _CHAR_RUN.finditer(state.text):
        length = len(match.group(0))
        if length >= options.min_repetitions:
            longest = max(longest, length)
            spam_char = match.group(1)

    if not longest:
        return state

    cleaned = _CHAR_RUN.sub(lambda match: match.group(1) * 2, state.text)
    return state.merge(cleaned, longest, spam_char)


def _find_phrase_run(
    words: Sequence[str], phrase_length: int, options: CleanerOptions
) -> Optional[Tuple[int, int]]:
    """Locate the leftmost phrase of ``phrase_length`` words repeated back to back.

    Returns ``(start, repetitions)`` or None.
    """
    minimum = options.min_repetitions
    total = len(words)
    if total < phrase_length * minimum:
        return None

    for start in range(total - phrase_length * minimum + 1):
        phrase = _fold(" ".join(words[start : start + phrase_length]), options)
        repetitions = 1
        cursor = start + phrase_length
        while cursor + phrase_length <= total:
            following = _fold(" ".join(words[cursor : cursor + phrase_length]), options)
            if following != phrase:
                break
            repetitions += 1
            cursor += phrase_length
        if repetitions >= minimum:
            return start, repetitions
    return None


def collapse_phrase_runs(state: CleaningState, options: CleanerOptions) -> CleaningState:
    """Replace one back-to-back repeated phrase with a single copy.

    Longer phrases are tried first and only the first run found is
    collapsed; a second distinct run needs another ``clean()`` call.
    """
    words = state.text.split()
    longest_phrase = min(MAX_PHRASE_WORDS, len(words) // options.min_repetitions)

    for phrase_length in range(longest_phrase, MIN_PHRASE_WORDS - 1, -1):
        found = _find_phrase_run(words, phrase_length, options)
        if found is None:
            continue
        start, repetitions = found
        phrase = " ".join(words[start : start + phrase_length])
        before = " ".join(words[:start])
        after = " ".join(words[start + phrase_length * repetitions :])
        cleaned = " ".join(part for part in (before, phrase, after) if part.strip())
        return state.merge(cleaned, repetitions, phrase)

    return state


def collapse_word_runs(state: CleaningState, options: CleanerOptions) -> CleaningState:
    """Keep one copy of any word repeated ``min_repetitions`` times or more in a row."""
    words = state.text.split()
    if len(words) < options.min_repetitions:
        return state

    kept: List[str] = []
    longest = 0
    spam_word: Optional[str] = None
    index = 0
    while index < len(words):
        current = words[index]
        folded = _fold(current, options)
        run = 1
        while index + run < len(words) and _fold(words[index + run], options) == folded:
            run += 1

        if run >= options.min_repetitions:
            kept.append(current)
            longest = max(longest, run)
            spam_word = current
        else:
            kept.extend(words[index : index + run])
        index += run

    if longest < options.min_repetitions:
        return state
    return state.merge(" ".join(kept), longest, spam_word)


def truncate(state: CleaningState, options: CleanerOptions) -> CleaningState:
    """Cap the text at ``max_length`` characters, ellipsis included."""
    if len(state.text) <= options.max_length:
        return state
    cut = state.text[: options.max_length - len(ELLIPSIS)] + ELLIPSIS
    return replace(state, text=cut)


PIPELINE: Tuple[CleaningPass, ...] = (
    strip_urls,
    collapse_char_runs,
    collapse_phrase_runs,
    collapse_word_runs,
    truncate,
)


class SpamCleaner:
    """Apply the cleaning pipeline with a fixed set of options."""

    def __init__(
        self,
        options: Optional[CleanerOptions] = None,
        *,
        passes: Sequence[CleaningPass] = PIPELINE,
    ) -> None:
        self._options = options or CleanerOptions()
        self._passes = tuple(passes)

    @property
    def options(self) -> CleanerOptions:
        return self._options

    def update_options(self, **changes: Any) -> CleanerOptions:
        """Merge new option values over the current ones."""
        merged = self._options.model_dump()
        merged.update({key: value for key, value in changes.items() if value is not None})
        self._options = CleanerOptions.model_validate(merged)
        return self._options

    def clean(self, message: Optional[str]) -> CleaningResult:
        original = message or ""
        text = original.strip()

        if not text or is_url(text):
            if text:
                logger.debug("Dropping bare URL message: %s", text)
            return CleaningResult(
                original=original,
                cleaned="",
                reduction_percentage=_reduction_percentage(original, ""),
            )

        state = CleaningState(text=text)
        for cleaning_pass in self._passes:
            state = cleaning_pass(state, self._options)

        return CleaningResult(
            original=original,
            cleaned=state.text,
            was_spam=state.was_spam,
            repetitions_found=state.repetitions_found,
            pattern=state.pattern,
            reduction_percentage=_reduction_percentage(original, state.text),
        )

    def clean_batch(self, messages: Iterable[Optional[str]]) -> List[CleaningResult]:
        return [self.clean(message) for message in messages]


def create_cleaner(options: Optional[CleanerOptions] = None) -> SpamCleaner:
    return SpamCleaner(options)


def quick_clean(message: Any, options: Optional[CleanerOptions] = None) -> Any:
    """Return only the cleaned text; non-text values come back untouched."""
    if not isinstance(message, str):
        return message
    return SpamCleaner(options).clean(message).cleaned


__all__ = [
    "CleaningPass",
    "CleaningState",
    "PIPELINE",
    "SpamCleaner",
    "collapse_char_runs",
    "collapse_phrase_runs",
    "collapse_word_runs",
    "create_cleaner",
    "is_url",
    "quick_clean",
    "strip_urls",
    "truncate",
]
