"""Placeholder substitution over nested event payloads.

Patterns are literal text (``{likes}``, ``nickname``...) mapped to a key in
the event data plus a fallback. Strings are rewritten, lists, tuples and
plain dicts are rebuilt recursively, and every other value is returned as
the very same object.

All patterns are matched in one left-to-right scan of the input, so a
substituted value is never searched for further patterns. Where two patterns
start at the same position, the one declared first wins.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping, Optional, Tuple

from ..schemas.replacements import (
    ReplacementOption,
    ReplacementRecord,
    ReplacerConfig,
    TrackedReplacement,
)

logger = logging.getLogger(__name__)

_BACKSLASH = "\\"

_DEFAULT_TABLE: Tuple[Tuple[str, str, str], ...] = (
    ("uniqueId", "uniqueId", "testUser"),
    ("uniqueid", "uniqueId", "testUser"),
    ("nickname", "nickname", "testUser"),
    ("comment", "comment", "testComment"),
    ("content", "content", "testMessage"),
    ("{milestoneLikes}", "likeCount", "50testLikes"),
    ("{likes}", "likeCount", "50testLikes"),
    ("message", "comment", "testcomment"),
    ("giftName", "giftName", "testgiftName"),
    ("giftname", "giftName", "testgiftName"),
    ("repeatCount", "repeatCount", "123"),
    ("repeatcount", "repeatCount", "123"),
    ("playername", "playerName", "@a"),
    ("diamonds", "diamondCount", "50testDiamonds"),
    ("likecount", "likeCount", "50testLikes"),
    ("followRole", "followRole", "followRole 0"),
    ("userId", "userId", "1235646"),
    ("teamMemberLevel", "teamMemberLevel", "teamMemberLevel 0"),
    ("subMonth", "subMonth", "subMonth 0"),
    ("user", "user", ""),
    ("msg", "msg", ""),
)


def default_replacements() -> Dict[str, ReplacementOption]:
    """Return the stock placeholder table in application order."""
    return {
        pattern: ReplacementOption(data_key=key, default_value=default)
        for pattern, key, default in _DEFAULT_TABLE
    }


class TemplateReplacer:
    """Render placeholder patterns with values taken from event data."""

    def __init__(
        self,
        replacements: Optional[Mapping[str, ReplacementOption | Mapping[str, Any]]] = None,
        *,
        remove_backslashes: bool = True,
        instance_id: str = "default",
    ) -> None:
        self._config = ReplacerConfig(
            instance_id=instance_id,
            replacements=self._coerce_table(replacements),
            remove_backslashes=remove_backslashes,
        )
        self._compiled = self._compile(self._config)

    @property
    def config(self) -> ReplacerConfig:
        return self._config

    def configure(
        self,
        replacements: Optional[Mapping[str, ReplacementOption | Mapping[str, Any]]] = None,
        *,
        remove_backslashes: Optional[bool] = None,
    ) -> ReplacerConfig:
        """Swap in a new placeholder table and/or backslash policy."""
        updates: Dict[str, Any] = {}
        if replacements is not None:
            updates["replacements"] = self._coerce_table(replacements)
        if remove_backslashes is not None:
            updates["remove_backslashes"] = remove_backslashes
        if updates:
            config = self._config.model_copy(update=updates)
            compiled = self._compile(config)
            self._config, self._compiled = config, compiled
            logger.debug(
                "Replacer %s reconfigured with %d pattern(s)",
                config.instance_id,
                len(config.replacements),
            )
        return self._config

    def replace(self, value: Any, data: Optional[Mapping[str, Any]] = None) -> Any:
        """Substitute placeholders everywhere inside ``value``."""
        return self._walk(value, data or {}, None)

    def replace_with_tracking(
        self, value: Any, data: Optional[Mapping[str, Any]] = None
    ) -> TrackedReplacement:
        """Substitute placeholders and record which pattern produced which value.

        Records are keyed by the substituted value, so two patterns that
        resolve to the same text leave only the later record behind.
        """
        records: Dict[str, ReplacementRecord] = {}
        output = self._walk(value, data or {}, records)
        return TrackedReplacement(output=output, records=records)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce_table(
        replacements: Optional[Mapping[str, ReplacementOption | Mapping[str, Any]]],
    ) -> Dict[str, ReplacementOption]:
        if replacements is None:
            return default_replacements()
        table: Dict[str, ReplacementOption] = {}
        for pattern, option in replacements.items():
            if isinstance(option, ReplacementOption):
                table[pattern] = option
            else:
                table[pattern] = ReplacementOption.model_validate(option)
        return table

    @staticmethod
    def _compile(config: ReplacerConfig) -> Optional["re.Pattern[str]"]:
        """One alternation over every pattern; earlier entries win at a shared position."""
        patterns = [re.escape(pattern) for pattern in config.replacements if pattern]
        if not patterns:
            return None
        return re.compile("|".join(patterns))

    def _walk(
        self,
        value: Any,
        data: Mapping[str, Any],
        records: Optional[Dict[str, ReplacementRecord]],
    ) -> Any:
        if isinstance(value, str):
            return self._replace_in_text(value, data, records)
        if isinstance(value, list):
            return [self._walk(item, data, records) for item in value]
        if isinstance(value, tuple):
            return tuple(self._walk(item, data, records) for item in value)
        if type(value) is dict:
            return {key: self._walk(item, data, records) for key, item in value.items()}
        return value

    @staticmethod
    def _resolve(option: ReplacementOption, data: Mapping[str, Any]) -> str:
        raw = data.get(option.data_key)
        if raw is None:
            return option.default_value
        if isinstance(raw, bool):
            # Flags render lowercase.
            return "true" if raw else "false"
        return str(raw)

    def _replace_in_text(
        self,
        text: str,
        data: Mapping[str, Any],
        records: Optional[Dict[str, ReplacementRecord]],
    ) -> str:
        config, regex = self._config, self._compiled
        if regex is None:
            current = text
        else:
            seen: Dict[str, None] = {}

            def substitute(match: "re.Match[str]") -> str:
                pattern = match.group(0)
                seen.setdefault(pattern, None)
                return self._resolve(config.replacements[pattern], data)

            current = regex.sub(substitute, text)

            if records is not None:
                for pattern, option in config.replacements.items():
                    if pattern not in seen:
                        continue
                    replacement = self._resolve(option, data)
                    records[replacement] = ReplacementRecord(
                        original_pattern=pattern,
                        data_key=option.data_key,
                        replaced_value=replacement,
                    )

        if config.remove_backslashes:
            current = current.replace(_BACKSLASH, "")
        return current


__all__ = ["TemplateReplacer", "default_replacements"]
