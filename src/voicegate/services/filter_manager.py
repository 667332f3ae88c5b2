"""Allow/deny classification over named, persisted filter sets."""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from ..schemas.filters import (
    CheckOptions,
    CheckVerdict,
    DenyEntry,
    FilterSet,
    FilterStats,
    StoredFilterSet,
    utcnow,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _clean_items(items: Iterable[str]) -> List[str]:
    """Trim items, dropping blanks and repeats while keeping order."""
    seen: Dict[str, None] = {}
    for raw in items:
        item = str(raw).strip()
        if item:
            seen.setdefault(item, None)
    return list(seen)


def _dedupe_deny(entries: Iterable[DenyEntry]) -> Tuple[DenyEntry, ...]:
    """Collapse entries sharing a trimmed identity.

    The first occurrence keeps its position; the last occurrence supplies
    the kind and expiry.
    """
    merged: Dict[str, DenyEntry] = {}
    for entry in entries:
        merged[entry.identity] = entry
    return tuple(merged.values())


def _matches(text: str, candidate: str, options: CheckOptions) -> bool:
    if options.exact_match:
        return text == candidate
    if options.partial_match:
        return candidate in text
    return False


class FilterManager:
    """Keep filter sets in memory, answer checks, persist every change.

    Readers work on an immutable snapshot (a tuple of frozen ``FilterSet``
    models); writers build replacement sets under ``self._lock`` and swap
    the snapshot in one assignment, so a check never sees a half-written
    deny list.
    """

    def __init__(self, path: Optional[Path] = None, *, clock: Optional[Clock] = None) -> None:
        self._path = path
        self._clock: Clock = clock or utcnow
        self._lock = threading.Lock()
        self._filters: Tuple[FilterSet, ...] = ()
        self._load_from_disk()
        self.sweep_expired()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_from_disk(self) -> None:
        """Load filter sets and rehydrate their timestamps."""
        if self._path is None or not self._path.exists():
            self._filters = ()
            return

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Failed to read filters file %s: %s", self._path, exc)
            self._filters = ()
            return

        if not isinstance(raw, list):
            logger.error(
                "Filters file %s does not hold a list; starting empty", self._path
            )
            self._filters = ()
            return

        loaded: Dict[str, FilterSet] = {}
        for item in raw:
            try:
                filter_set = StoredFilterSet.model_validate(item).to_filter()
            except ValidationError as exc:
                logger.warning("Skipping invalid filter entry: %s", exc)
                continue
            if filter_set.id in loaded:
                logger.warning("Skipping duplicate filter id %s", filter_set.id)
                continue
            loaded[filter_set.id] = filter_set

        self._filters = tuple(loaded.values())
        logger.info("Loaded %d filter set(s) from %s", len(self._filters), self._path)

    def _save_to_disk(self, snapshot: Tuple[FilterSet, ...]) -> None:
        if self._path is None:
            return
        payload = [
            StoredFilterSet.from_filter(filter_set).model_dump(mode="json", by_alias=True)
            for filter_set in snapshot
        ]
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            serialized = json.dumps(payload, indent=2)
            self._path.write_text(serialized + "\n", encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to write filters file %s: %s", self._path, exc)

    def _commit(self, snapshot: Tuple[FilterSet, ...]) -> None:
        """Publish a new snapshot and persist it. Caller holds the lock."""
        self._filters = snapshot
        self._save_to_disk(snapshot)

    def _index_of(self, filter_id: str) -> Optional[int]:
        for index, filter_set in enumerate(self._filters):
            if filter_set.id == filter_id:
                return index
        return None

    def _mutate(
        self, filter_id: str, change: Callable[[FilterSet], Mapping[str, Any]]
    ) -> bool:
        with self._lock:
            index = self._index_of(filter_id)
            if index is None:
                logger.debug("Filter %s not found", filter_id)
                return False
            current = self._filters[index]
            updates = dict(change(current))
            updates["updated_at"] = self._clock()
            replacement = current.model_copy(update=updates)
            snapshot = self._filters[:index] + (replacement,) + self._filters[index + 1 :]
            self._commit(snapshot)
            return True

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def create_filter(
        self,
        deny_list: Iterable[str] = (),
        allow_list: Iterable[str] = (),
        filter_id: str = "default",
    ) -> FilterSet:
        """Create a new active filter set; ids must be unique."""
        with self._lock:
            if self._index_of(filter_id) is not None:
                raise ValueError(f"Filter already exists: {filter_id}")
            return self._create_locked(filter_id, deny_list, allow_list)

    def ensure_filter(self, filter_id: str = "default") -> FilterSet:
        """Return the filter set with ``filter_id``, creating it when absent."""
        with self._lock:
            index = self._index_of(filter_id)
            if index is not None:
                return self._filters[index]
            return self._create_locked(filter_id, (), ())

    def _create_locked(
        self, filter_id: str, deny_list: Iterable[str], allow_list: Iterable[str]
    ) -> FilterSet:
        now = self._clock()
        new_filter = FilterSet(
            id=filter_id,
            deny_list=_dedupe_deny(DenyEntry.permanent(item) for item in _clean_items(deny_list)),
            allow_list=tuple(_clean_items(allow_list)),
            created_at=now,
            updated_at=now,
        )
        self._commit(self._filters + (new_filter,))
        logger.info("Created filter %s", filter_id)
        return new_filter

    def update_filter(
        self,
        filter_id: str,
        deny_list: Optional[Iterable[str]] = None,
        allow_list: Optional[Iterable[str]] = None,
    ) -> bool:
        """Replace either list wholesale; new deny entries are permanent."""

        def change(current: FilterSet) -> Dict[str, Any]:
            updates: Dict[str, Any] = {}
            if deny_list is not None:
                updates["deny_list"] = _dedupe_deny(
                    DenyEntry.permanent(item) for item in _clean_items(deny_list)
                )
            if allow_list is not None:
                updates["allow_list"] = tuple(_clean_items(allow_list))
            return updates

        return self._mutate(filter_id, change)

    def add_to_deny_list(
        self,
        filter_id: str,
        items: Iterable[str],
        ttl_seconds: Optional[float] = None,
    ) -> bool:
        """Add deny entries; with ``ttl_seconds`` they expire after that long."""
        cleaned = _clean_items(items)
        expires_at = (
            self._clock() + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        )
        if expires_at is None:
            additions = [DenyEntry.permanent(item) for item in cleaned]
        else:
            additions = [DenyEntry.temporary(item, expires_at) for item in cleaned]

        def change(current: FilterSet) -> Dict[str, Any]:
            return {"deny_list": _dedupe_deny((*current.deny_list, *additions))}

        return self._mutate(filter_id, change)

    def remove_from_deny_list(self, filter_id: str, items: Iterable[str]) -> bool:
        targets = {str(item).strip() for item in items}

        def change(current: FilterSet) -> Dict[str, Any]:
            kept = tuple(entry for entry in current.deny_list if entry.identity not in targets)
            return {"deny_list": kept}

        return self._mutate(filter_id, change)

    def add_to_allow_list(self, filter_id: str, items: Iterable[str]) -> bool:
        cleaned = _clean_items(items)

        def change(current: FilterSet) -> Dict[str, Any]:
            additions = [item for item in cleaned if item not in current.allow_list]
            return {"allow_list": current.allow_list + tuple(additions)}

        return self._mutate(filter_id, change)

    def remove_from_allow_list(self, filter_id: str, items: Iterable[str]) -> bool:
        targets = {str(item).strip() for item in items}

        def change(current: FilterSet) -> Dict[str, Any]:
            return {
                "allow_list": tuple(item for item in current.allow_list if item not in targets)
            }

        return self._mutate(filter_id, change)

    def toggle_filter(self, filter_id: str, is_active: Optional[bool] = None) -> bool:
        """Set the active flag, or flip it when ``is_active`` is omitted."""

        def change(current: FilterSet) -> Dict[str, Any]:
            return {"is_active": (not current.is_active) if is_active is None else is_active}

        return self._mutate(filter_id, change)

    def delete_filter(self, filter_id: str) -> bool:
        with self._lock:
            index = self._index_of(filter_id)
            if index is None:
                return False
            self._commit(self._filters[:index] + self._filters[index + 1 :])
        logger.info("Deleted filter %s", filter_id)
        return True

    def clear_all(self) -> None:
        with self._lock:
            self._commit(())
        logger.info("Cleared all filters")

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check_string(
        self,
        text: Optional[str],
        options: CheckOptions | Mapping[str, Any] | None = None,
    ) -> CheckVerdict:
        """Classify ``text`` against every active filter set.

        Any allow match wins over every deny match. Deny entries past their
        expiry are ignored whether or not the sweep has removed them yet.
        """
        opts = CheckOptions.lenient(options)
        raw = text if isinstance(text, str) else ""
        processed = raw if opts.case_sensitive else raw.lower()
        now = self._clock()
        snapshot = self._filters

        matched_deny: List[DenyEntry] = []
        matched_allow: List[str] = []
        expiration_reason: Optional[str] = None

        for filter_set in snapshot:
            if not filter_set.is_active:
                continue

            for entry in filter_set.deny_list:
                if entry.is_expired(now):
                    continue
                candidate = entry.identity if opts.case_sensitive else entry.identity.lower()
                if not _matches(processed, candidate, opts):
                    continue
                matched_deny.append(entry)
                if expiration_reason is None and entry.expires_at is not None:
                    expiration_reason = f"Blocked until {entry.expires_at.isoformat()}"

            for item in filter_set.allow_list:
                candidate = item if opts.case_sensitive else item.lower()
                if _matches(processed, candidate, opts):
                    matched_allow.append(item)

        if matched_allow:
            return CheckVerdict(
                is_allowed=True,
                is_blocked=False,
                matched_deny=matched_deny,
                matched_allow=matched_allow,
                reason="whitelist",
            )
        if matched_deny:
            return CheckVerdict(
                is_allowed=False,
                is_blocked=True,
                matched_deny=matched_deny,
                matched_allow=matched_allow,
                reason="blacklist",
                expiration_reason=expiration_reason,
            )
        return CheckVerdict(
            is_allowed=True,
            is_blocked=False,
            matched_deny=matched_deny,
            matched_allow=matched_allow,
            reason="none",
        )

    def is_allowed(
        self, text: Optional[str], options: CheckOptions | Mapping[str, Any] | None = None
    ) -> bool:
        return self.check_string(text, options).is_allowed

    def is_blocked(
        self, text: Optional[str], options: CheckOptions | Mapping[str, Any] | None = None
    ) -> bool:
        return self.check_string(text, options).is_blocked

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_filter(self, filter_id: str) -> Optional[FilterSet]:
        for filter_set in self._filters:
            if filter_set.id == filter_id:
                return filter_set
        return None

    def get_all_filters(self, active_only: bool = False) -> List[FilterSet]:
        snapshot = self._filters
        if active_only:
            return [filter_set for filter_set in snapshot if filter_set.is_active]
        return list(snapshot)

    def get_stats(self) -> FilterStats:
        snapshot = self._filters
        now = self._clock()
        total = len(snapshot)
        active = sum(1 for filter_set in snapshot if filter_set.is_active)
        return FilterStats(
            total_filters=total,
            active_filters=active,
            inactive_filters=total - active,
            total_deny_items=sum(
                1
                for filter_set in snapshot
                for entry in filter_set.deny_list
                if not entry.is_expired(now)
            ),
            total_allow_items=sum(len(filter_set.allow_list) for filter_set in snapshot),
        )

    def search_filters(self, query: str) -> List[FilterSet]:
        """Filter sets with any deny or allow item containing ``query`` (any case)."""
        needle = query.lower()
        return [
            filter_set
            for filter_set in self._filters
            if any(needle in entry.identity.lower() for entry in filter_set.deny_list)
            or any(needle in item.lower() for item in filter_set.allow_list)
        ]

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Drop expired deny entries; returns how many were removed.

        Only touched filter sets get a new ``updated_at`` and the table is
        written only when something was removed.
        """
        with self._lock:
            moment = now or self._clock()
            removed = 0
            changed = False
            rebuilt: List[FilterSet] = []
            for filter_set in self._filters:
                kept = tuple(entry for entry in filter_set.deny_list if not entry.is_expired(moment))
                dropped = len(filter_set.deny_list) - len(kept)
                if dropped:
                    removed += dropped
                    changed = True
                    filter_set = filter_set.model_copy(
                        update={"deny_list": kept, "updated_at": moment}
                    )
                rebuilt.append(filter_set)
            if changed:
                self._commit(tuple(rebuilt))

        if removed:
            logger.info("Swept %d expired deny entr%s", removed, "y" if removed == 1 else "ies")
        return removed


__all__ = ["Clock", "FilterManager"]
