"""
Multi-source merge with identity-based deduplication.

Sources are listed in trust order. The first source that reports an entity
wins; later reports of the same entity are dropped whole, never merged field
by field. A source that fails contributes nothing and is named in the result.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import (
    Awaitable,
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    TypeVar,
)

from trendline.utils.concurrency import gather_settled
from trendline.utils.errors import TransportError

logger = logging.getLogger(__name__)

R = TypeVar("R")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_name(name: Optional[str]) -> Optional[str]:
    """``"LeBron  James Jr."`` -> ``"lebron_james_jr"``; blank -> None."""
    if not name:
        return None
    slug = _NON_ALNUM.sub("_", name.lower()).strip("_")
    return slug or None


@dataclass(frozen=True)
class Identity:
    """Everything known about who a record describes."""

    provider_id: Optional[str] = None
    name_key: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None

    @classmethod
    def of(
        cls,
        provider_id: Optional[str],
        name: Optional[str],
        team_id: Optional[str] = None,
        team_name: Optional[str] = None,
    ) -> "Identity":
        return cls(
            provider_id=provider_id or None,
            name_key=normalize_name(name),
            team_id=team_id or None,
            team_name=normalize_name(team_name),
        )

    @property
    def is_empty(self) -> bool:
        return not self.provider_id and not self.name_key

    @property
    def key(self) -> Optional[str]:
        """Most specific stable key: the provider id, else name plus team."""
        if self.provider_id:
            return self.provider_id
        if self.name_key:
            return f"synthetic_{self.name_key}_{self.team_id or self.team_name or 'unknown'}"
        return None

    def contradicts(self, other: "Identity") -> bool:
        if self.provider_id and other.provider_id and self.provider_id != other.provider_id:
            return True
        if self.team_id and other.team_id:
            return self.team_id != other.team_id
        if self.team_name and other.team_name:
            return self.team_name != other.team_name
        return False


@dataclass(frozen=True)
class SourcedRecord(Generic[R]):
    record: R
    source: str
    identity: Identity

    @property
    def key(self) -> str:
        return self.identity.key or ""


@dataclass(frozen=True)
class MergeResult(Generic[R]):
    records: Tuple[SourcedRecord[R], ...] = ()
    failed_sources: Tuple[str, ...] = ()
    source_counts: Dict[str, int] = field(default_factory=dict)
    skipped: int = 0

    @property
    def items(self) -> Tuple[R, ...]:
        return tuple(r.record for r in self.records)

    @property
    def all_failed(self) -> bool:
        """True when at least one source failed and none answered."""
        return bool(self.failed_sources) and not self.source_counts

    def __len__(self) -> int:
        return len(self.records)


class MultiSourceMerger(Generic[R]):
    """
    Combine record batches from several sources into one deduplicated list.

    ``identify`` maps a record to its ``Identity``. A record is a duplicate
    when its provider id was already kept, or when a kept record has the same
    normalized name and neither the ids nor the teams (where both are known)
    contradict it or any report already folded into that record. Records
    without any identity are skipped.

    ``source_timeout`` bounds each source as a whole in ``fetch_and_merge``;
    a source that overruns it counts as failed.
    """

    def __init__(
        self,
        identify: Callable[[R], Identity],
        label: str = "merge",
        source_timeout: Optional[float] = None,
    ):
        self.identify = identify
        self.label = label
        self.source_timeout = source_timeout

    def merge(
        self,
        batches: Sequence[Tuple[str, Optional[Iterable[R]]]],
        failed_sources: Sequence[str] = (),
    ) -> MergeResult[R]:
        """
        Merge ``(source_name, records)`` pairs in the order given.

        A batch of ``None`` marks a source that failed.
        """
        kept: List[SourcedRecord[R]] = []
        seen_ids: Set[str] = set()
        seen_keys: Set[str] = set()
        by_name: Dict[str, List[List[Identity]]] = {}
        counts: Dict[str, int] = {}
        failed = list(failed_sources)
        skipped = 0

        for source, records in batches:
            if records is None:
                if source not in failed:
                    failed.append(source)
                continue

            counts[source] = 0
            for record in records:
                identity = self.identify(record)
                if identity.is_empty:
                    skipped += 1
                    continue
                if self._is_duplicate(identity, seen_ids, seen_keys, by_name):
                    continue

                kept.append(SourcedRecord(record=record, source=source, identity=identity))
                counts[source] += 1
                if identity.provider_id:
                    seen_ids.add(identity.provider_id)
                seen_keys.add(identity.key)
                if identity.name_key:
                    by_name.setdefault(identity.name_key, []).append([identity])

        logger.debug(
            f"[{self.label}] kept {len(kept)} records "
            f"({', '.join(f'{s}={n}' for s, n in counts.items()) or 'no sources'}); "
            f"failed: {failed or 'none'}"
        )
        if skipped:
            logger.debug(f"[{self.label}] skipped {skipped} records without identity")

        return MergeResult(
            records=tuple(kept),
            failed_sources=tuple(failed),
            source_counts=counts,
            skipped=skipped,
        )

    @staticmethod
    def _is_duplicate(
        identity: Identity,
        seen_ids: Set[str],
        seen_keys: Set[str],
        by_name: Dict[str, List[List[Identity]]],
    ) -> bool:
        if identity.provider_id and identity.provider_id in seen_ids:
            return True
        if identity.key in seen_keys:
            return True
        if identity.name_key:
            # each group is one kept record plus the reports folded into it
            for group in by_name.get(identity.name_key, ()):
                if not any(identity.contradicts(other) for other in group):
                    group.append(identity)
                    return True
        return False

    async def fetch_and_merge(
        self,
        sources: Sequence[Tuple[str, Callable[[], Awaitable[Iterable[R]]]]],
    ) -> MergeResult[R]:
        """Fetch every source concurrently, then merge in the order given."""
        settled = await gather_settled(
            [(name, self._fetch_source(name, fetch)) for name, fetch in sources],
            label=self.label,
        )
        batches: List[Tuple[str, Optional[Iterable[R]]]] = [
            (s.name, s.value if s.ok else None) for s in settled
        ]
        return self.merge(batches)

    async def _fetch_source(self, name: str, fetch: Callable[[], Awaitable[Iterable[R]]]) -> Iterable[R]:
        if self.source_timeout is None:
            return await fetch()
        try:
            return await asyncio.wait_for(fetch(), self.source_timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(self.label, f"{name} source exceeded {self.source_timeout:g}s", e) from e
