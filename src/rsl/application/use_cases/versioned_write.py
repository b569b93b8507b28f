from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Protocol, TypeVar

from rsl.application.metrics.ledger import record_optimistic_retry
from rsl.application.ports.repositories import OptimisticConcurrencyError
from rsl.domain.common.errors import ConcurrentModificationError, NotFoundError

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 3


class Versioned(Protocol):
    @property
    def version(self) -> int: ...


T = TypeVar("T", bound=Versioned)


@dataclass(frozen=True)
class VersionedWrite(Generic[T]):
    before: T
    after: T | None
    attempts: int

    @property
    def changed(self) -> bool:
        return self.after is not None


def apply_versioned_write(
    *,
    entity: str,
    load: Callable[[], T | None],
    mutate: Callable[[T], T | None],
    save: Callable[[T, int], T],
    missing_message: str,
    attempts: int = MAX_WRITE_ATTEMPTS,
) -> VersionedWrite[T]:
    """Read, mutate and conditionally write one record.

    ``mutate`` runs against the freshly read state on every attempt, so checks
    it performs (policy, state machine, duplicates) always see the state the
    write lands on. Returning ``None`` from ``mutate`` means nothing to write.
    """
    for attempt in range(1, attempts + 1):
        current = load()
        if current is None:
            raise NotFoundError(missing_message)

        updated = mutate(current)
        if updated is None:
            return VersionedWrite(before=current, after=None, attempts=attempt)

        try:
            persisted = save(updated, current.version)
        except OptimisticConcurrencyError:
            record_optimistic_retry(entity)
            logger.info(
                "version_conflict_retry",
                extra={"entity": entity, "attempt": attempt},
            )
            continue
        return VersionedWrite(before=current, after=persisted, attempts=attempt)

    raise ConcurrentModificationError(
        f"{entity} was modified concurrently, retry the request",
        details={"attempts": attempts},
    )
