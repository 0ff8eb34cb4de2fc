"""Canonicalization stage: pick the owning batch for every serial."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

    from .normalize import NormalizedRecord


@dataclass(frozen=True, slots=True)
class CanonicalRecord:
    """The winning record for a serial plus every batch the serial was seen in."""

    record: NormalizedRecord
    batch_numbers: frozenset[str]

    @property
    def serial(self) -> str:
        serial = self.record.serial
        if serial is None:
            raise ValueError("Canonical records always carry a serial")
        return serial

    @property
    def batch_number(self) -> str:
        return self.record.batch_number

    @property
    def losing_batches(self) -> frozenset[str]:
        return self.batch_numbers - {self.record.batch_number}


@dataclass(slots=True)
class CanonicalSet:
    """Canonical records keyed by serial, plus serial-less records passed through."""

    canonical: list[CanonicalRecord] = field(default_factory=list)
    serialless: list[NormalizedRecord] = field(default_factory=list)

    def serials(self) -> set[str]:
        return {entry.serial for entry in self.canonical}

    def without(self, serials: Collection[str]) -> CanonicalSet:
        if not serials:
            return self
        excluded = set(serials)
        return CanonicalSet(
            canonical=[entry for entry in self.canonical if entry.serial not in excluded],
            serialless=list(self.serialless),
        )

    def __len__(self) -> int:
        return len(self.canonical) + len(self.serialless)


def canonicalize(records: Iterable[NormalizedRecord]) -> CanonicalSet:
    """Group ``records`` by serial and keep the max by ``(batch_timestamp, rank)``.

    Ties only occur between rows of the same batch; the later row wins. Output
    order follows the first appearance of each serial.
    """

    winners: dict[str, NormalizedRecord] = {}
    seen_in: dict[str, set[str]] = {}
    serialless: list[NormalizedRecord] = []

    for record in records:
        serial = record.serial
        if serial is None:
            serialless.append(record)
            continue
        current = winners.get(serial)
        if current is None or record.sort_key >= current.sort_key:
            winners[serial] = record
        seen_in.setdefault(serial, set()).add(record.batch_number)

    canonical = [
        CanonicalRecord(record=record, batch_numbers=frozenset(seen_in[serial]))
        for serial, record in winners.items()
    ]
    return CanonicalSet(canonical=canonical, serialless=serialless)
