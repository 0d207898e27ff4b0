from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from .models import ClipRecord
from .paths import DEFAULT_IDENTITY, PathIdentity


@dataclass
class Reconciliation:
    """
    Result of comparing scanned files against local catalog records.

    matched:         (path on disk, catalog record) pairs, one per scanned path
    matched_records: every catalog record whose file was found, once each
    new:             paths on disk with no catalog record
    missing:         catalog records whose file was not found by the scan

    Paths are partitioned by matched + new, records by matched_records +
    missing. The two matched counts differ only when identity keys collide:
    paths differing by case on a case-sensitive disk share one record, and
    duplicate records for one path share that path.
    """

    matched: List[Tuple[str, ClipRecord]] = field(default_factory=list)
    matched_records: List[ClipRecord] = field(default_factory=list)
    new: List[str] = field(default_factory=list)
    missing: List[ClipRecord] = field(default_factory=list)

    @property
    def total_scanned(self) -> int:
        return len(self.matched) + len(self.new)


def reconcile(
    filesystem_paths: Iterable[str],
    catalog_records: Iterable[ClipRecord],
    identity: PathIdentity = DEFAULT_IDENTITY,
) -> Reconciliation:
    records = [r for r in catalog_records if r.is_local]
    by_key: Dict[str, List[ClipRecord]] = {}
    for record in records:
        by_key.setdefault(identity.key(record.location), []).append(record)

    result = Reconciliation()
    matched_ids = set()

    for path in filesystem_paths:
        group = by_key.get(identity.key(path))
        if not group:
            result.new.append(path)
            continue
        # Duplicate records all count as found; the first one represents the path.
        result.matched.append((path, group[0]))
        for record in group:
            if record.id not in matched_ids:
                matched_ids.add(record.id)
                result.matched_records.append(record)

    result.missing = [r for r in records if r.id not in matched_ids]
    return result
