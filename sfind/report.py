"""
Report Module

The result of one sfind run: a root record and the records related to it.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .entities import EntityKind


RawRecord = Dict[str, Any]

ROOT = 'root'


@dataclass(frozen=True)
class EntityRef:
    kind: EntityKind
    id: str
    relationship: str = ROOT


@dataclass(frozen=True)
class RelatedEntity:
    relationship: str
    ref: EntityRef
    record: RawRecord


@dataclass(frozen=True)
class Report:
    """
    Aggregated result of resolving a query.

    Attributes:
        query: Query as provided by the user
        root: Reference to the resolved root entity
        record: Fields of the root entity, in configured order
        related: Related entities, grouped by relationship label
        relationships: Labels that were expanded, in display order
        warnings: Non-fatal problems met while resolving
        matches: Number of records matching the query (1 unless ambiguous)
    """

    query: str
    root: EntityRef
    record: RawRecord
    related: Tuple[RelatedEntity, ...] = ()
    relationships: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    matches: int = 1

    def related_to(self, relationship: str) -> List[RelatedEntity]:
        """Return the related entities reached through the given label."""
        return [r for r in self.related if r.relationship == relationship]

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON serializable representation of the report."""
        return {
            'query': self.query,
            'matches': self.matches,
            'root': _entity_dict(self.root, self.record),
            'related': [_entity_dict(r.ref, r.record) for r in self.related],
            'warnings': list(self.warnings),
        }


def _entity_dict(ref: EntityRef, record: RawRecord) -> Dict[str, Any]:
    return {
        'kind': ref.kind.value,
        'id': ref.id,
        'relationship': ref.relationship,
        'fields': dict(record),
    }


@dataclass
class ReportBuilder:
    """Mutable accumulator used by the finder while expanding the root."""

    query: str
    root: EntityRef
    record: RawRecord
    matches: int = 1
    related: List[RelatedEntity] = field(default_factory=list)
    relationships: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_group(self, relationship: str, kind: EntityKind,
                  records: List[RawRecord], warning: Optional[str] = None):
        self.relationships.append(relationship)
        for record in records:
            ref = EntityRef(kind, record.get('Id') or '', relationship)
            self.related.append(RelatedEntity(relationship, ref, record))
        if warning:
            self.warnings.append(warning)

    def warn(self, message: str):
        self.warnings.append(message)

    def build(self) -> Report:
        return Report(
            query=self.query,
            root=self.root,
            record=self.record,
            related=tuple(self.related),
            relationships=tuple(self.relationships),
            warnings=tuple(self.warnings),
            matches=self.matches,
        )
