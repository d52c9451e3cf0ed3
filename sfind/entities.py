"""
Entities Module

The Salesforce objects sfind knows about, how their ids look, which fields are
fetched for them and how they relate to each other.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple


class EntityKind(Enum):
    """Salesforce objects supported by sfind, valued by their API name."""

    ACCOUNT = 'Account'
    ASSET = 'Asset'
    OPPORTUNITY = 'Opportunity'
    CONTACT = 'Contact'

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, name: str) -> 'EntityKind':
        """
        Return the kind with the given API name.

        Raises:
            ValueError: if the name is not a supported object
        """
        for kind in cls:
            if kind.value == name:
                return kind
        raise ValueError(f"invalid entity {name!r}")


# Record id key prefixes. Ids are 15 (case-sensitive) or 18 characters long.
ID_PREFIXES = {
    '001': EntityKind.ACCOUNT,
    '02i': EntityKind.ASSET,
    '003': EntityKind.CONTACT,
    '006': EntityKind.OPPORTUNITY,
}
ID_LENGTHS = (15, 18)

FIELD_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$')


def is_valid_field_name(name: str) -> bool:
    """Check that a field name (or relationship path) is a SOQL identifier."""
    return bool(FIELD_RE.match(name))


@dataclass(frozen=True)
class FieldSpec:
    """A field of a given entity kind, e.g. Contact.Birthdate."""

    kind: EntityKind
    field: str

    def __str__(self):
        return f"{self.kind}.{self.field}"

    @classmethod
    def parse(cls, text: str) -> 'FieldSpec':
        """
        Create a FieldSpec from its string representation.

        Only the first dot separates the entity from the field, so relationship
        paths like "Asset.Product2.Family" are accepted.

        Raises:
            ValueError: if the entity is unknown or the field name is invalid
        """
        kind_name, sep, field = text.strip().partition('.')
        if not sep or not field:
            raise ValueError(f"invalid entity field {text!r}")
        try:
            kind = EntityKind.parse(kind_name)
        except ValueError as e:
            raise ValueError(f"cannot parse entity field {text!r}: {e}")
        if not is_valid_field_name(field):
            raise ValueError(f"invalid field name {field!r} in {text!r}")
        return cls(kind, field)


@dataclass(frozen=True)
class Relationship:
    """An edge of the relationship graph, from a parent to its children."""

    label: str
    kind: EntityKind
    foreign_key: str


# Account is the hub: every other kind hangs off it.
RELATIONSHIPS: Dict[EntityKind, Tuple[Relationship, ...]] = {
    EntityKind.ACCOUNT: (
        Relationship('opportunities', EntityKind.OPPORTUNITY, 'AccountId'),
        Relationship('assets', EntityKind.ASSET, 'AccountId'),
        Relationship('contacts', EntityKind.CONTACT, 'AccountId'),
    ),
}

# Field linking a record to its account, per kind.
ACCOUNT_KEYS: Dict[EntityKind, str] = {
    EntityKind.ASSET: 'AccountId',
    EntityKind.OPPORTUNITY: 'AccountId',
    EntityKind.CONTACT: 'AccountId',
}

ACCOUNT_LABEL = 'account'

DEFAULT_FIELDS: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.ACCOUNT: (
        'Id', 'Name', 'AccountNumber',
        'BillingStreet', 'BillingCity', 'BillingState',
        'BillingPostalCode', 'BillingCountry',
        'CreatedDate', 'LastModifiedDate',
    ),
    EntityKind.ASSET: (
        'Id', 'Name', 'AccountId', 'ContactId',
        'Product2.ProductCode', 'Product2.Name',
        'Price', 'Quantity', 'Status',
        'PurchaseDate', 'InstallDate', 'UsageEndDate',
        'CreatedDate', 'LastModifiedDate',
    ),
    EntityKind.CONTACT: (
        'Id', 'Email', 'FirstName', 'LastName', 'AccountId',
        'CreatedDate', 'LastModifiedDate',
    ),
    EntityKind.OPPORTUNITY: (
        'Id', 'Name', 'AccountId', 'RecordType.Name', 'StageName',
        'Amount', 'CurrencyIsoCode', 'IsWon', 'IsClosed', 'CloseDate',
        'LeadSource', 'CreatedDate', 'LastModifiedDate',
    ),
}

DEFAULT_SEARCH: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.ACCOUNT: (),
    EntityKind.ASSET: (),
    EntityKind.CONTACT: ('Email',),
    EntityKind.OPPORTUNITY: (),
}


def kind_from_id(record_id: str) -> Optional[EntityKind]:
    """Return the kind encoded in a Salesforce id, or None if unknown."""
    if len(record_id) not in ID_LENGTHS:
        return None
    return ID_PREFIXES.get(record_id[:3])


def merge_fields(defaults: Iterable[str], extra: Iterable[str]) -> Tuple[str, ...]:
    """
    Ordered-set union of field names.

    Defaults come first, extra names are appended. SOQL field names are
    case-insensitive, so duplicates are detected ignoring case and the first
    spelling wins.
    """
    seen = set()
    merged = []
    for name in list(defaults) + list(extra):
        key = name.lower()
        if key not in seen:
            seen.add(key)
            merged.append(name)
    return tuple(merged)
