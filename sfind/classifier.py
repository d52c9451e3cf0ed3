"""
Identifier Classifier Module

Decides whether a query is a Salesforce record id or an email address.
"""
import re
from dataclasses import dataclass
from typing import Union

from .entities import EntityKind, kind_from_id


ID_RE = re.compile(r'^[A-Za-z0-9]+$')
EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+$')


@dataclass(frozen=True)
class ById:
    kind: EntityKind
    id: str


@dataclass(frozen=True)
class ByEmail:
    address: str


@dataclass(frozen=True)
class Unrecognized:
    text: str


Classification = Union[ById, ByEmail, Unrecognized]


def classify(text: str) -> Classification:
    """
    Classify a raw query string.

    Args:
        text: Query as typed by the user

    Returns:
        ById when the text is a 15 or 18 character id with a known prefix,
        ByEmail when it looks like local@domain, Unrecognized otherwise
    """
    value = text.strip()
    if not value:
        return Unrecognized(text)

    if ID_RE.match(value):
        kind = kind_from_id(value)
        if kind is not None:
            return ById(kind, value)
        return Unrecognized(text)

    if EMAIL_RE.match(value):
        return ByEmail(value)

    return Unrecognized(text)
