"""
Finder Module

Resolves a query to a root Salesforce entity and collects the entities
related to it through its account.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from . import query as soql
from .classifier import ByEmail, ById, Unrecognized, classify
from .config import Config
from .entities import ACCOUNT_KEYS, ACCOUNT_LABEL, RELATIONSHIPS, EntityKind
from .errors import AmbiguousResult, BadInput, NotFound, RemoteError
from .report import EntityRef, RawRecord, Report, ReportBuilder


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Task:
    """One related-entity query issued while expanding the root."""

    label: str
    kind: EntityKind
    soql: str
    single: bool = False


def run(client, q: str, conf: Config) -> Report:
    """
    Find the entities matching the given query.

    Args:
        client: Object with an execute(soql) method returning records
        q: Record id or email address
        conf: Merged configuration

    Returns:
        Report with the root entity and its related entities

    Raises:
        BadInput: if the query is neither an id nor an email
        NotFound: if nothing matches the query
        AmbiguousResult: if an id matches more than one record
        RemoteError: if the root lookup fails
    """
    classification = classify(q)
    logger.debug("classified %r as %s", q, type(classification).__name__)

    if isinstance(classification, Unrecognized):
        raise BadInput(f"{q!r} is neither a Salesforce id nor an email address")

    if isinstance(classification, ById):
        builder = _from_id(client, q, classification, conf)
    else:
        builder = _from_email(client, q, classification, conf)
    logger.debug("resolved root %s %s", builder.root.kind, builder.root.id)

    _expand(client, builder, conf)
    return builder.build()


def project(row: Dict[str, Any], fields: Sequence[str]) -> RawRecord:
    """
    Return the configured fields of a row, in configured order.

    Salesforce may return field names with a different case than requested;
    missing fields map to None.
    """
    by_name = {k.lower(): v for k, v in row.items()}
    return {name: by_name.get(name.lower()) for name in fields}


def _root(q: str, kind: EntityKind, row: Dict[str, Any], conf: Config,
          matches: int = 1) -> ReportBuilder:
    record = project(row, conf.fields[kind])
    ref = EntityRef(kind, record.get('Id') or '')
    return ReportBuilder(query=q, root=ref, record=record, matches=matches)


def _from_id(client, q: str, by_id: ById, conf: Config) -> ReportBuilder:
    query = soql.build(by_id.kind, conf.fields[by_id.kind], soql.Equals('Id', by_id.id))
    rows = client.execute(query)
    if not rows:
        raise NotFound(f"nothing found for query {q!r}")
    if len(rows) > 1:
        raise AmbiguousResult(f"{len(rows)} {by_id.kind} records found for id {by_id.id}")
    return _root(q, by_id.kind, rows[0], conf)


def _search_order(conf: Config) -> List[EntityKind]:
    """Contacts first, then every other kind with search fields."""
    kinds = [EntityKind.CONTACT]
    kinds.extend(k for k in EntityKind if k is not EntityKind.CONTACT)
    return [k for k in kinds if conf.search.get(k)]


def _search_filter(fields: Sequence[str], value: str, conf: Config) -> soql.Filter:
    if conf.substring_search:
        return soql.AnyOf(tuple(soql.Contains(f, value) for f in fields))
    return soql.AnyOf(tuple(soql.Equals(f, value) for f in fields))


def _from_email(client, q: str, by_email: ByEmail, conf: Config) -> ReportBuilder:
    for kind in _search_order(conf):
        flt = _search_filter(conf.search[kind], by_email.address, conf)
        rows = client.execute(soql.build(kind, conf.fields[kind], flt))
        if not rows:
            logger.debug("no %s matches %s", kind, by_email.address)
            continue
        builder = _root(q, kind, rows[0], conf, matches=len(rows))
        if len(rows) > 1:
            builder.warn(f"{len(rows)} matches found for {by_email.address}; showing the first")
        return builder
    raise NotFound(f"nothing found for query {q!r}")


def _account_id(builder: ReportBuilder) -> Optional[str]:
    kind = builder.root.kind
    if kind is EntityKind.ACCOUNT:
        return builder.root.id
    key = ACCOUNT_KEYS.get(kind)
    if key is None:
        return None
    return project(builder.record, [key])[key]


def _tasks(builder: ReportBuilder, account_id: str, conf: Config) -> List[Task]:
    root_kind = builder.root.kind
    tasks = []
    if root_kind is not EntityKind.ACCOUNT:
        query = soql.build(EntityKind.ACCOUNT, conf.fields[EntityKind.ACCOUNT],
                           soql.Equals('Id', account_id))
        tasks.append(Task(ACCOUNT_LABEL, EntityKind.ACCOUNT, query, single=True))
    for rel in RELATIONSHIPS[EntityKind.ACCOUNT]:
        # The root contact would only show up again among its siblings.
        if rel.kind is EntityKind.CONTACT and root_kind is EntityKind.CONTACT:
            continue
        query = soql.build(rel.kind, conf.fields[rel.kind],
                           soql.Equals(rel.foreign_key, account_id),
                           order_by='CreatedDate')
        tasks.append(Task(rel.label, rel.kind, query))
    return tasks


def _fetch(client, task: Task) -> Tuple[List[Dict[str, Any]], Optional[RemoteError]]:
    try:
        return client.execute(task.soql), None
    except RemoteError as e:
        return [], e


def _expand(client, builder: ReportBuilder, conf: Config):
    """Fetch the account of the root and the account's children."""
    if builder.root.kind is not EntityKind.ACCOUNT and builder.root.kind not in ACCOUNT_KEYS:
        logger.debug("%s has no related entities", builder.root.kind)
        return

    account_id = _account_id(builder)
    if not account_id:
        builder.warn(f"{builder.root.kind} {builder.root.id} is not linked to an account")
        return

    tasks = _tasks(builder, account_id, conf)
    with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
        futures = [pool.submit(_fetch, client, task) for task in tasks]
        results = [f.result() for f in futures]

    for task, (rows, err) in zip(tasks, results):
        if err is not None:
            logger.info("cannot fetch %s for %s: %s", task.label, builder.root.id, err)
            message = f"could not fetch {task.label}: {type(err).__name__}: {err}"
            builder.add_group(task.label, task.kind, [], message)
            continue
        warning = None
        if task.single and not rows:
            warning = f"account {account_id} not found"
        records = [project(row, conf.fields[task.kind]) for row in rows]
        builder.add_group(task.label, task.kind, records, warning)
