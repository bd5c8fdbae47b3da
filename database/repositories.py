"""
Repository classes for the Lead Engine data access layer.

Each repository encapsulates operations for one logical table of the
tabular store. Store failures on writes never lose the locally computed
value: it is returned inside a RepositoryResult whose error is set.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar, Union

from discovery.models import DiscoverySession, DiscoveryStatus
from lead_scoring.errors import NotFoundError, PersistenceError, ValidationError
from lead_scoring.models import Lead, LeadInput, random_base36, utcnow
from lead_scoring.scoring_model import LeadScorer, should_rescore
from lead_scoring.validation import validate_lead_input

from .cache import TTLCache
from .tabular_store import Row, TabularStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

LEADS_TABLE = "Leads"
DISCOVERY_TABLE = "Discovery_Sessions"
CLIENTS_TABLE = "Clients"
PROJECTS_TABLE = "Projects"


@dataclass
class RepositoryResult(Generic[T]):
    """A value plus the persistence error, if the store could not be reached."""
    value: T
    error: Optional[PersistenceError] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @property
    def persisted(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value


def _text(value: Any) -> str:
    return str(getattr(value, "value", value))


def _values(items: Optional[List[Any]]) -> Optional[set]:
    return {_text(item) for item in items} if items else None


@dataclass
class LeadFilters:
    """
    Lead list filters. Set-valued filters match any of their values; unset
    filters match everything.
    """
    status: Optional[List[str]] = None
    priority: Optional[List[str]] = None
    source: Optional[List[str]] = None
    project_type: Optional[List[str]] = None
    budget_range: Optional[List[str]] = None
    company_size: Optional[List[str]] = None
    assigned_to: Optional[List[str]] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    tags: Optional[List[str]] = None
    search: Optional[str] = None

    SEARCH_FIELDS = ("name", "email", "company", "project_description", "primary_challenge", "notes")

    def matches(self, lead: Lead) -> bool:
        for name in ("status", "priority", "source", "project_type", "budget_range", "company_size"):
            allowed = _values(getattr(self, name))
            if allowed is not None and _text(getattr(lead, name)) not in allowed:
                return False

        assignees = _values(self.assigned_to)
        if assignees is not None and (lead.assigned_to or "") not in assignees:
            return False

        if self.created_from and lead.created_at < self.created_from:
            return False
        if self.created_to and lead.created_at > self.created_to:
            return False

        if self.tags and not set(self.tags) & set(lead.tags):
            return False

        if self.search:
            needle = self.search.lower()
            haystack = (getattr(lead, name) or "" for name in self.SEARCH_FIELDS)
            if not any(needle in text.lower() for text in haystack):
                return False

        return True

    def cache_key(self) -> str:
        payload = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if isinstance(value, list):
                value = sorted(_text(v) for v in value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            payload[name] = value
        return json.dumps(payload, sort_keys=True)


@dataclass
class LeadSort:
    """Sort order for lead lists. None sorts before any value."""
    field: str = "created_at"
    direction: str = "desc"

    def apply(self, leads: List[Lead]) -> List[Lead]:
        if self.direction not in ("asc", "desc"):
            raise ValidationError([f"Invalid sort direction: {self.direction}"])
        if self.field not in Lead.__dataclass_fields__:
            raise ValidationError([f"Invalid sort field: {self.field}"])

        def key(lead: Lead):
            value = getattr(lead, self.field)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, (list, dict)):
                value = json.dumps(value, sort_keys=True)
            return (value is not None, value if value is not None else 0)

        return sorted(leads, key=key, reverse=self.direction == "desc")

    def cache_key(self) -> str:
        return f"{self.field}:{self.direction}"


class LeadRepository:
    """Data access for leads: validation, scoring, caching and persistence."""

    def __init__(
        self,
        store: TabularStore,
        scorer: Optional[LeadScorer] = None,
        cache: Optional[TTLCache] = None,
        table: str = LEADS_TABLE,
    ):
        self.store = store
        self.scorer = scorer or LeadScorer()
        self.cache = cache or TTLCache()
        self.table = table

    async def _read_rows(self, operation: str) -> List[Row]:
        try:
            return await self.store.read(self.table)
        except Exception as e:
            logger.error(f"Lead store {operation} failed on {self.table}: {e}")
            raise PersistenceError(operation, self.table, e) from e

    def _parse_rows(self, rows: List[Row]) -> List[Lead]:
        leads = []
        for row in rows:
            try:
                leads.append(Lead.from_row(row))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed lead row {row.get('id', '?')}: {e}")
        return leads

    async def create(self, data: Union[LeadInput, Mapping[str, Any]]) -> RepositoryResult[Lead]:
        """
        Validate, score and persist a new lead.

        Raises:
            ValidationError: with every failed rule; nothing is written
        """
        if not isinstance(data, LeadInput):
            data = LeadInput.from_dict(data)

        errors = validate_lead_input(data)
        if errors:
            raise ValidationError(errors)

        lead = self.scorer.apply(Lead.from_input(data))

        error = None
        try:
            await self.store.append(self.table, [lead.to_row()])
            logger.info(f"Created lead {lead.id} (score={lead.lead_score}, priority={lead.priority.value})")
        except Exception as e:
            error = PersistenceError("create", self.table, e)
            logger.error(f"Failed to persist lead {lead.id}: {e}")
        finally:
            self.cache.invalidate_all()

        return RepositoryResult(lead, error)

    async def list(
        self,
        filters: Optional[LeadFilters] = None,
        sort: Optional[LeadSort] = None,
    ) -> RepositoryResult[List[Lead]]:
        """
        List leads matching the filters, in sort order.

        An unreachable store yields an empty list with the error set.
        """
        filters = filters or LeadFilters()
        sort = sort or LeadSort()
        key = f"{filters.cache_key()}|{sort.cache_key()}"

        cached = self.cache.get(key)
        if cached is not None:
            return RepositoryResult(cached)

        try:
            leads = self._parse_rows(await self._read_rows("list"))
        except PersistenceError as e:
            return RepositoryResult([], e)

        result = sort.apply([lead for lead in leads if filters.matches(lead)])
        self.cache.set(key, result)
        return RepositoryResult(result)

    async def get(self, lead_id: str) -> Lead:
        """
        Raises:
            NotFoundError: no lead with this id
            PersistenceError: store unreachable
        """
        result = await self.list()
        if result.error:
            raise result.error
        for lead in result.value:
            if lead.id == lead_id:
                return lead
        raise NotFoundError("Lead", lead_id)

    async def update(self, lead_id: str, changes: Mapping[str, Any]) -> RepositoryResult[Lead]:
        """
        Apply changes to a lead, re-scoring when a scoring-relevant field
        changes, and rewrite the table.

        Raises:
            NotFoundError: no lead with this id
            ValidationError: unknown, computed or immutable fields, or bad values
            PersistenceError: the table could not be read
        """
        rows = await self._read_rows("update")

        index = next((i for i, row in enumerate(rows) if row.get("id") == lead_id), None)
        if index is None:
            raise NotFoundError("Lead", lead_id)
        current = Lead.from_row(rows[index])

        updated = current.with_changes(changes)
        if should_rescore(changes):
            self.scorer.apply(updated)
        updated.updated_at = utcnow()

        rows[index] = updated.to_row()
        error = None
        try:
            await self.store.write(self.table, rows)
            logger.info(f"Updated lead {lead_id}: {sorted(changes)}")
        except Exception as e:
            error = PersistenceError("update", self.table, e)
            logger.error(f"Failed to persist update of lead {lead_id}: {e}")
        finally:
            self.cache.invalidate_all()

        return RepositoryResult(updated, error)


class DiscoveryRepository:
    """Data access for discovery sessions, stored as JSON documents per row."""

    def __init__(self, store: TabularStore, table: str = DISCOVERY_TABLE):
        self.store = store
        self.table = table

    def _to_row(self, session: DiscoverySession) -> Row:
        return {
            "id": session.id,
            "client_id": session.client_id,
            "lead_id": session.lead_id or "",
            "status": session.status.value,
            "updated_at": session.updated_at.isoformat(),
            "document": json.dumps(session.to_document()),
        }

    async def _read_rows(self, operation: str) -> List[Row]:
        try:
            return await self.store.read(self.table)
        except Exception as e:
            logger.error(f"Discovery store {operation} failed on {self.table}: {e}")
            raise PersistenceError(operation, self.table, e) from e

    async def _write_rows(self, operation: str, rows: List[Row]) -> Optional[PersistenceError]:
        try:
            await self.store.write(self.table, rows)
        except Exception as e:
            logger.error(f"Discovery store {operation} failed on {self.table}: {e}")
            return PersistenceError(operation, self.table, e)
        return None

    async def _load(self, operation: str) -> List[DiscoverySession]:
        sessions = []
        for row in await self._read_rows(operation):
            try:
                sessions.append(DiscoverySession.model_validate(json.loads(row["document"])))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed discovery row {row.get('id', '?')}: {e}")
        return sessions

    async def create(self, session: DiscoverySession) -> RepositoryResult[DiscoverySession]:
        error = None
        try:
            await self.store.append(self.table, [self._to_row(session)])
            logger.info(f"Created discovery session {session.id} for client {session.client_id}")
        except Exception as e:
            error = PersistenceError("create", self.table, e)
            logger.error(f"Failed to persist discovery session {session.id}: {e}")
        return RepositoryResult(session, error)

    async def get(self, session_id: str) -> DiscoverySession:
        for session in await self._load("get"):
            if session.id == session_id:
                return session
        raise NotFoundError("Discovery session", session_id)

    async def save(self, session: DiscoverySession) -> RepositoryResult[DiscoverySession]:
        """Replace the stored session with this one."""
        rows = await self._read_rows("save")
        index = next((i for i, row in enumerate(rows) if row.get("id") == session.id), None)
        if index is None:
            raise NotFoundError("Discovery session", session.id)
        rows[index] = self._to_row(session)
        return RepositoryResult(session, await self._write_rows("save", rows))

    async def update(self, session_id: str, changes: Mapping[str, Any]) -> RepositoryResult[DiscoverySession]:
        """
        Raises:
            NotFoundError: no session with this id
            ValidationError: archived session or invalid changes
        """
        session = await self.get(session_id)
        return await self.save(session.with_updates(changes))

    async def complete_section(self, session_id: str, section: int) -> RepositoryResult[DiscoverySession]:
        session = await self.get(session_id)
        return await self.save(session.complete_section(section))

    async def list_by_client(self, client_id: str) -> List[DiscoverySession]:
        return [s for s in await self._load("list") if s.client_id == client_id]

    async def latest_for_lead(self, lead_id: str) -> Optional[DiscoverySession]:
        """Most recently updated session for a lead, preferring completed ones."""
        sessions = [s for s in await self._load("list") if s.lead_id == lead_id]
        if not sessions:
            return None
        return max(sessions, key=lambda s: (s.status == DiscoveryStatus.COMPLETED, s.updated_at))


def generate_record_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{random_base36(9)}"


def _to_cells(record: Mapping[str, Any]) -> Row:
    """Flatten a record for storage: lists and dicts become JSON strings."""
    row: Row = {}
    for key, value in record.items():
        if isinstance(value, (list, dict)):
            row[key] = json.dumps(value)
        elif isinstance(value, Enum):
            row[key] = value.value
        elif isinstance(value, datetime):
            row[key] = value.isoformat()
        else:
            row[key] = value
    return row


@dataclass
class RecordRepository:
    """Append-only store of flat records (clients, projects) keyed by id."""
    store: TabularStore
    table: str
    id_prefix: str
    json_fields: List[str] = field(default_factory=list)

    async def insert(self, record: Mapping[str, Any]) -> str:
        """
        Persist a record and return its id.

        Raises:
            PersistenceError: store unreachable
        """
        record_id = record.get("id") or generate_record_id(self.id_prefix)
        row = _to_cells({**record, "id": record_id})
        try:
            await self.store.append(self.table, [row])
        except Exception as e:
            logger.error(f"Failed to persist {self.table} record {record_id}: {e}")
            raise PersistenceError("create", self.table, e) from e
        logger.info(f"Created {self.table} record {record_id}")
        return record_id

    async def list(self) -> List[Dict[str, Any]]:
        try:
            rows = await self.store.read(self.table)
        except Exception as e:
            raise PersistenceError("list", self.table, e) from e
        records = []
        for row in rows:
            record = dict(row)
            for name in self.json_fields:
                if isinstance(record.get(name), str) and record[name]:
                    record[name] = json.loads(record[name])
            records.append(record)
        return records

    async def get(self, record_id: str) -> Dict[str, Any]:
        for record in await self.list():
            if record.get("id") == record_id:
                return record
        raise NotFoundError(self.table.rstrip("s"), record_id)


class ClientRepository(RecordRepository):
    """Store-backed client creator."""

    def __init__(self, store: TabularStore, table: str = CLIENTS_TABLE):
        super().__init__(store=store, table=table, id_prefix="client")

    async def create_client(self, record: Mapping[str, Any]) -> str:
        return await self.insert(record)


class ProjectRepository(RecordRepository):
    """Store-backed project creator."""

    def __init__(self, store: TabularStore, table: str = PROJECTS_TABLE):
        super().__init__(
            store=store,
            table=table,
            id_prefix="proj",
            json_fields=[
                "assigned_talent",
                "content_requirements",
                "tags",
                "required_skills",
                "recommended_roles",
            ],
        )

    async def create_project(self, record: Mapping[str, Any]) -> str:
        return await self.insert(record)

    async def find_by_lead(self, lead_id: str) -> Optional[str]:
        """Id of the project already created for a lead, if any."""
        for record in await self.list():
            if record.get("lead_id") == lead_id:
                return record["id"]
        return None
