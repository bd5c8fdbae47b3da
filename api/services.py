"""
Service initialization and dependency injection for the Lead Engine API.

Creates and wires all service instances used by the API: the tabular store,
repositories, the scorer, the provisioning pipeline and the lead service.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from config.settings import get_settings, Settings
from database.cache import TTLCache
from database.repositories import ClientRepository, DiscoveryRepository, LeadRepository, ProjectRepository
from database.session import close_db, init_db
from database.tabular_store import InMemoryTabularStore, SQLAlchemyTabularStore, TabularStore
from lead_scoring.scoring_model import LeadScorer
from provisioning.lead_service import LeadService
from provisioning.pipeline import ProvisioningPipeline

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self, settings: Optional[Settings] = None, store: Optional[TabularStore] = None):
        self.settings: Settings = settings or get_settings()
        self.store: Optional[TabularStore] = store
        self.engine: Optional[AsyncEngine] = None
        self.lead_scorer: Optional[LeadScorer] = None
        self.lead_cache: Optional[TTLCache] = None
        self.lead_repository: Optional[LeadRepository] = None
        self.discovery_repository: Optional[DiscoveryRepository] = None
        self.client_repository: Optional[ClientRepository] = None
        self.project_repository: Optional[ProjectRepository] = None
        self.pipeline: Optional[ProvisioningPipeline] = None
        self.lead_service: Optional[LeadService] = None
        self._initialized = False

    async def initialize(self):
        """Open the store and wire all services."""
        if self._initialized:
            return

        if self.store is None:
            self.store = await self._init_store()
        self._wire(self.store)
        self._initialized = True
        logger.info(f"Services ready (store: {type(self.store).__name__})")

    async def _init_store(self) -> TabularStore:
        s = self.settings
        if not s.uses_database:
            logger.info("DATABASE_URL not set, using in-memory tabular store")
            return InMemoryTabularStore()
        try:
            self.engine, session_factory = await init_db(
                s.database_url,
                pool_size=s.database_pool_size,
                max_overflow=s.database_max_overflow,
            )
            return SQLAlchemyTabularStore(session_factory)
        except Exception as e:
            logger.warning(f"Database init failed (running with in-memory store): {e}")
            return InMemoryTabularStore()

    def _wire(self, store: TabularStore):
        s = self.settings

        self.lead_scorer = LeadScorer(thresholds=s.priority_thresholds)
        self.lead_cache = TTLCache(ttl_seconds=s.lead_cache_ttl_seconds)
        self.lead_repository = LeadRepository(store, scorer=self.lead_scorer, cache=self.lead_cache)
        self.discovery_repository = DiscoveryRepository(store)
        self.client_repository = ClientRepository(store)
        self.project_repository = ProjectRepository(store)

        self.pipeline = ProvisioningPipeline(
            client_creator=self.client_repository,
            project_creator=self.project_repository,
            project_manager=s.default_project_manager,
            hourly_rate=s.default_hourly_rate,
        )
        self.lead_service = LeadService(
            leads=self.lead_repository,
            discovery=self.discovery_repository,
            pipeline=self.pipeline,
            auto_provision=s.auto_provision_projects,
        )

    async def shutdown(self):
        await close_db(self.engine)
        self.engine = None

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.lead_service is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "store": type(self.store).__name__ if self.store else None,
            "database": self.engine is not None,
            "lead_service": self.lead_service is not None,
            "auto_provision": self.settings.auto_provision_projects,
        }


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the app's service container."""
    services: Services = request.app.state.services
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services


def get_lead_service(request: Request) -> LeadService:
    return get_services(request).lead_service


def get_discovery_repository(request: Request) -> DiscoveryRepository:
    return get_services(request).discovery_repository
