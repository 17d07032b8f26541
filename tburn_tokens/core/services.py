"""
Composition root

Builds the process-wide service graph (chain client, durable store, registry,
factory service) from Settings. Each call produces fresh, independent
instances, so tests can construct an isolated graph per test case.
"""

import logging
from dataclasses import dataclass

from ..utils.config_manager import Settings
from .client.chain_client import ChainClient
from .token_factory import TokenFactoryService
from .token_registry import TokenRegistry
from .token_store import TokenStore

LOG = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    chain_client: ChainClient
    store: TokenStore
    registry: TokenRegistry
    factory: TokenFactoryService

    async def __aenter__(self):
        try:
            await self.registry.initialize()
        except Exception:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.chain_client.close()
        self.store.dispose()


def build_services(settings: Settings) -> Services:
    """
    Wire up all services for `settings`.

    The registry is not loaded yet; use the returned object as an async
    context manager (or call `registry.initialize()`) before querying it.
    """
    chain_client = ChainClient(settings.rpc_url, settings.chain_id, timeout=settings.rpc_timeout)
    store = TokenStore.from_url(settings.database_url)
    registry = TokenRegistry(store, strict_persistence=settings.strict_persistence)
    factory = TokenFactoryService(settings, chain_client, registry)

    LOG.debug(f"Services built for chain {settings.chain_id} at {settings.rpc_url}")
    return Services(
        settings=settings,
        chain_client=chain_client,
        store=store,
        registry=registry,
        factory=factory,
    )
