"""
Token registry: system of record for deployed tokens

The durable store owns the record; an in-memory cache keyed by lowercased
contract address serves every read.

Design Notes:
- `initialize()` loads the store into the cache once; later calls are no-ops.
  `reload()` rebuilds the cache explicitly
- Registration inserts with "do nothing on conflict" and then upserts the
  cache unconditionally. A duplicate registration therefore leaves the first
  record in the store and the newest attempt in the cache until the next
  reload
- `update_token` persists only PERSISTED_UPDATE_FIELDS; every other field in
  the partial update is applied to the cache alone
- Durable-write failures are logged and the cache is still updated, unless
  `strict_persistence` is set, in which case PersistenceError is raised and
  the cache is left untouched
- Cache mutations happen on the event loop thread between awaits, so they do
  not interleave; the asyncio lock only serialises (re)loading
"""

import asyncio
import logging
from collections import Counter
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from ..utils.common import format_supply
from ..utils.exceptions import PersistenceError
from .models import RegisteredToken, TokenStatus, token_field_names
from .token_store import TokenStore

LOG = logging.getLogger(__name__)

PERSISTED_UPDATE_FIELDS = frozenset({
    "status",
    "verified",
    "security_score",
    "holders",
    "transaction_count",
    "volume_24h",
})

ACTIVE_STATUSES = frozenset({
    TokenStatus.ACTIVE.value,
    TokenStatus.CONFIRMED.value,
    TokenStatus.VERIFIED.value,
})

DEFAULT_SECURITY_SCORE = 95


def _key(address: str) -> str:
    return address.lower()


class TokenRegistry:
    """Queryable registry of every token deployed through the factory service"""

    def __init__(self, store: TokenStore, strict_persistence: bool = False):
        """
        Args:
            store: Durable token store
            strict_persistence: Raise instead of degrading to cache-only
                when a durable write fails
        """
        self.store = store
        self.strict_persistence = strict_persistence
        self._cache: Dict[str, RegisteredToken] = {}
        self._initialized = False
        self._load_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create the schema and load all durable rows into the cache, once"""
        async with self._load_lock:
            if self._initialized:
                return
            await self.store.create_schema()
            await self._load()
            self._initialized = True

    async def reload(self) -> None:
        """Discard the cache and rebuild it from durable storage"""
        async with self._load_lock:
            await self.store.create_schema()
            await self._load()
            self._initialized = True

    async def _load(self) -> None:
        tokens = await self.store.load_all()
        self._cache = {_key(t.contract_address): t for t in tokens}
        LOG.info(f"Loaded {len(self._cache)} tokens into registry cache")

    async def register_token(self, token: RegisteredToken) -> bool:
        """
        Register a token durably and in the cache.

        Returns:
            True if the durable insert wrote a new row, False if the address
            already existed or the write failed (non-strict mode)

        Raises:
            PersistenceError: In strict mode, when the durable write fails
        """
        token = replace(token, contract_address=_key(token.contract_address))

        inserted = False
        try:
            inserted = await self.store.insert_token(token)
            if not inserted:
                LOG.warning(f"Token {token.contract_address} already registered durably; keeping first record")
        except Exception as e:
            if self.strict_persistence:
                raise PersistenceError(
                    f"Failed to persist token {token.contract_address}",
                    contract_address=token.contract_address,
                    cause=e
                )
            LOG.error(f"Failed to persist token {token.contract_address}: {e}")

        self._cache[token.contract_address] = token
        LOG.info(f"Registered {token.standard} token {token.symbol} at {token.contract_address}")
        return inserted

    async def update_token(self, contract_address: str, updates: Mapping[str, Any]) -> bool:
        """
        Apply a partial update to a registered token.

        Args:
            contract_address: Token address (any case)
            updates: Field name -> new value, using RegisteredToken field names

        Returns:
            False if the token is not registered, True otherwise

        Raises:
            ValueError: If `updates` names a field RegisteredToken does not have
            PersistenceError: In strict mode, when the durable write fails
        """
        key = _key(contract_address)
        current = self._cache.get(key)
        if current is None:
            return False

        changes = {k: v for k, v in updates.items() if k != "contract_address"}
        unknown = set(changes) - set(token_field_names())
        if unknown:
            raise ValueError(f"Unknown token fields: {sorted(unknown)}")

        persisted = {k: v for k, v in changes.items() if k in PERSISTED_UPDATE_FIELDS}
        if persisted:
            try:
                await self.store.update_token(key, persisted)
            except Exception as e:
                if self.strict_persistence:
                    raise PersistenceError(
                        f"Failed to update token {key}",
                        contract_address=key,
                        cause=e
                    )
                LOG.error(f"Failed to persist update for token {key}: {e}")

        self._cache[key] = replace(current, **changes)
        return True

    # Reads (cache only)

    def get_token(self, contract_address: str) -> Optional[RegisteredToken]:
        return self._cache.get(_key(contract_address))

    def get_all_tokens(self) -> List[RegisteredToken]:
        return sorted(self._cache.values(), key=lambda t: t.deployed_at, reverse=True)

    def _filter(self, predicate) -> List[RegisteredToken]:
        return [t for t in self.get_all_tokens() if predicate(t)]

    def get_tokens_by_deployer(self, deployer_address: str) -> List[RegisteredToken]:
        deployer = deployer_address.lower()
        return self._filter(lambda t: t.deployer_address.lower() == deployer)

    def get_tokens_by_standard(self, standard: str) -> List[RegisteredToken]:
        return self._filter(lambda t: t.standard == standard)

    def get_tokens_by_status(self, status: str) -> List[RegisteredToken]:
        return self._filter(lambda t: t.status == status)

    def get_tokens_by_source(self, source: str) -> List[RegisteredToken]:
        return self._filter(lambda t: t.deployment_source == source)

    def get_active_tokens(self) -> List[RegisteredToken]:
        return self._filter(lambda t: t.status in ACTIVE_STATUSES)

    def count(self) -> int:
        return len(self._cache)

    def get_stats(self) -> Dict[str, Any]:
        tokens = list(self._cache.values())
        return {
            "totalTokens": len(tokens),
            "activeTokens": sum(1 for t in tokens if t.status in ACTIVE_STATUSES),
            "verifiedTokens": sum(1 for t in tokens if t.verified),
            "byStatus": dict(Counter(t.status for t in tokens)),
            "byStandard": dict(Counter(t.standard for t in tokens)),
            "bySource": dict(Counter(t.deployment_source for t in tokens)),
            "totalHolders": sum(t.holders for t in tokens),
            "totalTransactions": sum(t.transaction_count for t in tokens),
        }

    # Admin status transitions

    async def pause_token(self, contract_address: str) -> bool:
        return await self.update_token(contract_address, {"status": TokenStatus.PAUSED.value})

    async def resume_token(self, contract_address: str) -> bool:
        """Return a paused token to active; any other status is left as is"""
        token = self.get_token(contract_address)
        if token is None or token.status != TokenStatus.PAUSED.value:
            return False
        return await self.update_token(contract_address, {"status": TokenStatus.ACTIVE.value})

    async def verify_token(self, contract_address: str, security_score: Optional[int] = None) -> bool:
        return await self.update_token(contract_address, {
            "status": TokenStatus.VERIFIED.value,
            "verified": True,
            "security_score": DEFAULT_SECURITY_SCORE if security_score is None else security_score,
        })

    # Admin projections

    @staticmethod
    def to_admin_token_format(token: RegisteredToken) -> Dict[str, Any]:
        """Flatten a token for the admin token table"""
        return {
            "id": token.id,
            "name": token.name,
            "symbol": token.symbol,
            "standard": token.standard,
            "contractAddress": token.contract_address,
            # Registry supplies are whole-token amounts, so no decimal scaling here
            "totalSupply": format_supply(token.total_supply),
            "decimals": token.decimals,
            "holders": token.holders,
            "transactions": token.transaction_count,
            "volume24h": token.volume_24h,
            "status": token.status,
            "verified": token.verified,
            "securityScore": token.security_score,
            "deployer": token.deployer_address,
            "deployedAt": token.deployed_at,
            "blockNumber": token.block_number,
            "deploymentSource": token.deployment_source,
            "deploymentMode": token.deployment_mode,
            "features": {
                "mintable": token.mintable,
                "burnable": token.burnable,
                "pausable": token.pausable,
                "aiOptimized": token.ai_optimization_enabled,
                "quantumResistant": token.quantum_resistant,
                "mevProtection": token.mev_protection,
            },
        }

    def export_all_tokens(self) -> List[Dict[str, Any]]:
        """Every token as a JSON-serializable record, newest first"""
        return [t.to_dict() for t in self.get_all_tokens()]
