"""
Durable token store

A single `deployed_tokens` table keyed by lowercased contract address,
supporting insert-with-conflict-ignore, partial update by key, and an
ordered full-table scan.

Design Notes:
- SQLAlchemy Core with a synchronous engine; every call runs in a small
  thread pool via `run_sync` so the event loop never blocks on the database
- SQLite and PostgreSQL use native ON CONFLICT DO NOTHING; other dialects
  fall back to catching IntegrityError
"""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import fields
from typing import Any, Callable, Dict, List, Mapping, TypeVar

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    select,
    update,
)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from .models import RegisteredToken

LOG = logging.getLogger(__name__)

T = TypeVar("T")

# Shared thread pool for synchronous database calls
_db_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="token_store_")


async def run_sync(func: Callable[..., T], *args, **kwargs) -> T:
    """Run a synchronous function in the store's thread pool"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_db_executor, functools.partial(func, *args, **kwargs))


metadata = MetaData()

deployed_tokens = Table(
    "deployed_tokens",
    metadata,
    Column("contract_address", String(128), primary_key=True),
    Column("id", String(64), nullable=False),
    Column("name", String(255), nullable=False),
    Column("symbol", String(64), nullable=False),
    Column("standard", String(16), nullable=False),
    Column("total_supply", String(100), nullable=False),
    Column("decimals", Integer, nullable=False),
    Column("deployer_address", String(128), nullable=False),
    Column("deployment_tx_hash", String(130), nullable=False),
    Column("deployed_at", String(40), nullable=False, index=True),
    Column("block_number", BigInteger, nullable=False),
    Column("mintable", Boolean, nullable=False),
    Column("burnable", Boolean, nullable=False),
    Column("pausable", Boolean, nullable=False),
    Column("ai_optimization_enabled", Boolean, nullable=False),
    Column("quantum_resistant", Boolean, nullable=False),
    Column("mev_protection", Boolean, nullable=False),
    Column("max_supply", String(100)),
    Column("base_uri", Text),
    Column("royalty_percentage", Float),
    Column("royalty_recipient", String(128)),
    Column("holders", Integer, nullable=False, default=1),
    Column("transaction_count", Integer, nullable=False, default=1),
    Column("volume_24h", String(100), nullable=False, default="0"),
    Column("status", String(16), nullable=False),
    Column("verified", Boolean, nullable=False, default=False),
    Column("security_score", Integer),
    Column("deployment_source", String(32), nullable=False),
    Column("deployment_mode", String(16), nullable=False),
)

TOKEN_COLUMNS = [f.name for f in fields(RegisteredToken)]


def make_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every pool thread gets its own empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


class TokenStore:
    """Relational persistence for registered tokens"""

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> "TokenStore":
        return cls(make_engine(database_url))

    # Synchronous implementations (run via run_sync)

    def _create_schema(self) -> None:
        metadata.create_all(self.engine)

    def _insert_ignore(self, token: RegisteredToken) -> bool:
        values = {name: getattr(token, name) for name in TOKEN_COLUMNS}
        dialect = self.engine.dialect.name

        with self.engine.begin() as conn:
            if dialect in ("sqlite", "postgresql"):
                insert_fn = sqlite_insert if dialect == "sqlite" else pg_insert
                stmt = insert_fn(deployed_tokens).values(**values).on_conflict_do_nothing(
                    index_elements=[deployed_tokens.c.contract_address]
                )
                return conn.execute(stmt).rowcount == 1

            try:
                with conn.begin_nested():
                    conn.execute(deployed_tokens.insert().values(**values))
                return True
            except IntegrityError:
                return False

    def _update_fields(self, contract_address: str, values: Mapping[str, Any]) -> bool:
        stmt = (
            update(deployed_tokens)
            .where(deployed_tokens.c.contract_address == contract_address)
            .values(**values)
        )
        with self.engine.begin() as conn:
            return conn.execute(stmt).rowcount > 0

    def _load_all(self) -> List[RegisteredToken]:
        stmt = select(deployed_tokens).order_by(deployed_tokens.c.deployed_at.desc())
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [RegisteredToken(**{name: row[name] for name in TOKEN_COLUMNS}) for row in rows]

    # Async API

    async def create_schema(self) -> None:
        await run_sync(self._create_schema)

    async def insert_token(self, token: RegisteredToken) -> bool:
        """
        Insert a token, doing nothing if its contract address already exists.

        Returns:
            True if a row was written, False on conflict
        """
        return await run_sync(self._insert_ignore, token)

    async def update_token(self, contract_address: str, values: Mapping[str, Any]) -> bool:
        if not values:
            return False
        return await run_sync(self._update_fields, contract_address, dict(values))

    async def load_all(self) -> List[RegisteredToken]:
        """All rows, newest deployment first"""
        return await run_sync(self._load_all)

    def dispose(self) -> None:
        self.engine.dispose()
