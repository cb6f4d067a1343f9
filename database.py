"""
Local store for records the ERP does not hold (yet).

Each named repository exposes async get/put/list/delete keyed by a string.
`InMemoryRepository` lives for the process; `MongoRepository` persists through
motor when MONGO_URI is set. `build_store` is called once per process and the
result is handed to routes through `request.app.state.store`.
"""

import copy
from typing import Any, Callable, Dict, List, Optional

import certifi
from motor.motor_asyncio import AsyncIOMotorClient

from config import config
from logging_config import get_logger

logger = get_logger("database")


class Repository:
    """Interface shared by every store backend."""

    name: str

    async def get(self, key: str) -> Optional[dict]:
        raise NotImplementedError

    async def put(self, key: str, record: dict) -> dict:
        raise NotImplementedError

    async def list(self, **match: Any) -> List[dict]:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        raise NotImplementedError


class InMemoryRepository(Repository):
    def __init__(self, name: str):
        self.name = name
        self._records: Dict[str, dict] = {}

    async def get(self, key: str) -> Optional[dict]:
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    async def put(self, key: str, record: dict) -> dict:
        self._records[key] = copy.deepcopy(record)
        return copy.deepcopy(record)

    async def list(self, **match: Any) -> List[dict]:
        return [
            copy.deepcopy(r) for r in self._records.values()
            if all(r.get(k) == v for k, v in match.items())
        ]

    async def delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None


class MongoConnection:
    """Lazily opened motor client, so importing this module never connects."""

    def __init__(self, uri: str, db_name: str):
        self.uri = uri
        self.db_name = db_name
        self._client = None

    def initialize(self):
        if self._client is None:
            if config.ENV == "production":
                self._client = AsyncIOMotorClient(self.uri, tlsCAFile=certifi.where())
            else:
                self._client = AsyncIOMotorClient(self.uri, tlsAllowInvalidCertificates=True)
            logger.info(f"MongoDB client initialized on DB: {self.db_name}")

    def collection(self, name: str):
        self.initialize()
        return self._client[self.db_name][name]

    def reset(self):
        if self._client is not None:
            self._client.close()
            self._client = None


class MongoRepository(Repository):
    _PROJECTION = {"_id": 0, "_key": 0}

    def __init__(self, connection: MongoConnection, name: str):
        self.name = name
        self._connection = connection

    @property
    def _collection(self):
        return self._connection.collection(self.name)

    async def get(self, key: str) -> Optional[dict]:
        return await self._collection.find_one({"_key": key}, self._PROJECTION)

    async def put(self, key: str, record: dict) -> dict:
        await self._collection.replace_one({"_key": key}, {**record, "_key": key}, upsert=True)
        return record

    async def list(self, **match: Any) -> List[dict]:
        cursor = self._collection.find(match, self._PROJECTION)
        return await cursor.to_list(length=None)

    async def delete(self, key: str) -> bool:
        result = await self._collection.delete_one({"_key": key})
        return result.deleted_count > 0


class Store:
    NAMES = ("clients", "content_grid", "deliverables", "leads", "lead_positions", "tasks", "users")

    def __init__(self, factory: Callable[[str], Repository], connection: Optional[MongoConnection] = None):
        self._connection = connection
        for name in self.NAMES:
            setattr(self, name, factory(name))

    @classmethod
    def in_memory(cls) -> "Store":
        return cls(InMemoryRepository)

    def close(self):
        if self._connection is not None:
            self._connection.reset()


def build_store(cfg=config) -> Store:
    if cfg.MONGO_URI:
        logger.info(f"MongoDB connection string found: {cfg.MONGO_URI[:20]}...")
        connection = MongoConnection(cfg.MONGO_URI, cfg.DB_NAME)
        return Store(lambda name: MongoRepository(connection, name), connection=connection)
    logger.warning("MONGO_URI not set, local records live in memory for this process only")
    return Store.in_memory()
