from functools import lru_cache

from runescan.database.connection import get_engine
from runescan.services.bitcoin_rpc import BitcoinRPCService
from runescan.services.cache_service import CacheService
from runescan.services.persistence import PersistenceService


@lru_cache(maxsize=1)
def get_bitcoin_rpc() -> BitcoinRPCService:
    return BitcoinRPCService()


@lru_cache(maxsize=1)
def get_cache_service() -> CacheService:
    return CacheService()


@lru_cache(maxsize=1)
def get_persistence_service() -> PersistenceService:
    return PersistenceService(get_engine())
