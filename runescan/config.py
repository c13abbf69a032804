from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings
from typing import Optional, Any


class Settings(BaseSettings):
    # Database
    DB_USER: str = "user"
    DB_PASSWORD: str = "password"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "runescan"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> Any:
        if isinstance(v, str):
            return v
        values = info.data
        return (
            f"postgresql+asyncpg://{values.get('DB_USER')}:{values.get('DB_PASSWORD')}@"
            f"{values.get('DB_HOST')}:{values.get('DB_PORT')}/{values.get('DB_NAME')}"
        )

    # Bitcoin RPC
    BITCOIN_RPC_URL: str = "http://localhost:8332"
    BITCOIN_RPC_USER: str = "bitcoinrpc"
    BITCOIN_RPC_PASSWORD: str = "password"
    BITCOIN_RPC_TIMEOUT: float = 30.0
    BITCOIN_NETWORK: str = "mainnet"  # mainnet, testnet, regtest

    # Indexing settings
    START_BLOCK_HEIGHT: Optional[int] = None
    INITIAL_LOOKBACK_BLOCKS: int = 100  # Used when the store is empty and no start height is set
    BLOCK_CHUNK_SIZE: int = 10
    DECODE_RUNESTONES: bool = True
    PROCESS_MEMPOOL: bool = True

    # Performance
    BLOCK_CONCURRENCY: int = 10  # In-flight transactions per block
    MEMPOOL_CONCURRENCY: int = 5  # In-flight transactions for the mempool pass
    TX_CACHE_SIZE: int = 5000  # Previous transactions kept per processing run
    DB_POOL_SIZE: int = 10

    # Scheduling
    UPDATE_INTERVAL: int = 60
    BLOCKCHAIN_UPDATE_TIMEOUT: int = 45
    BACKFILL_TIMEOUT: int = 3600

    # Monitoring
    LOG_LEVEL: str = "INFO"

    # Error handling
    STOP_ON_ERROR: bool = False

    # API
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8083

    # Cache Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL: int = 300

    # Indexer Version
    INDEXER_VERSION: str = "1.0.0"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
