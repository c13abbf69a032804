import time

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from runescan.api.dependencies import get_bitcoin_rpc
from runescan.api.routers.runes import router as runes_router
from runescan.api.routers.transactions import router as transactions_router
from runescan.config import settings
from runescan.services.bitcoin_rpc import BitcoinRPCService
from runescan.utils.logging import setup_logging

setup_logging(settings.LOG_LEVEL)
logger = structlog.get_logger()

app = FastAPI(
    title="runescan",
    description="Runestone decoder and Bitcoin transaction index API",
    version=settings.INDEXER_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(runes_router, tags=["Runes"])
app.include_router(transactions_router, tags=["Transactions"])


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.middleware("http")
async def log_requests(request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        process_time=round(process_time, 3),
    )
    return response


@app.get("/")
async def root():
    return {"message": "runescan API", "version": settings.INDEXER_VERSION}


@app.get("/health")
async def health(rpc: BitcoinRPCService = Depends(get_bitcoin_rpc)):
    node_reachable = await rpc.test_connection()
    return {
        "status": "healthy" if node_reachable else "degraded",
        "network": settings.BITCOIN_NETWORK,
        "bitcoin_rpc": rpc.get_connection_status(),
    }
