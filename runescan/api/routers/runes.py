from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from runescan.api.dependencies import get_bitcoin_rpc, get_cache_service
from runescan.api.models import DecodeRequest
from runescan.config import settings
from runescan.runes import decode_rune_data
from runescan.services.bitcoin_rpc import BitcoinRPCService
from runescan.services.cache_service import CacheService
from runescan.utils.bitcoin import is_op_return_script
from runescan.utils.exceptions import TransactionNotFound

logger = structlog.get_logger()

router = APIRouter(prefix="/v1/runes")


def find_op_return_output(tx: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """First nulldata output of a node transaction"""
    for vout in tx.get("vout", []):
        script_pub_key = vout.get("scriptPubKey", {})
        if script_pub_key.get("type") == "nulldata" or is_op_return_script(script_pub_key.get("hex")):
            return vout
    return None


def decode_response(script_pub_key: Dict[str, Any]):
    result = decode_rune_data(script_pub_key)
    if "error" in result:
        return JSONResponse(
            status_code=400,
            content={
                "error": result["error"],
                "cenotaph": result["cenotaph"],
                "scriptPubKey": script_pub_key,
            },
        )
    return result


@router.get("/{txid}")
async def get_runestone(
    txid: str,
    rpc: BitcoinRPCService = Depends(get_bitcoin_rpc),
    cache: CacheService = Depends(get_cache_service),
):
    cache_key = cache.generate_key("runestone", txid)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    try:
        tx = await rpc.get_raw_transaction(txid, True)
    except TransactionNotFound:
        raise HTTPException(status_code=404, detail="Transaction not found")
    except Exception as e:
        logger.error("Failed to fetch transaction", txid=txid, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    op_return = find_op_return_output(tx)
    if op_return is None:
        raise HTTPException(status_code=404, detail="No OP_RETURN output found")

    script_pub_key = {"hex": op_return["scriptPubKey"].get("hex"), "type": op_return["scriptPubKey"].get("type")}
    response = decode_response(script_pub_key)
    if isinstance(response, dict):
        await cache.set(cache_key, response, settings.CACHE_TTL)
    return response


@router.post("/decode")
async def decode_script(request: DecodeRequest):
    return decode_response({"hex": request.hex})
