import json
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from runescan.api.dependencies import get_persistence_service
from runescan.api.models import BlockItem, InputItem, OutputItem, RunestoneItem, TransactionDetail
from runescan.services.persistence import PersistenceService

logger = structlog.get_logger()

router = APIRouter(prefix="/v1")


@router.get("/transactions/{txid}", response_model=TransactionDetail)
async def get_transaction(
    txid: str,
    persistence: PersistenceService = Depends(get_persistence_service),
):
    try:
        transaction = await persistence.get_transaction_detail(txid)
        runestones = await persistence.get_runestones(txid) if transaction else []
    except Exception as e:
        logger.error("Failed to load transaction", txid=txid, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    if transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")

    return TransactionDetail(
        txid=transaction.txid,
        block_height=transaction.block_height,
        total_input_value=transaction.total_input_value,
        total_output_value=transaction.total_output_value,
        fee=transaction.fee,
        size=transaction.size,
        weight=transaction.weight,
        created_at=transaction.created_at,
        inputs=[InputItem.model_validate(item) for item in transaction.inputs],
        outputs=[OutputItem.model_validate(item) for item in transaction.outputs],
        runestones=[
            RunestoneItem(
                output_index=item.output_index,
                rune_name=item.rune_name,
                formatted_rune_name=item.formatted_rune_name,
                cenotaph=item.cenotaph,
                error=item.error,
                decoded=json.loads(item.decoded_json),
            )
            for item in runestones
        ],
    )


@router.get("/blocks", response_model=List[BlockItem])
async def list_blocks(
    limit: int = Query(20, ge=1, le=500, description="Maximum blocks to return"),
    persistence: PersistenceService = Depends(get_persistence_service),
):
    try:
        blocks = await persistence.list_blocks(limit)
    except Exception as e:
        logger.error("Failed to list blocks", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
    return [BlockItem.model_validate(block) for block in blocks]
