"""
Error handling service for the runescan indexer.

Centralizes how RPC, database and decode failures are logged so that a
failing transaction or block never stops the surrounding batch.
"""

from typing import Any, Dict

import structlog

from runescan.utils.exceptions import RPCError, TransactionNotFound


class ErrorHandler:
    """Handle indexing errors and recovery"""

    def __init__(self):
        self.logger = structlog.get_logger()

    def handle_rpc_error(self, error: Exception, context: Dict[str, Any]) -> bool:
        """
        Handle Bitcoin RPC errors.

        Args:
            error: The exception that occurred
            context: Additional context about the error

        Returns:
            True if the operation may succeed on a later run, False otherwise
        """
        if isinstance(error, TransactionNotFound):
            self.logger.warning("Transaction not found", error=error.message, context=context)
            return False

        if isinstance(error, RPCError):
            error_message = f"RPC Error: code={error.code}, message={error.message}"
            retryable = error.is_transient
        else:
            error_message = str(error)
            retryable = True

        self.logger.error("RPC error occurred", error=error_message, context=context)
        return retryable

    def handle_database_error(self, error: Exception, context: Dict[str, Any]) -> bool:
        """
        Handle database errors. The unit of work has already been rolled back.

        Returns:
            True if the operation should be retried, False otherwise
        """
        self.logger.error("Database error occurred", error=str(error), context=context)
        return True

    def handle_decode_error(self, error: str, context: Dict[str, Any]) -> None:
        """Malformed runestones are expected on-chain, logged at warning level"""
        self.logger.warning("Runestone decode error", error=error, context=context)

