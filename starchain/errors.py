"""Error taxonomy shared by the chain, the mempool and the HTTP layer."""
from __future__ import annotations


class LedgerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(LedgerError):
    status_code = 400


class NotFound(LedgerError):
    status_code = 404


class NoPendingRequest(NotFound):
    # a rejected request rather than a missing resource
    status_code = 400


class Unauthorized(LedgerError):
    status_code = 401


class StoreUnavailable(LedgerError):
    status_code = 503
