from starchain.chain import ChainManager, ValidationReport
from starchain.errors import (
    InvalidInput,
    LedgerError,
    NoPendingRequest,
    NotFound,
    StoreUnavailable,
    Unauthorized,
)
from starchain.mempool import Ed25519Verifier, MempoolEntry, RequestMempool, VerificationResult
from starchain.models import Block, BlockBody, Star
from starchain.registry import StarRegistry
from starchain.store import BlockStore

__version__ = "1.0.0"

__all__ = [
    "Block",
    "BlockBody",
    "BlockStore",
    "ChainManager",
    "Ed25519Verifier",
    "InvalidInput",
    "LedgerError",
    "MempoolEntry",
    "NoPendingRequest",
    "NotFound",
    "RequestMempool",
    "Star",
    "StarRegistry",
    "StoreUnavailable",
    "Unauthorized",
    "ValidationReport",
    "VerificationResult",
]
