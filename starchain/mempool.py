# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from starchain.config import MESSAGE_SUFFIX, VALIDATION_WINDOW_SEC
from starchain.errors import InvalidInput, NoPendingRequest

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# SIGNATURES
# -------------------------------------------------------------------

class Ed25519Verifier:
    """address = hex raw public key, signature = hex signature over the UTF-8 message."""

    def verify(self, message: str, address: str, signature: str) -> bool:
        try:
            pk = Ed25519PublicKey.from_public_bytes(bytes.fromhex(address))
            pk.verify(bytes.fromhex(signature), message.encode("utf-8"))
        except (ValueError, TypeError, InvalidSignature):
            return False
        return True


# -------------------------------------------------------------------
# DATACLASSES
# -------------------------------------------------------------------

@dataclass
class MempoolEntry:
    address: str
    request_timestamp: int  # ms
    message: str
    expire_at: int  # ms

    def remaining(self, now_ms: int) -> int:
        return self.expire_at - now_ms

    def to_view(self, now_ms: int) -> Dict[str, Any]:
        return {
            "walletAddress": self.address,
            "requestTimeStamp": self.request_timestamp,
            "message": self.message,
            "validationWindow": self.remaining(now_ms),
        }


@dataclass
class VerificationResult:
    verified: bool
    msg: str
    entry: Optional[MempoolEntry] = None
    validation_window: int = 0

    def to_dict(self) -> Dict[str, Any]:
        if not self.verified or self.entry is None:
            return {"registerStar": False, "msg": self.msg}
        return {
            "registerStar": True,
            "status": {
                "address": self.entry.address,
                "requestTimeStamp": self.entry.request_timestamp,
                "message": self.entry.message,
                "validationWindow": self.validation_window,
                "messageSignature": True,
            },
        }


# -------------------------------------------------------------------
# REQUEST MEMPOOL
# -------------------------------------------------------------------

class RequestMempool:
    """Pending signing requests plus the one-shot access grants they lead to.

    Every entry carries its own deadline. Expired entries are dropped lazily on
    lookup and, when the sweeper runs, periodically in the background. Both
    paths only ever delete, so whichever acts first wins.

    Granting access does not remove the pending entry: the two are cleared
    separately once the grant has been used (see StarRegistry).
    """

    def __init__(
        self,
        verifier: Optional[Ed25519Verifier] = None,
        window_sec: int = VALIDATION_WINDOW_SEC,
        clock: Callable[[], float] = time.time,
    ):
        self.verifier = verifier or Ed25519Verifier()
        self.window_ms = int(window_sec) * 1000
        self.clock = clock
        self.lock = threading.RLock()

        self.mempool: Dict[str, MempoolEntry] = {}  # address -> pending request
        self.access_granted: Dict[str, bool] = {}

        self._stop_event = threading.Event()
        self._sweeper_thread: Optional[threading.Thread] = None

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    # ------------------ REQUESTS ------------------

    def request_validation(self, address: str) -> Dict[str, Any]:
        if not isinstance(address, str) or not address:
            raise InvalidInput("address data is missing")

        with self.lock:
            now = self.now_ms()
            entry = self._lookup_locked(address, now)
            if entry is not None:
                # deadline and message stay those of the first request
                logger.debug("[MEMPOOL] request already pending address=%s remaining_ms=%d", address, entry.remaining(now))
                return entry.to_view(now)

            entry = MempoolEntry(
                address=address,
                request_timestamp=now,
                message=f"{address}:{now}:{MESSAGE_SUFFIX}",
                expire_at=now + self.window_ms,
            )
            self.mempool[address] = entry
            logger.info("[MEMPOOL] request added address=%s expire_at=%d", address, entry.expire_at)
            return entry.to_view(now)

    def _lookup_locked(self, address: str, now: int) -> Optional[MempoolEntry]:
        entry = self.mempool.get(address)
        if entry is None:
            return None
        if entry.remaining(now) <= 0:
            self.mempool.pop(address, None)
            logger.info("[MEMPOOL] request expired address=%s", address)
            return None
        return entry

    def lookup(self, address: str) -> Optional[MempoolEntry]:
        with self.lock:
            return self._lookup_locked(address, self.now_ms())

    def revoke_request(self, address: str) -> None:
        with self.lock:
            if self.mempool.pop(address, None) is not None:
                logger.debug("[MEMPOOL] request removed address=%s", address)

    # ------------------ SIGNATURE + GRANTS ------------------

    def verify_and_grant(self, address: str, signature: str) -> VerificationResult:
        if not isinstance(address, str) or not isinstance(signature, str) or not address or not signature:
            raise InvalidInput("address or signature data is missing")

        with self.lock:
            now = self.now_ms()
            entry = self._lookup_locked(address, now)
            if entry is None:
                raise NoPendingRequest("no valid mempool object found")

            if not self.verifier.verify(entry.message, address, signature):
                logger.info("[MEMPOOL] signature rejected address=%s", address)
                return VerificationResult(verified=False, msg="invalid/unverified message")

            self.access_granted[address] = True
            logger.info("[MEMPOOL] access granted address=%s", address)
            return VerificationResult(
                verified=True,
                msg="verified signed message",
                entry=entry,
                validation_window=entry.remaining(now),
            )

    def has_grant(self, address: str) -> bool:
        with self.lock:
            return bool(self.access_granted.get(address, False))

    def consume_grant(self, address: str) -> None:
        with self.lock:
            if self.access_granted.pop(address, None) is not None:
                logger.debug("[MEMPOOL] access consumed address=%s", address)

    # ------------------ MAINTENANCE ------------------

    def prune_expired(self) -> int:
        """Drop every expired request. Returns the number removed."""
        with self.lock:
            now = self.now_ms()
            expired: List[str] = [a for a, e in self.mempool.items() if e.remaining(now) <= 0]
            for address in expired:
                self.mempool.pop(address, None)
        if expired:
            logger.info("[MEMPOOL] pruned expired requests n=%d", len(expired))
        return len(expired)

    def grants(self) -> Dict[str, bool]:
        with self.lock:
            return dict(self.access_granted)

    def snapshot(self) -> Dict[str, Any]:
        with self.lock:
            now = self.now_ms()
            return {
                "mempool": {a: e.to_view(now) for a, e in self.mempool.items()},
                "access_granted": self.grants(),
            }

    def start_sweeper(self, interval_sec: float) -> None:
        if interval_sec <= 0 or self._sweeper_thread is not None:
            return
        self._stop_event.clear()
        self._sweeper_thread = threading.Thread(target=self._sweep_loop, args=(interval_sec,), daemon=True)
        self._sweeper_thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._sweeper_thread is not None:
            self._sweeper_thread.join(timeout=5)
            self._sweeper_thread = None

    def _sweep_loop(self, interval_sec: float) -> None:
        while not self._stop_event.wait(interval_sec):
            self.prune_expired()
