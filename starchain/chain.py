# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from starchain.config import GENESIS_BODY
from starchain.errors import NotFound, StoreUnavailable
from starchain.models import Block, BlockBody, record_digest
from starchain.store import BlockStore

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    valid: bool
    errors: List[int] = field(default_factory=list)

    def to_dict(self):
        return {"valid": self.valid, "errors": list(self.errors)}


# -------------------------------------------------------------------
# CHAIN MANAGER
# -------------------------------------------------------------------

class ChainManager:
    def __init__(self, store: BlockStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock
        # height read + link + hash + persist is one unit
        self.lock = threading.RLock()

    def initialize(self) -> None:
        with self.lock:
            if self.store.key_count() == 0:
                genesis = self.append_block(BlockBody.plain(GENESIS_BODY))
                logger.info("[CHAIN] genesis created hash=%s", genesis.hash)

    def height(self) -> int:
        """Height of the last block, -1 for an empty store."""
        return self.store.key_count() - 1

    def append_block(self, body: BlockBody) -> Block:
        with self.lock:
            cur_height = self.height()

            blk = Block(body=body)
            blk.height = cur_height + 1
            blk.time = int(self.clock())
            if blk.height != 0:
                blk.previous_block_hash = self.get_block_by_height(cur_height).hash

            blk.hash = blk.compute_hash()
            self.store.put(blk.height, blk.to_json())

        logger.info("[BLOCK] appended height=%d hash=%s", blk.height, blk.hash)
        return blk

    def _load(self, height: int) -> Optional[Block]:
        raw = self.store.get(height)
        if raw is None:
            return None
        try:
            return Block.from_json(raw)
        except ValueError as e:
            raise StoreUnavailable(f"stored block {height} is unreadable: {e}") from e

    def get_block_by_height(self, height: int) -> Block:
        if height < 0 or height > self.height():
            raise NotFound(f"block # {height} does not exist")
        blk = self._load(height)
        if blk is None:
            raise NotFound(f"block # {height} does not exist")
        return blk

    def get_block_by_hash(self, block_hash: str) -> Optional[Block]:
        """Linear scan over every stored block."""
        for _height, raw in self.store.scan_all():
            try:
                blk = Block.from_json(raw)
            except ValueError:
                continue
            if blk.hash == block_hash:
                return blk
        logger.debug("[CHAIN] no block with hash=%s", block_hash)
        return None

    def get_blocks_by_address(self, address: str) -> List[Block]:
        """Every star block registered by ``address``, in height order. Linear scan."""
        out: List[Block] = []
        for _height, raw in self.store.scan_all():
            try:
                blk = Block.from_json(raw)
            except ValueError:
                continue
            if blk.body.has_star and blk.body.address == address:
                out.append(blk)
        return out

    # ------------------ VALIDATION ------------------

    def validate_block(self, height: int) -> bool:
        raw = self.store.get(height)
        if raw is None:
            logger.warning("[CHAIN] block #%d missing", height)
            return False
        try:
            blk = Block.from_json(raw)
            record = json.loads(raw)
        except ValueError as e:
            logger.warning("[CHAIN] block #%d unreadable: %s", height, e)
            return False

        # digest the stored record, unknown fields included
        stored = blk.hash
        computed = record_digest(record)
        if stored != computed:
            logger.warning("[CHAIN] block #%d invalid hash: %s<>%s", height, stored, computed)
            return False
        return True

    def _stored_hash_link(self, height: int) -> bool:
        raw_cur, raw_next = self.store.get(height), self.store.get(height + 1)
        if raw_cur is None or raw_next is None:
            return False
        try:
            return Block.from_json(raw_cur).hash == Block.from_json(raw_next).previous_block_hash
        except ValueError:
            return False

    def validate_chain(self) -> ValidationReport:
        """Full re-verification of every block and every link. Nothing is cached."""
        errors = set()
        with self.lock:
            hgt = self.height()
            for i in range(hgt):
                if not self.validate_block(i):
                    errors.add(i)
                if not self._stored_hash_link(i):
                    logger.warning("[CHAIN] block #%d does not link to block #%d", i, i + 1)
                    errors.add(i)

            # last block has no outgoing link
            if hgt >= 0 and not self.validate_block(hgt):
                errors.add(hgt)

        if errors:
            logger.warning("[CHAIN] block errors=%d blocks=%s", len(errors), sorted(errors))
            return ValidationReport(valid=False, errors=sorted(errors))
        logger.info("[CHAIN] no errors detected height=%d", hgt)
        return ValidationReport(valid=True)
