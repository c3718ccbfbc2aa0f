# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import threading
from typing import Any

from starchain.chain import ChainManager
from starchain.errors import InvalidInput, Unauthorized
from starchain.mempool import RequestMempool
from starchain.models import Block, BlockBody, Star

logger = logging.getLogger(__name__)


class StarRegistry:
    """Append gate: one verified signature buys exactly one star block."""

    def __init__(self, chain: ChainManager, mempool: RequestMempool):
        self.chain = chain
        self.mempool = mempool
        # grant check, append and consumption must not interleave
        self.lock = threading.Lock()

    def register_star(self, address: str, star: Any) -> Block:
        if not isinstance(address, str) or not address or star is None or star == "":
            raise InvalidInput("request data is missing; check your request and try again")
        parsed = Star.from_request(star)

        with self.lock:
            if not self.mempool.has_grant(address):
                logger.info("[REGISTRY] not authorized address=%s", address)
                raise Unauthorized("user has not been granted access to create a star")

            blk = self.chain.append_block(BlockBody.star_record(address, parsed))

            self.mempool.consume_grant(address)
            self.mempool.revoke_request(address)

        logger.info("[REGISTRY] star registered address=%s height=%d", address, blk.height)
        return blk
