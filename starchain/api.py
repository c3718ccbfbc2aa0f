# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, Optional

from flask import Blueprint, Flask, current_app, jsonify, request

from starchain.chain import ChainManager
from starchain.config import (
    API_HOST,
    API_PORT,
    CHAIN_NAME,
    DB_PATH,
    LOG_LEVEL,
    MEMPOOL_SWEEP_INTERVAL_SEC,
    VALIDATION_WINDOW_SEC,
)
from starchain.errors import InvalidInput, LedgerError, NotFound, StoreUnavailable
from starchain.mempool import RequestMempool
from starchain.registry import StarRegistry
from starchain.store import BlockStore

logger = logging.getLogger(__name__)

bp = Blueprint("starchain", __name__)


def _registry() -> StarRegistry:
    return current_app.extensions["starchain"]


def _json_body() -> Dict[str, Any]:
    j = request.get_json(silent=True)
    if isinstance(j, dict):
        return j
    # form-encoded clients
    return request.form.to_dict()


# -------------------------------------------------------------------
# FLASK API
# -------------------------------------------------------------------

@bp.errorhandler(LedgerError)
def handle_ledger_error(e: LedgerError):
    logger.info("[API] %s %s -> %d %s", request.method, request.path, e.status_code, e.message)
    return jsonify({"ok": False, "error": e.message}), e.status_code


@bp.route("/requestValidation", methods=["POST"])
def request_validation():
    j = _json_body()
    return jsonify(_registry().mempool.request_validation(j.get("address") or ""))


@bp.route("/message-signature/validate", methods=["POST"])
def validate_signature():
    j = _json_body()
    res = _registry().mempool.verify_and_grant(j.get("address") or "", j.get("signature") or "")
    if not res.verified:
        return jsonify({"ok": False, "error": res.msg}), 400
    return jsonify(res.to_dict())


@bp.route("/block", methods=["POST"])
def post_block():
    j = _json_body()
    blk = _registry().register_star(j.get("address") or "", j.get("star"))
    return jsonify(blk.to_dict())


@bp.route("/block/<index>")
def get_block(index: str):
    if not re.fullmatch(r"-?[0-9]+", index):
        raise InvalidInput(f"index value: {index} is not a valid number")
    idx = int(index)
    blk = _registry().chain.get_block_by_height(idx)
    return jsonify(blk.to_api_dict())


@bp.route("/stars/hash:<block_hash>")
def get_star_by_hash(block_hash: str):
    block_hash = (block_hash or "").strip()
    if not block_hash:
        raise InvalidInput("empty hash value")
    blk = _registry().chain.get_block_by_hash(block_hash)
    if blk is None:
        raise NotFound(f"no block with hash {block_hash}")
    return jsonify(blk.to_api_dict())


@bp.route("/stars/address:<address>")
def get_stars_by_address(address: str):
    blocks = _registry().chain.get_blocks_by_address((address or "").strip())
    return jsonify([b.to_api_dict() for b in blocks])


@bp.route("/chain/validate")
def validate_chain():
    chain = _registry().chain
    report = chain.validate_chain()
    out = report.to_dict()
    out["height"] = chain.height()
    return jsonify(out)


@bp.route("/mempool")
def mempool():
    return jsonify(_registry().mempool.snapshot())


@bp.route("/healthz")
def healthz():
    """Lightweight health check for uptime monitors and load balancers."""
    return jsonify({"ok": True, "chain": CHAIN_NAME, "height": _registry().chain.height(), "ts": int(time.time())})


def build_registry(db_path: str = DB_PATH, window_sec: int = VALIDATION_WINDOW_SEC) -> StarRegistry:
    try:
        chain = ChainManager(BlockStore(db_path))
        chain.initialize()
    except StoreUnavailable as e:
        raise SystemExit(f"Fatal: cannot initialize the chain: {e.message}") from e
    return StarRegistry(chain, RequestMempool(window_sec=window_sec))


def create_app(registry: Optional[StarRegistry] = None, sweep_interval_sec: int = MEMPOOL_SWEEP_INTERVAL_SEC) -> Flask:
    if registry is None:
        registry = build_registry()
    registry.mempool.start_sweeper(sweep_interval_sec)

    app = Flask(__name__)
    app.extensions["starchain"] = registry
    app.register_blueprint(bp)
    return app


def main() -> None:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    app = create_app()
    logger.info("Starting %s node on %s:%d", CHAIN_NAME, API_HOST, API_PORT)
    app.run(host=API_HOST, port=API_PORT, debug=False)
