# -*- coding: utf-8 -*-
from __future__ import annotations

import os
from pathlib import Path

# -------------------------------------------------------------------
# GLOBAL CONFIG
# -------------------------------------------------------------------

# Data directory: keep runtime state out of the package.
# - Default: <repo>/data (works for local dev).
# - In production: set STARCHAIN_DATA_DIR=/var/lib/starchain-node.
BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.environ.get("STARCHAIN_DATA_DIR", str(BASE_DIR / "data")))
# Database path (SQLite). If STARCHAIN_DB is relative, it is resolved inside DATA_DIR.
_chain_db = os.environ.get("STARCHAIN_DB", "chaindata.db")
DB_PATH = str((DATA_DIR / _chain_db) if not os.path.isabs(_chain_db) else Path(_chain_db))

CHAIN_NAME = "Starchain"
GENESIS_BODY = "First block in the chain - Genesis block"

# -------------------------------------------------------------------
# REQUEST MEMPOOL
# -------------------------------------------------------------------

# Validation window: how long a signing request stays pending (5 minutes)
VALIDATION_WINDOW_SEC = int(os.environ.get("VALIDATION_WINDOW_SEC", "300"))
# Background sweep of expired requests (0 = lazy expiry only)
MEMPOOL_SWEEP_INTERVAL_SEC = int(os.environ.get("MEMPOOL_SWEEP_INTERVAL_SEC", "30"))
MESSAGE_SUFFIX = "starRegistry"

# -------------------------------------------------------------------
# API
# -------------------------------------------------------------------

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
