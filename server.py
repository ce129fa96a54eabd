# server.py: FastAPI mobile API (read-only ledger views)
import logging
import os
import time

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agrichain.fastapi.ledger_api import auth_wallet, get_ledger, router as ledger_router
from agrichain.services.ledger.ledger_service import LedgerService

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="AgriChain Mobile API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- include routers ---
app.include_router(ledger_router)


# --- diagnostics ---
@app.get("/_health")
def _health(ledger: LedgerService = Depends(get_ledger)):
    return {
        "ok": True,
        "service": "fastapi-mobile",
        "ts": int(time.time()),
        "headSeq": ledger.head_seq,
        "headHash": ledger.head_hash,
    }


@app.get("/_whoami")
def _whoami(wallet: str = Depends(auth_wallet)):
    return {"ok": True, "wallet": wallet}
