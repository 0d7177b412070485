import logging
from fastapi import FastAPI, HTTPException
from .api_models import IdentityEventBatch
from .config import load_config, validate_config
from .logging_config import configure_logging
from .oracle import IdentityOracle

logger = logging.getLogger(__name__)

app = FastAPI(title="Identity Attestation Oracle")

ORACLE = None
CONFIG = None

@app.on_event("startup")
def _startup():
    global ORACLE, CONFIG
    CONFIG = load_config()
    configure_logging(CONFIG.log_level, json_format=CONFIG.log_json)
    ORACLE = IdentityOracle.from_config(CONFIG)
    logger.info("Oracle ready: %r", CONFIG)

@app.get("/health")
def health():
    checks = validate_config()
    return {
        "status": "ok" if ORACLE is not None else "unconfigured",
        "config": checks,
        "verifier": ORACLE.account_id if ORACLE is not None else None,
    }

@app.post("/identity_events")
def identity_events(batch: IdentityEventBatch):
    if ORACLE is None:
        raise HTTPException(503, "ORACLE_NOT_CONFIGURED")
    endpoint = batch.ledger_endpoint or CONFIG.ledger_endpoint
    events = [e.to_event() for e in batch.events]
    try:
        report = ORACLE.on_receive_events(endpoint, events)
    except ValueError as e:
        # unknown ledger endpoint scheme
        raise HTTPException(400, str(e))
    return report.to_dict()
