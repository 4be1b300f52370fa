import threading

from fastapi import FastAPI, HTTPException

from driftbox.cli import build_orchestrator
from driftbox.config import load_config
from driftbox.errors import ConfigError

app = FastAPI(title="driftbox")

_run_lock = threading.Lock()
_last_report: dict | None = None


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok", "running": _run_lock.locked()}


@app.post("/runs")
def create_run() -> dict:
    global _last_report
    if not _run_lock.acquire(blocking=False):
        raise HTTPException(status_code=409, detail="A cluster run is already in progress")
    try:
        try:
            config = load_config()
        except ConfigError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        report = build_orchestrator(config).run()
        _last_report = report.to_dict()
        return _last_report
    finally:
        _run_lock.release()


@app.get("/runs/last")
def last_run() -> dict:
    if _last_report is None:
        raise HTTPException(status_code=404, detail="No run has finished yet")
    return _last_report
