from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

import anyio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .automation.fill_form import fill_form
from .config import CONFIG
from .field_registry import field_registry_payload, load_taxonomy
from .pipeline.profile import InvalidInvocation, parse_autofill_message
from .schemas import AutofillRequest

RUNS_DIR = CONFIG.runs_dir

logging.basicConfig(level=CONFIG.log_level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
LOGGER = logging.getLogger("formfill")

app = FastAPI(title="Form Autofill")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/field_registry")
async def field_registry() -> Dict[str, object]:
    return field_registry_payload(load_taxonomy(CONFIG.matching.taxonomy_path))


def _create_run_dir() -> Path:
    run_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:8]
    run_dir = RUNS_DIR / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def _log_run(run_dir: Path, message: str) -> None:
    timestamp = datetime.now(timezone.utc).isoformat()
    with (run_dir / "run.log").open("a") as f:
        f.write(f"[{timestamp}] {message}\n")


def _write_json_artifact(run_dir: Path, filename: str, payload: Dict) -> None:
    path = run_dir / filename
    path.write_text(json.dumps(payload, indent=2, default=str))


@app.post("/autofill")
async def autofill(payload: Dict):
    try:
        request = AutofillRequest.model_validate(payload)
        parse_autofill_message({"action": request.action, "data": request.data})
    except (ValidationError, InvalidInvocation) as exc:
        message = str(exc) if isinstance(exc, InvalidInvocation) else "Invalid payload"
        LOGGER.warning("Rejected autofill request: %s", message)
        return JSONResponse({"success": False, "error": message}, status_code=400)

    run_dir = _create_run_dir()
    _log_run(run_dir, "Starting autofill")
    autofill_cfg = CONFIG.autofill
    summary = await anyio.to_thread.run_sync(
        fill_form,
        request.data,
        run_dir,
        request.form_url,
        autofill_cfg.headless,
        autofill_cfg.slow_mo_ms,
        autofill_cfg.keep_open_ms,
        request.debug,
    )
    _write_json_artifact(run_dir, "autofill_summary.json", summary)
    result = summary.get("result") or {}
    _log_run(
        run_dir,
        f"Autofill complete. success={summary.get('success')} "
        f"filled={result.get('filledCount', 0)} failures={len(result.get('failures') or [])}",
    )
    summary["run_id"] = run_dir.name
    return JSONResponse(summary)
