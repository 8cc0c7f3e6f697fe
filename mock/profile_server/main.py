from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pathlib import Path
import json
import os

app = FastAPI(title="Mock Member Profile Server", version="1.0.0")
# Docker mounts the personas at /profile_stub; local runs read them from the repo
DATA_DIR = Path("/profile_stub") if os.path.exists("/profile_stub") else Path(__file__).resolve().parents[2] / "profile_stub"


@app.get("/health")
def health(): return {"status": "ok"}


@app.get("/members/{member_id}/profile")
def get_profile(member_id: str):
    file = DATA_DIR / f"profile_{member_id}.json"
    if not file.exists():
        raise HTTPException(status_code=404, detail="member not found")
    return JSONResponse(content=json.loads(file.read_text()))
