"""FastAPI application exposing the order statistics API."""

import logging
from typing import Dict

from fastapi import FastAPI, HTTPException

from app.api.routes.stats import router as stats_router
from app.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL

app = FastAPI(title="Restaurant Order Analytics")
logger = logging.getLogger(__name__)

app.include_router(stats_router)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/config")
def supabase_config() -> Dict[str, str]:
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise HTTPException(status_code=500, detail="Supabase configuration missing.")
    return {"supabaseUrl": SUPABASE_URL, "supabaseAnonKey": SUPABASE_ANON_KEY}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, reload=True)
