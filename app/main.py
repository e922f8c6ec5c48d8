from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from database import init_models
from routes import router
from logging_config import get_logger

logger = get_logger("main", "api.log")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("Database ready")
    yield


app = FastAPI(title="Travel-Diary", lifespan=lifespan)
app.include_router(router)


@app.exception_handler(httpx.HTTPError)
async def upstream_error(request: Request, exc: httpx.HTTPError):
    # Traccar (or another upstream) failed: the request fails, caches stay untouched
    logger.error(f"Upstream failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Upstream service unavailable"})


if __name__=="__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=5999, reload=False)
