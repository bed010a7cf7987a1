import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("qyou")

from qyou.api.auth import router as auth_router
from qyou.api.claims import router as claims_router
from qyou.api.profile import router as profile_router
from qyou.database import init_db
from qyou.services.errors import QyouError
from qyou.services.storage import MEDIA_BASE_URL, MEDIA_ROOT

init_db()

ENV = os.getenv("ENV", "dev")

app = FastAPI(
    title="Qyou",
    docs_url=None if ENV == "prod" else "/docs",
    redoc_url=None if ENV == "prod" else "/redoc",
)

origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QyouError)
async def qyou_error_handler(request: Request, exc: QyouError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health")
def health_check():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(claims_router)
app.include_router(profile_router)

# Locally stored photos; with STORAGE_BACKEND=gcs the bucket serves them instead
if os.getenv("STORAGE_BACKEND", "local").lower() == "local":
    Path(MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
    app.mount(MEDIA_BASE_URL, StaticFiles(directory=MEDIA_ROOT), name="media")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
