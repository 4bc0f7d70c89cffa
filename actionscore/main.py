import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from actionscore.config import CORS_ORIGINS
from actionscore.database import init_db
from actionscore.errors import ActionScoreError
from actionscore.routes.cycle_routes import router as cycle_router
from actionscore.routes.pillar_routes import router as pillar_router
from actionscore.routes.report_routes import router as report_router
from actionscore.routes.score_routes import router as score_router
from actionscore.routes.task_routes import router as task_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        init_db()
    except Exception as e:
        logger.error(f"Database init failed: {e}")
        raise
    yield


app = FastAPI(title="ActionScore", lifespan=lifespan)


@app.exception_handler(ActionScoreError)
async def action_score_error_handler(request: Request, exc: ActionScoreError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/api/v1/health-check")
async def health():
    return {"status": "ok", "message": "Backend is alive!"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(score_router)
app.include_router(task_router)
app.include_router(pillar_router)
app.include_router(cycle_router)
app.include_router(report_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("actionscore.main:app", host="0.0.0.0", port=8000, reload=True)
