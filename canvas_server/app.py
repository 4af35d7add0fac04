"""FastAPI application serving workflows, folders, run history and LLM runs."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from canvas_server import db
from canvas_server.folder_routes import router as folder_router
from canvas_server.history_routes import router as history_router
from canvas_server.llm_routes import router as llm_router
from canvas_server.workflow_routes import router as workflow_router

from dotenv import load_dotenv
load_dotenv()  # load environment variables from .env file

# CORS origins - configurable via environment variable
# Use comma-separated values for multiple origins, or "*" for all (development only)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database tables on startup."""
    db.init_all()
    yield


app = FastAPI(
    title="Canvas API",
    description="Remote store for canvas workflows, folders and run history",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routes
app.include_router(workflow_router, prefix="/api")
app.include_router(folder_router, prefix="/api")
app.include_router(history_router, prefix="/api")
app.include_router(llm_router, prefix="/api")


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "0.1.0",
        "db": str(db.DB_PATH),
        "endpoints": {
            "workflows": "/api/workflows",
            "folders": "/api/folders",
            "history": "/api/history",
            "llm": "/api/llm/run",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
