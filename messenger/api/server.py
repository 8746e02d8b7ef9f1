"""
FastAPI Server
Main API server for Messenger

Wires the account routes into one application. Authentication, the
account deletion engine and the database layer live in their own modules;
this file only composes them.
"""

import os

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from messenger.config.logging_config import configure_logging, get_logger
from messenger.database.session import check_db_connection
from messenger.routes.admin_routes import router as admin_router
from messenger.routes.user_routes import router as user_router

logger = get_logger(__name__)

app = FastAPI(
    title="Messenger API",
    description="Messenger backend: account management and deletion",
    version="2.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Self-service account routes (/api/users)
app.include_router(user_router)

# Admin routes (/api/admin)
app.include_router(admin_router)


@app.get("/health")
async def health_check():
    """Liveness plus database reachability."""
    database_ok = await check_db_connection()
    return {"status": "ok" if database_ok else "degraded", "database": database_ok}


def run() -> None:
    """Run the API server with uvicorn."""
    configure_logging()
    port = int(os.getenv("PORT", "4000"))
    logger.info(f"🚀 Starting Messenger API on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
