"""
Main FastAPI application entry point.
PI Dashboard - scoped performance indicator reporting
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pi_dashboard import config
from pi_dashboard.database import init_database
from pi_dashboard.routes import export_routes, pi_routes

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="PI Dashboard",
    description="Unit-wise performance indicator accomplishment and target reporting",
    version="1.0.0"
)


# Initialize database on startup
@app.on_event("startup")
async def startup_event():
    if config.STORE_BACKEND == "database":
        init_database()
    logger.info("PI Dashboard started with %s store", config.STORE_BACKEND)


@app.get("/health")
async def health():
    return {"status": "ok", "store": config.STORE_BACKEND}


# Include route modules
app.include_router(pi_routes.router, prefix="/pi", tags=["PI Dashboard"])
app.include_router(export_routes.router, prefix="/pi", tags=["Workbook Exchange"])


# Error handlers
@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    return JSONResponse({"error": "Not found"}, status_code=404)


@app.exception_handler(500)
async def server_error_handler(request: Request, exc):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
