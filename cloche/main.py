"""
Cloche - Main FastAPI Application
Boutique marketplace with plan-gated catalogs, leads and messaging
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy.exc import SQLAlchemyError
import os
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Import API routers
from cloche.api import auth, boutiques, users, messages, products, leads
from cloche.services.image_storage import image_storage
from cloche.utils.database import engine, create_tables
from cloche.utils.errors import MarketplaceError, QuotaExceeded

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    if os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true":
        await create_tables()
    yield
    # Shutdown
    await engine.dispose()

# Initialize FastAPI app
app = FastAPI(
    title="Cloche",
    description="Boutique marketplace API",
    version="1.0.0",
    docs_url="/api/docs" if os.getenv("DEBUG", "false").lower() == "true" else None,
    lifespan=lifespan
)

# Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure based on environment
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded images (local storage backend)
if image_storage.backend == "local":
    os.makedirs(image_storage.upload_dir, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(image_storage.upload_dir)), name="uploads")

# Error handlers
@app.exception_handler(QuotaExceeded)
async def quota_exceeded_handler(request: Request, exc: QuotaExceeded):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "message": exc.message,
            "plan": exc.plan_tier,
            "resource": exc.resource,
            "limit": exc.limit,
            "current": exc.current
        }
    )

@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())}
    )

@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error: method={request.method}, path={request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"message": "Database error"})

# API Routes
app.include_router(auth.router, prefix="/api/auth", tags=["authentication"])
app.include_router(boutiques.router, prefix="/api/auth", tags=["boutiques"])
app.include_router(users.router, prefix="/api/auth", tags=["users"])
app.include_router(messages.router, prefix="/api/messages", tags=["messages"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(leads.router, prefix="/api/leads", tags=["leads"])

@app.get("/api/health")
async def api_health():
    """API health check"""
    return {"status": "healthy", "service": "cloche-api", "version": "1.0.0"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cloche.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "5001")),
        reload=os.getenv("DEBUG", "false").lower() == "true"
    )
