"""
Math Tutor API - Main Application
Quiz practice and step-by-step problem solving
FILE: main.py
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import time

from math_tutor.core.config import settings
from math_tutor.services import llm_client
from math_tutor.api.quiz import router as quiz_router
from math_tutor.api.solver import router as solver_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("🚀 Starting Math Tutor API...")

    status = llm_client.health_check()
    if status.get("configured"):
        logger.info(f"✓ LLM provider ready: {status['provider']} ({status['model']})")
    else:
        logger.warning(
            f"⚠ LLM provider '{status.get('provider')}' is not configured; "
            f"quiz generation and solving will fail until an API key is set"
        )

    yield

    logger.info("🛑 Shutting down Math Tutor API...")


app = FastAPI(
    title="Math Tutor API",
    description="""
    Math practice backend with two interaction modes.

    ## Features
    - **Quiz**: AI-generated multiple-choice quizzes by topic and difficulty
    - **Solver**: Step-by-step solutions to free-form math problems

    ## Endpoints
    - **Quiz**: `/api/quiz/*` - start, select, check, next, restart, state
    - **Solver**: `/api/solver/*` - submit, draft, clear, state
    - **Health**: `/health` - LLM provider configuration
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers"""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000  # Convert to ms
    response.headers["X-Process-Time-Ms"] = str(round(process_time, 2))
    return response


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    logger.info(f"📨 {request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(
        f"📤 {request.method} {request.url.path} - "
        f"Status: {response.status_code}"
    )
    return response


# ==================== INCLUDE ROUTERS ====================

app.include_router(quiz_router, prefix="/api")
app.include_router(solver_router, prefix="/api")


# ==================== ROOT ENDPOINTS ====================

@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Math Tutor API",
        "version": "1.0.0",
        "status": "operational",
        "endpoints": {
            "docs": "/docs",
            "quiz": "/api/quiz/state",
            "solver": "/api/solver/state",
            "health": "/health"
        }
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check reporting the LLM provider configuration

    Returns:
        API status plus the configured provider and model
    """
    llm_status = llm_client.health_check()

    return {
        "status": "healthy" if llm_status.get("configured") else "degraded",
        "timestamp": time.time(),
        "components": {
            "llm": llm_status
        },
        "api": {
            "title": app.title,
            "version": app.version,
            "status": "operational"
        }
    }


# ==================== RUN APPLICATION ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "math_tutor.main:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
        log_level="info"
    )
