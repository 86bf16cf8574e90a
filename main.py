"""
Hygeia Medicine Safety Gateway

Backend for the Hygeia medicine safety tool:

- Fake detection: AI authenticity verdicts for medicine package photos
- Safety check: drug name + allergy profile -> SAFE / CAUTION / RISK
- Verify: guided scan -> allergy profile -> review flow
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hygeia.config import settings
from hygeia.api import authenticity, drugs, safety, verify
from hygeia.api.deps import get_knowledge_base, get_safety_resolver

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Informational medicine safety service:

    * **Authenticity** - Gemini vision verdict on a medicine package photo
    * **Safety Check** - Allergy cross-referencing against drug family and ingredients
    * **Verify** - Guided flow combining both, skipping allergies for counterfeits
    * **Knowledge Base** - Reference drug catalog lookup
    """,
    version=settings.VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(authenticity.router, prefix="/api")
app.include_router(safety.router, prefix="/api")
app.include_router(drugs.router, prefix="/api")
app.include_router(verify.router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    """Load reference data on startup"""
    logger.info(f"Starting {settings.APP_NAME} {settings.VERSION}...")
    logger.info(f"Knowledge base loaded with {len(get_knowledge_base())} drugs")
    logger.info(f"Safety engine: {settings.SAFETY_ENGINE}")
    logger.info("API documentation available at /api/docs")


@app.get("/")
async def root():
    return {
        'name': settings.APP_NAME,
        'version': settings.VERSION,
        'docs': '/api/docs',
        'disclaimer': (
            "Hygeia is an AI safety tool. Always consult a licensed medical professional "
            "or pharmacist before starting any new medication."
        ),
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "services": {
            "knowledge_base": "ok",
            "safety_engine": get_safety_resolver().engine,
            "gemini": "enabled" if settings.USE_GEMINI else "disabled",
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
