import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from ocr_enhancer.config import settings
from ocr_enhancer.services.repair import FALLBACK_STAGES, REPAIR_STAGES

VERSION = "0.1.0"

logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Restates receipt OCR text as structured, validated JSON",
    version=VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    fallback = FALLBACK_STAGES if settings.REPAIR_DECIMAL_FALLBACK else ()
    return {
        "message": f"{settings.APP_NAME} API",
        "version": VERSION,
        "status": "running",
        "repairStages": [stage.name for stage in REPAIR_STAGES],
        "fallbackStages": [stage.name for stage in fallback],
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


from ocr_enhancer.routers import admin, enhance, licenses

app.include_router(enhance.router)
app.include_router(licenses.router)
app.include_router(admin.router)

if not settings.COHERE_API_KEY:
    logger.warning("COHERE_API_KEY is not set; /api/enhance-text will return 502")
