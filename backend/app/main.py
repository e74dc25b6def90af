import logging
import warnings
# Suppress LangChain deprecation noise
warnings.filterwarnings("ignore", category=UserWarning, module="langchain_core._api.deprecation")

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import LOG_LEVEL
from app.api import wellness

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Wellness Blueprint API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Malformed input never reaches the services
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg', '')}"
        for err in exc.errors()
    ]
    logger.info(f"[API] Rejected {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content={"error": "Input validation failed: invalid types or missing required fields", "details": details},
    )


app.include_router(wellness.router)


# Root endpoint
@app.get("/")
def root():
    return {
        "message": "Welcome to Wellness Blueprint API",
        "docs": "/docs",
        "redoc": "/redoc"
    }


# Health check endpoint
@app.get("/health")
def health_check():
    return {"status": "healthy", "message": "API is running"}
