import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from .env file
load_dotenv()

from app.config import ALLOWED_ORIGIN, LOG_LEVEL
from app.exceptions import MediaDownloadError
from app.models import DownloadResponse
from app.routers import cache_router, download_router
from app.utils.logging_utils import get_request_logger, setup_logger


setup_logger(log_level=getattr(logging, LOG_LEVEL.upper(), logging.INFO))

app = FastAPI(title="Social Media Download API")

# CORS configuration
app.add_middleware(CORSMiddleware,
    allow_origins=[ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

app.include_router(download_router, prefix="/api")
app.include_router(cache_router)


@app.exception_handler(MediaDownloadError)
async def media_download_error_handler(request: Request, exc: MediaDownloadError):
    """Render every pipeline failure as the JSON error envelope."""
    get_request_logger("-").warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=DownloadResponse(success=False, error=exc.message).to_content()
    )


@app.get("/")
async def root():
    return {"message": "Welcome to the Social Media Download API. POST /api/download with {\"url\": <youtube|instagram|facebook url>} to get a download link."}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
