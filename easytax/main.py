"""EasyTax FastAPI application."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from easytax import __version__
from easytax.api.health import router as health_router
from easytax.api.tax_codes import router as tax_codes_router
from easytax.config import settings
from easytax.exceptions import EasyTaxError

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="EasyTax - Tax Code Rate Tables",
    description="Stores and resolves tax rates by zone, product, code and validity date",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EasyTaxError)
async def easytax_error_handler(request: Request, exc: EasyTaxError):
    """Map domain errors to {"detail": message} with the error's status."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(health_router, tags=["Health"])
app.include_router(tax_codes_router, prefix=settings.mount_path, tags=["Tax Codes"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"service": "EasyTax", "version": __version__, "docs": "/docs"}
