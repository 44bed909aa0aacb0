"""
clubdesk - FastAPI server
Club attendance & payment API

Data source: Supabase (in-memory when not configured)
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from clubdesk import __version__
from clubdesk.club import club_router
from clubdesk.engine.errors import ClubError

# FastAPI app
app = FastAPI(
    title="clubdesk",
    description="Club attendance and payment lifecycle API",
    version=__version__
)

# Club router
app.include_router(club_router, prefix="/api")


# ==================== Error handlers ====================

@app.exception_handler(ClubError)
async def club_error_handler(request: Request, exc: ClubError):
    """Engine / service errors -> {"error": message}"""
    logger.debug(f"{request.method} {request.url.path} rejected ({exc.http_status}): {exc.message}")
    return JSONResponse(status_code=exc.http_status, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return JSONResponse(status_code=422, content={"error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ==================== Lifecycle ====================

@app.on_event("startup")
async def startup_event():
    logger.info("clubdesk server started")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("clubdesk server stopped")


@app.get("/health")
async def health():
    """Liveness"""
    return {"status": "ok", "version": __version__}


# ==================== Run ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clubdesk.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
