import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.routers import assignments, documents, ops, schedules
from cleanops.errors import CleanOpsError

# Logging configuration
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="CleanOps AI")


@app.exception_handler(CleanOpsError)
async def cleanops_error_handler(request: Request, exc: CleanOpsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


app.include_router(documents.router)
app.include_router(schedules.router)
app.include_router(assignments.router)
app.include_router(ops.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
