from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router as api_router
from app.core.config import cors_origins
from app.core.exceptions import (
    ExpenseTrackerError,
    InvalidArgumentError,
    TransactionNotFoundError,
    ValidationError,
)
from app.core.logging import get_logger

logger = get_logger("expense_tracker.main")

app = FastAPI(title="Expense Tracker API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    TransactionNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    ValidationError: status.HTTP_400_BAD_REQUEST,
}


@app.exception_handler(ExpenseTrackerError)
async def handle_domain_error(request: Request, exc: ExpenseTrackerError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, **({"details": exc.details} if exc.details else {})},
    )


app.include_router(api_router)
