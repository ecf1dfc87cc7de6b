import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

from espetinhos.api import cash, customers, inventory, orders, products, reports
from espetinhos.config import settings
from espetinhos.database import LedgerStore
from espetinhos.errors import LedgerError


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # Tests may install their own store before startup
    owns_ledger = getattr(app.state, "ledger", None) is None
    if owns_ledger:
        app.state.ledger = LedgerStore(settings.DATABASE_URL)
    app.state.ledger.create_schema()
    yield
    if owns_ledger:
        app.state.ledger.dispose()
        app.state.ledger = None


app = FastAPI(
    title=settings.APP_NAME,
    description="Orders, stock, cash flow and customer accounts for a small food-service business",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    """Domain failures carry their own status; the transaction was already rolled back."""
    if exc.status_code >= 500:
        logger.error("Ledger failure on %s: %s", request.url.path, exc.message)
    else:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return JSON for unhandled exceptions so frontend can parse error."""
    logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
    return JSONResponse(status_code=500, content={"detail": str(exc)})


app.include_router(products.router, prefix="/api/v1")
app.include_router(orders.router, prefix="/api/v1")
app.include_router(inventory.router, prefix="/api/v1")
app.include_router(cash.router, prefix="/api/v1")
app.include_router(customers.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}
