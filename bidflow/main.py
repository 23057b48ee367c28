"""
Main FastAPI application
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select

from bidflow.config import get_settings
from bidflow.database import engine, Base, AsyncSessionLocal
from bidflow.errors import ErrorKind, WorkflowError
from bidflow.models import CostType
from bidflow.api import projects, boqs, general_costs, quotations, contracts, invoices

settings = get_settings()
logger = logging.getLogger(__name__)


async def seed_cost_types(session) -> int:
    """Insert the configured general-cost types that are not in the catalog yet"""
    result = await session.execute(select(CostType.type_name))
    existing = set(result.scalars().all())
    added = 0
    for type_name in settings.DEFAULT_COST_TYPES:
        if type_name not in existing:
            session.add(CostType(type_name=type_name, description=type_name.replace("_", " ").title()))
            added += 1
    await session.commit()
    return added


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")

    async with AsyncSessionLocal() as session:
        added = await seed_cost_types(session)
        if added:
            logger.info(f"Seeded {added} general cost types")

    yield

    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    if exc.kind == ErrorKind.INFRASTRUCTURE:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(
        status_code=400,
        content={"error": "; ".join(details) or "invalid request", "code": ErrorKind.VALIDATION.value},
    )


# Include routers
app.include_router(projects.router, prefix="/projects", tags=["Projects"])
app.include_router(boqs.router, prefix="/boqs", tags=["BOQ"])
app.include_router(general_costs.router, prefix="/general-costs", tags=["General Costs"])
app.include_router(quotations.router, prefix="/quotations", tags=["Quotations"])
app.include_router(contracts.router, prefix="/contracts", tags=["Contracts"])
app.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
app.include_router(invoices.detail_router, prefix="/invoice", tags=["Invoices"])


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bidflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
