import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowgraph.config import settings
from flowgraph.routers import ai, approvals, executions, health, transfer, workflows
from flowgraph.domain.errors import (
    BackendUnavailableError,
    ConflictError,
    LLMUnavailableError,
    NotFoundError,
    ValidationError,
)
from flowgraph.application.event_handlers import register_event_handlers
from flowgraph.dependencies import get_builder

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="FlowGraph API",
    description="Visual workflow builder and execution orchestration",
    version=settings.VERSION,
)

# Register domain event handlers and background tasks on startup
@app.on_event("startup")
async def startup_event():
    register_event_handlers()
    builder = get_builder()
    await builder.load_default()
    builder.start_background()


@app.on_event("shutdown")
async def shutdown_event():
    get_builder().close()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],  # Allows all methods
    allow_headers=["*"],  # Allows all headers
)


# Domain error handlers
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(BackendUnavailableError)
async def backend_unavailable_handler(request: Request, exc: BackendUnavailableError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(LLMUnavailableError)
async def llm_unavailable_handler(request: Request, exc: LLMUnavailableError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})

# Include routers
app.include_router(health.router, tags=["Health"])  # Health check endpoints first
app.include_router(workflows.router, tags=["Workflows"])
app.include_router(transfer.router, tags=["Import/Export"])
app.include_router(ai.router, tags=["AI"])
app.include_router(executions.router, tags=["Executions"])
app.include_router(approvals.router, tags=["Approvals"])

@app.get("/")
async def root():
    return {"message": "Welcome to FlowGraph API. See /docs for API documentation"}
