"""
Airdrop Compiler: FastAPI Server
================================

RESTful API for compiling airdrop balances from a ledger export.

Endpoints:
    POST /compile          Compile CSV text sent in the request body
    POST /compile/file     Upload a CSV export for compilation
    GET  /health           Health check and active rates

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production

Docs:
    http://localhost:8000/docs             # Swagger UI (auto-generated)
    http://localhost:8000/redoc            # ReDoc (alternative)
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, UploadFile
from pydantic import BaseModel, Field

from airdrop_compiler import __version__
from airdrop_compiler.config import Settings
from airdrop_compiler.exceptions import AirdropProcessingError
from airdrop_compiler.models import AccountBatch, AirdropReport, ProcessedAccount, Severity, ValidationFinding
from airdrop_compiler.pipeline import AirdropPipeline

# ─── Application Lifespan (load settings) ───────────────────────────

_pipeline: AirdropPipeline | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the pipeline from environment settings on startup."""
    global _pipeline  # noqa: PLW0603
    _pipeline = AirdropPipeline(Settings.from_env())
    yield
    _pipeline = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="Airdrop Compiler API",
    description=(
        "Deterministic XRP → Flare airdrop compilation. "
        "Row validation with auditable excluded-value totals, exact decimal "
        "conversion, whale cap, floor rounding, and per-address aggregation."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Request / Response Schemas ─────────────────────────────────────


class CompileRequest(BaseModel):
    """Request body for the /compile endpoint."""

    csv_text: str = Field(
        ...,
        min_length=1,
        description="The ledger export, header row included.",
        json_schema_extra={
            "example": (
                "XRPAddress,FlareAddress,XRPBalance,FlareBalance\n"
                "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh,"
                "0x1111111111111111111111111111111111111111,100,100000000000000\n"
            )
        },
    )


class CompileResponse(BaseModel):
    """Structured compilation report returned by the API."""

    original_hash: str = Field(description="SHA-256 hash of the ledger export")
    row_count: int
    valid_count: int
    invalid_count: int
    line_error_count: int
    total_source_balance_valid: str
    total_source_balance_invalid: str
    total_destination_balance_valid: str
    total_destination_balance_invalid: str
    account_count: int
    total_converted_balance: str
    contribution_histogram: dict[int, int]
    error_count: int
    warning_count: int
    accounts: list[ProcessedAccount]
    batches: list[AccountBatch]
    findings: list[ValidationFinding]


class HealthResponse(BaseModel):
    status: str
    version: str
    retained_fraction: str
    conversion_factor: str


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_pipeline() -> AirdropPipeline:
    if _pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialised")
    return _pipeline


def _run(pipeline: AirdropPipeline, csv_text: str) -> AirdropReport:
    try:
        return pipeline.run(csv_text)
    except AirdropProcessingError as exc:
        raise HTTPException(
            status_code=422,
            detail={"code": exc.code, "message": str(exc), "details": exc.details},
        ) from exc


def _build_response(report: AirdropReport) -> CompileResponse:
    """Convert the internal AirdropReport to the API response schema."""
    v = report.validation
    c = report.compilation
    findings = report.findings

    return CompileResponse(
        original_hash=report.original_hash,
        row_count=report.row_count,
        valid_count=v.valid_count,
        invalid_count=v.invalid_count,
        line_error_count=v.line_error_count,
        total_source_balance_valid=str(v.total_source_balance_valid),
        total_source_balance_invalid=str(v.total_source_balance_invalid),
        total_destination_balance_valid=str(v.total_destination_balance_valid),
        total_destination_balance_invalid=str(v.total_destination_balance_invalid),
        account_count=c.account_count,
        total_converted_balance=str(c.total_converted_balance),
        contribution_histogram=c.contribution_histogram,
        error_count=sum(1 for f in findings if f.severity == Severity.ERROR),
        warning_count=sum(1 for f in findings if f.severity == Severity.WARNING),
        accounts=c.accounts,
        batches=report.batches,
        findings=findings,
    )


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post(
    "/compile",
    summary="Compile airdrop balances from CSV text",
    tags=["Compilation"],
    responses={
        422: {"description": "Ledger export is structurally invalid"},
        503: {"description": "Pipeline not yet initialised"},
    },
)
def compile_export(request: CompileRequest) -> CompileResponse:
    """Validate and compile a ledger export.

    Returns a structured report with:
    - **valid_count / invalid_count**: per-row verdict tallies
    - **accounts**: one entry per Flare address, balance in hex wei
    - **batches**: address / integer balance pairs for the transaction builder
    - **original_hash**: SHA-256 of the input for audit trail
    """
    pipeline = _get_pipeline()
    report = _run(pipeline, request.csv_text)
    return _build_response(report)


@app.post(
    "/compile/file",
    summary="Compile airdrop balances from an uploaded CSV export",
    tags=["Compilation"],
    responses={
        413: {"description": "File too large (max 16 MB)"},
        400: {"description": "File is not valid UTF-8 text"},
        422: {"description": "Ledger export is structurally invalid"},
        503: {"description": "Pipeline not yet initialised"},
    },
)
async def compile_export_file(file: UploadFile) -> CompileResponse:
    """Upload a `.csv` ledger export for compilation."""
    if file.size and file.size > 16 * 1_048_576:
        raise HTTPException(status_code=413, detail="File too large (max 16 MB)")

    content = await file.read()
    try:
        csv_text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded text")

    pipeline = _get_pipeline()
    report = await asyncio.to_thread(_run, pipeline, csv_text)
    return _build_response(report)


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def health_check() -> HealthResponse:
    """Returns service status and the active rates."""
    pipeline = _get_pipeline()
    return HealthResponse(
        status="healthy",
        version=__version__,
        retained_fraction=str(pipeline.settings.retained_fraction),
        conversion_factor=str(pipeline.settings.conversion_factor),
    )
