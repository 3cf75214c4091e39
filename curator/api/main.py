"""
Variables API - HTTP surface the admin dashboard uses to manage taxonomy
variables (genres, subgenres, moods, eras, tempos, vocals, languages).

Run with: uvicorn --factory curator.api.main:create_app
"""

from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .schemas import (
    CountsResponse,
    ErrorResponse,
    HealthResponse,
    ImportResponse,
    MutationResponse,
    OptionCreateRequest,
    OptionListResponse,
    OptionResponse,
    OptionUpdateRequest,
    PrimaryGenresResponse,
    SelectionCheckRequest,
    SelectionCheckResponse,
    ViolationModel,
)
from ..core.auth import AdminContext, require_admin
from ..core.config import VERSION, debug_enabled, validate_config
from ..core.db import health_check
from ..core.errors import (
    Conflict,
    HasDependents,
    MalformedDocument,
    NotFound,
    TaxonomyError,
    ValidationFailed,
)
from ..core.manager import MutationResult, VariablesManager
from ..core.store import VariableStore
from util.logging import logger

ERROR_STATUS = {
    NotFound: 404,
    ValidationFailed: 422,
    HasDependents: 409,
    Conflict: 409,
    MalformedDocument: 400,
}


def get_manager(request: Request) -> VariablesManager:
    return request.app.state.manager


def admin_required(x_admin_token: Optional[str] = Header(default=None)) -> AdminContext:
    """Reject the request unless the identity collaborator says admin."""
    context = require_admin(x_admin_token)
    if not context.is_authenticated:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return context


def _mutation_response(result: MutationResult) -> MutationResponse:
    return MutationResponse(
        success=True,
        revision=result.revision,
        option=OptionResponse.from_option(result.option) if result.option else None,
        removed=[OptionResponse.from_option(o) for o in result.removed],
    )


def create_app(manager: Optional[VariablesManager] = None) -> FastAPI:
    """Build the API around an explicitly owned manager (and its store)."""
    app = FastAPI(
        title="Curator Variables API",
        version=VERSION,
        description="Taxonomy variables management for the curator platform admin dashboard",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None
    )
    app.state.manager = manager or VariablesManager(VariableStore())

    for issue in validate_config():
        logger.warning(f"Configuration issue: {issue}")

    # Allow the admin dashboard frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TaxonomyError)
    async def taxonomy_error_handler(request: Request, exc: TaxonomyError):
        status_code = ERROR_STATUS.get(type(exc), 400)
        payload = request.app.state.manager.describe_error(exc)
        return JSONResponse(status_code=status_code, content=payload)

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint(manager: VariablesManager = Depends(get_manager)):
        """Check system health."""
        db_health = health_check(manager.store.db_path)
        return HealthResponse(
            status="healthy" if db_health else "unhealthy",
            version=VERSION,
            db_health=db_health,
            revision=manager.revision() if db_health else -1,
            config_issues=validate_config(),
        )

    # Fixed paths go before /variables/{category} to avoid path parameter conflicts
    @app.get("/variables/counts", response_model=CountsResponse)
    def counts_endpoint(manager: VariablesManager = Depends(get_manager),
                        admin: AdminContext = Depends(admin_required)):
        return CountsResponse(counts=manager.counts())

    @app.get("/variables/primary-genres", response_model=PrimaryGenresResponse)
    def primary_genres_endpoint(manager: VariablesManager = Depends(get_manager),
                                admin: AdminContext = Depends(admin_required)):
        return PrimaryGenresResponse(genres=manager.primary_genres())

    @app.get("/variables/export")
    def export_endpoint(manager: VariablesManager = Depends(get_manager),
                        admin: AdminContext = Depends(admin_required)):
        """Download the whole taxonomy as a JSON document."""
        document, revision = manager.export_document()
        return Response(
            content=document,
            media_type="application/json",
            headers={
                "Content-Disposition": f'attachment; filename="variables-r{revision}.json"',
                "ETag": f'"{revision}"',
            },
        )

    @app.post("/variables/import", response_model=ImportResponse,
              responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}})
    async def import_endpoint(request: Request,
                              revision: Optional[int] = Query(default=None),
                              manager: VariablesManager = Depends(get_manager),
                              admin: AdminContext = Depends(admin_required)):
        """Replace every category from an uploaded document, all or nothing."""
        body = await request.body()
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedDocument("Document must be UTF-8 text") from e

        result = manager.import_document(text, expected_revision=revision)
        return ImportResponse(
            success=True,
            message="All variables imported successfully",
            revision=result.revision,
            counts=result.counts,
            violations=[ViolationModel.from_violation(v) for v in result.violations],
        )

    @app.post("/variables/selection/check", response_model=SelectionCheckResponse)
    def selection_check_endpoint(request: SelectionCheckRequest,
                                 manager: VariablesManager = Depends(get_manager),
                                 admin: AdminContext = Depends(admin_required)):
        """Check a playlist's selected options against the selection rules."""
        violations = manager.check_selection(request.selections)
        return SelectionCheckResponse(
            valid=not violations,
            violations=[ViolationModel.from_violation(v) for v in violations],
        )

    @app.get("/variables/{category}", response_model=OptionListResponse)
    def list_options_endpoint(category: str,
                              parent_id: Optional[str] = Query(default=None),
                              manager: VariablesManager = Depends(get_manager),
                              admin: AdminContext = Depends(admin_required)):
        revision = manager.revision()
        if category == "subgenres":
            options = manager.list_subgenres(parent_id)
        else:
            options = manager.list_options(category)
        return OptionListResponse(
            category=category,
            revision=revision,
            options=[OptionResponse.from_option(o) for o in options],
        )

    @app.get("/variables/{category}/{option_id}", response_model=OptionResponse)
    def get_option_endpoint(category: str, option_id: str,
                            manager: VariablesManager = Depends(get_manager),
                            admin: AdminContext = Depends(admin_required)):
        return OptionResponse.from_option(manager.get_option(category, option_id))

    @app.post("/variables/{category}", response_model=MutationResponse, status_code=201)
    def create_option_endpoint(category: str, request: OptionCreateRequest,
                               manager: VariablesManager = Depends(get_manager),
                               admin: AdminContext = Depends(admin_required)):
        result = manager.create_option(
            category,
            request.label,
            parent_id=request.parent_id,
            extra=request.extra,
            expected_revision=request.revision,
        )
        return _mutation_response(result)

    @app.patch("/variables/{category}/{option_id}", response_model=MutationResponse)
    def update_option_endpoint(category: str, option_id: str, request: OptionUpdateRequest,
                               manager: VariablesManager = Depends(get_manager),
                               admin: AdminContext = Depends(admin_required)):
        result = manager.update_option(
            category, option_id, request.to_patch(), expected_revision=request.revision
        )
        return _mutation_response(result)

    @app.delete("/variables/{category}/{option_id}", response_model=MutationResponse)
    def delete_option_endpoint(category: str, option_id: str,
                               cascade: bool = Query(default=False),
                               revision: Optional[int] = Query(default=None),
                               manager: VariablesManager = Depends(get_manager),
                               admin: AdminContext = Depends(admin_required)):
        result = manager.delete_option(category, option_id, cascade=cascade, expected_revision=revision)
        return _mutation_response(result)

    @app.post("/variables/{category}/reset", response_model=MutationResponse)
    def reset_category_endpoint(category: str,
                                revision: Optional[int] = Query(default=None),
                                manager: VariablesManager = Depends(get_manager),
                                admin: AdminContext = Depends(admin_required)):
        """Reset one category to its default options."""
        return _mutation_response(manager.reset_category(category, expected_revision=revision))

    return app
