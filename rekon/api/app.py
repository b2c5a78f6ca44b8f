"""FastAPI application exposing the lifecycle drivers over HTTP."""

import logging
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn

from .. import __version__
from ..conns import AWSClient
from ..errors import NotFoundError, RekonError, RemoteError, ResourceValidationError, WaitTimeoutError
from ..provider import apply, destroy, refresh
from ..sagemaker.model_package_group_policy import RESOURCE_TYPE as POLICY_TYPE
from ..ssm.schema import RESOURCE_TYPE as ASSOCIATION_TYPE
from ..state import ResourceData, record_exists

logger = logging.getLogger(__name__)


# Pydantic models
class RecordResponse(BaseModel):
    id: str
    resource_type: str
    attributes: Dict[str, Any]


class PolicyRequest(BaseModel):
    resource_policy: str


class DeleteResponse(BaseModel):
    ok: bool


app = FastAPI(
    title="Rekon API",
    description="Reconcile SSM associations and SageMaker model package group policies",
    version=__version__,
)


_client: Optional[AWSClient] = None


def get_client() -> AWSClient:
    """Shared connection handle; tests override this dependency."""
    global _client
    if _client is None:
        _client = AWSClient.from_settings()
    return _client


def _record(resource_type: str, d: ResourceData) -> RecordResponse:
    return RecordResponse(id=d.id, resource_type=resource_type, attributes=d.fields())


def _gone(resource_type: str, resource_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "code": "not_found",
            "message": f"{resource_type} {resource_id} no longer exists",
            "hint": "The stored record was removed",
        },
    )


@app.get("/")
def root():
    """Health check endpoint."""
    return {"message": "Rekon API is running", "version": __version__}


@app.post("/associations", response_model=RecordResponse, status_code=201)
def create_association(config: Dict[str, Any] = Body(...), client: AWSClient = Depends(get_client)):
    """Create an SSM association."""
    d = apply(ASSOCIATION_TYPE, config, client)
    return _record(ASSOCIATION_TYPE, d)


@app.get("/associations/{association_id}", response_model=RecordResponse)
def get_association(association_id: str, client: AWSClient = Depends(get_client)):
    """Refresh a stored SSM association."""
    d = refresh(ASSOCIATION_TYPE, association_id, client)
    if d is None:
        raise _gone(ASSOCIATION_TYPE, association_id)
    return _record(ASSOCIATION_TYPE, d)


@app.put("/associations/{association_id}", response_model=RecordResponse)
def update_association(association_id: str, config: Dict[str, Any] = Body(...),
                       client: AWSClient = Depends(get_client)):
    """Update or replace a stored SSM association."""
    d = apply(ASSOCIATION_TYPE, config, client, resource_id=association_id)
    return _record(ASSOCIATION_TYPE, d)


@app.delete("/associations/{association_id}", response_model=DeleteResponse)
def delete_association(association_id: str, client: AWSClient = Depends(get_client)):
    """Delete an SSM association."""
    destroy(ASSOCIATION_TYPE, association_id, client)
    return DeleteResponse(ok=True)


@app.put("/model-package-groups/{name}/policy", response_model=RecordResponse)
def put_policy(name: str, request: PolicyRequest, client: AWSClient = Depends(get_client)):
    """Attach or replace a model package group's resource policy."""
    config = {"model_package_group_name": name, "resource_policy": request.resource_policy}
    resource_id = name if record_exists(POLICY_TYPE, name) else None
    d = apply(POLICY_TYPE, config, client, resource_id=resource_id)
    return _record(POLICY_TYPE, d)


@app.get("/model-package-groups/{name}/policy", response_model=RecordResponse)
def get_policy(name: str, client: AWSClient = Depends(get_client)):
    """Refresh a stored model package group policy."""
    d = refresh(POLICY_TYPE, name, client)
    if d is None:
        raise _gone(POLICY_TYPE, name)
    return _record(POLICY_TYPE, d)


@app.delete("/model-package-groups/{name}/policy", response_model=DeleteResponse)
def delete_policy(name: str, client: AWSClient = Depends(get_client)):
    """Remove a model package group's resource policy."""
    destroy(POLICY_TYPE, name, client)
    return DeleteResponse(ok=True)


def _error(status_code: int, code: str, message: str, hint: Optional[str] = None) -> JSONResponse:
    error = {"code": code, "message": message}
    if hint:
        error["hint"] = hint
    return JSONResponse(status_code=status_code, content={"error": error})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Custom HTTP exception handler."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error(exc.status_code, "http_error", str(exc.detail))


@app.exception_handler(ResourceValidationError)
async def validation_exception_handler(request: Request, exc: ResourceValidationError):
    return _error(400, "validation_error", str(exc), "Fix the configuration and try again")


@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError):
    return _error(404, "not_found", str(exc))


@app.exception_handler(FileNotFoundError)
async def missing_record_exception_handler(request: Request, exc: FileNotFoundError):
    return _error(404, "record_not_found", str(exc), "Create or import the resource first")


@app.exception_handler(WaitTimeoutError)
async def timeout_exception_handler(request: Request, exc: WaitTimeoutError):
    return _error(504, "timeout", str(exc), "Raise wait_for_success_timeout_seconds or check the association")


@app.exception_handler(RemoteError)
async def remote_exception_handler(request: Request, exc: RemoteError):
    return _error(502, exc.code or "remote_error", str(exc))


@app.exception_handler(RekonError)
async def rekon_exception_handler(request: Request, exc: RekonError):
    logger.error(f"Request failed: {exc}")
    return _error(500, "internal_error", str(exc))


@app.exception_handler(ValueError)
async def value_exception_handler(request: Request, exc: ValueError):
    return _error(400, "bad_request", str(exc))


if __name__ == "__main__":
    import os
    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
