from datetime import datetime,timezone
from typing import Any, Dict, Optional, Union

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storefront.common.constants import request_id_ctx
from storefront.common.results import OpResult

def now() -> datetime:
    return datetime.now(timezone.utc)


def build_success(data: Any,
                  trace_id: Optional[str] = None,request_id: Optional[str] = None,) -> Dict[str, Any]:
    return {
        "status": "ok",
        "data": data,
        "error": None,
        "trace_id": trace_id,
        "request_id": request_id,
    }

def build_error(code: Union[str, int] = "UNKNOWN_ERROR",
                details: Optional[Any] = None,
                request_id: Optional[str] = None,
                trace_id: Optional[str] = None) -> Dict[str, Any]:

    return {
        "status": "error",
        "data": None,
        "error": {"code": code, "details": details},
        "trace_id": trace_id,
        "request_id": request_id,
    }

def json_ok(content: Dict[str, Any], status_code: int = 200,headers = None) -> JSONResponse:
    return JSONResponse(jsonable_encoder(content), status_code=status_code,headers=headers)

def json_error(content: Dict[str, Any], status_code: int = 500, headers=None) -> JSONResponse:
    return JSONResponse(jsonable_encoder(content), status_code=status_code, headers=headers)

def success_response(data: Any, status_code: int = 200,headers: Optional[Dict[str, Any]] = None ,
                     trace_id: Optional[str] = None , request_id: Optional[str] = None) -> JSONResponse:
    content = build_success(data, request_id=request_id or request_id_ctx.get(), trace_id=trace_id)
    return json_ok(content, status_code=status_code,headers=headers)


def result_response(result: OpResult, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Render an OpResult into the response envelope, failures keep their own status code."""
    if result.ok:
        # same money shape as the read routes, which pass model_dump() output
        data = result.value.model_dump() if isinstance(result.value, BaseModel) else result.value
        return success_response(data, status_code=status_code)

    err = result.error
    details = {**err.to_details(), "retryable": err.retryable}
    payload = build_error(code=err.code, details=details, request_id=request_id_ctx.get())
    return json_error(payload, status_code=err.status_code)
