# onboardpro/utils/responses.py
import math
from typing import Any, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(message: str = "Success", data: Any = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    body = {"status": "success", "message": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def error_response(
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    errors: Optional[List[Any]] = None,
    headers: Optional[dict] = None,
    **extra,
) -> JSONResponse:
    body = {"status": "error", "message": message}
    if errors:
        body["errors"] = errors
    body.update({key: value for key, value in extra.items() if value is not None})
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def paginated_response(message: str, data: List[Any], page: int, limit: int, total: int) -> JSONResponse:
    body = {
        "status": "success",
        "message": message,
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    }
    return JSONResponse(status_code=status.HTTP_200_OK, content=jsonable_encoder(body))
