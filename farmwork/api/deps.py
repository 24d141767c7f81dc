from typing import Annotated

from fastapi import Depends, HTTPException

from farmwork.db.session import AsyncSessionLocal
from farmwork.domain.errors import (
    MarketplaceError,
    NotFoundError,
    PersistenceError,
    PolicyViolation,
    ValidationError,
)
from farmwork.gateway.base import PersistenceGateway
from farmwork.gateway.sql import SqlGateway

_gateway = SqlGateway(AsyncSessionLocal)

def get_gateway() -> PersistenceGateway:
    return _gateway

# Dependency for the persistence gateway (tests override get_gateway)
Gateway = Annotated[PersistenceGateway, Depends(get_gateway)]

def to_http_error(e: MarketplaceError) -> HTTPException:
    if isinstance(e, ValidationError):
        code = 422
    elif isinstance(e, PolicyViolation):
        code = 409
    elif isinstance(e, NotFoundError):
        code = 404
    elif isinstance(e, PersistenceError):
        # Details stay in the server log
        return HTTPException(
            status_code=503,
            detail={"code": e.code, "message": "Storage is unavailable, please retry"},
        )
    else:
        code = 400
    return HTTPException(status_code=code, detail={"code": e.code, "message": str(e)})
