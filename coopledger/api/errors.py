from fastapi import HTTPException, status

from coopledger.core.exceptions import ConflictError, LedgerError, NotFoundError, ValidationError


def to_http_exception(exc: LedgerError) -> HTTPException:
    """Map a ledger error onto the HTTP status the routers return."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ValidationError) and exc.debits is not None:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": str(exc),
                "debits": str(exc.debits),
                "credits": str(exc.credits),
            }
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
