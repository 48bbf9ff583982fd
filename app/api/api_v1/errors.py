from fastapi import HTTPException, status

from app.services.admin_service import (
    AdminError, AdminStoreError, DuplicateEntityError, EntityNotFoundError
)

def raise_for_admin_error(error: AdminError):
    """Translate a rejected administrative mutation into an HTTP error."""
    if isinstance(error, EntityNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, DuplicateEntityError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, AdminStoreError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    raise HTTPException(status_code=code, detail=str(error))
