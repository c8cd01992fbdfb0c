import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from memoserver.exceptions import InvalidKeyError, KeyTakenError, MemoNotFoundError, StoreError
from memoserver.memo_service import MemoService
from memoserver.models.memos import CheckKeyIn, CheckKeyOut, MemoCreate, MemoDeleted, MemoOut, MemoSaved, MemoUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["memos"])


def get_service(request: Request) -> MemoService:
    return request.app.state.memo_service


def _store_failed(action: str, exc: StoreError) -> HTTPException:
    logger.error("Error %s: %s", action, exc, exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}.")


@router.post("/check-password", response_model=CheckKeyOut, response_model_exclude_none=True)
def check_password(payload: Optional[CheckKeyIn] = None, service: MemoService = Depends(get_service)):
    try:
        result = service.check_key(payload.password if payload is not None else None)
    except StoreError as exc:
        logger.error("Error checking password: %s", exc, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"valid": False, "message": "An error occurred."},
        )
    return CheckKeyOut(valid=result.valid, message=result.message)


@router.post("/memo", response_model=MemoSaved)
def create_memo(payload: MemoCreate, service: MemoService = Depends(get_service)) -> MemoSaved:
    try:
        memo = service.create_note(payload.password, payload.content, payload.duration)
    except InvalidKeyError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except KeyTakenError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except StoreError as exc:
        raise _store_failed("create memo", exc)
    return MemoSaved(expires_at=memo.expires_at)


@router.get("/memo/{password:path}", response_model=MemoOut)
def get_memo(password: str, service: MemoService = Depends(get_service)) -> MemoOut:
    try:
        memo = service.get_note(password)
    except InvalidKeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid key.")
    except MemoNotFoundError as exc:
        # covers MemoExpiredError
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except StoreError as exc:
        raise _store_failed("fetch memo", exc)
    return MemoOut(
        content=memo.content,
        expires_at=memo.expires_at,
        duration_minutes=memo.duration_minutes,
        last_updated=memo.last_updated,
    )


@router.put("/memo/{password:path}", response_model=MemoSaved)
def update_memo(password: str, payload: MemoUpdate, service: MemoService = Depends(get_service)) -> MemoSaved:
    try:
        memo = service.update_note(password, payload.content, payload.duration)
    except InvalidKeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid key.")
    except MemoNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except StoreError as exc:
        raise _store_failed("update memo", exc)
    return MemoSaved(expires_at=memo.expires_at)


# idempotent: deleting an absent key still succeeds
@router.delete("/memo/{password:path}", response_model=MemoDeleted)
def delete_memo(password: str, service: MemoService = Depends(get_service)) -> MemoDeleted:
    try:
        service.delete_note(password)
    except InvalidKeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid key.")
    except StoreError as exc:
        raise _store_failed("delete memo", exc)
    return MemoDeleted(message="Key deleted.")
