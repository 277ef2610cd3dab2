"""
API endpoints for sync passes, pending-sync inspection and tombstones
"""

from fastapi import APIRouter, HTTPException, Depends, status
import logging

from teachease.api.deps import get_services
from teachease.core.container import Services
from teachease.schemas.sync import (
    SyncReport,
    FetchReport,
    PendingSyncResponse,
    DeletedSubjectsResponse,
    ResetResponse
)
from teachease.services.auth import NotAuthenticatedError
from teachease.services.sync import SyncIncompleteError

logger = logging.getLogger(__name__)
router = APIRouter()


def _unauthenticated(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


@router.get("/pending", response_model=PendingSyncResponse)
async def get_pending(services: Services = Depends(get_services)):
    """List record IDs that have not been uploaded yet"""
    pending = await services.orchestrator.pending_summary()
    return PendingSyncResponse(
        pending=pending,
        total=sum(len(ids) for ids in pending.values())
    )


@router.post("/push", response_model=SyncReport)
async def push(services: Services = Depends(get_services)):
    """Upload every pending record"""
    try:
        return await services.orchestrator.sync_all()
    except NotAuthenticatedError as e:
        raise _unauthenticated(e)
    except SyncIncompleteError as e:
        logger.warning(f"Push finished with failures: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": "Failed to sync data. Please check your internet connection.",
                "report": e.report.model_dump(mode="json")
            }
        )


@router.post("/pull", response_model=FetchReport)
async def pull(services: Services = Depends(get_services)):
    """Download the cloud state into the local store"""
    try:
        return await services.orchestrator.fetch_all()
    except NotAuthenticatedError as e:
        raise _unauthenticated(e)
    except Exception as e:
        logger.error(f"Pull failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch data: {str(e)}"
        )


@router.post("/restore", response_model=FetchReport)
async def restore(services: Services = Depends(get_services)):
    """Clear local-only subject deletions and pull everything again"""
    try:
        return await services.orchestrator.restore_from_cloud()
    except NotAuthenticatedError as e:
        raise _unauthenticated(e)
    except Exception as e:
        logger.error(f"Restore failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to restore data: {str(e)}"
        )


@router.post("/reset", response_model=ResetResponse)
async def reset(services: Services = Depends(get_services)):
    """Delete cloud data (best effort) and wipe the device"""
    return await services.orchestrator.reset_account()


@router.get("/deleted-subjects", response_model=DeletedSubjectsResponse)
async def get_deleted_subjects(services: Services = Depends(get_services)):
    return DeletedSubjectsResponse(subject_ids=await services.storage.get_deleted_subjects())


@router.delete("/deleted-subjects", status_code=status.HTTP_204_NO_CONTENT)
async def clear_deleted_subjects(services: Services = Depends(get_services)):
    await services.storage.clear_deleted_subjects()
