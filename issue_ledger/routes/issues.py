import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status, Depends, BackgroundTasks
from kombu.exceptions import OperationalError

from issue_ledger import config
from issue_ledger.errors import BackendUnavailable, IndexWriteError, RecordNotFound, ValidationError
from issue_ledger.schemas import AvailabilityResponse, IssueResponse, IssueSubmit, StatusCounts
from issue_ledger.service import IssueService, get_issue_service
from issue_ledger.tasks.celery_tasks import repair_index
from issue_ledger.tasks.notifications import notify_issue_submitted

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/issues", tags=["issues"])


def _unavailable(exc: BackendUnavailable) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


def _queue_index_repair(issue_id: str) -> None:
    """Hand an orphaned record to the repair worker without failing the request."""
    # Workers only reach the SQL ledger; an in-memory ledger dies with this process
    if config.LEDGER_BACKEND != "sql":
        logger.warning(
            f"Index repair needs the sql backend, not queued for issue {issue_id}",
            extra={"issue_id": issue_id},
        )
        return

    try:
        repair_index.delay(issue_id)
    except OperationalError:
        logger.exception(
            f"Could not queue index repair for issue {issue_id}",
            extra={"issue_id": issue_id},
        )
        return

    logger.warning(
        f"Index append failed, repair queued for issue {issue_id}",
        extra={"issue_id": issue_id},
    )


@router.get("/", response_model=list[IssueResponse])
async def list_issues(q: Optional[str] = None, service: IssueService = Depends(get_issue_service)):
    """List issues newest first, optionally filtered by a search term."""
    try:
        issues = await service.list_sorted()
    except BackendUnavailable as e:
        raise _unavailable(e)
    return service.filter(issues, q) if q else issues


@router.get("/stats", response_model=StatusCounts)
async def issue_stats(service: IssueService = Depends(get_issue_service)):
    """Count issues by status"""
    try:
        issues = await service.list_sorted()
    except BackendUnavailable as e:
        raise _unavailable(e)
    return service.aggregate_by_status(issues)


@router.get("/availability", response_model=AvailabilityResponse)
async def availability(service: IssueService = Depends(get_issue_service)):
    """Probe the ledger backend"""
    return AvailabilityResponse(available=await service.check_availability())


@router.get("/{issue_id}", response_model=IssueResponse, status_code=status.HTTP_200_OK)
async def get_issue(issue_id: str, service: IssueService = Depends(get_issue_service)):
    """Get issue by ID"""
    try:
        return await service.get(issue_id)
    except RecordNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Issue not found"
        )
    except BackendUnavailable as e:
        raise _unavailable(e)


@router.post("/", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def submit_issue(
    payload: IssueSubmit,
    background_tasks: BackgroundTasks,
    service: IssueService = Depends(get_issue_service)
):
    """Submit a new issue"""
    private_fields = {"description": payload.description, "location": payload.location or ""}

    try:
        issue = await service.submit_issue(payload.category.value, private_fields)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except IndexWriteError as e:
        # Record is stored but unlisted; let a worker append it to the index
        _queue_index_repair(e.issue_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": "Issue stored, listing delayed", "issue_id": e.issue_id},
        )
    except BackendUnavailable as e:
        raise _unavailable(e)

    """Run Background Tasks - Notify on submission"""
    background_tasks.add_task(
        notify_issue_submitted,
        issue = issue
    )

    return issue


@router.post("/{issue_id}/votes", response_model=IssueResponse, status_code=status.HTTP_200_OK)
async def vote_on_issue(issue_id: str, service: IssueService = Depends(get_issue_service)):
    """Cast one vote on an issue"""
    try:
        return await service.vote(issue_id)
    except RecordNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Issue not found"
        )
    except BackendUnavailable as e:
        raise _unavailable(e)
