"""
Per-feature API for assignments and subtasks. Mounted at /api/assignments/.
- list/create/read/update/delete assignments; status is set through its own idempotent route.
- /{id}/subtasks: ordered subtasks; /{id}/progress: derived completion percentage.
"""
import logging
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from studypal.core.auth import CurrentUser, current_user
from .progress import EMPTY_PROGRESS, compute_progress, get_progress, load_progress_for_assignments
from .service import (
    create_assignment,
    create_subtask,
    delete_assignment,
    delete_subtask,
    get_assignment,
    get_todays_focus,
    get_upcoming_assignments,
    list_assignments,
    list_subtasks,
    reorder_subtasks,
    update_assignment,
    update_status,
    update_subtask,
)

logger = logging.getLogger(__name__)

Status = Literal["not_started", "in_progress", "completed", "dropped"]

SAVE_ERROR = "Sorry, there was an error saving your assignment. Please try again."


class AssignmentCreate(BaseModel):
    course: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    due_at: datetime
    impact: int = Field(3, ge=1, le=5)
    est_minutes: int = Field(60, ge=0)
    status: Status = "not_started"


class AssignmentUpdate(BaseModel):
    course: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    due_at: Optional[datetime] = None
    impact: Optional[int] = Field(None, ge=1, le=5)
    est_minutes: Optional[int] = Field(None, ge=0)
    status: Optional[Status] = None


class StatusUpdate(BaseModel):
    status: Status


class ProgressResponse(BaseModel):
    completed: int = 0
    total: int = 0
    percentage: int = 0


class AssignmentResponse(BaseModel):
    """Pydantic view of Assignment; serializes from ORM. progress is filled in by list routes."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    course: str
    title: str
    description: Optional[str] = None
    due_at: datetime
    impact: int
    est_minutes: int
    status: str
    created_at: datetime
    updated_at: datetime
    progress: Optional[ProgressResponse] = None


class AssignmentsResponse(BaseModel):
    assignments: List[AssignmentResponse]


class SubtaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    est_minutes: Optional[int] = Field(None, ge=0)


class SubtaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    est_minutes: Optional[int] = Field(None, ge=0)
    completed: Optional[bool] = None
    order_position: Optional[int] = None


class SubtaskOrder(BaseModel):
    ordered_ids: List[str]


class SubtaskResponse(BaseModel):
    """Pydantic view of Subtask; serializes from ORM."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    assignment_id: str
    title: str
    description: Optional[str] = None
    est_minutes: Optional[int] = None
    completed: bool
    order_position: int
    created_at: datetime
    updated_at: datetime


class SubtasksResponse(BaseModel):
    subtasks: List[SubtaskResponse]
    progress: ProgressResponse


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Assignment not found")


async def with_progress(user_id: str, rows) -> List[AssignmentResponse]:
    """Serialize assignments with their subtask progress attached."""
    progress = await load_progress_for_assignments(user_id, [r.id for r in rows])
    out = []
    for r in rows:
        item = AssignmentResponse.model_validate(r)
        item.progress = ProgressResponse(**progress.get(r.id, EMPTY_PROGRESS).to_dict())
        out.append(item)
    return out


def get_router(studypal_app) -> Optional[APIRouter]:
    """Return router for this feature; mounted with prefix /api/assignments."""
    router = APIRouter(tags=["Assignments"])

    @router.get("", response_model=AssignmentsResponse)
    async def get_assignments(
        sort: Literal["due_date", "priority", "course"] = "due_date",
        status: Optional[Status] = None,
        user: CurrentUser = Depends(current_user),
    ) -> AssignmentsResponse:
        """All assignments with subtask progress; ?sort=due_date|priority|course, ?status= filter."""
        try:
            rows = await run_in_threadpool(list_assignments, user.id, sort_by=sort, status=status)
        except Exception:
            logger.error(f"Error loading assignments for {user.id}", exc_info=True)
            return AssignmentsResponse(assignments=[])
        return AssignmentsResponse(assignments=await with_progress(user.id, rows))

    @router.get("/upcoming", response_model=AssignmentsResponse)
    async def get_upcoming(
        days: int = Query(7, ge=1, le=60),
        user: CurrentUser = Depends(current_user),
    ) -> AssignmentsResponse:
        """Assignments due within the next ?days= days (default 7)."""
        try:
            rows = await run_in_threadpool(get_upcoming_assignments, user.id, days=days)
        except Exception:
            logger.error(f"Error loading upcoming assignments for {user.id}", exc_info=True)
            return AssignmentsResponse(assignments=[])
        return AssignmentsResponse(assignments=await with_progress(user.id, rows))

    @router.get("/focus", response_model=AssignmentsResponse)
    async def get_focus(user: CurrentUser = Depends(current_user)) -> AssignmentsResponse:
        """Top 3 not-started assignments due by tomorrow, highest impact first."""
        try:
            rows = await run_in_threadpool(get_todays_focus, user.id)
        except Exception:
            logger.error(f"Error loading today's focus for {user.id}", exc_info=True)
            return AssignmentsResponse(assignments=[])
        return AssignmentsResponse(assignments=await with_progress(user.id, rows))

    @router.post("", response_model=AssignmentResponse, status_code=201)
    def post_assignment(payload: AssignmentCreate, user: CurrentUser = Depends(current_user)) -> AssignmentResponse:
        try:
            row = create_assignment(user.id, **payload.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception:
            logger.error(f"Error saving assignment for {user.id}", exc_info=True)
            raise HTTPException(status_code=500, detail=SAVE_ERROR)
        item = AssignmentResponse.model_validate(row)
        item.progress = ProgressResponse()
        return item

    @router.get("/{assignment_id}", response_model=AssignmentResponse)
    def get_one(assignment_id: str, user: CurrentUser = Depends(current_user)) -> AssignmentResponse:
        """A failed load answers like a missing assignment."""
        try:
            row = get_assignment(user.id, assignment_id)
        except Exception:
            logger.error(f"Error loading assignment {assignment_id}", exc_info=True)
            row = None
        if row is None:
            raise _not_found()
        item = AssignmentResponse.model_validate(row)
        try:
            item.progress = ProgressResponse(**get_progress(user.id, assignment_id).to_dict())
        except Exception:
            logger.error(f"Error loading progress for assignment {assignment_id}", exc_info=True)
            item.progress = ProgressResponse()
        return item

    @router.patch("/{assignment_id}", response_model=AssignmentResponse)
    def patch_assignment(
        assignment_id: str, payload: AssignmentUpdate, user: CurrentUser = Depends(current_user)
    ) -> AssignmentResponse:
        updates = payload.model_dump(exclude_unset=True)
        for key in ("course", "title", "due_at", "impact", "est_minutes", "status"):
            if key in updates and updates[key] is None:
                raise HTTPException(status_code=400, detail=f"{key} cannot be null")
        try:
            row = update_assignment(user.id, assignment_id, updates)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception:
            logger.error(f"Error updating assignment {assignment_id}", exc_info=True)
            raise HTTPException(status_code=500, detail=SAVE_ERROR)
        if row is None:
            raise _not_found()
        return AssignmentResponse.model_validate(row)

    @router.put("/{assignment_id}/status", response_model=AssignmentResponse)
    def put_status(
        assignment_id: str, payload: StatusUpdate, user: CurrentUser = Depends(current_user)
    ) -> AssignmentResponse:
        try:
            row = update_status(user.id, assignment_id, payload.status)
        except Exception:
            logger.error(f"Error updating status of assignment {assignment_id}", exc_info=True)
            raise HTTPException(status_code=500, detail="Sorry, there was an error updating the assignment.")
        if row is None:
            raise _not_found()
        return AssignmentResponse.model_validate(row)

    @router.delete("/{assignment_id}", status_code=204)
    def remove_assignment(assignment_id: str, user: CurrentUser = Depends(current_user)) -> Response:
        try:
            deleted = delete_assignment(user.id, assignment_id)
        except Exception:
            logger.error(f"Error deleting assignment {assignment_id}", exc_info=True)
            raise HTTPException(status_code=500, detail="Sorry, there was an error deleting the assignment.")
        if not deleted:
            raise _not_found()
        return Response(status_code=204)

    @router.get("/{assignment_id}/progress", response_model=ProgressResponse)
    def get_assignment_progress(assignment_id: str, user: CurrentUser = Depends(current_user)) -> ProgressResponse:
        try:
            row = get_assignment(user.id, assignment_id)
        except Exception:
            logger.error(f"Error loading assignment {assignment_id}", exc_info=True)
            return ProgressResponse()
        if row is None:
            raise _not_found()
        try:
            return ProgressResponse(**get_progress(user.id, assignment_id).to_dict())
        except Exception:
            logger.error(f"Error loading progress for assignment {assignment_id}", exc_info=True)
            return ProgressResponse()

    # Subtasks

    def _subtasks_response(rows) -> SubtasksResponse:
        return SubtasksResponse(
            subtasks=[SubtaskResponse.model_validate(r) for r in rows],
            progress=ProgressResponse(**compute_progress(rows).to_dict()),
        )

    @router.get("/{assignment_id}/subtasks", response_model=SubtasksResponse)
    def get_subtasks(assignment_id: str, user: CurrentUser = Depends(current_user)) -> SubtasksResponse:
        try:
            rows = list_subtasks(user.id, assignment_id)
        except Exception:
            logger.error(f"Error loading subtasks for assignment {assignment_id}", exc_info=True)
            return SubtasksResponse(subtasks=[], progress=ProgressResponse())
        if rows is None:
            raise _not_found()
        return _subtasks_response(rows)

    @router.post("/{assignment_id}/subtasks", response_model=SubtaskResponse, status_code=201)
    def post_subtask(
        assignment_id: str, payload: SubtaskCreate, user: CurrentUser = Depends(current_user)
    ) -> SubtaskResponse:
        try:
            row = create_subtask(user.id, assignment_id, **payload.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception:
            logger.error(f"Error creating subtask for assignment {assignment_id}", exc_info=True)
            raise HTTPException(status_code=500, detail="Sorry, there was an error creating the subtask.")
        if row is None:
            raise _not_found()
        return SubtaskResponse.model_validate(row)

    @router.put("/{assignment_id}/subtasks/order", response_model=SubtasksResponse)
    def put_subtask_order(
        assignment_id: str, payload: SubtaskOrder, user: CurrentUser = Depends(current_user)
    ) -> SubtasksResponse:
        try:
            rows = reorder_subtasks(user.id, assignment_id, payload.ordered_ids)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception:
            logger.error(f"Error reordering subtasks for assignment {assignment_id}", exc_info=True)
            raise HTTPException(status_code=500, detail="Sorry, there was an error reordering the subtasks.")
        if rows is None:
            raise _not_found()
        return _subtasks_response(rows)

    @router.patch("/{assignment_id}/subtasks/{subtask_id}", response_model=SubtaskResponse)
    def patch_subtask(
        assignment_id: str,
        subtask_id: str,
        payload: SubtaskUpdate,
        user: CurrentUser = Depends(current_user),
    ) -> SubtaskResponse:
        updates = payload.model_dump(exclude_unset=True)
        for key in ("title", "completed", "order_position"):
            if key in updates and updates[key] is None:
                raise HTTPException(status_code=400, detail=f"{key} cannot be null")
        try:
            row = update_subtask(user.id, assignment_id, subtask_id, updates)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception:
            logger.error(f"Error updating subtask {subtask_id}", exc_info=True)
            raise HTTPException(status_code=500, detail="Sorry, there was an error updating the subtask.")
        if row is None:
            raise HTTPException(status_code=404, detail="Subtask not found")
        return SubtaskResponse.model_validate(row)

    @router.delete("/{assignment_id}/subtasks/{subtask_id}", status_code=204)
    def remove_subtask(assignment_id: str, subtask_id: str, user: CurrentUser = Depends(current_user)) -> Response:
        try:
            deleted = delete_subtask(user.id, assignment_id, subtask_id)
        except Exception:
            logger.error(f"Error deleting subtask {subtask_id}", exc_info=True)
            raise HTTPException(status_code=500, detail="Sorry, there was an error deleting the subtask.")
        if not deleted:
            raise HTTPException(status_code=404, detail="Subtask not found")
        return Response(status_code=204)

    return router
