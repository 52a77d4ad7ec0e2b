import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from ..auth import get_current_company
from ..db import get_session
from ..errors import NotFound
from ..models import Company, Founder, Task
from ..schemas import TaskCreate, TaskUpdate

router = APIRouter()


def _check_assignee(session: Session, company: Company, assignee_id):
    if assignee_id is None:
        return
    founder = session.get(Founder, assignee_id)
    if not founder or founder.company_id != company.id:
        raise NotFound("Founder not found")


@router.get("", response_model=List[Task])
def list_tasks(company: Company = Depends(get_current_company), session: Session = Depends(get_session)):
    return session.exec(select(Task).where(Task.company_id == company.id).order_by(Task.created_at)).all()


@router.post("", response_model=Task)
def create_task(
    payload: TaskCreate,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
):
    _check_assignee(session, company, payload.assignee_id)
    task = Task.model_validate(payload.model_dump(), update={"company_id": company.id})
    session.add(task)
    session.commit()
    session.refresh(task)
    return task


@router.patch("/{task_id}", response_model=Task)
def update_task(
    task_id: uuid.UUID,
    payload: TaskUpdate,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
):
    task = session.get(Task, task_id)
    if not task or task.company_id != company.id:
        raise NotFound("Task not found")
    changes = payload.model_dump(exclude_unset=True)
    _check_assignee(session, company, changes.get("assignee_id"))
    for key, value in changes.items():
        setattr(task, key, value)
    session.add(task)
    session.commit()
    session.refresh(task)
    return task
