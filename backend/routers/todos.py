from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from database import get_db
from auth import authenticated_body, get_current_user_id, json_body_schema
from errors import ValidationError
from models.todo import Todo
from services.todo_store import TodoStore

router = APIRouter(prefix="/todos", tags=["todos"])


# --- Pydantic Schemas ---

class _TitleMixin(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value


class TodoCreate(_TitleMixin):
    user: str = Field(..., min_length=1)


class TodoUpdate(_TitleMixin):
    completed: bool


class TodoResponse(BaseModel):
    id: str
    title: str
    completed: bool
    completedAt: Optional[datetime]
    user: str
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_todo(cls, todo: Todo) -> "TodoResponse":
        return cls(
            id=todo.id,
            title=todo.title,
            completed=todo.completed,
            completedAt=todo.completed_at,
            user=todo.user_id,
            createdAt=todo.created_at,
            updatedAt=todo.updated_at,
        )


class MessageResponse(BaseModel):
    message: str


def get_todo_store(db: Session = Depends(get_db)) -> TodoStore:
    return TodoStore(db)


# --- Routes ---

@router.get("", response_model=list[TodoResponse])
def list_todos(
    user_id: str = Depends(get_current_user_id),
    store: TodoStore = Depends(get_todo_store),
):
    return [TodoResponse.from_todo(t) for t in store.list_for_user(user_id)]


@router.post("", response_model=TodoResponse, status_code=201, openapi_extra=json_body_schema(TodoCreate))
def create_todo(
    payload: TodoCreate = Depends(authenticated_body(TodoCreate)),
    user_id: str = Depends(get_current_user_id),
    store: TodoStore = Depends(get_todo_store),
):
    if payload.user != user_id:
        raise ValidationError([{"field": "user", "message": "Must match the authenticated user"}])
    return TodoResponse.from_todo(store.create(user_id, payload.title))


@router.patch("/{todo_id}", response_model=TodoResponse, openapi_extra=json_body_schema(TodoUpdate))
def update_todo(
    todo_id: str,
    payload: TodoUpdate = Depends(authenticated_body(TodoUpdate)),
    user_id: str = Depends(get_current_user_id),
    store: TodoStore = Depends(get_todo_store),
):
    todo = store.update(user_id, todo_id, title=payload.title, completed=payload.completed)
    return TodoResponse.from_todo(todo)


@router.delete("/{todo_id}", response_model=MessageResponse)
def delete_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    store: TodoStore = Depends(get_todo_store),
):
    store.delete(user_id, todo_id)
    return MessageResponse(message="Todo deleted successfully")
