import logging
from datetime import datetime, timezone
from sqlalchemy import func
from sqlalchemy.orm import Session

from errors import NotFoundError
from models.todo import Todo

logger = logging.getLogger(__name__)


class TodoStore:
    """Query and write access to a user's todos over one request session."""

    def __init__(self, db: Session):
        self.db = db

    # --- Statistics queries ---

    def _completed_since(self, user_id: str, start: datetime):
        return self.db.query(Todo).filter(
            Todo.user_id == user_id,
            Todo.completed.is_(True),
            Todo.completed_at >= start,
        )

    def find_completed_since(self, user_id: str, start: datetime) -> list[datetime]:
        """Return the completion instants of the user's todos completed at or after ``start``."""
        rows = (
            self._completed_since(user_id, start)
            .with_entities(Todo.completed_at)
            .all()
        )
        return [row[0] for row in rows]

    def count_completed_since(self, user_id: str, start: datetime) -> int:
        return (
            self._completed_since(user_id, start)
            .with_entities(func.count(Todo.id))
            .scalar()
        ) or 0

    # --- CRUD ---

    def list_for_user(self, user_id: str) -> list[Todo]:
        return (
            self.db.query(Todo)
            .filter(Todo.user_id == user_id)
            .order_by(Todo.created_at.desc())
            .all()
        )

    def get_for_user(self, user_id: str, todo_id: str) -> Todo:
        todo = (
            self.db.query(Todo)
            .filter(Todo.id == todo_id, Todo.user_id == user_id)
            .first()
        )
        if not todo:
            raise NotFoundError("Todo not found")
        return todo

    def create(self, user_id: str, title: str) -> Todo:
        todo = Todo(title=title, user_id=user_id, completed=False, completed_at=None)
        self.db.add(todo)
        self.db.commit()
        self.db.refresh(todo)
        logger.info(f"Created todo {todo.id} for user {user_id}")
        return todo

    def update(
        self,
        user_id: str,
        todo_id: str,
        title: str,
        completed: bool,
        now: datetime | None = None,
    ) -> Todo:
        todo = self.get_for_user(user_id, todo_id)
        todo.title = title
        if completed and not todo.completed:
            todo.completed_at = now or datetime.now(timezone.utc)
        elif not completed:
            todo.completed_at = None
        todo.completed = completed
        self.db.commit()
        self.db.refresh(todo)
        return todo

    def delete(self, user_id: str, todo_id: str) -> None:
        todo = self.get_for_user(user_id, todo_id)
        self.db.delete(todo)
        self.db.commit()
        logger.info(f"Deleted todo {todo_id} for user {user_id}")
