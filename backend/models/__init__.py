from models.todo import Todo
from models.user import User

__all__ = ["Todo", "User"]
