from routers.auth import router as auth_router
from routers.todos import router as todos_router
from routers.stats import router as stats_router

__all__ = ["auth_router", "todos_router", "stats_router"]
