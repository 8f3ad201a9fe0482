from .auth_routes import router as auth_routes
from .book_routes import router as book_routes
from .exchange_routes import router as exchange_routes

__all__ = [
    'auth_routes',
    'book_routes',
    'exchange_routes',
]
