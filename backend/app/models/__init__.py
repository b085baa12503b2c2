from app.models.users import User

__all__ = [
    'User',
]
