from .link import LinkCreate, LinkUpdate, ClickCreate
from .user import UserCreate, UserResponse, Token

__all__ = ["LinkCreate", "LinkUpdate", "ClickCreate", "UserCreate", "UserResponse", "Token"]
