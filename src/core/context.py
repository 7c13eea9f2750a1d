"""Authentication context model for typed user authentication."""

from dataclasses import dataclass, field

from src.database.models.users import User


@dataclass
class AuthenticatedUserContext:
    """Authenticated user plus the verified token claims."""

    user: User
    claims: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.user:
            raise ValueError("User is required in authentication context")

    @property
    def is_admin(self) -> bool:
        return self.user.is_admin
