"""
Admin authentication and user administration against the synced user list.
The synced AppState.users list is the only source of truth for logins.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from masjid_board.core.session import SessionStore
from masjid_board.core.state import AppState, Role, User
from masjid_board.core.sync import SyncCoordinator, SyncResult

INVALID_CREDENTIALS_MESSAGE = "Invalid masjid credentials or disabled account."


class AuthenticationError(Exception):
    """Bad credentials or disabled account. Message never says which."""

    def __init__(self, message: str = INVALID_CREDENTIALS_MESSAGE):
        super().__init__(message)


class UserValidationError(ValueError):
    pass


class UserNotFoundError(LookupError):
    pass


class PermissionDeniedError(Exception):
    pass


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _email_taken(state: AppState, email: str, exclude_id: Optional[str] = None) -> bool:
    wanted = _normalize_email(email)
    return any(
        _normalize_email(u.email) == wanted and u.id != exclude_id
        for u in state.users
    )


class AuthService:
    def __init__(
        self,
        coordinator: SyncCoordinator,
        sessions: SessionStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.coordinator = coordinator
        self.sessions = sessions
        self.clock = clock
        self.logger = logging.getLogger(self.__class__.__name__)

    def authenticate(self, email: str, password: str) -> User:
        """Check credentials against freshly loaded state and open a session."""
        state = self.coordinator.load()
        wanted = _normalize_email(email or "")
        user = next(
            (u for u in state.users if _normalize_email(u.email) == wanted and u.password == password),
            None,
        )
        if user is None or not user.enabled:
            self.logger.info("Login rejected")
            raise AuthenticationError()
        self.sessions.open(user)
        self.logger.info(f"Login accepted for {user.email}")
        return user.without_password()

    def current_user(self) -> Optional[User]:
        return self.sessions.active_user()

    def logout(self) -> None:
        self.sessions.clear()

    def register_admin(self, actor: User, email: str, password: str) -> SyncResult:
        if actor.role != Role.SUPER_ADMIN:
            raise PermissionDeniedError("Only the super admin can register admins.")
        if not email or not email.strip() or not password:
            raise UserValidationError("Email and password are required.")

        def add(state: AppState) -> None:
            if _email_taken(state, email):
                raise UserValidationError("An admin with this email already exists.")
            state.users.append(User(
                id=f"admin-{int(self.clock().timestamp() * 1000)}",
                email=email.strip(),
                password=password,
                role=Role.ADMIN,
                enabled=True,
            ))

        _, result = self.coordinator.mutate(add, refresh=True)
        self.logger.info(f"Registered admin {email.strip()}")
        return result

    def check_can_edit(self, actor: User, user_id: str) -> None:
        if not user_id:
            raise UserValidationError("User ID is required.")
        if actor.role != Role.SUPER_ADMIN and actor.id != user_id:
            raise PermissionDeniedError("Admins can only edit their own credentials.")

    def check_can_toggle(self, actor: User, user_id: str) -> None:
        if actor.role != Role.SUPER_ADMIN:
            raise PermissionDeniedError("Only the super admin can enable or disable admins.")
        if actor.id == user_id:
            raise UserValidationError("You cannot disable your own account.")

    def update_user(
        self,
        actor: User,
        user_id: str,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> SyncResult:
        """Change credentials. The super admin may edit anyone; admins only themselves."""
        self.check_can_edit(actor, user_id)
        if email is not None and not email.strip():
            raise UserValidationError("Email cannot be empty.")
        if password is not None and not password:
            raise UserValidationError("Password cannot be empty.")

        def edit(state: AppState) -> None:
            target = state.find_user(user_id)
            if target is None:
                raise UserNotFoundError("User not found.")
            if email is not None:
                if _email_taken(state, email, exclude_id=user_id):
                    raise UserValidationError("Email already taken by another admin.")
                target.email = email.strip()
            if password is not None:
                target.password = password

        state, result = self.coordinator.mutate(edit, refresh=True)

        active = self.sessions.active_user()
        if active is not None and active.id == user_id:
            self.sessions.replace_user(state.find_user(user_id))
        return result

    def set_user_enabled(self, actor: User, user_id: str, enabled: bool) -> SyncResult:
        self.check_can_toggle(actor, user_id)

        def toggle(state: AppState) -> None:
            target = state.find_user(user_id)
            if target is None:
                raise UserNotFoundError("User not found.")
            target.enabled = enabled

        _, result = self.coordinator.mutate(toggle, refresh=True)
        self.logger.info(f"User {user_id} {'enabled' if enabled else 'disabled'}")
        return result
