import asyncio
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    CUSTOMER = "customer"
    BUSINESS = "business"
    ADMIN = "admin"


class User(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    avatar: Optional[str] = None
    business_id: Optional[str] = None


class AuthState(BaseModel):
    user: Optional[User] = None
    token: Optional[str] = None
    is_loading: bool = False
    error: Optional[str] = None


Listener = Callable[[AuthState], None]


class SessionContext:
    """
    In-memory auth/session state passed explicitly to whoever needs it.
    Subscribers are called with the new state on every change.
    """

    def __init__(self, login_delay: float = 0.0):
        self.state = AuthState()
        self.login_delay = login_delay
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def login(self, email: str, password: str) -> None:
        """Mock login: the role is derived from the email address."""
        self._set(self.state.model_copy(update={"is_loading": True, "error": None}))

        if self.login_delay:
            await asyncio.sleep(self.login_delay)

        if "admin" in email:
            user = User(id="1", email=email, name="Admin User", role=UserRole.ADMIN)
        elif "business" in email:
            user = User(
                id="2",
                email=email,
                name="Business Owner",
                role=UserRole.BUSINESS,
                business_id="business-1",
            )
        else:
            user = User(id="3", email=email, name="Customer", role=UserRole.CUSTOMER)

        self._set(AuthState(user=user, token="mock-jwt-token"))

    async def logout(self) -> None:
        self._set(AuthState())

    def is_admin(self) -> bool:
        return self.state.user is not None and self.state.user.role == UserRole.ADMIN

    def is_business(self) -> bool:
        return self.state.user is not None and self.state.user.role == UserRole.BUSINESS

    def _set(self, state: AuthState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state)
