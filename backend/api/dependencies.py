"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

Tests swap the repositories for in-memory ones by assigning to the
container's attributes before the first request.
"""

from typing import TYPE_CHECKING

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import ISessionTokenService, IPasswordHasher
    from modules.notifications.interfaces import INotifier
    from modules.ratelimit.interfaces import IRateLimiter
    from modules.journeys.interfaces import (
        IJourneyAdmissionService,
        IJourneyRepository,
        IUserRepository,
        IExpenseRepository,
    )


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self) -> None:
        self.journey_repository: "IJourneyRepository | None" = None
        self.user_repository: "IUserRepository | None" = None
        self.expense_repository: "IExpenseRepository | None" = None
        self._session_service: "ISessionTokenService | None" = None
        self._password_hasher: "IPasswordHasher | None" = None
        self._notifier: "INotifier | None" = None
        self._rate_limiters: "dict[str, IRateLimiter] | None" = None
        self._journey_service: "IJourneyAdmissionService | None" = None

    @property
    def journeys_repo(self) -> "IJourneyRepository":
        """Get the journey repository instance."""
        if self.journey_repository is None:
            from modules.journeys.repository import SupabaseJourneyRepository
            from shared.database import get_supabase_client
            self.journey_repository = SupabaseJourneyRepository(get_supabase_client())
        return self.journey_repository

    @property
    def users_repo(self) -> "IUserRepository":
        """Get the user repository instance."""
        if self.user_repository is None:
            from modules.journeys.repository import SupabaseUserRepository
            from shared.database import get_supabase_client
            self.user_repository = SupabaseUserRepository(get_supabase_client())
        return self.user_repository

    @property
    def expenses_repo(self) -> "IExpenseRepository":
        """Get the expense repository instance."""
        if self.expense_repository is None:
            from modules.journeys.repository import SupabaseExpenseRepository
            from shared.database import get_supabase_client
            self.expense_repository = SupabaseExpenseRepository(get_supabase_client())
        return self.expense_repository

    @property
    def sessions(self) -> "ISessionTokenService":
        """Get the session token service instance."""
        if self._session_service is None:
            from modules.auth.service import get_session_token_service
            self._session_service = get_session_token_service()
        return self._session_service

    @property
    def password_hasher(self) -> "IPasswordHasher":
        if self._password_hasher is None:
            from modules.auth.passwords import BcryptPasswordHasher
            self._password_hasher = BcryptPasswordHasher()
        return self._password_hasher

    @property
    def notifier(self) -> "INotifier":
        """Get the socket notifier, or a no-op one when no socket secret is set."""
        if self._notifier is None:
            from modules.notifications.service import NullNotifier, SocketNotifier
            from shared.config import get_settings
            if get_settings().socket_secret:
                self._notifier = SocketNotifier()
            else:
                self._notifier = NullNotifier()
        return self._notifier

    @notifier.setter
    def notifier(self, notifier: "INotifier") -> None:
        self._notifier = notifier

    @property
    def rate_limiters(self) -> "dict[str, IRateLimiter]":
        """Get the named rate limiters."""
        if self._rate_limiters is None:
            from modules.ratelimit.service import build_rate_limiters
            self._rate_limiters = build_rate_limiters()
        return self._rate_limiters

    @rate_limiters.setter
    def rate_limiters(self, limiters: "dict[str, IRateLimiter]") -> None:
        self._rate_limiters = limiters

    @property
    def journeys(self) -> "IJourneyAdmissionService":
        """Get the journey admission service instance."""
        if self._journey_service is None:
            from modules.journeys.expiration import ExpirationScheduler
            from modules.journeys.join_tokens import JoinTokenIssuer
            from modules.journeys.membership import MembershipService
            from modules.journeys.service import JourneyAdmissionService

            issuer = JoinTokenIssuer(self.journeys_repo)
            expiration = ExpirationScheduler(
                self.journeys_repo,
                self.users_repo,
                self.expenses_repo,
                self.notifier,
            )
            membership = MembershipService(
                self.journeys_repo,
                self.users_repo,
                issuer=issuer,
                sessions=self.sessions,
                notifier=self.notifier,
                expiration=expiration,
                password_hasher=self.password_hasher,
            )
            self._journey_service = JourneyAdmissionService(
                self.journeys_repo,
                self.users_repo,
                issuer=issuer,
                membership=membership,
                expiration=expiration,
                notifier=self.notifier,
                password_hasher=self.password_hasher,
                join_limiter=self.rate_limiters.get("join"),
            )
        return self._journey_service

    async def aclose(self) -> None:
        """Release resources held by cached services."""
        if self._notifier is not None and hasattr(self._notifier, "close"):
            await self._notifier.close()

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self.journey_repository = None
        self.user_repository = None
        self.expense_repository = None
        self._session_service = None
        self._password_hasher = None
        self._notifier = None
        self._rate_limiters = None
        self._journey_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_journey_service() -> "IJourneyAdmissionService":
    """FastAPI dependency for the journey admission service."""
    return get_container().journeys


def get_session_service() -> "ISessionTokenService":
    """FastAPI dependency for the session token service."""
    return get_container().sessions


def get_rate_limiters() -> "dict[str, IRateLimiter]":
    """FastAPI dependency for the named rate limiters."""
    return get_container().rate_limiters
