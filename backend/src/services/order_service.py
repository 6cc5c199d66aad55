"""Read-only order and review history for the account page."""
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import Literal, TypeVar

from core.auth_retry import with_auth_retry
from core.session_manager import SessionManager
from schemas.order import Order, StatusDisplay, status_display
from schemas.review import REVIEW_STATUSES, Review, ReviewStatus
from services.account_api import AccountApi
from services.exceptions import AccountError, AuthExpiredError
from services.mutation_coordinator import OperationResult

logger = logging.getLogger(__name__)

ALL = "all"

SortOrder = Literal["newest", "oldest"]

T = TypeVar("T")


class _History:
    """Shared load/close handling for read-only lists."""

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager
        self.loading = False
        self.error: str | None = None
        self.redirect = False
        self._closed = False

    def close(self) -> None:
        """Drop results that arrive after the surface is gone."""
        self._closed = True

    async def _fetch(
        self, operation: Callable[[str], Awaitable[list[T]]], name: str,
    ) -> OperationResult[list[T]]:
        self.loading = True
        self.error = None
        try:
            items = await with_auth_retry(self._session_manager, operation, name=name)
        except AuthExpiredError:
            self.redirect = True
            return OperationResult(ok=False, redirect=True)
        except AccountError as e:
            logger.warning("history_load_failed operation=%s error=%s", name, e.message)
            if not self._closed:
                self.error = e.message
            return OperationResult(ok=False, message=e.message)
        finally:
            self.loading = False
        return OperationResult.success(items)


class OrderHistory(_History):
    """The user's orders with a status filter and creation-time ordering."""

    def __init__(self, session_manager: SessionManager, api: AccountApi) -> None:
        super().__init__(session_manager)
        self._api = api
        self.orders: list[Order] = []
        self.status_filter: str = ALL
        self.sort_order: SortOrder = "newest"

    async def load(self) -> OperationResult[list[Order]]:
        """Fetch all orders."""
        result = await self._fetch(self._api.my_orders, "my_orders")
        if result.ok and not self._closed:
            self.orders = result.value
        return result

    def toggle_sort(self) -> SortOrder:
        """Switch between newest-first and oldest-first."""
        self.sort_order = "oldest" if self.sort_order == "newest" else "newest"
        return self.sort_order

    @property
    def statuses(self) -> list[str]:
        """Distinct raw statuses present, in first-seen order."""
        return list(dict.fromkeys(o.status for o in self.orders))

    @property
    def visible(self) -> list[Order]:
        """Orders matching the filter, sorted by creation time (stable for ties)."""
        orders = self.orders
        if self.status_filter != ALL:
            orders = [o for o in orders if o.status == self.status_filter]
        return sorted(
            orders,
            key=lambda o: o.created_at,
            reverse=self.sort_order == "newest",
        )

    @staticmethod
    def display(order: Order) -> StatusDisplay:
        """Status label and category for ``order``."""
        return status_display(order.status)


class ReviewHistory(_History):
    """Reviews the user wrote, with moderation-status filter and counts."""

    def __init__(self, session_manager: SessionManager, api: AccountApi) -> None:
        super().__init__(session_manager)
        self._api = api
        self.reviews: list[Review] = []
        self.status_filter: ReviewStatus | Literal["all"] = ALL

    async def load(self) -> OperationResult[list[Review]]:
        """Fetch all reviews."""
        result = await self._fetch(self._api.user_reviews, "user_reviews")
        if result.ok and not self._closed:
            self.reviews = result.value
        return result

    def toggle_filter(self, status: ReviewStatus) -> None:
        """Filter by ``status``, or clear the filter if it is already selected."""
        self.status_filter = ALL if self.status_filter == status else status

    @property
    def counts(self) -> dict[ReviewStatus, int]:
        """Number of reviews per moderation status."""
        counter = Counter(r.status for r in self.reviews)
        return {status: counter[status] for status in REVIEW_STATUSES}

    @property
    def visible(self) -> list[Review]:
        """Reviews matching the filter."""
        if self.status_filter == ALL:
            return list(self.reviews)
        return [r for r in self.reviews if r.status == self.status_filter]
