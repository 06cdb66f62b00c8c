"""Saved payment method management for tourists."""

import logging
from typing import Callable, List, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import ConflictError, ForbiddenError, NotFoundError
from ..models.payment import SavedPaymentMethod
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SavedPaymentMethodService(BaseService):
    """
    At most one method per tourist is the default. Deleting the default
    promotes the most recently created remaining method.
    """

    @staticmethod
    def _require_tourist(actor: Actor) -> None:
        if not actor.is_tourist:
            raise ForbiddenError("Only tourists have saved payment methods")

    def list_methods(self, actor: Actor) -> List[SavedPaymentMethod]:
        self._require_tourist(actor)
        return self.transaction(
            lambda session: RepositoryFactory.create_saved_payment_method_repository(
                session
            ).list_for_tourist(actor.role_id),
            op_name="saved_methods.list",
        )

    @BaseService.measure_operation("delete_payment_method")
    def delete_method(self, actor: Actor, method_id: str) -> None:
        self._require_tourist(actor)

        def _delete(session: Session) -> bool:
            repo = RepositoryFactory.create_saved_payment_method_repository(session)
            repo.lock_tourist(actor.role_id)
            method = repo.get_for_tourist(method_id, actor.role_id)
            if method is None:
                raise NotFoundError("Payment method not found")
            was_default = bool(method.is_default)
            repo.delete(method)
            if was_default:
                replacement = repo.most_recent(actor.role_id)
                if replacement is not None:
                    repo.update(replacement, is_default=True)
            return was_default

        was_default = self._run_default_change(_delete, "saved_methods.delete")
        self.log_operation("delete_payment_method", method_id=method_id, was_default=was_default)

    @BaseService.measure_operation("set_default_payment_method")
    def set_default(self, actor: Actor, method_id: str) -> SavedPaymentMethod:
        self._require_tourist(actor)

        def _set_default(session: Session) -> SavedPaymentMethod:
            repo = RepositoryFactory.create_saved_payment_method_repository(session)
            repo.lock_tourist(actor.role_id)
            method = repo.get_for_tourist(method_id, actor.role_id)
            if method is None:
                raise NotFoundError("Payment method not found")
            repo.clear_defaults(actor.role_id)
            return repo.update(method, is_default=True)

        return self._run_default_change(_set_default, "saved_methods.set_default")

    def _run_default_change(self, fn: Callable[[Session], T], op_name: str) -> T:
        try:
            return self.transaction(fn, op_name=op_name)
        except IntegrityError as exc:
            # Partial unique index: a concurrent change already picked a default
            raise ConflictError(
                "Payment methods were changed concurrently; please retry",
                details={"operation": op_name},
            ) from exc
