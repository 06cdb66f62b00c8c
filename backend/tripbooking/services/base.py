# backend/tripbooking/services/base.py
"""
Base Service Pattern for the trip booking platform.

Provides common functionality for all service classes:
- Units of work through the persistence gateway
- Logging
- Error translation
- Performance monitoring
"""

from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, TypeVar, cast

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException, ServiceException
from ..database.gateway import PersistenceGateway
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])


class BaseService:
    """
    Base class for all service layer components.

    Services never hold a session between calls; each unit of work gets a
    fresh one from the persistence gateway.
    """

    # Class-level metrics storage
    _class_metrics: Dict[str, Dict[str, Dict[str, float]]] = {}

    def __init__(self, persistence: PersistenceGateway):
        self.persistence = persistence
        self.logger = logging.getLogger(self.__class__.__name__)

    def transaction(self, fn: Callable[[Session], T], *, op_name: str = "transaction") -> T:
        """
        Run ``fn(session)`` atomically.

        Domain exceptions and ``IntegrityError`` propagate untouched; the
        gateway already turns lost connections into StorageUnavailableError.
        Any other database failure becomes a ServiceException.
        """
        try:
            return self.persistence.with_transaction(fn, op_name=op_name)
        except IntegrityError:
            raise
        except (SQLAlchemyError, RepositoryException) as e:
            self.logger.error(f"Transaction {op_name} failed: {str(e)}")
            raise ServiceException(f"Database operation failed: {str(e)}") from e

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("create_booking")
            def create_booking(self, data):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                start_time = time.time()
                success = False
                error_type = None
                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.time() - start_time
                    self._record_metric(operation_name, elapsed, success)
                    if elapsed > 1.0:
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )
                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with structured context."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        metrics = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
        data = metrics.setdefault(
            operation,
            {"count": 0, "total_time": 0.0, "success_count": 0, "failure_count": 0},
        )
        data["count"] += 1
        data["total_time"] += elapsed
        if success:
            data["success_count"] += 1
        else:
            data["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """Per-operation timing summary for this service class."""
        result: Dict[str, Dict[str, float]] = {}
        for operation, data in BaseService._class_metrics.get(self.__class__.__name__, {}).items():
            count = data["count"]
            if not count:
                continue
            result[operation] = {
                "count": count,
                "avg_time": data["total_time"] / count,
                "success_rate": data["success_count"] / count,
            }
        return result
