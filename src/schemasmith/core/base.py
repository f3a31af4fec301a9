"""Lifecycle base class for components that own I/O resources.

Provider connections open their driver handle in ``_async_initialize``
and release it in ``_async_cleanup``. The base class serializes
concurrent opens, turns driver failures into SchemaSmith errors and
guarantees cleanup never masks the error that caused it.

Example:
    >>> class SqliteConnection(AsyncComponent[ConnectionSettings]):
    ...     async def _async_initialize(self) -> None:
    ...         self._connection = await aiosqlite.connect(self.config.database)
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

import structlog

from .exceptions import ArgumentError, ErrorCodes, SchemaSmithException

T = TypeVar("T")


class AsyncComponent(Generic[T], ABC):
    """Base class for components with async open/close.

    Type Parameters:
        T: Settings object the component is built from

    Attributes:
        component_name: Name used in log events and error context
    """

    component_name: ClassVar[str] = "AsyncComponent"

    def __init__(self, config: T) -> None:
        """Initialize the component.

        Args:
            config: Settings for this component

        Raises:
            ArgumentError: If config is None
        """
        if config is None:
            raise ArgumentError(
                "Configuration cannot be None",
                code=ErrorCodes.ARGUMENT_REQUIRED,
                context={"component": self.component_name},
            )

        self._config: T = config
        self._initialized = False
        self._lifecycle_lock = asyncio.Lock()
        self._logger = structlog.get_logger(self.__class__.__name__)

    @property
    def config(self) -> T:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Open the component. A second call is a no-op.

        Raises:
            SchemaSmithException: SchemaSmith errors raised by the subclass
                propagate unchanged, anything else is wrapped with the
                ``INIT_FAILED`` code.
        """
        async with self._lifecycle_lock:
            if self._initialized:
                return

            try:
                await self._async_initialize()
            except SchemaSmithException as e:
                self._logger.error("Component initialization failed", component=self.component_name, error=str(e))
                raise
            except Exception as e:
                self._logger.error("Component initialization failed", component=self.component_name, error=str(e))
                raise SchemaSmithException(
                    f"Failed to initialize {self.component_name}: {e}",
                    code=ErrorCodes.INIT_FAILED,
                    context={"component": self.component_name},
                    cause=e,
                ) from e

            self._initialized = True
            self._logger.debug("Component initialized", component=self.component_name)

    async def cleanup(self) -> None:
        """Release resources. Errors are logged, never raised."""
        async with self._lifecycle_lock:
            if not self._initialized:
                return

            try:
                await self._async_cleanup()
            except Exception as e:
                self._logger.error("Component cleanup failed", component=self.component_name, error=str(e))
            finally:
                self._initialized = False

    @abstractmethod
    async def _async_initialize(self) -> None:
        """Open the underlying resource."""

    async def _async_cleanup(self) -> None:
        """Close the underlying resource."""

    async def __aenter__(self) -> "AsyncComponent[T]":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.cleanup()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.component_name!r}, initialized={self._initialized})"
