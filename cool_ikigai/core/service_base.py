# cool_ikigai/core/service_base.py
"""
Base class for the Cool Ikigai collaborators (chat completion, speech
synthesis, Redis storage).

A service is created cheaply and connects on first use: initialize() is
idempotent, ensure_initialized() is what the public methods call, and
shutdown() releases the client during application shutdown.
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, TypeVar, Generic
import logging
from cool_ikigai.core.exceptions import ServiceError, ConfigurationError

ConfigType = TypeVar('ConfigType')


class ServiceConfig:
    """Marker base for the service configuration dataclasses"""
    pass


class BaseService(ABC, Generic[ConfigType]):
    """
    Lazy-initialized async service.

    Subclasses provide _initialize_client() and health_check(), and may
    override _validate_config() and _cleanup().
    """

    def __init__(
        self,
        config: Optional[ConfigType] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.service_name = self.__class__.__name__
        self._initialized = False
        self._client = None

    @abstractmethod
    async def _initialize_client(self) -> Any:
        """
        Create the underlying client or connection.

        Raises:
            ConfigurationError: Missing or invalid settings
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return {healthy, status, details}"""
        pass

    async def initialize(self) -> None:
        """
        Validate the configuration and create the client once.

        Raises:
            ConfigurationError: Propagated unchanged
            ServiceError: Any other failure while connecting
        """
        if self._initialized:
            return

        self.logger.info(f"Initializing {self.service_name}...")
        try:
            self._validate_config()
            self._client = await self._initialize_client()
        except ConfigurationError:
            raise
        except Exception as e:
            self.logger.error(f"{self.service_name} could not be initialized", exc_info=True)
            raise ServiceError(
                f"Failed to initialize {self.service_name}",
                service_name=self.service_name,
                operation="initialize",
                details={'original_error': str(e), 'error_type': type(e).__name__}
            ) from e

        self._initialized = True
        self.logger.info(f"{self.service_name} ready")

    async def ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    def _validate_config(self) -> None:
        if self.config is None:
            self.logger.debug(f"{self.service_name} has no configuration")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def client(self) -> Any:
        """
        Raises:
            ServiceError: If initialize() has not completed
        """
        if not self._initialized or self._client is None:
            raise ServiceError(
                f"{self.service_name} used before initialize()",
                service_name=self.service_name
            )
        return self._client

    async def shutdown(self) -> None:
        """Release the client; errors are logged so the other services still shut down"""
        if not self._initialized:
            return

        self.logger.info(f"Shutting down {self.service_name}...")
        try:
            await self._cleanup()
        except Exception:
            self.logger.error(f"Error during {self.service_name} shutdown", exc_info=True)
        finally:
            self._client = None
            self._initialized = False

    async def _cleanup(self) -> None:
        pass
