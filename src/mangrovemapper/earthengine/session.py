"""Earth Engine client initialization."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import ee

from mangrovemapper.core.models import EarthEngineConfig
from mangrovemapper.logging import get_logger

__all__ = ["EarthEngineAuthError", "EarthEngineSession"]

LOGGER = get_logger(__name__)


class EarthEngineAuthError(RuntimeError):
    """Raised when the Earth Engine client cannot be initialized."""


class EarthEngineSession:
    """Initialize the Earth Engine client once per process."""

    def __init__(
        self,
        project: Optional[str] = None,
        *,
        service_account: Optional[str] = None,
        private_key_file: Optional[str] = None,
    ) -> None:
        self._project = project
        self._service_account = service_account
        self._private_key_file = private_key_file
        self._initialized = False

    @classmethod
    def from_config(
        cls,
        config: EarthEngineConfig,
        *,
        project_var: str = "EE_PROJECT",
        service_account_var: str = "EE_SERVICE_ACCOUNT",
        key_file_var: str = "EE_PRIVATE_KEY_FILE",
    ) -> "EarthEngineSession":
        """Merge the configured credentials with environment overrides."""

        project = os.getenv(project_var) or config.project or os.getenv("GOOGLE_CLOUD_PROJECT")
        service_account = os.getenv(service_account_var) or config.service_account
        private_key_file = os.getenv(key_file_var) or config.private_key_file
        return cls(project, service_account=service_account, private_key_file=private_key_file)

    @property
    def project(self) -> Optional[str]:
        return self._project

    @property
    def initialized(self) -> bool:
        return self._initialized

    def __enter__(self) -> "EarthEngineSession":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        return None

    def initialize(self) -> None:
        if self._initialized:
            return

        credentials = None
        if self._service_account or self._private_key_file:
            if not self._service_account or not self._private_key_file:
                raise EarthEngineAuthError(
                    "Service account login needs both EE_SERVICE_ACCOUNT and EE_PRIVATE_KEY_FILE"
                )
            if not Path(self._private_key_file).is_file():
                raise EarthEngineAuthError(f"Private key file not found: {self._private_key_file}")
            credentials = ee.ServiceAccountCredentials(self._service_account, self._private_key_file)

        try:
            if credentials is not None:
                ee.Initialize(credentials, project=self._project)
            else:
                ee.Initialize(project=self._project)
        except ee.EEException as exc:
            raise EarthEngineAuthError(f"Earth Engine initialization failed: {exc}") from exc

        self._initialized = True
        LOGGER.info(
            "earth engine initialized",
            extra={
                "project": self._project,
                "auth": "service_account" if credentials is not None else "default",
            },
        )
