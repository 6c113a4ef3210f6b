"""Shared fixtures.

Services are built on an in-memory retry store and a mocked geolocator so the
country check can run without MongoDB or the lookup API.
"""

from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest

from utils.log_utils import LogUtil
from models.handler_configuration_data import HandlerConfigurationData
from models.retry_state_data import RetryStateScope
from services.geolocation_service import GeolocationService
from services.retry_state_service import RetryStateService
from services.country_validation_service import CountryValidationService


class InMemoryRetryStore:
    """Stand-in for the retry store methods of CountryGuardDB.

    fail_reads / fail_writes mimic an unavailable store, which the real
    store reports as absent / not saved instead of raising.
    """

    def __init__(self):
        self.values: Dict[str, Dict[str, Any]] = {}
        self.fail_reads = False
        self.fail_writes = False

    async def get_retry_values(self, scope: RetryStateScope) -> Dict[str, Any]:
        if self.fail_reads:
            return {}
        return dict(self.values.get(scope.key, {}))

    async def set_retry_values(self, scope: RetryStateScope, values: Dict[str, Any]) -> bool:
        if self.fail_writes:
            return False
        self.values.setdefault(scope.key, {}).update(values)
        return True

    async def delete_retry_values(self, scope: RetryStateScope) -> bool:
        if self.fail_writes:
            return False
        self.values.pop(scope.key, None)
        return True


@pytest.fixture
def log_util() -> MagicMock:
    return MagicMock(spec=LogUtil)


@pytest.fixture
def retry_store() -> InMemoryRetryStore:
    return InMemoryRetryStore()


@pytest.fixture
def geolocation_service() -> AsyncMock:
    service = AsyncMock(spec=GeolocationService)
    service.get_country_name.return_value = "Germany"
    return service


@pytest.fixture
def retry_state_service(log_util, retry_store) -> RetryStateService:
    return RetryStateService(log_util=log_util, retry_store=retry_store)


@pytest.fixture
def country_validation_service(log_util, geolocation_service, retry_state_service) -> CountryValidationService:
    return CountryValidationService(
        log_util=log_util,
        geolocation_service=geolocation_service,
        retry_state_service=retry_state_service
    )


@pytest.fixture
def scope() -> RetryStateScope:
    return RetryStateScope(form_id="contact", handler_id="validate_country", session_id="session-1")


@pytest.fixture
def configuration() -> HandlerConfigurationData:
    return HandlerConfigurationData(
        form_id="contact",
        handler_id="validate_country",
        country_field="country",
        result_field="country_mismatch",
        tolerance=2
    )
