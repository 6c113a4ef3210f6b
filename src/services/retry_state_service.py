"""
Retry State Service
Reads and writes the per-session mismatch streak on top of the key-value retry store.
"""
from typing import TYPE_CHECKING

from utils.log_utils import LogUtil
from models.retry_state_data import RetryStateData, RetryStateScope

if TYPE_CHECKING:
    from database.country_guard_db import CountryGuardDB

PREVIOUS_COUNTRY_KEY = "previous_country"
PREVIOUS_FAILURES_KEY = "previous_failures"


class RetryStateService:
    """
    Service mapping RetryStateData onto the retry store.
    The store never raises: a failed read looks like no state, a failed write is dropped.
    """

    def __init__(self, log_util: LogUtil, retry_store: "CountryGuardDB"):
        self.log_util = log_util
        self.retry_store = retry_store

    async def get_retry_state(self, scope: RetryStateScope) -> RetryStateData:
        values = await self.retry_store.get_retry_values(scope)
        return RetryStateData(
            previous_country=values.get(PREVIOUS_COUNTRY_KEY),
            previous_failures=values.get(PREVIOUS_FAILURES_KEY) or 0
        )

    async def save_retry_state(self, scope: RetryStateScope, state: RetryStateData):
        saved = await self.retry_store.set_retry_values(scope, {
            PREVIOUS_COUNTRY_KEY: state.previous_country,
            PREVIOUS_FAILURES_KEY: state.previous_failures
        })
        if saved:
            self.log_util.info(
                service_name="RetryStateService",
                message=f"Retry state for {scope.key}: country={state.previous_country} failures={state.previous_failures}"
            )

    async def clear_retry_state(self, scope: RetryStateScope):
        cleared = await self.retry_store.delete_retry_values(scope)
        if cleared:
            self.log_util.info(
                service_name="RetryStateService",
                message=f"Retry state cleared for {scope.key}"
            )
