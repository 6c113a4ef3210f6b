"""
Country Validation Service
Cross-checks the declared country of a form submission against the country inferred from the
requester's IP. Repeated mismatches of the same declared country are let through once the
handler's tolerance is exhausted.
"""
import re
from typing import Optional, Dict, Any

# Utils
from utils.log_utils import LogUtil

# Services
from services.geolocation_service import GeolocationService
from services.retry_state_service import RetryStateService

# Models
from models.handler_configuration_data import HandlerConfigurationData, DEFAULT_FAILURE_MESSAGE_TEMPLATE
from models.retry_state_data import RetryStateData, RetryStateScope
from models.submission_record_data import SubmissionRecordData
from models.validation_outcome import ValidationOutcome

# Exceptions
from exceptions.country_guard_exception import ConfigurationException

COUNTRY_REQUIRED_MESSAGE = "Country field required."
TOLERANCE_ERROR_MESSAGE = "Failures before allow must be a positive integer"
COUNTRY_FIELD_ERROR_MESSAGE = "Field key to validate on is required"

_INTEGER_PATTERN = re.compile(r"[+-]?(0|[1-9][0-9]*)")


def parse_tolerance(value: Any) -> Optional[int]:
    """
    Parse an author supplied tolerance. Returns None unless value is an integer >= 1.
    Accepts ints and integer strings (surrounding whitespace allowed); bools and floats are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        tolerance = value
    elif isinstance(value, str) and _INTEGER_PATTERN.fullmatch(value.strip()):
        tolerance = int(value.strip())
    else:
        return None
    return tolerance if tolerance >= 1 else None


class CountryValidationService:
    """
    Two phase country check:
        validate_submission runs before the submission is accepted and may reject it.
        commit_submission runs after acceptance, writes the result flag and clears retry state.
    """

    def __init__(
        self,
        log_util: LogUtil,
        geolocation_service: GeolocationService,
        retry_state_service: RetryStateService
    ):
        self.log_util = log_util
        self.geolocation_service = geolocation_service
        self.retry_state_service = retry_state_service

    def validate_configuration(self, raw_configuration: Dict[str, Any]) -> Dict[str, str]:
        """
        Check author input for a handler configuration.
        Returns a dict of field name -> error message, empty when valid.
        """
        field_errors = {}

        country_field = raw_configuration.get("country_field")
        if not isinstance(country_field, str) or not country_field.strip():
            field_errors["country_field"] = COUNTRY_FIELD_ERROR_MESSAGE

        if parse_tolerance(raw_configuration.get("tolerance")) is None:
            field_errors["tolerance"] = TOLERANCE_ERROR_MESSAGE

        return field_errors

    def build_configuration(self, form_id: str, handler_id: str, raw_configuration: Dict[str, Any]) -> HandlerConfigurationData:
        """
        Validate author input and turn it into a HandlerConfigurationData.
        Raises ConfigurationException carrying the field errors when invalid.
        """
        field_errors = self.validate_configuration(raw_configuration)
        if field_errors:
            self.log_util.warning(
                service_name="CountryValidationService",
                message=f"Invalid configuration for handler {handler_id} on form {form_id}: {field_errors}"
            )
            raise ConfigurationException(message="Invalid handler configuration", field_errors=field_errors)

        result_field = raw_configuration.get("result_field")
        failure_message_template = raw_configuration.get("failure_message_template")

        return HandlerConfigurationData(
            form_id=form_id,
            handler_id=handler_id,
            country_field=raw_configuration["country_field"].strip(),
            result_field=result_field.strip() if isinstance(result_field, str) and result_field.strip() else None,
            failure_message_template=failure_message_template if failure_message_template and failure_message_template.strip() else DEFAULT_FAILURE_MESSAGE_TEMPLATE,
            tolerance=parse_tolerance(raw_configuration["tolerance"])
        )

    async def validate_submission(
        self,
        configuration: HandlerConfigurationData,
        declared_country: str,
        scope: RetryStateScope,
        client_ip: str
    ) -> ValidationOutcome:
        """
        Decide whether the declared country is accepted.

        Matching countries are accepted without touching retry state. A mismatch is rejected and
        recorded; the same country rejected more than tolerance times in a row is accepted.
        Geolocation faults propagate to the caller.
        """
        country_field = configuration.country_field

        if not declared_country:
            return ValidationOutcome(
                accepted=False,
                reason="country_required",
                message=COUNTRY_REQUIRED_MESSAGE,
                field=country_field
            )

        inferred_country = await self.geolocation_service.get_country_name(client_ip)

        if inferred_country == declared_country:
            return ValidationOutcome(accepted=True, reason="match", inferred_country=inferred_country)

        state = await self.retry_state_service.get_retry_state(scope)
        failure_message = configuration.format_failure_message(inferred_country)

        if state.previous_country == declared_country:
            failures = state.previous_failures + 1
            if failures > configuration.tolerance:
                self.log_util.info(
                    service_name="CountryValidationService",
                    message=f"Tolerance exhausted for {scope.key}: allowing {declared_country} (inferred {inferred_country}) after {state.previous_failures} failures"
                )
                return ValidationOutcome(
                    accepted=True,
                    reason="tolerance_exhausted",
                    inferred_country=inferred_country
                )

            await self.retry_state_service.save_retry_state(
                scope,
                RetryStateData(previous_country=declared_country, previous_failures=failures)
            )
            self.log_util.info(
                service_name="CountryValidationService",
                message=f"Country mismatch {failures}/{configuration.tolerance} for {scope.key}: declared {declared_country}, inferred {inferred_country}"
            )
            return ValidationOutcome(
                accepted=False,
                reason="mismatch",
                message=failure_message,
                field=country_field,
                inferred_country=inferred_country
            )

        # New country, the old streak is discarded
        await self.retry_state_service.save_retry_state(
            scope,
            RetryStateData(previous_country=declared_country, previous_failures=1)
        )
        self.log_util.info(
            service_name="CountryValidationService",
            message=f"Country mismatch 1/{configuration.tolerance} for {scope.key}: declared {declared_country}, inferred {inferred_country}"
        )
        return ValidationOutcome(
            accepted=False,
            reason="mismatch",
            message=failure_message,
            field=country_field,
            inferred_country=inferred_country
        )

    async def commit_submission(
        self,
        configuration: HandlerConfigurationData,
        submission: SubmissionRecordData,
        declared_country: str,
        scope: RetryStateScope,
        client_ip: str
    ) -> SubmissionRecordData:
        """
        Record the pass/fail flag on the submission and clear retry state.

        The flag (True when declared and inferred countries differ) is only written to a field
        already present on the submission; otherwise the status goes into the notes.
        Retry state is cleared even when the geolocation lookup fails.
        """
        try:
            result_field = configuration.result_field
            if result_field:
                inferred_country = await self.geolocation_service.get_country_name(client_ip)
                mismatch = declared_country != inferred_country
                if submission.has_field(result_field):
                    submission.set_field(result_field, mismatch)
                else:
                    self.log_util.error(
                        service_name="CountryValidationService",
                        message=f"Failed to set validation status {result_field}, not present on submission"
                    )
                    submission.append_note(" Failed to set validation status: " + ("Failed" if mismatch else "Succeeded"))
        finally:
            await self.retry_state_service.clear_retry_state(scope)

        return submission
