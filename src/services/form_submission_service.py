"""
Form Submission Service
Runs the country check as part of the validate and submit phases of a form submission.
"""
from typing import Dict, Any

# Utils
from utils.log_utils import LogUtil

# Database
from database.country_guard_db import CountryGuardDB

# Services
from services.country_validation_service import CountryValidationService
from services.handler_configuration_service import HandlerConfigurationService

# Models
from models.retry_state_data import RetryStateScope
from models.submission_record_data import SubmissionRecordData
from models.validation_outcome import ValidationOutcome

# Exceptions
from exceptions.country_guard_exception import SubmissionRejectedException


class FormSubmissionService:
    """
    Loads the handler configuration, scopes retry state to the session and hands
    the submitted values to CountryValidationService.
    """

    def __init__(
        self,
        log_util: LogUtil,
        country_guard_db: CountryGuardDB,
        handler_configuration_service: HandlerConfigurationService,
        country_validation_service: CountryValidationService
    ):
        self.log_util = log_util
        self.country_guard_db = country_guard_db
        self.handler_configuration_service = handler_configuration_service
        self.country_validation_service = country_validation_service

    @staticmethod
    def _declared_country(data: Dict[str, Any], country_field: str) -> str:
        value = data.get(country_field)
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    async def validate_submission(
        self,
        form_id: str,
        handler_id: str,
        session_id: str,
        data: Dict[str, Any],
        client_ip: str
    ) -> ValidationOutcome:
        configuration = await self.handler_configuration_service.get_configuration(form_id, handler_id)
        scope = RetryStateScope(form_id=form_id, handler_id=handler_id, session_id=session_id)
        declared_country = self._declared_country(data, configuration.country_field)

        outcome = await self.country_validation_service.validate_submission(
            configuration=configuration,
            declared_country=declared_country,
            scope=scope,
            client_ip=client_ip
        )
        self.log_util.info(
            service_name="FormSubmissionService",
            message=f"Validation for {scope.key}: accepted={outcome.accepted} reason={outcome.reason}"
        )
        return outcome

    async def submit_submission(
        self,
        form_id: str,
        handler_id: str,
        session_id: str,
        data: Dict[str, Any],
        client_ip: str
    ) -> SubmissionRecordData:
        """
        Re-run the country check on the submitted values and commit only when it accepts.
        Raises SubmissionRejectedException carrying the outcome otherwise; nothing is saved
        and retry state is left for the next attempt.
        """
        configuration = await self.handler_configuration_service.get_configuration(form_id, handler_id)
        scope = RetryStateScope(form_id=form_id, handler_id=handler_id, session_id=session_id)
        declared_country = self._declared_country(data, configuration.country_field)

        outcome = await self.country_validation_service.validate_submission(
            configuration=configuration,
            declared_country=declared_country,
            scope=scope,
            client_ip=client_ip
        )
        if not outcome.accepted:
            self.log_util.warning(
                service_name="FormSubmissionService",
                message=f"Submission rejected for {scope.key}: reason={outcome.reason}"
            )
            raise SubmissionRejectedException(message=outcome.message or "Submission rejected", outcome=outcome)

        submission = SubmissionRecordData(
            form_id=form_id,
            handler_id=handler_id,
            session_id=session_id,
            data=dict(data)
        )
        submission = await self.country_validation_service.commit_submission(
            configuration=configuration,
            submission=submission,
            declared_country=declared_country,
            scope=scope,
            client_ip=client_ip
        )
        saved = await self.country_guard_db.save_submission(submission)
        self.log_util.info(
            service_name="FormSubmissionService",
            message=f"Submission {saved.id} saved for {scope.key}"
        )
        return saved
