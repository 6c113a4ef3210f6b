"""Tests for the country check decision engine."""

import pytest

from exceptions.country_guard_exception import ConfigurationException, GeolocationException
from models.retry_state_data import RetryStateData, RetryStateScope
from models.submission_record_data import SubmissionRecordData
from services.country_validation_service import parse_tolerance


async def test_matching_country_is_accepted(country_validation_service, configuration, scope):
    outcome = await country_validation_service.validate_submission(configuration, "Germany", scope, "1.2.3.4")

    assert outcome.accepted is True
    assert outcome.reason == "match"
    assert outcome.message is None


async def test_matching_country_leaves_existing_retry_state(
    country_validation_service, retry_state_service, configuration, scope
):
    await retry_state_service.save_retry_state(scope, RetryStateData(previous_country="France", previous_failures=2))

    outcome = await country_validation_service.validate_submission(configuration, "Germany", scope, "1.2.3.4")

    assert outcome.accepted is True
    state = await retry_state_service.get_retry_state(scope)
    assert state.previous_country == "France"
    assert state.previous_failures == 2


async def test_first_mismatch_is_rejected_and_recorded(
    country_validation_service, retry_state_service, configuration, scope
):
    outcome = await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")

    assert outcome.accepted is False
    assert outcome.reason == "mismatch"
    assert outcome.field == "country"
    assert outcome.message == "Are you sure you are not from Germany."
    state = await retry_state_service.get_retry_state(scope)
    assert state.previous_country == "France"
    assert state.previous_failures == 1


async def test_country_comparison_is_case_sensitive(country_validation_service, configuration, scope):
    outcome = await country_validation_service.validate_submission(configuration, "germany", scope, "1.2.3.4")

    assert outcome.accepted is False


@pytest.mark.parametrize("tolerance", [1, 2, 5])
async def test_same_country_accepted_after_tolerance_exhausted(
    country_validation_service, retry_state_service, configuration, scope, tolerance
):
    configuration.tolerance = tolerance

    for attempt in range(1, tolerance + 1):
        outcome = await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")
        assert outcome.accepted is False
        state = await retry_state_service.get_retry_state(scope)
        assert state.previous_failures == attempt

    outcome = await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")

    assert outcome.accepted is True
    assert outcome.reason == "tolerance_exhausted"
    state = await retry_state_service.get_retry_state(scope)
    assert state.previous_failures == tolerance


async def test_switching_country_restarts_streak(
    country_validation_service, retry_state_service, configuration, scope
):
    await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")
    await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")

    outcome = await country_validation_service.validate_submission(configuration, "Spain", scope, "1.2.3.4")

    assert outcome.accepted is False
    state = await retry_state_service.get_retry_state(scope)
    assert state.previous_country == "Spain"
    assert state.previous_failures == 1


async def test_custom_failure_message_template(country_validation_service, configuration, scope):
    configuration.failure_message_template = "We think you are in %value, please check."

    outcome = await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")

    assert outcome.message == "We think you are in Germany, please check."


async def test_empty_country_short_circuits(
    country_validation_service, geolocation_service, retry_store, configuration, scope
):
    outcome = await country_validation_service.validate_submission(configuration, "", scope, "1.2.3.4")

    assert outcome.accepted is False
    assert outcome.reason == "country_required"
    assert outcome.message == "Country field required."
    assert outcome.field == "country"
    geolocation_service.get_country_name.assert_not_called()
    assert retry_store.values == {}


async def test_retry_state_is_scoped_per_session(
    country_validation_service, retry_state_service, configuration, scope
):
    other_scope = RetryStateScope(form_id="contact", handler_id="validate_country", session_id="session-2")
    configuration.tolerance = 1

    await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")
    outcome = await country_validation_service.validate_submission(configuration, "France", other_scope, "1.2.3.4")

    assert outcome.accepted is False
    assert (await retry_state_service.get_retry_state(other_scope)).previous_failures == 1


async def test_unreadable_store_counts_as_no_prior_state(
    country_validation_service, retry_store, configuration, scope
):
    configuration.tolerance = 1
    await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")
    retry_store.fail_reads = True

    outcome = await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")

    assert outcome.accepted is False
    assert outcome.reason == "mismatch"


async def test_unwritable_store_still_rejects(country_validation_service, retry_store, configuration, scope):
    retry_store.fail_writes = True

    outcome = await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")

    assert outcome.accepted is False
    assert retry_store.values == {}


async def test_geolocation_failure_propagates_from_validate(
    country_validation_service, geolocation_service, configuration, scope
):
    geolocation_service.get_country_name.side_effect = GeolocationException(message="lookup down")

    with pytest.raises(GeolocationException):
        await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")


async def test_full_cycle_clears_state_after_commit(
    country_validation_service, retry_store, configuration, scope
):
    outcomes = []
    for _ in range(3):
        outcome = await country_validation_service.validate_submission(configuration, "France", scope, "1.2.3.4")
        outcomes.append(outcome.accepted)
    assert outcomes == [False, False, True]

    submission = SubmissionRecordData(form_id="contact", data={"country": "France", "country_mismatch": None})
    await country_validation_service.commit_submission(configuration, submission, "France", scope, "1.2.3.4")

    assert retry_store.values == {}


async def test_commit_sets_flag_true_on_mismatch(country_validation_service, configuration, scope):
    submission = SubmissionRecordData(form_id="contact", data={"country": "France", "country_mismatch": None})

    result = await country_validation_service.commit_submission(configuration, submission, "France", scope, "1.2.3.4")

    assert result.data["country_mismatch"] is True
    assert result.notes is None


async def test_commit_sets_flag_false_on_match(country_validation_service, configuration, scope):
    submission = SubmissionRecordData(form_id="contact", data={"country": "Germany", "country_mismatch": True})

    result = await country_validation_service.commit_submission(configuration, submission, "Germany", scope, "1.2.3.4")

    assert result.data["country_mismatch"] is False


async def test_commit_with_missing_result_field_writes_note(
    country_validation_service, log_util, configuration, scope
):
    submission = SubmissionRecordData(form_id="contact", data={"country": "France"}, notes="Existing.")

    result = await country_validation_service.commit_submission(configuration, submission, "France", scope, "1.2.3.4")

    assert "country_mismatch" not in result.data
    assert result.notes == "Existing. Failed to set validation status: Failed"
    log_util.error.assert_called_once()


async def test_commit_note_reports_success_on_match(country_validation_service, configuration, scope):
    submission = SubmissionRecordData(form_id="contact", data={"country": "Germany"})

    result = await country_validation_service.commit_submission(configuration, submission, "Germany", scope, "1.2.3.4")

    assert result.notes == " Failed to set validation status: Succeeded"


async def test_commit_without_result_field_skips_lookup(
    country_validation_service, geolocation_service, retry_state_service, configuration, scope
):
    configuration.result_field = None
    await retry_state_service.save_retry_state(scope, RetryStateData(previous_country="France", previous_failures=1))
    submission = SubmissionRecordData(form_id="contact", data={"country": "France"})

    result = await country_validation_service.commit_submission(configuration, submission, "France", scope, "1.2.3.4")

    geolocation_service.get_country_name.assert_not_called()
    assert result.data == {"country": "France"}
    state = await retry_state_service.get_retry_state(scope)
    assert state.previous_country is None
    assert state.previous_failures == 0


async def test_commit_clears_state_when_lookup_fails(
    country_validation_service, geolocation_service, retry_store, retry_state_service, configuration, scope
):
    await retry_state_service.save_retry_state(scope, RetryStateData(previous_country="France", previous_failures=1))
    geolocation_service.get_country_name.side_effect = GeolocationException(message="lookup down")
    submission = SubmissionRecordData(form_id="contact", data={"country": "France", "country_mismatch": None})

    with pytest.raises(GeolocationException):
        await country_validation_service.commit_submission(configuration, submission, "France", scope, "1.2.3.4")

    assert retry_store.values == {}


@pytest.mark.parametrize("value, expected", [
    (1, 1),
    (5, 5),
    ("3", 3),
    (" 7 ", 7),
    (0, None),
    ("0", None),
    (-2, None),
    ("abc", None),
    ("1.5", None),
    (2.0, None),
    (True, None),
    (None, None),
    ("", None),
])
def test_parse_tolerance(value, expected):
    assert parse_tolerance(value) == expected


@pytest.mark.parametrize("tolerance", [0, "abc", -1, None])
def test_invalid_tolerance_is_a_configuration_error(country_validation_service, tolerance):
    errors = country_validation_service.validate_configuration({"country_field": "country", "tolerance": tolerance})

    assert errors == {"tolerance": "Failures before allow must be a positive integer"}


@pytest.mark.parametrize("tolerance", [1, 5, "5"])
def test_valid_tolerance_is_accepted(country_validation_service, tolerance):
    assert country_validation_service.validate_configuration({"country_field": "country", "tolerance": tolerance}) == {}


def test_country_field_is_required(country_validation_service):
    errors = country_validation_service.validate_configuration({"country_field": "  ", "tolerance": 1})

    assert "country_field" in errors


def test_build_configuration_applies_defaults(country_validation_service):
    configuration = country_validation_service.build_configuration(
        "contact",
        "validate_country",
        {"country_field": "country", "result_field": "", "failure_message_template": " ", "tolerance": "3"}
    )

    assert configuration.result_field is None
    assert configuration.failure_message_template == "Are you sure you are not from %value."
    assert configuration.tolerance == 3


def test_build_configuration_raises_with_field_errors(country_validation_service):
    with pytest.raises(ConfigurationException) as exc_info:
        country_validation_service.build_configuration("contact", "validate_country", {"tolerance": 0})

    assert exc_info.value.status_code == 400
    assert set(exc_info.value.field_errors) == {"country_field", "tolerance"}
