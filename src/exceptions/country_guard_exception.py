from typing import Any, Dict, Optional


class CountryGuardException(Exception):
    """
    This is the base exception for all country guard exceptions
    """
    def __init__(self, message: str, status_code: int):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message, self.status_code)

class CountryGuardDBException(CountryGuardException):
    """
    This is the exception for all country guard database exceptions
    """
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message=self.message, status_code=self.status_code)

class ConfigurationException(CountryGuardException):
    """
    This is the exception for invalid handler configuration.
    field_errors maps configuration field name to error text.
    """
    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        self.message = message
        self.status_code = 400
        self.field_errors = field_errors or {}
        super().__init__(message=self.message, status_code=self.status_code)

class ConfigurationNotFoundException(CountryGuardException):
    """
    This is the exception when a handler configuration is not found
    """
    def __init__(self, message: str):
        self.message = message
        self.status_code = 404
        super().__init__(message=self.message, status_code=self.status_code)

class ConfigurationConflictException(CountryGuardException):
    """
    This is the exception when a handler configuration already exists
    """
    def __init__(self, message: str):
        self.message = message
        self.status_code = 409
        super().__init__(message=self.message, status_code=self.status_code)

class GeolocationException(CountryGuardException):
    """
    This is the exception for geolocation lookup failures
    """
    def __init__(self, message: str):
        self.message = message
        self.status_code = 502
        super().__init__(message=self.message, status_code=self.status_code)

class SubmissionRejectedException(CountryGuardException):
    """
    This is the exception when a submission fails the country check at submit time.
    outcome holds the ValidationOutcome the rejection came from.
    """
    def __init__(self, message: str, outcome: Any):
        self.message = message
        self.status_code = 422
        self.outcome = outcome
        super().__init__(message=self.message, status_code=self.status_code)
