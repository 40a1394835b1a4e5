from typing import List, Optional

class FlowException(Exception):
    """
    This is the base exception for all flow exceptions
    """
    def __init__(self, message: str, status_code: int):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message, self.status_code)

class FlowDBException(FlowException):
    """
    This is the exception for all flow database exceptions.
    Connection failures use 503, anything else 500.
    """
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message=self.message, status_code=self.status_code)

class FlowServiceException(FlowException):
    """
    This is the exception for all flow service exceptions
    """
    def __init__(self, message: str):
        self.message = message
        self.status_code = 500
        super().__init__(message=self.message, status_code=self.status_code)

class FlowNotFoundException(FlowException):
    """
    This is the exception when the company (and so its flow) is not found
    """
    def __init__(self, message: str):
        self.message = message
        self.status_code = 404
        super().__init__(message=self.message, status_code=self.status_code)

class FlowValidationException(FlowException):
    """
    This is the exception for structural flow validation errors.
    Every failed rule is kept in validation_errors so the UI can show them all.
    """
    def __init__(self, message: str, validation_errors: Optional[List[str]] = None):
        self.message = message
        self.status_code = 400
        self.validation_errors = validation_errors or []
        super().__init__(message=self.message, status_code=self.status_code)

class FlowBadRequestException(FlowException):
    """
    This is the exception for malformed input (missing companyId, invalid JSON, bad payload)
    """
    def __init__(self, message: str):
        self.message = message
        self.status_code = 400
        super().__init__(message=self.message, status_code=self.status_code)

class FlowConflictException(FlowException):
    """
    This is the exception when a save was based on a stale version of the flow
    """
    def __init__(self, message: str, expected_version: int, stored_version: int):
        self.message = message
        self.status_code = 409
        self.expected_version = expected_version
        self.stored_version = stored_version
        super().__init__(message=self.message, status_code=self.status_code)
