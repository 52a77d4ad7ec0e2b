class IncorporateError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(IncorporateError):
    status_code = 404


class AlreadySigned(IncorporateError):
    status_code = 400

    def __init__(self, message: str = "Document already signed"):
        super().__init__(message)


class InvalidTransition(IncorporateError):
    status_code = 400


class ValidationProblem(IncorporateError):
    status_code = 400


class ServiceUnavailable(IncorporateError):
    status_code = 503


class NotificationError(IncorporateError):
    status_code = 500


class GenerationError(IncorporateError):
    status_code = 500
