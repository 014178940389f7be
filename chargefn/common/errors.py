"""Error taxonomy shared by the gateway client and the charge workflow."""

GENERIC_USER_MESSAGE = "An error occurred, developers have been alerted"


class ClassifiedError(Exception):
    """Failure that may carry a provider-style classification.

    `error_type` is set only when the failure belongs to a known category
    whose `message` is safe to show to end users verbatim.
    """

    def __init__(self, message: str, error_type: str | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.code = code


def user_facing_message(exc: BaseException) -> str:
    """Return the message stored on a failed charge record."""

    if isinstance(exc, ClassifiedError) and exc.error_type:
        return exc.message
    return GENERIC_USER_MESSAGE
