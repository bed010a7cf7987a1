class QyouError(Exception):
    """Base for errors that end a user action. ``status_code`` is what the API answers with."""

    status_code = 500
    message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class ValidationError(QyouError):
    status_code = 400
    message = "Invalid input"


class AuthenticationFailed(QyouError):
    status_code = 401
    message = "Invalid email or password"


class ProfileNotFound(QyouError):
    status_code = 404
    message = "Profile not found"


class AlreadyClaimed(QyouError):
    status_code = 409

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Code '{code}' has already been claimed")


class AccountAlreadyBound(QyouError):
    status_code = 409
    message = "This account is already linked to a bracelet"


class ActionInProgress(QyouError):
    status_code = 409
    message = "Another request is still being processed. Please wait."


class UploadFailed(QyouError):
    """Object store rejected the photo. The profile keeps its previous photo."""

    status_code = 502

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Photo upload failed: {cause}")


class PartialRegistration(QyouError):
    """Account was created but could not be bound to a code. Not rolled back."""

    status_code = 500

    def __init__(self, account_id: str, cause: Exception | None = None):
        self.account_id = account_id
        self.cause = cause
        super().__init__(
            "Your account was created but the bracelet could not be linked. "
            "Please sign in and claim it again, or contact support."
        )


class StoreError(QyouError):
    message = "Could not save your changes. Please try again."
