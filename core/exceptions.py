from fastapi import HTTPException, status


class TournamentException(HTTPException):
    """Base error for every recoverable workflow failure.

    ``kind`` is the machine-readable reason the client switches on
    (e.g. to open the age-verification modal); ``detail`` is the human message.
    """
    kind = "tournament_error"

    def __init__(self, detail: str, status_code: int = status.HTTP_400_BAD_REQUEST, kind: str = None):
        super().__init__(status_code=status_code, detail=detail)
        if kind:
            self.kind = kind


class ValidationError(TournamentException):
    kind = "validation_error"

    def __init__(self, detail: str):
        super().__init__(detail)


class Unauthorized(TournamentException):
    kind = "unauthorized"

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(detail, status.HTTP_401_UNAUTHORIZED)
        self.headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(TournamentException):
    kind = "forbidden"

    def __init__(self, detail: str = "Access denied"):
        super().__init__(detail, status.HTTP_403_FORBIDDEN)


class NotFound(TournamentException):
    kind = "not_found"

    def __init__(self, detail: str = "Not found"):
        super().__init__(detail, status.HTTP_404_NOT_FOUND)


class TournamentNotFound(NotFound):
    def __init__(self):
        super().__init__("Tournament not found")


class PaymentNotFound(NotFound):
    def __init__(self):
        super().__init__("Payment not found")


class UserNotFound(NotFound):
    def __init__(self):
        super().__init__("User not found")


class OrderNotFound(NotFound):
    def __init__(self, detail: str = "Website order not found"):
        super().__init__(detail)


class AgeVerificationRequired(TournamentException):
    kind = "age_verification_required"

    def __init__(self, minimum_age: int = 15):
        super().__init__(f"Age verification required: you must be {minimum_age}+ to participate", status.HTTP_403_FORBIDDEN)


class TournamentNotJoinable(TournamentException):
    kind = "tournament_not_joinable"

    def __init__(self, detail: str = "Tournament is not open for registration"):
        super().__init__(detail, status.HTTP_409_CONFLICT)


class NoPendingJoin(TournamentException):
    kind = "no_pending_join"

    def __init__(self):
        super().__init__("No join awaiting payment for this tournament", status.HTTP_409_CONFLICT)


class AlreadyResolved(TournamentException):
    kind = "already_resolved"

    def __init__(self, current_status: str = None):
        detail = "Payment has already been resolved"
        if current_status:
            detail = f"{detail} ({current_status})"
        super().__init__(detail, status.HTTP_409_CONFLICT)


class InvalidTransition(TournamentException):
    kind = "invalid_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move tournament from '{current}' to '{requested}'", status.HTTP_409_CONFLICT)
        self.current = current
        self.requested = requested


class TournamentHasApprovedParticipants(TournamentException):
    kind = "has_approved_participants"

    def __init__(self, count: int):
        super().__init__(f"Cannot delete tournament with {count} approved participant(s)", status.HTTP_409_CONFLICT)


class DownloadExpired(TournamentException):
    kind = "download_expired"

    def __init__(self):
        super().__init__("Download link has expired", status.HTTP_410_GONE)


class StorageUnavailable(TournamentException):
    kind = "storage_unavailable"

    def __init__(self, detail: str = "Storage is temporarily unavailable, please retry"):
        super().__init__(detail, status.HTTP_503_SERVICE_UNAVAILABLE)


class TournamentClosed(TournamentException):
    kind = "tournament_closed"

    def __init__(self, detail: str = "Tournament is already finished or cancelled"):
        super().__init__(detail, status.HTTP_409_CONFLICT)
