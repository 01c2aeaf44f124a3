"""Custom exceptions for django-offers."""


class OfferError(Exception):
    """Base exception for offer errors."""
    pass


class NotFoundError(OfferError):
    """Raised when an offer, job or referenced entity is missing."""
    pass


class OfferNotFound(NotFoundError):
    """Raised when an offer does not exist."""

    def __init__(self, offer_id):
        self.offer_id = offer_id
        super().__init__(f"Offer '{offer_id}' not found")


class JobNotFound(NotFoundError):
    """Raised when the job referenced by an offer does not exist."""

    def __init__(self, job_id):
        self.job_id = job_id
        super().__init__(f"Job '{job_id}' not found")


class InvalidOfferState(OfferError):
    """Raised when a transition violates the offer lifecycle."""

    def __init__(self, offer_id, status: str, action: str):
        self.offer_id = offer_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} offer '{offer_id}' in status '{status}'"
        )


class OfferLockedError(InvalidOfferState):
    """Raised when editing or deleting an offer that is no longer a draft."""

    def __init__(self, offer_id, status: str, action: str = "edit"):
        super().__init__(offer_id, status, action)


class OfferValidationError(OfferError):
    """Raised when an offer fails validation before persistence."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class OfferReadLagError(OfferError):
    """Raised when a just-written offer cannot be read back after retries."""

    def __init__(self, offer_id, attempts: int, last_error=None):
        self.offer_id = offer_id
        self.attempts = attempts
        self.last_error = last_error
        reason = str(last_error) if last_error else "Offer not found"
        super().__init__(
            f"Failed to fetch offer '{offer_id}' after {attempts} attempts: {reason}"
        )


class PartialMaterializationError(OfferError):
    """Raised when some booking categories failed to materialize."""

    def __init__(self, offer_id, failures: dict):
        self.offer_id = offer_id
        self.failures = dict(failures)
        categories = ", ".join(sorted(self.failures))
        super().__init__(
            f"Bookings for offer '{offer_id}' partially failed: {categories}"
        )


class CurrencyMismatchError(ValueError):
    """Raised when attempting operations between different currencies."""
    pass


class MoneyOverflowError(ValueError):
    """Raised when money value exceeds the persisted precision."""
    pass
