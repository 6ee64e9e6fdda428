class ChessboardError(Exception):
    """Base class for errors reported by the rules engine."""

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__

    def __str__(self):
        return f"[{self.error_code}] {self.message}"


class InvalidPromotion(ChessboardError):
    """Raised when a promotion choice is made with no pawn waiting, or with a kind a pawn can't become."""

    def __init__(self, reason: str, choice=None):
        message = reason if choice is None else f"{reason}: {choice!r}"
        super().__init__(message, "InvalidPromotion")
        self.reason = reason
        self.choice = choice
