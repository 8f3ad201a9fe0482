"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these exceptions; ``main.py`` registers handlers that
turn each class into its HTTP status and JSON body.
"""

from typing import Any, Dict, List, Optional


class BookSwapError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str = "Server error"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationFailedError(BookSwapError):
    """Malformed or missing input fields."""

    status_code = 400

    def __init__(self, errors: List[Dict[str, Any]]):
        super().__init__("Validation failed")
        self.errors = errors

    def to_dict(self) -> Dict[str, Any]:
        return {"errors": self.errors}

    @classmethod
    def from_pydantic(cls, exc, location: str = "body") -> "ValidationFailedError":
        errors = []
        for error in exc.errors():
            loc = [part for part in error.get("loc", ()) if part not in ("body", "query", "path")]
            errors.append({
                "msg": error.get("msg", "Invalid value"),
                "param": ".".join(str(part) for part in loc),
                "location": location,
            })
        return cls(errors)

    @classmethod
    def single(cls, param: str, msg: str, location: str = "body") -> "ValidationFailedError":
        return cls([{"msg": msg, "param": param, "location": location}])


class NotFoundError(BookSwapError):
    status_code = 404


class UnauthorizedError(BookSwapError):
    status_code = 401

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class InvalidStateError(BookSwapError):
    """A precondition on the current state of an entity failed.

    ``code`` names the failed precondition (``duplicateRequest``,
    ``alreadyProcessed`` and so on) so clients can branch on it without
    parsing the message.
    """

    status_code = 400

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or code)
        self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code}
