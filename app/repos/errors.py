from __future__ import annotations


class DuplicateKeyError(Exception):
    """A write collided with a uniqueness constraint.

    Raised by every repo implementation so services can treat the
    in-memory and PostgreSQL stores the same way on race paths.
    """

    def __init__(self, constraint: str) -> None:
        super().__init__(f"duplicate key violates {constraint}")
        self.constraint = constraint
