"""Exception types raised by the vote log."""


class VoteLogError(Exception):
    """Base class for all vote log errors."""


class InvalidEvent(VoteLogError, ValueError):
    """A vote that cannot be encoded (action, target or user id out of range)."""


class StoreUnavailable(VoteLogError):
    """The backing list store is unreachable or returned an error."""


class IncompatibleEncoding(VoteLogError):
    """The store was written with a different entry encoding."""

    def __init__(self, expected: str, found: str):
        self.expected = expected
        self.found = found
        super().__init__(
            f"Store uses encoding '{found}', this build writes '{expected}'"
        )


class MalformedImportRow(VoteLogError):
    """A bulk import row that failed parsing or validation."""

    def __init__(self, line_no: int, row: list[str], reason: str):
        self.line_no = line_no
        self.row = row
        self.reason = reason
        super().__init__(f"line {line_no}: {reason} (row={row!r})")
