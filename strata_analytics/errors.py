"""Error taxonomy shared by the analytics services"""
from typing import Optional, Union

from strata_analytics.config import YEAR_MIN, YEAR_MAX

class StrataError(Exception):
    """Base class for errors reported to the caller as {"error": message}"""
    status = 400
    default_message = "Bad request"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

class ValidationError(StrataError):
    """Malformed JSON body or an import payload that does not match the export schema"""
    default_message = "Invalid streaming history format"

class InvalidYearError(StrataError):
    default_message = "Invalid year"

class AuthenticationError(StrataError):
    status = 401
    default_message = "Unauthorized"

class LookupUnavailableError(StrataError):
    """No access token for the catalog. Converted to an empty result, never raised to the caller."""
    status = 200
    default_message = "Could not obtain Spotify access token"

def parse_year(value: Union[int, str, None], default_year: int) -> int:
    """
    Resolve a year parameter. None or an empty string means default_year.

    Raises:
        InvalidYearError: non-numeric or outside [2000, 2100]
    """
    if value is None or value == "":
        year = default_year
    elif isinstance(value, bool):
        raise InvalidYearError()
    elif isinstance(value, int):
        year = value
    else:
        try:
            year = int(str(value).strip())
        except ValueError:
            raise InvalidYearError()
    if year < YEAR_MIN or year > YEAR_MAX:
        raise InvalidYearError()
    return year
