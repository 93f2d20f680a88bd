"""
Value conversion for vizdata.

``DataConverter`` coerces external values (mostly strings read from
text sources) into the cell types of a ``DataTable``: ``str``,
``float``, ``bool``, ``pandas.Timestamp`` and ``DataTable``.

Conversion never raises on malformed input. Each target type has a
defined fallback instead:

- numbers fall back to ``0`` (``NaN`` is never returned for text input),
- dates fall back to ``pandas.NaT`` (``parse_date`` returns ``nan``),
- tables fall back to an empty ``DataTable``.

Date parsing uses a fixed registry of format names::

    YYYY/mm/dd   dd/mm/YYYY   mm/dd/YYYY   dd/mm/YY   mm/dd/YY

``dd/mm/*`` and ``mm/dd/*`` share the same pattern; they are told apart
only by configuration or by ``deduce_date_format()``. When no format is
configured, the first registry entry matching a value is remembered for
all later unformatted ``parse_date`` calls on the same converter.
"""

from __future__ import annotations

import copy
import json
import logging
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd

from vizdata.config import ConverterOptions, coerce_options
from vizdata.exceptions import SerializationError, TableStructureError
from vizdata.table import DataTable, DataTableRow

logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "YYYY/mm/dd"

# Numeric literals above one year of milliseconds are treated as epoch timestamps
_YEAR_IN_MS = 365 * 24 * 3600 * 1000

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Leading numeric prefix, as accepted by a lenient float parse ("12px" -> 12)
_FLOAT_PREFIX_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX_RE = re.compile(r"[+-]?\d+")
_STRICT_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_DIGITS_AND_SPACES_RE = re.compile(r"[0-9\s]+")

# Fallback parse: timezone designators to canonicalize before parsing
_HAS_TIMEZONE_RE = re.compile(r":.+(GMT|UTC|[Z+-])")
_COMPACT_OFFSET_RE = re.compile(r"\s*(?:GMT|UTC)?([+-])(\d\d)(\d\d)$")
_SPACED_OFFSET_RE = re.compile(r"(?:\s+|GMT|UTC)([+-])")
_UTC_SUFFIX_RE = re.compile(r"(\d)\s*(?:GMT|UTC|Z)$")

# Words that date parsers resolve relative to the clock, not to the text
_RELATIVE_DATE_WORDS = {"now", "today", "tomorrow", "yesterday"}


class GuessedType(str, Enum):
    """Result of ``DataConverter.guess_type``."""

    NUMBER = "number"
    DATE = "Date"
    STRING = "string"


@dataclass(frozen=True)
class DateFormat:
    """One entry of the date-format registry.

    Attributes:
        name: Format name, e.g. ``"dd/mm/YYYY"``.
        pattern: Regex whose groups capture the three date components.
        parser: Maps a successful match to a UTC timestamp in milliseconds.
        alternative: Another format name sharing the same pattern.
    """

    name: str
    pattern: re.Pattern[str]
    parser: Callable[[re.Match[str]], float]
    alternative: str | None = None


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _utc_timestamp(year: int, month_index: int, day: int) -> float:
    """Milliseconds since epoch for a zero-based month, rolling over excess.

    Month 12 becomes January of the next year and day 0 becomes the last
    day of the previous month, so out-of-range components still yield a
    timestamp. Years outside ``1..9999`` yield ``nan``.
    """
    year += month_index // 12
    month_index %= 12
    try:
        first = datetime(year, month_index + 1, 1, tzinfo=timezone.utc)
        moment = first + timedelta(days=day - 1)
    except (ValueError, OverflowError):
        return math.nan
    return (moment - _EPOCH) / timedelta(milliseconds=1)


def _two_digit_year_rolling(year: int) -> int:
    """Map ``YY`` to 19YY when it is ahead of the current year, else 20YY."""
    if year > datetime.now(timezone.utc).year - 2000:
        return year + 1900
    return year + 2000


def _build_date_formats() -> dict[str, DateFormat]:
    four_digit_year = re.compile(r"([0-9]{4})[\-/.]([0-9]{1,2})[\-/.]([0-9]{1,2})")
    year_last = re.compile(r"([0-9]{1,2})[\-/.]([0-9]{1,2})[\-/.]([0-9]{4})")
    short_year_last = re.compile(r"([0-9]{1,2})[\-/.]([0-9]{1,2})[\-/.]([0-9]{2})")

    formats = [
        DateFormat(
            name="YYYY/mm/dd",
            pattern=four_digit_year,
            parser=lambda m: _utc_timestamp(int(m[1]), int(m[2]) - 1, int(m[3])),
        ),
        DateFormat(
            name="dd/mm/YYYY",
            pattern=year_last,
            parser=lambda m: _utc_timestamp(int(m[3]), int(m[2]) - 1, int(m[1])),
            alternative="mm/dd/YYYY",
        ),
        DateFormat(
            name="mm/dd/YYYY",
            pattern=year_last,
            parser=lambda m: _utc_timestamp(int(m[3]), int(m[1]) - 1, int(m[2])),
        ),
        DateFormat(
            name="dd/mm/YY",
            pattern=short_year_last,
            parser=lambda m: _utc_timestamp(
                _two_digit_year_rolling(int(m[3])), int(m[2]) - 1, int(m[1])
            ),
            alternative="mm/dd/YY",
        ),
        DateFormat(
            name="mm/dd/YY",
            pattern=short_year_last,
            parser=lambda m: _utc_timestamp(int(m[3]) + 2000, int(m[1]) - 1, int(m[2])),
        ),
    ]
    return {fmt.name: fmt for fmt in formats}


def _parse_float_prefix(text: str) -> float:
    """Parse the leading number of *text*, ``nan`` when there is none."""
    text = text.lstrip()
    if text.startswith(("Infinity", "+Infinity")):
        return math.inf
    if text.startswith("-Infinity"):
        return -math.inf
    match = _FLOAT_PREFIX_RE.match(text)
    return float(match.group()) if match else math.nan


def _parse_int_prefix(text: str) -> int | None:
    match = _INT_PREFIX_RE.match(text.strip())
    return int(match.group()) if match else None


def _is_number(value: Any) -> bool:
    """True for real, finite numbers (booleans excluded)."""
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (int, float, np.integer, np.floating)) and math.isfinite(value)


# ---------------------------------------------------------------------------
# DataConverter
# ---------------------------------------------------------------------------

class DataConverter:
    """Converts between string, number, boolean, date and table values.

    Args:
        options: ``ConverterOptions``, a mapping of its fields, or ``None``.
        parse_date: Optional function mapping a string to a timestamp in
            milliseconds. When given, it replaces the built-in date
            format registry entirely.
    """

    def __init__(
        self,
        options: ConverterOptions | Mapping[str, Any] | None = None,
        parse_date: Callable[[str], float] | None = None,
    ) -> None:
        self.options = coerce_options(options, ConverterOptions)
        self.date_formats: Mapping[str, DateFormat] = _build_date_formats()
        self.parse_date_fn = parse_date
        self._date_format: str = self.options.date_format
        self._unknown_formats_reported: set[str] = set()

        decimal_point = self.options.decimal_point
        self._decimal_re = (
            re.compile(r"^(-?[0-9]+)" + re.escape(decimal_point) + r"([0-9]+)$")
            if decimal_point else None
        )
        self._inside_numeric_re = re.compile(
            r"-?[0-9\s]+(?:" + re.escape(decimal_point or ".") + r"[0-9]+)?"
        )

    def get_date_format(self) -> str:
        """The active date format name; empty while still auto-detecting."""
        return self._date_format

    # -- Scalar conversions -------------------------------------------------

    def as_boolean(self, value: Any) -> bool:
        """Convert to ``bool``.

        Strings are ``True`` unless exactly ``""``, ``"0"`` or ``"false"``;
        other values are ``True`` when ``as_number`` is non-zero.
        """
        if isinstance(value, (bool, np.bool_)):
            return bool(value)
        if isinstance(value, str):
            return value not in ("", "0", "false")
        return self.as_number(value) != 0

    def as_number(self, value: Any) -> float | int:
        """Convert to a number, falling back to ``0``.

        A table yields its row count and a date its day of the month.
        """
        if isinstance(value, (bool, np.bool_)):
            return 1 if value else 0
        if isinstance(value, (int, float, np.integer, np.floating)):
            return value.item() if isinstance(value, np.generic) else value
        if isinstance(value, str):
            cast = _parse_float_prefix(self.trim(value, inside_numeric=True))
            return 0 if math.isnan(cast) else cast
        if isinstance(value, DataTable):
            return value.get_row_count()
        if value is pd.NaT:
            return 0
        if isinstance(value, datetime):
            # Day of month, not a timestamp; use as_date() for timestamps.
            return value.day
        return 0

    def as_string(self, value: Any) -> str:
        """Convert to ``str``; an absent value (``None``) becomes ``""``."""
        if value is None:
            return ""
        return str(value)

    def as_date(self, value: Any) -> pd.Timestamp:
        """Convert to a UTC ``pandas.Timestamp``; ``pandas.NaT`` when invalid.

        Strings go through ``parse_date``, numbers are taken as
        millisecond timestamps, and datetimes are returned unchanged.
        """
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            timestamp = self.parse_date(value)
        elif _is_number(value) or isinstance(value, float):
            timestamp = float(value)
        else:
            timestamp = self.parse_date(self.as_string(value))
        if math.isnan(timestamp):
            return pd.NaT
        try:
            return pd.Timestamp(timestamp, unit="ms", tz="UTC")
        except (ValueError, OverflowError):
            logger.debug("Timestamp %r out of range", timestamp)
            return pd.NaT

    def as_data_table(self, value: Any) -> DataTable:
        """Convert to a ``DataTable``.

        Values ``as_boolean`` finds false give an empty table, including
        mappings and lists (their ``as_number`` is ``0``). Strings are read
        as Table class-JSON (empty table when unreadable); any other value
        is wrapped as a deep copy in a single cell named ``value``.
        """
        if isinstance(value, DataTable):
            return value
        if not self.as_boolean(value):
            return DataTable()
        if isinstance(value, str):
            try:
                return DataTable.from_json(json.loads(value))
            except (ValueError, SerializationError, TableStructureError) as exc:
                logger.debug("Could not read table JSON (%s); using empty table", exc)
                return DataTable()
        return DataTable([DataTableRow({"value": copy.deepcopy(value)})])

    # -- Type guessing ------------------------------------------------------

    def trim(self, text: str, inside_numeric: bool = False) -> str:
        """Strip surrounding whitespace and normalize the decimal separator.

        With *inside_numeric*, whitespace between digits (a thousands
        separator) is removed too when the text is otherwise numeric.
        """
        if not isinstance(text, str):
            return text
        text = text.strip()
        if inside_numeric and (
            _DIGITS_AND_SPACES_RE.fullmatch(text)
            or self._inside_numeric_re.fullmatch(text)
        ):
            text = re.sub(r"\s", "", text)
        if self._decimal_re is not None:
            text = self._decimal_re.sub(r"\1.\2", text)
        return text

    def guess_type(self, value: Any) -> GuessedType:
        """Guess whether a raw value is a number, a date or a string.

        Numeric text is a number unless it exceeds one year in
        milliseconds, in which case it is taken as an epoch timestamp.
        Other text is a date when ``parse_date`` succeeds, the epoch itself
        included.
        """
        if not isinstance(value, str):
            value = self.as_string(value)
        trimmed = self.trim(value)
        trimmed_inside = self.trim(value, inside_numeric=True)

        if _STRICT_NUMBER_RE.fullmatch(trimmed_inside):
            if float(trimmed_inside) > _YEAR_IN_MS:
                return GuessedType.DATE
            return GuessedType.NUMBER

        if trimmed and _is_number(self.parse_date(value)):
            return GuessedType.DATE
        return GuessedType.STRING

    def as_guessed_type(self, value: Any) -> float | int | pd.Timestamp | str:
        """Convert *value* to the type picked by ``guess_type``."""
        guessed = self.guess_type(value)
        if guessed is GuessedType.NUMBER:
            return self.as_number(value)
        if guessed is GuessedType.DATE:
            numeric = self.trim(self.as_string(value), inside_numeric=True)
            if _STRICT_NUMBER_RE.fullmatch(numeric):
                return self.as_date(float(numeric))
            return self.as_date(value)
        return self.as_string(value)

    # -- Dates --------------------------------------------------------------

    def parse_date(self, value: str, date_format: str | None = None) -> float:
        """Parse a date string into a UTC timestamp in milliseconds.

        Args:
            value: The text to parse.
            date_format: Format name overriding the active one.

        Returns:
            Milliseconds since epoch, or ``nan`` when nothing parses.
        """
        if self.parse_date_fn is not None:
            return self.parse_date_fn(value)
        if not isinstance(value, str):
            value = self.as_string(value)

        date_format = date_format or self._date_format
        result = math.nan
        match: re.Match[str] | None = None

        if not date_format:
            for fmt in self.date_formats.values():
                match = fmt.pattern.fullmatch(value)
                if match:
                    self._date_format = fmt.name
                    logger.debug("Detected date format '%s' from %r", fmt.name, value)
                    result = fmt.parser(match)
                    break
        else:
            fmt = self.date_formats.get(date_format)
            if fmt is None:
                if date_format not in self._unknown_formats_reported:
                    self._unknown_formats_reported.add(date_format)
                    logger.warning(
                        "Unknown date format '%s'; using '%s'",
                        date_format, DEFAULT_DATE_FORMAT,
                    )
                fmt = self.date_formats[DEFAULT_DATE_FORMAT]
            match = fmt.pattern.fullmatch(value)
            if match:
                result = fmt.parser(match)

        if not match:
            result = self._parse_date_fallback(value)
        return result

    def _parse_date_fallback(self, value: str) -> float:
        """Generic timestamp parse with explicit timezone normalization.

        ``GMT``/``UTC``/``Z`` and compact offsets are rewritten to a
        ``+HH:MM`` suffix. Values carrying an offset are converted to
        UTC; values without one are read as UTC wall-clock time, so the
        result does not depend on the local timezone.
        """
        text = value.strip()
        if not text or text.lower() in _RELATIVE_DATE_WORDS:
            return math.nan
        if _HAS_TIMEZONE_RE.search(text):
            text = _COMPACT_OFFSET_RE.sub(r"\1\2:\3", text)
            text = _SPACED_OFFSET_RE.sub(r"\1", text, count=1)
            text = _UTC_SUFFIX_RE.sub(r"\1+00:00", text)
        try:
            parsed = pd.Timestamp(text)
        except (ValueError, TypeError, OverflowError) as exc:
            logger.debug("Fallback date parse failed for %r: %s", value, exc)
            return math.nan
        if parsed is pd.NaT:
            return math.nan
        if parsed.tzinfo is None:
            parsed = parsed.tz_localize("UTC")
        else:
            parsed = parsed.tz_convert("UTC")
        return parsed.value / 1_000_000

    def deduce_date_format(
        self,
        samples: Sequence[str | None],
        limit: int | None = None,
        persist: bool = False,
    ) -> str:
        """Guess the date format of *samples*.

        Each sample is split on ``/``, ``-`` and ``.`` into up to three
        components. A component above 31 is a year (``YY`` below 100,
        ``YYYY`` otherwise), one in ``13..31`` is a day, anything else
        tentatively a month. Across samples the maximum and the
        stability of each position are tracked, then repaired:

        - a stable position above 12 that is not a year becomes ``YY``,
        - a varying position guessed ``mm`` with a maximum above 12 becomes ``dd``,
        - when the 2nd and 3rd positions are both ``dd``, the 3rd becomes ``YY``.

        Samples with more than three components (times of day, for
        example) are rejected. Without any disambiguating evidence the
        default ``"YYYY/mm/dd"`` is returned.

        Args:
            samples: Date strings to inspect; empty entries are skipped.
            limit: Inspect at most this many samples (default: all).
            persist: Make the result the active format of this converter.
        """
        if not limit or limit > len(samples):
            limit = len(samples)

        stable: list[int | bool | None] = [None, None, None]
        maximum: list[int] = [0, 0, 0]
        guessed: list[str] = ["", "", ""]
        made_deduction = False
        rejected = 0

        for sample in samples[:limit]:
            if not sample or not isinstance(sample, str):
                continue
            parts = re.split(r"[/\-. ]", sample.strip())
            if len(parts) > 3:
                rejected += 1
                continue
            guessed = ["", "", ""]
            for j, part in enumerate(parts):
                elem = _parse_int_prefix(part)
                if not elem:
                    continue
                maximum[j] = max(maximum[j], elem)
                if stable[j] is None:
                    stable[j] = elem
                elif stable[j] is not False and stable[j] != elem:
                    stable[j] = False

                if elem > 31:
                    guessed[j] = "YY" if elem < 100 else "YYYY"
                elif elem > 12:
                    guessed[j] = "dd"
                    made_deduction = True
                elif not guessed[j]:
                    guessed[j] = "mm"

        if rejected:
            logger.warning(
                "Rejected %d date sample(s) with more than three components", rejected
            )

        date_format = DEFAULT_DATE_FORMAT
        if made_deduction:
            for j in range(3):
                if stable[j] is not False and stable[j] is not None:
                    if maximum[j] > 12 and guessed[j] not in ("YY", "YYYY"):
                        guessed[j] = "YY"
                elif maximum[j] > 12 and guessed[j] == "mm":
                    guessed[j] = "dd"
            if guessed[1] == "dd" and guessed[2] == "dd":
                guessed[2] = "YY"
            date_format = "/".join(guessed)

        logger.debug("Deduced date format '%s' from %d sample(s)", date_format, limit)
        if persist:
            self._date_format = date_format
        return date_format
