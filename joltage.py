import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, TextIO, Tuple

logger = logging.getLogger("joltage")

DIGITS = frozenset("0123456789")
ERROR_POLICIES = ("abort", "skip")


# -------- Errors --------
class JoltageError(Exception):
    """Base class for every battery bank error. line_number is 1-based."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class FormatError(JoltageError, ValueError):
    """A bank line is empty or holds something other than decimal digits."""


class InvalidArgument(JoltageError, ValueError):
    """Caller error: bad width, empty sequence or unknown policy."""


class NotFoundError(JoltageError, FileNotFoundError):
    """Input path does not exist."""


# -------- Data --------
@dataclass(frozen=True)
class Pick:
    value: int
    index: int


@dataclass(frozen=True)
class Selection:
    picks: Tuple[Pick, ...]

    def __len__(self) -> int:
        return len(self.picks)

    def __iter__(self):
        return iter(self.picks)

    @property
    def digits(self) -> List[int]:
        return [p.value for p in self.picks]

    @property
    def indices(self) -> List[int]:
        return [p.index for p in self.picks]

    @property
    def value(self) -> int:
        # position 0 is the most significant digit
        result = 0
        for p in self.picks:
            result = result * 10 + p.value
        return result


@dataclass
class WidthReport:
    width: int
    joltages: List[int] = field(default_factory=list)
    skipped: List[Tuple[int, str]] = field(default_factory=list)
    selections: List[Selection] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.joltages)


# -------- Loader --------
def parse_bank(line: str, line_number: Optional[int] = None) -> Tuple[int, ...]:
    """
    Turn one line of raw text into a digit sequence.
    "  8119\n" -> (8, 1, 1, 9)
    """
    s = line.strip()
    if not s:
        raise FormatError("empty bank", line_number)
    for col, ch in enumerate(s):
        # str.isdigit() would let through things like '²' or Arabic-Indic digits
        if ch not in DIGITS:
            raise FormatError(f"non-digit character {ch!r} at column {col}", line_number)
    return tuple(int(ch) for ch in s)


# -------- Selector --------
def _check_sequence(sequence: Sequence[int], k) -> int:
    n = len(sequence)
    if n == 0:
        raise InvalidArgument("sequence must not be empty")
    if isinstance(k, bool) or not isinstance(k, int):
        raise InvalidArgument(f"k must be an integer, got {type(k).__name__}")
    if not 1 <= k <= n:
        raise InvalidArgument(f"k must be in [1, {n}], got {k}")
    for i, d in enumerate(sequence):
        if isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 9:
            raise InvalidArgument(f"sequence[{i}] is not a digit: {d!r}")
    return n


def select_max(sequence: Sequence[int], k: int) -> Selection:
    """
    Choose exactly k digits, keeping their order, so that the concatenation is
    numerically maximal.

    Greedy left to right. The pick for `position` may only come from
    [start_idx, n - k + position + 1): the last k - position - 1 digits are
    reserved for the picks that follow. Within the window the largest digit
    wins, leftmost on ties, which leaves the widest suffix for later picks.
    """
    n = _check_sequence(sequence, k)

    picks: List[Pick] = []
    start_idx = 0
    for position in range(k):
        search_end = n - k + position + 1
        # max() returns the first maximal element -> leftmost tie-break
        idx = max(range(start_idx, search_end), key=sequence.__getitem__)
        picks.append(Pick(value=sequence[idx], index=idx))
        start_idx = idx + 1

    return Selection(picks=tuple(picks))


def max_joltage(sequence: Sequence[int], k: int) -> int:
    return select_max(sequence, k).value


# -------- Aggregation --------
def solve_banks(lines: Iterable[str], k: int, on_error: str = "abort") -> WidthReport:
    """
    Parse and solve every bank for one joltage width.

    on_error="abort" re-raises the first bad bank, on_error="skip" records it in
    `skipped` as (line_number, message) and keeps going. Line numbers are 1-based.
    """
    if on_error not in ERROR_POLICIES:
        raise InvalidArgument(f"on_error must be one of {ERROR_POLICIES}, got {on_error!r}")

    report = WidthReport(width=k)
    for line_number, line in enumerate(lines, start=1):
        try:
            bank = parse_bank(line, line_number)
            selection = select_max(bank, k)
        except (FormatError, InvalidArgument) as e:
            if on_error == "abort":
                if e.line_number is None:
                    raise type(e)(str(e), line_number) from e
                raise
            logger.warning("skipping bank %d (width %d): %s", line_number, k, e)
            report.skipped.append((line_number, str(e)))
            continue
        report.selections.append(selection)
        report.joltages.append(selection.value)

    logger.debug("width %d: %d banks, %d skipped, total %d",
                 k, len(report.joltages), len(report.skipped), report.total)
    return report


# -------- File I/O --------
def load_lines(path: str) -> List[str]:
    if not os.path.isfile(path):
        raise NotFoundError(f"input file {path} not found")
    # newline="" and split("\n"): splitlines() would also break on \f, \v, \x1c-\x1e
    with open(path, "r", encoding="ascii", errors="replace", newline="") as f:
        lines = [line.rstrip("\r") for line in f.read().split("\n")]
    # a file ending in blank lines is still one bank per non-blank line
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def read_bank_lines(path: str) -> List[str]:
    """load_lines, but an input without a single bank is a FormatError."""
    lines = load_lines(path)
    if not lines:
        raise FormatError(f"input file {path} contains no banks")
    return lines


def load_banks(path: str) -> List[Tuple[int, ...]]:
    lines = read_bank_lines(path)
    return [parse_bank(line, i) for i, line in enumerate(lines, start=1)]


def report(value: int, out: Optional[TextIO] = None) -> None:
    print(value, file=out if out is not None else sys.stdout)
