"""Quote and work order number formats."""

import re
from collections.abc import Iterable

QUOTE_NUMBER_RE = re.compile(r"^(?P<prefix>[A-Z]+)-(?P<year>\d{4})-(?P<seq>\d{3,})$")


def format_quote_number(year: int, sequence: int, prefix: str = "QTE") -> str:
    """QTE-<4-digit year>-<sequence zero-padded to at least 3 digits>."""
    if sequence < 1:
        raise ValueError("sequence must be >= 1")
    return f"{prefix}-{year:04d}-{sequence:03d}"


def parse_quote_number(quote_number: str) -> tuple[int, int] | None:
    """Return (year, sequence) or None when the value is not a quote number."""
    match = QUOTE_NUMBER_RE.match(quote_number or "")
    if not match:
        return None
    return int(match.group("year")), int(match.group("seq"))


def format_job_number(sequence: int, prefix: str = "RBWO") -> str:
    return f"{prefix}{sequence:06d}"


def job_sequence(job_no: str | None, prefix: str = "RBWO") -> int | None:
    """Numeric tail of ``<prefix><digits>``; None for anything else."""
    if not job_no or not job_no.startswith(prefix):
        return None
    tail = job_no[len(prefix):]
    if not (tail.isascii() and tail.isdigit()):
        return None
    return int(tail)


def next_job_number(job_nos: Iterable[str | None], prefix: str = "RBWO") -> str:
    """One past the highest numeric job number; hand-typed ids are skipped."""
    sequences = [seq for seq in (job_sequence(job_no, prefix) for job_no in job_nos) if seq is not None]
    return format_job_number(max(sequences, default=0) + 1, prefix)
