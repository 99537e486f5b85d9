"""
Statement Query Module

Read-only views over the transaction log: filter by account and inclusive
date range, newest first, and serialize to a comma-separated table for
download.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Union
import csv
import io

from .currency import amount_to_string, to_decimal
from .errors import InvalidInput
from .models import Transaction, TransactionStatus
from .state import StateStore


CSV_HEADER = ["ID", "Date", "From", "To", "Amount", "Description", "Status"]

DateLike = Union[date, datetime, str, None]


def _coerce_date(value: DateLike, field_name: str) -> Optional[date]:
    if value is None:
        return None
    # datetime is a subclass of date; check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text)
        except ValueError:
            raise InvalidInput(f"{field_name} must be YYYY-MM-DD, got {value!r}") from None
    raise InvalidInput(f"{field_name} must be a date, got {value!r}")


@dataclass(frozen=True)
class StatementFilter:
    """
    Statement criteria. Every field is optional; the date range is inclusive
    on both ends, and to_date covers that whole calendar day.
    """
    account_number: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    @classmethod
    def build(
        cls,
        account_number: Optional[str] = None,
        from_date: DateLike = None,
        to_date: DateLike = None
    ) -> 'StatementFilter':
        return cls(
            account_number=account_number or None,
            from_date=_coerce_date(from_date, "from_date"),
            to_date=_coerce_date(to_date, "to_date"),
        )

    def matches(self, transaction: Transaction) -> bool:
        if self.account_number and not transaction.involves(self.account_number):
            return False
        tx_date = transaction.date
        if self.from_date and tx_date < self.from_date:
            return False
        if self.to_date and tx_date > self.to_date:
            return False
        return True


@dataclass(frozen=True)
class StatementRow:
    """One row read back from an exported statement"""
    id: int
    date: date
    from_account: str
    to_account: str
    amount: Decimal
    description: str
    status: TransactionStatus


class _PlainAmount(Decimal):
    """Decimal that renders without exponent notation in CSV cells"""

    def __str__(self) -> str:
        return amount_to_string(self)


def to_csv(transactions: Iterable[Transaction]) -> str:
    """
    Serialize transactions as a statement table.

    ID and Amount are bare numbers; Date (YYYY-MM-DD), From, To, Description
    and Status are double-quoted with embedded quotes doubled.
    """
    output = io.StringIO()
    output.write(",".join(CSV_HEADER))

    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for tx in transactions:
        output.write("\n")
        writer.writerow([
            tx.id,
            tx.date.isoformat(),
            tx.from_account,
            tx.to_account,
            _PlainAmount(tx.amount),
            tx.description or "",
            tx.status.value,
        ])
    return output.getvalue().rstrip("\n")


def parse_csv(text: str) -> List[StatementRow]:
    """
    Read an exported statement table back into rows.

    Raises:
        InvalidInput: If the header or a row is malformed
    """
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header != CSV_HEADER:
        raise InvalidInput(f"Unexpected statement header: {header}")

    rows = []
    for line_no, record in enumerate(reader, start=2):
        if not record:
            continue
        if len(record) != len(CSV_HEADER):
            raise InvalidInput(f"Line {line_no}: expected {len(CSV_HEADER)} fields, got {len(record)}")
        try:
            rows.append(StatementRow(
                id=int(record[0]),
                date=date.fromisoformat(record[1]),
                from_account=record[2],
                to_account=record[3],
                amount=to_decimal(record[4]),
                description=record[5],
                status=TransactionStatus(record[6]),
            ))
        except ValueError as e:
            raise InvalidInput(f"Line {line_no}: {e}") from None
    return rows


def export_filename(account_number: Optional[str] = None) -> str:
    """Download name for a statement export"""
    return f"statements_{account_number or 'all'}.csv"


class StatementQuery:
    """
    Filters and orders the transaction log. Results are recomputed from the
    store on every call.
    """

    def __init__(self, store: StateStore):
        self.store = store

    def list(
        self,
        account_number: Optional[str] = None,
        from_date: DateLike = None,
        to_date: DateLike = None,
        criteria: Optional[StatementFilter] = None
    ) -> List[Transaction]:
        """
        Transactions matching the filter, newest first (ties: higher id first).

        Pass either the individual fields or a prepared StatementFilter.
        """
        if criteria is None:
            criteria = StatementFilter.build(account_number, from_date, to_date)

        transactions = self.store.load().transactions
        matched = [tx for tx in transactions if criteria.matches(tx)]
        matched.sort(key=lambda tx: (tx.timestamp, tx.id), reverse=True)
        return matched

    def export_csv(
        self,
        account_number: Optional[str] = None,
        from_date: DateLike = None,
        to_date: DateLike = None
    ) -> str:
        """Filtered statement as a CSV table (header only when empty)"""
        return to_csv(self.list(account_number, from_date, to_date))
