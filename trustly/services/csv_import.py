from __future__ import annotations

import csv
import io
from dataclasses import dataclass


@dataclass(frozen=True)
class Customer:
    name: str
    email: str


def is_valid_customer(name: str, email: str) -> bool:
    return bool(name) and bool(email) and "@" in email


def parse_customers_csv(content: str | bytes) -> list[Customer]:
    """
    Parse a `name,email` CSV. The first non-blank line is a header and is skipped;
    rows with an empty name or an email lacking "@" are dropped.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig", errors="replace")
    lines = [line for line in content.splitlines() if line.strip()]
    customers: list[Customer] = []
    for row in csv.reader(io.StringIO("\n".join(lines[1:]))):
        if len(row) < 2:
            continue
        name, email = row[0].strip(), row[1].strip()
        if is_valid_customer(name, email):
            customers.append(Customer(name=name, email=email))
    return customers
