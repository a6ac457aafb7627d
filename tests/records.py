"""Record types shared by the test modules."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class User:
    id: int | None
    username: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    age: int | None = None
    active: bool = True


@dataclass(frozen=True)
class Product:
    sku: str
    name: str
    price: float
    cost: Decimal | None = None
    released: datetime.date | None = None
    updated_at: datetime.datetime | None = None


@dataclass(frozen=True)
class Release:
    sku: str
    title: str
    price: float
    released: datetime.date | None = None
    updated_at: datetime.datetime | None = None
