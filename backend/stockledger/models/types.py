from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator


class ScaledDecimal(TypeDecorator):
    """
    Decimal stored as an exact integer count of 10**-scale units.

    scale=3 stores quantities as milli-units (1.25 kg -> 1250), the same way
    prices are kept as integer cents. Arithmetic and comparisons inside SQL
    (stock_quantity - :q, stock_quantity >= :q) therefore run on integers on
    every backend, SQLite included.

    Values with more fractional digits than the scale are rejected here;
    validation turns them into a ValidationError before they reach storage.
    """
    impl = BigInteger
    cache_ok = True

    def __init__(self, scale: int):
        super().__init__()
        self.scale = scale

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        scaled = Decimal(value).scaleb(self.scale)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"{value} has more than {self.scale} decimal places")
        return int(scaled)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-self.scale)

    def coerce_compared_value(self, op, value):
        # Plain Decimals on the other side of +, -, >= are scaled the same way
        return self
