"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, ensure_utc, parse_iso
from utils.money import CENT, ZERO, round2, parse_amount, money_sum
