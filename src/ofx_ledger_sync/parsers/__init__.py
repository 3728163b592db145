"""Parsers for OFX/QFX statement exports."""

from .ofx_parser import OFXParser, parse_amount
from .timestamps import normalize_timestamp

__all__ = ["OFXParser", "parse_amount", "normalize_timestamp"]
