"""Token-level constants and input normalisation shared across the ledger.


- ZERO_ADDRESS marks mints (as sender) and burns (as recipient).
- MULTIPLIER_BASE is the fixed-point unit of the contract's split multiplier.
- normalize_address / parse_block / parse_amount reject bad input before it reaches the core.
"""

import re

from .errors import InvalidInput

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MULTIPLIER_BASE = 10 ** 18

# ERC-20 style symbols; the contract accepts 1..11 characters
MAX_SYMBOL_LENGTH = 11

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
# ASCII digits only
_DIGITS_RE = re.compile(r"[0-9]+")


def normalize_address(address) -> str:
	"""
	Validate a 20-byte hex address and return it lower-cased
	"""
	if not isinstance(address, str) or not _ADDRESS_RE.match(address.strip()):
		raise InvalidInput(f"invalid address: {address!r}")
	return address.strip().lower()


def parse_block(value, *, field: str = "block") -> int:
	"""
	Accept ints or decimal strings; reject negatives, bools, floats like "1.5".
	"""
	if isinstance(value, bool):
		raise InvalidInput(f"{field} must be a non-negative integer")
	if isinstance(value, int):
		block = value
	elif isinstance(value, str) and _DIGITS_RE.fullmatch(value.strip()):
		block = int(value.strip())
	else:
		raise InvalidInput(f"{field} must be a non-negative integer")
	if block < 0:
		raise InvalidInput(f"{field} must be a non-negative integer")
	return block


def parse_amount(value, *, field: str = "amount") -> int:
	"""
	Token amounts in integer base units (no floats, no decimals)
	"""
	if isinstance(value, bool):
		raise InvalidInput(f"{field} must be a positive integer")
	if isinstance(value, str) and _DIGITS_RE.fullmatch(value.strip()):
		value = int(value.strip())
	if not isinstance(value, int) or value <= 0:
		raise InvalidInput(f"{field} must be a positive integer")
	return value


def parse_split_multiplier(value) -> int:
	if isinstance(value, bool) or not isinstance(value, int):
		raise InvalidInput("multiplier must be an integer greater than 1")
	if value <= 1:
		raise InvalidInput("multiplier must be an integer greater than 1")
	return value


def validate_rename(new_name, new_symbol):
	"""
	Return stripped (name, symbol); symbol must be 1..MAX_SYMBOL_LENGTH characters
	"""
	if not isinstance(new_name, str) or not new_name.strip():
		raise InvalidInput("new name cannot be empty")
	if not isinstance(new_symbol, str) or not new_symbol.strip() or len(new_symbol.strip()) > MAX_SYMBOL_LENGTH:
		raise InvalidInput(f"new symbol must be between 1 and {MAX_SYMBOL_LENGTH} characters")
	return new_name.strip(), new_symbol.strip()
