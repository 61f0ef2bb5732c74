"""Typed errors raised by the ledger core.

Views translate these into HTTP statuses; nothing here should crash the process.
"""

from django.core.exceptions import ObjectDoesNotExist, ValidationError


class LedgerError(Exception):
	"""Base class for every error the ledger core raises on purpose."""


class InvalidInput(LedgerError, ValidationError):
	"""
	Rejected at the boundary: bad block number, address, symbol or multiplier.
	"""
	def __init__(self, message):
		ValidationError.__init__(self, message)

	def __str__(self):
		return self.message


class NotFound(LedgerError, ObjectDoesNotExist):
	pass


class IntegrityViolation(LedgerError):
	"""
	The event log and the balances it should explain disagree.
	Surfaced to callers instead of being patched over.
	"""


class ReconstructionMismatch(IntegrityViolation):
	def __init__(self, block: int, differences: dict):
		self.block = block
		# address -> (forward, backward)
		self.differences = differences
		shown = ", ".join(f"{a}: {f} != {b}" for a, (f, b) in sorted(differences.items())[:5])
		super().__init__(f"forward and backward reconstruction disagree at block {block} ({len(differences)} addresses: {shown})")


class NegativeBalance(IntegrityViolation):
	def __init__(self, block: int, deficits: dict):
		self.block = block
		self.deficits = deficits
		shown = ", ".join(f"{a}: {b}" for a, b in sorted(deficits.items())[:5])
		super().__init__(f"negative balances at block {block} indicate a missed event ({shown})")


class ChainUnavailable(LedgerError):
	"""Transient upstream failure (RPC down or rate limited); safe to retry."""


class ChainRevert(LedgerError):
	"""The token contract rejected a submitted transaction."""
