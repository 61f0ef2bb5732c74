"""Arbitrary-precision integer column stored as a decimal string.

Token amounts outgrow BigIntegerField after a few splits, and DecimalField goes
through REAL on SQLite, so amounts are kept as text and surfaced as Python ints.
"""

from django.core.exceptions import ValidationError
from django.db import models


class IntegerStringField(models.CharField):
	description = "Arbitrary-precision integer stored as a decimal string"

	def __init__(self, *args, **kwargs):
		kwargs.setdefault("max_length", 100)
		super().__init__(*args, **kwargs)

	def from_db_value(self, value, expression, connection):
		if value is None:
			return value
		return int(value)

	def to_python(self, value):
		if value is None or isinstance(value, int):
			return value
		try:
			return int(str(value))
		except ValueError:
			raise ValidationError(f"'{value}' is not an integer")

	def get_prep_value(self, value):
		value = self.to_python(value)
		if value is None:
			return value
		return str(value)
