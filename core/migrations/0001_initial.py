# Written by hand; keep in sync with core/models.py.

from django.db import migrations, models

import core.fields


class Migration(migrations.Migration):
	initial = True

	dependencies = []

	operations = [
		migrations.CreateModel(
			name="TransferEvent",
			fields=[
				("id", models.BigAutoField(primary_key=True, serialize=False)),
				("tx_hash", models.CharField(max_length=80, unique=True)),
				("from_address", models.CharField(db_index=True, max_length=42)),
				("to_address", models.CharField(db_index=True, max_length=42)),
				("amount", core.fields.IntegerStringField(max_length=100)),
				("block_number", models.BigIntegerField(db_index=True)),
				("log_index", models.IntegerField(default=0)),
				("timestamp", models.BigIntegerField()),
				("recorded_at", models.DateTimeField(auto_now_add=True)),
			],
			options={
				"ordering": ("block_number", "timestamp", "log_index"),
			},
		),
		migrations.CreateModel(
			name="CorporateAction",
			fields=[
				("id", models.BigAutoField(primary_key=True, serialize=False)),
				("kind", models.CharField(choices=[("split", "Stock split"), ("rename", "Rename")], max_length=10)),
				("multiplier", core.fields.IntegerStringField(blank=True, max_length=100, null=True)),
				("old_name", models.CharField(blank=True, default="", max_length=200)),
				("new_name", models.CharField(blank=True, default="", max_length=200)),
				("old_symbol", models.CharField(blank=True, default="", max_length=11)),
				("new_symbol", models.CharField(blank=True, default="", max_length=11)),
				("block_number", models.BigIntegerField(db_index=True)),
				("log_index", models.IntegerField(default=0)),
				("tx_hash", models.CharField(blank=True, default="", max_length=80)),
				("timestamp", models.BigIntegerField()),
				("recorded_at", models.DateTimeField(auto_now_add=True)),
			],
			options={
				"ordering": ("block_number", "id"),
			},
		),
		migrations.AddConstraint(
			model_name="corporateaction",
			constraint=models.CheckConstraint(
				condition=(models.Q(("kind", "split"), ("multiplier__isnull", False)))
				| (models.Q(("kind", "rename"), ("multiplier__isnull", True))),
				name="ck_corporate_action_payload_kind",
			),
		),
		migrations.CreateModel(
			name="AllowlistEntry",
			fields=[
				("address", models.CharField(max_length=42, primary_key=True, serialize=False)),
				("approved", models.BooleanField(db_index=True)),
				("block_number", models.BigIntegerField(default=0)),
				("timestamp", models.BigIntegerField()),
			],
		),
		migrations.CreateModel(
			name="IndexerCursor",
			fields=[
				("id", models.PositiveSmallIntegerField(default=1, primary_key=True, serialize=False)),
				("last_block", models.BigIntegerField()),
				("updated_at", models.DateTimeField(auto_now=True)),
			],
		),
		migrations.AddConstraint(
			model_name="indexercursor",
			constraint=models.CheckConstraint(condition=models.Q(("id", 1)), name="ck_indexer_cursor_singleton"),
		),
		migrations.CreateModel(
			name="AccountBalance",
			fields=[
				("address", models.CharField(max_length=42, primary_key=True, serialize=False)),
				("balance", core.fields.IntegerStringField(default=0, max_length=100)),
				("updated_at", models.DateTimeField(auto_now=True)),
			],
		),
	]
