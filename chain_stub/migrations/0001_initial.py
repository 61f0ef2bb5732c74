# Written by hand; keep in sync with chain_stub/models.py.

from django.db import migrations, models

import core.fields


class Migration(migrations.Migration):
	initial = True

	dependencies = []

	operations = [
		migrations.CreateModel(
			name="ChainStubState",
			fields=[
				("id", models.PositiveSmallIntegerField(default=1, primary_key=True, serialize=False)),
				("head_block", models.BigIntegerField(default=0)),
				("name", models.CharField(default="ChainEquity Common", max_length=200)),
				("symbol", models.CharField(default="CEQ", max_length=11)),
				("split_multiplier", core.fields.IntegerStringField(default=1000000000000000000, max_length=100)),
			],
		),
		migrations.CreateModel(
			name="ChainStubBalance",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("address", models.CharField(max_length=42, unique=True)),
				("balance", core.fields.IntegerStringField(default=0, max_length=100)),
			],
		),
		migrations.CreateModel(
			name="ChainStubAllowlist",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("address", models.CharField(max_length=42, unique=True)),
				("approved", models.BooleanField(default=False)),
			],
		),
		migrations.CreateModel(
			name="ChainStubLog",
			fields=[
				("id", models.BigAutoField(primary_key=True, serialize=False)),
				("block_number", models.BigIntegerField(db_index=True)),
				("log_index", models.IntegerField()),
				("tx_hash", models.CharField(max_length=80)),
				("event", models.CharField(max_length=40)),
				("args", models.JSONField(default=dict)),
				("timestamp", models.BigIntegerField()),
			],
			options={
				"ordering": ("block_number", "log_index"),
				"unique_together": {("block_number", "log_index")},
			},
		),
	]
