"""
Alembic environment: revision chain and offline SQL for the settlement schema
"""

import io
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory


BACKEND = Path(__file__).resolve().parents[1]


def _config(buffer=None) -> Config:
    # No ini file: keeps alembic from reconfiguring logging during the test run
    config = Config(output_buffer=buffer)
    config.set_main_option("script_location", str(BACKEND / "alembic"))
    return config


class TestMigrations:

    def test_single_head(self):
        script = ScriptDirectory.from_config(_config())
        assert script.get_heads() == ["001_initial_settlement"]

    def test_offline_upgrade_creates_settlement_schema(self):
        buffer = io.StringIO()

        command.upgrade(_config(buffer), "head", sql=True)

        sql = buffer.getvalue()
        for table in ("customers", "vendors", "quotations", "payments", "payment_allocations", "audit_logs"):
            assert f"CREATE TABLE {table}" in sql
        assert "CREATE TYPE party_type AS ENUM" in sql
        assert "NUMERIC(18, 2)" in sql
