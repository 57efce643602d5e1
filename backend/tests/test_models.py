"""
Tests for versionflow/models - table registration and uniqueness constraints.
"""
from sqlalchemy import UniqueConstraint

from versionflow.db.base import Base


def _unique_columns(table_name):
    table = Base.metadata.tables[table_name]
    return {
        tuple(column.name for column in constraint.columns)
        for constraint in table.constraints
        if isinstance(constraint, UniqueConstraint)
    }


class TestMetadata:

    def test_all_tables_registered(self):
        assert set(Base.metadata.tables) == {
            "projects",
            "repositories",
            "issues",
            "commits",
            "pull_requests",
            "versions",
            "version_issues",
            "releases",
            "version_files",
        }

    def test_upsert_conflict_targets_are_unique(self):
        assert ("repository_id", "environment", "version") in _unique_columns("versions")
        assert ("version_id", "issue_id") in _unique_columns("version_issues")
        assert ("repository_id", "tag_name") in _unique_columns("releases")
        assert ("repository_id", "environment") in _unique_columns("version_files")

    def test_issue_keys_are_unique_per_project(self):
        assert ("project_id", "issue_key") in _unique_columns("issues")

    def test_promotion_parent_is_nullable(self):
        column = Base.metadata.tables["versions"].c.parent_version_id

        assert column.nullable is True
        assert {fk.column.table.name for fk in column.foreign_keys} == {"versions"}


class TestMigration:
    """The alembic revision creates exactly the tables the models declare."""

    def _load(self):
        import importlib.util
        from pathlib import Path

        path = Path(__file__).resolve().parents[1] / "alembic" / "versions" / "001_add_versioning_tables.py"
        spec = importlib.util.spec_from_file_location("migration_001", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    def test_upgrade_creates_model_tables(self):
        from unittest.mock import patch

        migration = self._load()
        with patch.object(migration, "op") as mock_op:
            migration.upgrade()

        created = [call.args[0] for call in mock_op.create_table.call_args_list]
        assert set(created) == set(Base.metadata.tables)
        assert created.index("versions") < created.index("version_issues")

    def test_downgrade_drops_every_table(self):
        from unittest.mock import patch

        migration = self._load()
        with patch.object(migration, "op") as mock_op:
            migration.downgrade()

        dropped = [call.args[0] for call in mock_op.drop_table.call_args_list]
        assert set(dropped) == set(Base.metadata.tables)
        assert dropped[-1] == "projects"
        assert migration.down_revision is None
