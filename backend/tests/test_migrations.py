"""The initial revision must create exactly what the ORM maps."""

import importlib
from unittest.mock import MagicMock

import sqlalchemy as sa

from loan_review.database import Base
import loan_review.models  # noqa: F401

review_core = importlib.import_module("loan_review.migrations.versions.001_review_core")


def _created_tables(monkeypatch) -> dict[str, set[str]]:
    op = MagicMock()
    monkeypatch.setattr(review_core, "op", op)
    review_core.upgrade()
    tables = {}
    for call in op.create_table.call_args_list:
        name, *items = call.args
        tables[name] = {item.name for item in items if isinstance(item, sa.Column)}
    return tables


class TestReviewCoreRevision:

    def test_tables_match_models(self, monkeypatch):
        created = _created_tables(monkeypatch)
        assert set(created) == set(Base.metadata.tables)

    def test_columns_match_models(self, monkeypatch):
        created = _created_tables(monkeypatch)
        for name, table in Base.metadata.tables.items():
            assert created[name] == {c.name for c in table.columns}, name

    def test_parents_created_before_children(self, monkeypatch):
        order = list(_created_tables(monkeypatch))
        assert order.index("staff_users") < order.index("loan_applications")
        assert order.index("loan_applications") < order.index("documents")

    def test_downgrade_drops_everything(self, monkeypatch):
        op = MagicMock()
        monkeypatch.setattr(review_core, "op", op)
        monkeypatch.setattr(sa.Enum, "drop", MagicMock())
        review_core.downgrade()
        dropped = {call.args[0] for call in op.drop_table.call_args_list}
        assert dropped == set(Base.metadata.tables)
