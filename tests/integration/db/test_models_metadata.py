from __future__ import annotations

from dealflow.models import Base
import dealflow.models  # noqa: F401


def test_model_metadata_contains_pipeline_tables():
    expected = {"users", "contacts", "companies", "pipeline_stages", "deals"}
    assert expected.issubset(set(Base.metadata.tables.keys()))


def test_deal_stage_foreign_key_restricts_delete():
    deals = Base.metadata.tables["deals"]
    (stage_fk,) = [fk for fk in deals.foreign_keys if fk.column.table.name == "pipeline_stages"]
    assert stage_fk.ondelete == "RESTRICT"


def test_stage_order_is_not_unique():
    stages = Base.metadata.tables["pipeline_stages"]
    assert stages.c.order.unique is not True
