from typing import Iterable
from sqlalchemy import inspect as sa_inspect


def model_attribute_names(model) -> set[str]:
    """
    Names callers may use for a model: mapped columns and relationships.
    """
    return {attr.key for attr in sa_inspect(model).attrs}


def find_unknown_model_kwargs(model, kwargs: Iterable[str]) -> list[str]:
    """
    Return the keys that are not mapped attributes of `model`, in caller order.
    - model: the SQLAlchemy model class (not instance)
    - kwargs: dict (or any iterable of names) to validate
    """
    allowed = model_attribute_names(model)
    return [k for k in kwargs if k not in allowed]


def get_required_columns(model) -> list[str]:
    """
    Columns that are NOT NULL, have no client/server default and are not auto PKs.
    """
    cols = []
    for col in model.__table__.columns:
        has_default = col.default is not None or col.server_default is not None
        is_auto_pk = col.autoincrement is True and col.primary_key
        if not col.nullable and not has_default and not is_auto_pk:
            cols.append(col.name)
    return cols
