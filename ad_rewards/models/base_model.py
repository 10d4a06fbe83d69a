from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def _timestamp_column(**column_kwargs) -> dict:
    return {"sa_type": sa.DateTime(timezone=True), "sa_column_kwargs": column_kwargs}


class MirrorModel(SQLModel):
    """
    Общие колонки зеркальных таблиц: суррогатный ключ и время вставки/обновления
    строки в PostgreSQL (не путать со временем записи в хранилище).
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: Optional[datetime] = Field(default=None, **_timestamp_column(server_default=sa.func.now()))
    updated_at: Optional[datetime] = Field(
        default=None, **_timestamp_column(server_default=sa.func.now(), onupdate=sa.func.now())
    )

    class Config:
        from_attributes = True
