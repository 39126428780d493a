from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import make_url

from smartcv.core.runtime import AppContext
from smartcv.db import models  # noqa: F401
from smartcv.db.base import Base
from smartcv.db.seed import seed_jobs


def ensure_data_directories(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def init_database(context: AppContext, *, seed: bool = False) -> dict[str, int]:
    ensure_data_directories(context.settings.database_url)
    Base.metadata.create_all(bind=context.engine)

    inserted = 0
    if seed:
        with context.session_factory() as session:
            inserted = seed_jobs(session)
    return {"seeded_jobs": inserted}
