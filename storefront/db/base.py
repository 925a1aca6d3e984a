# storefront/db/base.py
from __future__ import annotations

import importlib
import logging
import pkgutil
import uuid
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("storefront.models")

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Single ORM Base for every model."""

    pass


_INITIALIZED: bool = False


def _iter_model_modules(pkg_name: str = "storefront.models") -> Iterator[str]:
    pkg = importlib.import_module(pkg_name)
    for _, name, _ in pkgutil.walk_packages(list(pkg.__path__), prefix=pkg_name + "."):
        if name.rsplit(".", 1)[-1].startswith("_"):
            continue
        yield name


def init_models(*, force: bool = False) -> None:
    """
    Import every storefront.models.* module, then configure_mappers().
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    loaded = 0
    for mod in _iter_model_modules():
        importlib.import_module(mod)
        loaded += 1

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", loaded)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
