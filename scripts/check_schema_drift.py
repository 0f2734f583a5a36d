"""Compare the configured database against the bingoscape models.

Exit codes: 0 when in sync, 1 when differences exist, 2 on error.
"""

from __future__ import annotations

import logging
import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext
from sqlalchemy.exc import SQLAlchemyError

from bingoscape.db.engine import make_engine
from bingoscape.models import Base

logger = logging.getLogger("bingoscape.schema_drift")


def describe_ops(ops, depth: int = 0) -> list[str]:
    """Flatten nested autogenerate operations into indented lines."""
    lines = []
    for op in ops:
        lines.append(f"{'  ' * depth}- {op}")
        lines.extend(describe_ops(getattr(op, "ops", None) or [], depth + 1))
    return lines


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    engine = make_engine()
    target = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            migration_ctx = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "compare_server_default": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(
                migration_ctx, Base.metadata
            ).upgrade_ops
    except SQLAlchemyError as exc:
        logger.error(f"Could not inspect {target}: {exc}")
        return 2

    if upgrade_ops is None:
        logger.error(f"No upgrade operations produced for {target}")
        return 2
    if upgrade_ops.is_empty():
        logger.info(f"Schema of {target} matches the models")
        return 0

    logger.warning(f"Schema of {target} differs from the models:")
    for line in describe_ops(upgrade_ops.ops or []):
        logger.warning(line)
    return 1


if __name__ == "__main__":
    sys.exit(main())
