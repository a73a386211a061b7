"""Central registry for SQLAlchemy models with string-based relationships.

Importing this module loads every ORM class so ``Base.metadata`` is complete for
``create_all`` and Alembic autogenerate, and string relationship targets resolve
when individual models are imported in isolation.
"""

from mfgops.domain.audit import db_models as audit_db_models  # noqa: F401
from mfgops.domain.stores import db_models as stores_db_models  # noqa: F401
from mfgops.domain.inventory import db_models as inventory_db_models  # noqa: F401
from mfgops.domain.purchasing import db_models as purchasing_db_models  # noqa: F401
