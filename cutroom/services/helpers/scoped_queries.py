"""
Tenant-scoped query helpers.

Every get-by-id in the platform MUST use these helpers instead of
Model.query.get(pk) or db.session.get(Model, pk). Direct .get() calls
bypass tenant isolation.

Usage:
    # Scope by tenant_id (every TenantModel subclass)
    project = get_scoped(Project, project_id, tenant_id=tenant_id)

    # Scope by tenant AND project (versions, scope decisions)
    version = get_scoped(AssetVersion, version_id, tenant_id=tenant_id, project_id=project_id)

    # Row lock for load-validate-mutate sequences
    version = get_scoped(AssetVersion, version_id, tenant_id=tenant_id, lock=True)

    # When None is an acceptable outcome
    owner = get_scoped_or_none(User, user_id, tenant_id=tenant_id)

Scope field resolution:
    Each keyword argument maps directly to a column name on the model.
    If the model does not have that column, a ValueError is raised at
    call time so the bug surfaces during development/testing rather than
    silently allowing unscoped access in production.
"""

import logging

from sqlalchemy import select

from cutroom.core.exceptions import NotFoundError
from cutroom.models import db

logger = logging.getLogger(__name__)

# Supported scope keyword → expected model column name mapping.
_SCOPE_KWARGS = ("tenant_id", "project_id")


def get_scoped(
    model,
    pk: int,
    *,
    tenant_id: int | None = None,
    project_id: int | None = None,
    lock: bool = False,
):
    """Fetch a single entity by PK with mandatory scope filter.

    At least one scope parameter MUST be provided and MUST correspond to a
    column that actually exists on the model.

    Cross-tenant access is indistinguishable from a missing record: both
    raise NotFoundError → HTTP 404.

    Args:
        model: SQLAlchemy model class with an `id` PK column.
        pk: Primary key value to look up.
        tenant_id: Scope by tenant_id column.
        project_id: Scope by project_id column.
        lock: Issue SELECT ... FOR UPDATE so the row stays locked until the
              surrounding transaction commits or rolls back. Ignored by
              backends without row locks (SQLite).

    Returns:
        The model instance if found within the given scope.

    Raises:
        ValueError: If no scope parameter is provided, OR if a provided
                    scope kwarg references a column the model lacks.
        NotFoundError: If the entity does not exist OR belongs to a different
                       scope. The two cases are intentionally indistinguishable.
    """
    provided_scopes: dict[str, int] = {
        "tenant_id": tenant_id,
        "project_id": project_id,
    }
    provided_scopes = {k: v for k, v in provided_scopes.items() if v is not None}

    if not provided_scopes:
        raise ValueError(
            f"{model.__name__} id={pk} requires at least one scope filter "
            f"({', '.join(_SCOPE_KWARGS)}). "
            "Unscoped lookups are forbidden — they bypass tenant isolation."
        )

    missing_fields = sorted(f for f in provided_scopes if not hasattr(model, f))
    if missing_fields:
        raise ValueError(
            f"{model.__name__} id={pk}: scope field(s) {missing_fields} "
            f"do not exist as columns on {model.__name__}. "
            "Refusing to perform a partially scoped lookup."
        )

    stmt = select(model).where(model.id == pk)
    for field, value in provided_scopes.items():
        stmt = stmt.where(getattr(model, field) == value)
    if lock:
        stmt = stmt.with_for_update()

    result = db.session.execute(stmt).scalar_one_or_none()

    if result is None:
        logger.debug(
            "get_scoped: %s id=%s not found in scope %s",
            model.__name__,
            pk,
            provided_scopes,
        )
        raise NotFoundError(resource=model.__name__, resource_id=pk)

    return result


def get_scoped_or_none(
    model,
    pk: int,
    *,
    tenant_id: int | None = None,
    project_id: int | None = None,
    lock: bool = False,
):
    """Same as get_scoped but returns None instead of raising NotFoundError.

    Still enforces the scope parameter requirement (raises ValueError if no
    scope is provided or a scope field is missing from the model).
    """
    try:
        return get_scoped(model, pk, tenant_id=tenant_id, project_id=project_id, lock=lock)
    except NotFoundError:
        return None


def exists_scoped(model, pk, *, tenant_id: int | None = None, project_id: int | None = None) -> bool:
    """True if a row with this PK exists inside the given scope."""
    if pk is None:
        return False
    return get_scoped_or_none(model, pk, tenant_id=tenant_id, project_id=project_id) is not None
