"""
Permission delegation for foreign-key references.

A service that stores a reference to another entity asks the owning service
whether the caller can see that entity, instead of duplicating its access
rules.
"""
from typing import Any, Awaitable, Callable, Optional

from entity_mixin.core.errors import (
    EntityNotFoundError,
    EntityValidationError,
    PermissionDeniedError,
)
from entity_mixin.services.broker import Context

ScopeFunction = Callable[[dict, Optional[Context], dict], Awaitable[dict]]


def _no_permission(key: str, value: Any) -> PermissionDeniedError:
    return PermissionDeniedError(
        f"You have no right for the {key} '{value}'",
        data={"field": key, "value": value},
    )


async def validate_has(
    caller: str,
    key: str,
    query: dict,
    ctx: Optional[Context],
    params: dict,
) -> dict:
    """
    Check that the caller can resolve the entity referenced by params[key].

    Args:
        caller: Action resolving the referenced entity, e.g. "accounts.get"
        key: Parameter and query field holding the reference
        query: Query being built
        ctx: Current call context. None for internal calls, which skip the check
        params: Action parameters

    Returns:
        The query, with query[key] set when the reference was checked

    Raises:
        PermissionDeniedError: The referenced entity cannot be resolved
        EntityValidationError: The reference is missing but required
    """
    if ctx is None:
        return query

    value = params.get(key)
    if value:
        try:
            res = await ctx.call(caller, {"id": value})
        except (EntityNotFoundError, PermissionDeniedError) as err:
            raise _no_permission(key, value) from err

        if res:
            query[key] = value
            return query
        raise _no_permission(key, value)

    rule = ctx.action.params.get(key) if ctx.action is not None else None
    if rule is not None and not rule.optional:
        raise EntityValidationError.required(key)

    return query


def has_scope(caller: str, key: str) -> ScopeFunction:
    """
    Build a scope that restricts reads to references the caller can resolve.

    Usage:
        scopes={"account": has_scope("accounts.get", "account")}
    """
    async def scope(query: dict, ctx: Optional[Context], params: dict) -> dict:
        return await validate_has(caller, key, query, ctx, params)

    return scope
