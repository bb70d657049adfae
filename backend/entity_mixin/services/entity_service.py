"""
Generic entity service.

An EntityService owns one collection. It stores the shared entity fields,
applies scopes to reads, guards each action with a "<prefix>.<action>"
permission tag and exposes ids only in their obfuscated form.
"""
import logging
import math
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from entity_mixin.config import Settings, get_settings
from entity_mixin.core.codec import IdCodec
from entity_mixin.core.errors import (
    ActionNotFoundError,
    EntityNotFoundError,
    EntityValidationError,
    PermissionDeniedError,
    ServiceStartupError,
)
from entity_mixin.database.adapters import MongoAdapter, create_adapter
from entity_mixin.database.storage import StorageConfig, select_storage
from entity_mixin.models.entity import (
    ACTION_TABLE,
    DEFAULT_SCOPES,
    DISABLED_ACTIONS,
    ENTITY_FIELDS,
    ENTITY_SCOPES,
    EntityAction,
    FieldSpec,
    FieldType,
    now_ms,
    permission_tag,
)
from entity_mixin.schemas.entity import (
    CountParams,
    FindParams,
    GetParams,
    ListParams,
    QueryParams,
)
from entity_mixin.services.broker import ActionSchema, Context, ParamRule, ServiceBroker
from entity_mixin.services.permissions import ScopeFunction, validate_has

logger = logging.getLogger(__name__)

IndexCreator = Callable[[MongoAdapter], Awaitable[None]]
Seeder = Callable[["EntityService"], Awaitable[None]]
Scope = Union[dict, ScopeFunction]

PYTHON_TYPES: dict[FieldType, Any] = {
    FieldType.STRING: str,
    FieldType.NUMBER: Union[int, float],
    FieldType.BOOLEAN: bool,
    FieldType.OBJECT: dict[str, Any],
    FieldType.ARRAY: list[Any],
}

QUERY_PARAM_RULES: dict[str, ParamRule] = {
    "query": ParamRule(type="object", optional=True),
    "scope": ParamRule(optional=True),
    "fields": ParamRule(type="array", optional=True),
    "sort": ParamRule(type="array", optional=True),
}


class EntityServiceConfig(BaseModel):
    """Typed configuration of one entity service."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    collection: str = Field(..., min_length=1, description="Collection name")
    name: Optional[str] = Field(None, description="Service name, defaults to the collection")
    permission_prefix: Optional[str] = Field(
        None, description="Prefix of permission tags, defaults to the service name"
    )
    storage: StorageConfig
    hashid_salt: Optional[str] = Field(None, description="Salt of the id codec")
    hashid_min_length: int = 0
    clear_on_start: bool = Field(False, description="Empty the collection on start")
    fields: tuple[FieldSpec, ...] = Field(default=(), description="Fields added to the base set")
    scopes: dict[str, Any] = Field(default={}, description="Scopes added to the base set")
    default_scopes: tuple[str, ...] = DEFAULT_SCOPES
    indexes: list[dict] = Field(default=[], description="Index definitions")
    action_params: dict[EntityAction, dict[str, ParamRule]] = Field(
        default={}, description="Extra declared parameters per action"
    )

    @property
    def service_name(self) -> str:
        return self.name or self.collection

    @classmethod
    def from_settings(
        cls,
        collection: str,
        settings: Optional[Settings] = None,
        directory: Optional[str] = None,
        uri: Optional[str] = None,
        storage: Optional[StorageConfig] = None,
        **kwargs: Any,
    ) -> "EntityServiceConfig":
        """
        Build a configuration from application settings.

        Args:
            collection: Collection name
            settings: Application settings (cached settings by default)
            directory: Local store directory for a file-backed store
            uri: MongoDB connection string
            storage: Explicit storage, skips backend selection
            **kwargs: Other EntityServiceConfig fields
        """
        settings = settings or get_settings()
        hashid_salt = _require_salt(settings.resolve_hashid_salt())
        if storage is None:
            storage = select_storage(collection, settings, directory=directory, uri=uri)
        return cls(
            collection=collection,
            storage=storage,
            hashid_salt=hashid_salt,
            hashid_min_length=settings.hashid_min_length,
            clear_on_start=settings.clear_on_start,
            **kwargs,
        )


def _require_salt(salt: Optional[str]) -> str:
    if not salt:
        message = "Environment variable 'HASHID_SALT' must be configured!"
        logger.critical(message)
        raise ServiceStartupError(message)
    return salt


def index_creator_for(indexes: list[dict]) -> IndexCreator:
    """Index creator that builds the given index definitions."""
    async def create(adapter: MongoAdapter) -> None:
        await adapter.create_indexes(indexes)

    return create


def _input_model(model_name: str, fields: tuple[FieldSpec, ...], partial: bool) -> type[BaseModel]:
    """Pydantic model accepting the writable fields of an entity."""
    definitions: dict[str, Any] = {}
    for spec in fields:
        if spec.readonly or spec.primary_key:
            continue
        python_type = PYTHON_TYPES[spec.type]
        if spec.required and not partial:
            definitions[spec.name] = (python_type, ...)
        else:
            definitions[spec.name] = (Optional[python_type], None)
    return create_model(model_name, __config__=ConfigDict(extra="ignore"), **definitions)


def _validation_error(err: ValidationError) -> EntityValidationError:
    problems = [
        {
            "type": e["type"],
            "field": ".".join(str(part) for part in e["loc"]),
            "message": e["msg"],
        }
        for e in err.errors()
    ]
    return EntityValidationError("Parameters validation error", data=problems)


def _parse_sort(sort: Optional[list[str]]) -> list[tuple[str, int]]:
    result = []
    for item in sort or []:
        if item.startswith("-"):
            result.append((item[1:], -1))
        else:
            result.append((item, 1))
    return result


class EntityService:
    """
    Entity service for one collection.

    Construction fails when no id salt is configured. Optional capabilities:
    an index creator run on start, and a seeder run when the collection is
    empty.
    """

    def __init__(
        self,
        config: EntityServiceConfig,
        index_creator: Optional[IndexCreator] = None,
        seeder: Optional[Seeder] = None,
    ):
        self.config = config
        self.name = config.service_name
        self.permission_prefix = config.permission_prefix or self.name

        self.codec = IdCodec(_require_salt(config.hashid_salt), config.hashid_min_length)
        self.fields: tuple[FieldSpec, ...] = ENTITY_FIELDS + tuple(config.fields)
        self.scopes: dict[str, Scope] = {**ENTITY_SCOPES, **config.scopes}
        self.default_scopes = tuple(config.default_scopes)
        self.adapter = create_adapter(config.storage)
        self.broker: Optional[ServiceBroker] = None

        if index_creator is None and config.indexes:
            index_creator = index_creator_for(config.indexes)
        self.index_creator = index_creator
        self.seeder = seeder

        model_prefix = self.name.title().replace("_", "").replace("-", "")
        self._create_model = _input_model(f"{model_prefix}Create", self.fields, partial=False)
        self._update_model = _input_model(f"{model_prefix}Update", self.fields, partial=True)

    def __repr__(self) -> str:
        return f"<EntityService {self.name} ({self.config.storage.kind.value})>"

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Connect storage, create indexes, then clear or seed if needed."""
        await self.adapter.connect()

        if self.index_creator is not None:
            try:
                await self.index_creator(self.adapter)
            except Exception:
                logger.error("Unable to create indexes.", exc_info=True)

        if self.config.clear_on_start:
            logger.info(f"Clear '{self.config.collection}' collection before tests...")
            await self.clear_entities()

        if self.seeder is not None:
            count = await self.count_entities({})
            if count == 0:
                logger.info(f"Seed '{self.config.collection}' collection...")
                await self.seeder(self)

    async def stop(self) -> None:
        await self.adapter.disconnect()

    # ==================== Ids ====================

    def encode_id(self, entity_id: Any) -> str:
        return self.codec.encode(entity_id)

    def decode_id(self, entity_id: str) -> str:
        return self.codec.decode(entity_id)

    async def validate_has(
        self,
        caller: str,
        key: str,
        query: dict,
        ctx: Optional[Context],
        params: dict,
    ) -> dict:
        """See entity_mixin.services.permissions.validate_has."""
        return await validate_has(caller, key, query, ctx, params)

    # ==================== Actions ====================

    def action_schema(self, action_name: str) -> ActionSchema:
        """Declared parameters and permission tag of an action."""
        action = self._lookup_action(action_name)
        if action in (EntityAction.CREATE, EntityAction.UPDATE):
            params = {
                spec.name: ParamRule(
                    type=spec.type.value,
                    optional=action == EntityAction.UPDATE or not spec.required,
                )
                for spec in self.fields
                if not spec.readonly and not spec.primary_key
            }
        else:
            params = dict(QUERY_PARAM_RULES)
        if ACTION_TABLE[action].resolves_entity:
            params["id"] = ParamRule(type="string")
        params.update(self.config.action_params.get(action, {}))
        return ActionSchema(
            name=f"{self.name}.{action.value}",
            params=params,
            permission=permission_tag(self.permission_prefix, action),
        )

    async def call_action(self, action_name: str, ctx: Context) -> Any:
        """
        Run an action: check its permission tag, resolve the target entity
        when the action addresses one, then run the handler.
        """
        action = self._lookup_action(action_name)
        tag = permission_tag(self.permission_prefix, action)
        if not ctx.has_permission(tag):
            raise PermissionDeniedError(
                f"Missing permission '{tag}'",
                data={"permission": tag},
            )

        params = ctx.params
        if not ACTION_TABLE[action].resolves_entity:
            handler = {
                EntityAction.CREATE: self.create_entity,
                EntityAction.LIST: self.list_entities,
                EntityAction.FIND: self.find_entities,
                EntityAction.COUNT: self.count_entities,
            }[action]
            return await handler(params, ctx)

        get_params = self._validate(GetParams, params)
        entity = await self.resolve_entity(get_params.id, ctx, params, scope=get_params.scope)
        if entity is None:
            raise EntityNotFoundError(get_params.id)

        if action == EntityAction.GET:
            return self.transform(entity, get_params.fields)
        if action == EntityAction.UPDATE:
            return await self.update_entity(entity, params, ctx)
        return await self.remove_entity(entity, ctx)

    def _lookup_action(self, action_name: str) -> EntityAction:
        if action_name in DISABLED_ACTIONS:
            raise ActionNotFoundError(f"{self.name}.{action_name}")
        try:
            return EntityAction(action_name)
        except ValueError:
            raise ActionNotFoundError(f"{self.name}.{action_name}") from None

    # ==================== Entity operations ====================

    async def create_entity(self, params: dict, ctx: Optional[Context] = None) -> dict:
        """Insert a new entity. Readonly fields in params are ignored."""
        doc = self._validate(self._create_model, params).model_dump(exclude_unset=True)
        now = now_ms()
        for spec in self.fields:
            if spec.on_create:
                doc[spec.column_name] = now

        doc = await self.adapter.insert(doc)
        logger.debug(f"Created entity in '{self.config.collection}'")
        return self.transform(doc)

    async def update_entity(
        self, entity: dict, params: dict, ctx: Optional[Context] = None
    ) -> dict:
        """Set writable fields of a resolved entity and refresh its update stamps."""
        changes = self._validate(self._update_model, params).model_dump(exclude_unset=True)
        now = now_ms()
        for spec in self.fields:
            if spec.on_update:
                previous = entity.get(spec.column_name)
                if isinstance(previous, (int, float)) and previous > now:
                    changes[spec.column_name] = previous
                else:
                    changes[spec.column_name] = now

        doc = await self.adapter.update_by_id(entity["_id"], changes)
        if doc is None:
            raise EntityNotFoundError(self.encode_id(entity["_id"]))
        return self.transform(doc)

    async def remove_entity(self, entity: dict, ctx: Optional[Context] = None) -> dict:
        """Soft delete a resolved entity by stamping its remove fields."""
        now = now_ms()
        changes = {spec.column_name: now for spec in self.fields if spec.on_remove}
        doc = await self.adapter.update_by_id(entity["_id"], changes)
        if doc is None:
            raise EntityNotFoundError(self.encode_id(entity["_id"]))
        return {"id": self.encode_id(doc["_id"])}

    async def resolve_entity(
        self,
        entity_id: str,
        ctx: Optional[Context] = None,
        params: Optional[dict] = None,
        scope: Any = None,
    ) -> Optional[dict]:
        """
        Look up the stored document behind an encoded id.

        Returns None when the id does not decode or no document matches the
        active scopes.
        """
        oid = self.codec.to_object_id(entity_id)
        if oid is None:
            return None
        query = await self._apply_scopes({"_id": oid}, ctx, params or {}, scope)
        return await self.adapter.find_one(query)

    async def get_entity(self, entity_id: str, ctx: Optional[Context] = None) -> dict:
        """Resolve and transform an entity, raising when it does not exist."""
        entity = await self.resolve_entity(entity_id, ctx)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return self.transform(entity)

    async def find_entities(self, params: dict, ctx: Optional[Context] = None) -> list[dict]:
        find_params = self._validate(FindParams, params)
        query = await self._build_query(find_params, ctx, params)
        docs = await self.adapter.find(
            query,
            sort=_parse_sort(find_params.sort),
            skip=find_params.offset,
            limit=find_params.limit,
        )
        return [self.transform(doc, find_params.fields) for doc in docs]

    async def count_entities(self, params: dict, ctx: Optional[Context] = None) -> int:
        count_params = self._validate(CountParams, params)
        query = await self._build_query(count_params, ctx, params)
        return await self.adapter.count(query)

    async def list_entities(self, params: dict, ctx: Optional[Context] = None) -> dict:
        """One page of entities with totals."""
        list_params = self._validate(ListParams, params)
        query = await self._build_query(list_params, ctx, params)
        total = await self.adapter.count(query)
        docs = await self.adapter.find(
            query,
            sort=_parse_sort(list_params.sort),
            skip=(list_params.page - 1) * list_params.page_size,
            limit=list_params.page_size,
        )
        return {
            "rows": [self.transform(doc, list_params.fields) for doc in docs],
            "total": total,
            "page": list_params.page,
            "pageSize": list_params.page_size,
            "totalPages": math.ceil(total / list_params.page_size),
        }

    async def clear_entities(self) -> int:
        """Physically remove every document of the collection."""
        removed = await self.adapter.clear()
        logger.info(f"Removed {removed} documents from '{self.config.collection}'")
        return removed

    # ==================== Helpers ====================

    def transform(self, doc: dict, fields: Optional[list[str]] = None) -> dict:
        """
        Convert a stored document to its external form.

        Hidden fields are left out unless listed in fields. Secure fields are
        encoded with the id codec.
        """
        result = {}
        for spec in self.fields:
            if fields is not None:
                if spec.name not in fields:
                    continue
            elif spec.hidden:
                continue
            if spec.column_name not in doc:
                continue
            value = doc[spec.column_name]
            if spec.secure and value is not None:
                value = self.encode_id(value)
            result[spec.name] = value
        return result

    def _validate(self, model: type[BaseModel], params: dict) -> Any:
        try:
            return model.model_validate(params)
        except ValidationError as e:
            raise _validation_error(e) from None

    async def _build_query(
        self, query_params: QueryParams, ctx: Optional[Context], params: dict
    ) -> dict:
        query = self._map_ids(dict(query_params.query or {}))
        return await self._apply_scopes(query, ctx, params, query_params.scope)

    def _map_ids(self, query: dict) -> dict:
        """Translate external field names and encoded ids to stored ones."""
        for spec in self.fields:
            if spec.column_name == spec.name or spec.name not in query:
                continue
            value = query.pop(spec.name)
            if spec.secure:
                if isinstance(value, list):
                    value = {"$in": [self.codec.to_object_id(v) for v in value]}
                else:
                    value = self.codec.to_object_id(value)
            query[spec.column_name] = value
        return query

    def _active_scopes(self, scope: Any) -> list[str]:
        if scope is False or scope == "false":
            return []
        names = list(self.default_scopes)
        if scope is None or scope is True or scope == "true":
            return names

        requested = scope.split(",") if isinstance(scope, str) else list(scope)
        for item in (s.strip() for s in requested):
            if not item:
                continue
            name = item[1:] if item.startswith("-") else item
            if name not in self.scopes:
                raise EntityValidationError(
                    f"Unknown scope '{name}'",
                    data=[{"type": "scope", "field": "scope", "value": name}],
                )
            if item.startswith("-"):
                names = [n for n in names if n != name]
            elif name not in names:
                names.append(name)
        return names

    async def _apply_scopes(
        self, query: dict, ctx: Optional[Context], params: dict, scope: Any = None
    ) -> dict:
        for name in self._active_scopes(scope):
            definition = self.scopes[name]
            if callable(definition):
                query = await definition(query, ctx, params)
            else:
                query = {**query, **definition}
        return query


def create_entity_service(
    collection: str,
    settings: Optional[Settings] = None,
    *,
    directory: Optional[str] = None,
    uri: Optional[str] = None,
    storage: Optional[StorageConfig] = None,
    index_creator: Optional[IndexCreator] = None,
    seeder: Optional[Seeder] = None,
    **kwargs: Any,
) -> EntityService:
    """
    Build an entity service for a collection.

    Usage:
        accounts = create_entity_service("accounts", permission_prefix="accounts")
        broker.register(accounts)
    """
    config = EntityServiceConfig.from_settings(
        collection,
        settings,
        directory=directory,
        uri=uri,
        storage=storage,
        **kwargs,
    )
    return EntityService(config, index_creator=index_creator, seeder=seeder)
