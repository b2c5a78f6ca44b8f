"""
Resource registry and the drivers that run lifecycle handlers against
stored records.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .conns import AWSClient
from .errors import NotFoundError
from .sagemaker import model_package_group, model_package_group_policy
from .ssm import association
from .ssm import schema as association_schema
from .state import ResourceData, read_record, remove_record, write_record

logger = logging.getLogger(__name__)


@dataclass
class Resource:
    """Lifecycle handlers and schema facts for one resource type."""
    type_name: str
    create: Callable
    read: Callable
    delete: Callable
    update: Optional[Callable] = None
    importer: Optional[Callable] = None
    validate: Optional[Callable] = None
    schema_version: int = 0
    migrate_state: Optional[Callable] = None
    force_new_fields: List[str] = field(default_factory=list)
    computed_fields: List[str] = field(default_factory=list)
    # Optional fields the remote side fills in when left unset
    optional_computed_fields: List[str] = field(default_factory=list)


RESOURCES: Dict[str, Resource] = {
    association_schema.RESOURCE_TYPE: Resource(
        type_name=association_schema.RESOURCE_TYPE,
        create=association.create,
        read=association.read,
        update=association.update,
        delete=association.delete,
        importer=association.import_state,
        validate=association.validate,
        schema_version=association_schema.SCHEMA_VERSION,
        migrate_state=association.migrate_state,
        force_new_fields=association_schema.FORCE_NEW_FIELDS,
        computed_fields=association_schema.COMPUTED_FIELDS,
        optional_computed_fields=["document_version", "parameters", "targets"],
    ),
    model_package_group.RESOURCE_TYPE: Resource(
        type_name=model_package_group.RESOURCE_TYPE,
        create=model_package_group.create,
        read=model_package_group.read,
        delete=model_package_group.delete,
        importer=model_package_group.import_state,
        validate=model_package_group.validate,
        force_new_fields=["model_package_group_name", "model_package_group_description"],
        computed_fields=["arn"],
    ),
    model_package_group_policy.RESOURCE_TYPE: Resource(
        type_name=model_package_group_policy.RESOURCE_TYPE,
        create=model_package_group_policy.create,
        read=model_package_group_policy.read,
        update=model_package_group_policy.update,
        delete=model_package_group_policy.delete,
        importer=model_package_group_policy.import_state,
        validate=model_package_group_policy.validate,
        force_new_fields=["model_package_group_name"],
    ),
}


def get_resource(type_name: str) -> Resource:
    """
    Look up a registered resource type.

    Raises:
        ValueError: If the type is unknown
    """
    try:
        return RESOURCES[type_name]
    except KeyError:
        raise ValueError(f"Unknown resource type: {type_name}") from None


def load_record(type_name: str, resource_id: str) -> ResourceData:
    """Read a stored record, migrating it to the current schema version."""
    resource = get_resource(type_name)
    d = read_record(type_name, resource_id)

    if resource.migrate_state and d.schema_version < resource.schema_version:
        d = resource.migrate_state(d.schema_version, d)
        write_record(type_name, d)

    return d


def _has_changes(resource: Resource, config: Dict[str, Any], prior: ResourceData) -> bool:
    prior_fields = prior.fields()
    for key in set(config) | set(prior_fields):
        if key in resource.computed_fields:
            continue
        if key not in config and key in resource.optional_computed_fields:
            continue
        new, old = config.get(key), prior_fields.get(key)
        if not new and not old:
            continue
        if new != old:
            return True
    return False


def _requires_replace(resource: Resource, config: Dict[str, Any], prior: ResourceData) -> bool:
    for key in resource.force_new_fields:
        new, old = config.get(key), prior.get(key)
        if (new or old) and new != old:
            return True
    return False


def _create(resource: Resource, config: Dict[str, Any], client: AWSClient,
            cancel: Optional[threading.Event]) -> ResourceData:
    d = ResourceData(config, schema_version=resource.schema_version)
    try:
        resource.create(d, client, cancel)
    finally:
        # A remote object exists as soon as it has an ID, even if a later step failed
        if d.id:
            write_record(resource.type_name, d)
    return d


def apply(
    type_name: str,
    config: Dict[str, Any],
    client: AWSClient,
    resource_id: Optional[str] = None,
    cancel: Optional[threading.Event] = None,
) -> ResourceData:
    """
    Bring a remote resource in line with a configuration.

    An existing record is refreshed first; changes are then judged against
    the remote values. A subject that vanished remotely is created again.

    Args:
        type_name: Registered resource type
        config: Flat configuration
        client: Connection handle
        resource_id: ID of an existing stored record; None creates
        cancel: Event that aborts any wait when set

    Returns:
        ResourceData: The persisted record
    """
    resource = get_resource(type_name)
    if resource.validate:
        config = resource.validate(ResourceData(config))

    if resource_id is None:
        logger.info(f"Creating {type_name}")
        return _create(resource, config, client, cancel)

    prior = load_record(type_name, resource_id)
    resource.read(prior, client)

    if not prior.id:
        logger.warning(f"{type_name} {resource_id} no longer exists; recreating")
        remove_record(type_name, resource_id)
        return _create(resource, config, client, cancel)

    if _requires_replace(resource, config, prior) or (resource.update is None and _has_changes(resource, config, prior)):
        logger.info(f"Replacing {type_name} {resource_id}")
        resource.delete(prior, client, cancel)
        remove_record(type_name, resource_id)
        return _create(resource, config, client, cancel)

    if not _has_changes(resource, config, prior):
        write_record(type_name, prior)
        return prior

    computed = {k: v for k, v in prior.fields().items() if k in resource.computed_fields}
    d = ResourceData({**computed, **config}, resource_id=resource_id, schema_version=prior.schema_version)

    logger.info(f"Updating {type_name} {resource_id}")
    resource.update(d, client, cancel)

    if not d.id:
        remove_record(type_name, resource_id)
        raise NotFoundError(f"{type_name} ({resource_id}) no longer exists")

    write_record(type_name, d)
    return d


def refresh(type_name: str, resource_id: str, client: AWSClient) -> Optional[ResourceData]:
    """
    Re-read a stored record from AWS.

    Returns:
        ResourceData, or None when the remote object is gone (the stored
        record is removed)
    """
    resource = get_resource(type_name)
    d = load_record(type_name, resource_id)

    resource.read(d, client)

    if not d.id:
        remove_record(type_name, resource_id)
        return None

    write_record(type_name, d)
    return d


def destroy(type_name: str, resource_id: str, client: AWSClient,
            cancel: Optional[threading.Event] = None) -> None:
    """Delete the remote object and its stored record."""
    resource = get_resource(type_name)

    try:
        d = load_record(type_name, resource_id)
    except FileNotFoundError:
        d = ResourceData(resource_id=resource_id, schema_version=resource.schema_version)

    resource.delete(d, client, cancel)
    remove_record(type_name, resource_id)


def import_resource(type_name: str, resource_id: str, client: AWSClient) -> ResourceData:
    """
    Adopt an existing remote object into the record store.

    Raises:
        NotFoundError: If nothing exists under that ID
    """
    resource = get_resource(type_name)
    if resource.importer is None:
        raise ValueError(f"{type_name} doesn't support import")

    d = ResourceData(resource_id=resource_id, schema_version=resource.schema_version)
    d = resource.importer(d, client)
    resource.read(d, client)

    if not d.id:
        raise NotFoundError(f"Cannot import non-existent remote object ({type_name} {resource_id})")

    write_record(type_name, d)
    return d
