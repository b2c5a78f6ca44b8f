"""Main CLI entrypoint for Rekon."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click

from ..config import load_settings
from ..conns import AWSClient
from ..errors import NotFoundError, RekonError, ResourceValidationError, WaitTimeoutError
from ..provider import apply, destroy, import_resource, refresh
from ..sagemaker.model_package_group import RESOURCE_TYPE as GROUP_TYPE
from ..sagemaker.model_package_group_policy import RESOURCE_TYPE as POLICY_TYPE
from ..ssm.association import read as read_association
from ..ssm.schema import RESOURCE_TYPE as ASSOCIATION_TYPE
from ..ssm.status import wait_association_success
from ..state import ResourceData, list_records, record_exists

logger = logging.getLogger(__name__)


EXIT_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_INTERRUPTED = 130


@click.group()
@click.option('--json', 'output_json', is_flag=True, help='Output machine-readable JSON')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option('--region', help='AWS region')
@click.option('--profile', help='Named AWS profile to use')
@click.pass_context
def main(ctx, output_json, verbose, region, profile):
    """Rekon - reconcile AWS resources against declarative records."""
    ctx.ensure_object(dict)
    settings = load_settings(region=region, profile=profile, log_level='DEBUG' if verbose else None)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    ctx.obj['json'] = output_json
    ctx.obj['settings'] = settings


def _client(ctx) -> AWSClient:
    """Build the AWS connection handle once per invocation."""
    if ctx.obj.get('client') is None:
        ctx.obj['client'] = AWSClient.from_settings(ctx.obj['settings'])
    return ctx.obj['client']


def _json_output(data: Dict[str, Any]) -> None:
    """Output data as JSON."""
    click.echo(json.dumps(data, indent=None, sort_keys=True))


def _human_output(message: str) -> None:
    """Output human-readable message."""
    if not click.get_current_context().obj.get('json', False):
        click.echo(message)


def _load_json_file(path: str) -> Dict[str, Any]:
    with open(Path(path)) as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise ResourceValidationError("", f"{path} must contain a JSON object, not {type(config).__name__}")
    return config


def _interrupted(action: str) -> None:
    """Report Ctrl-C and exit."""
    _human_output(f"\n👋 Stopped {action}")
    sys.exit(EXIT_INTERRUPTED)


def _emit_record(d: Optional[ResourceData], label: str) -> None:
    ctx = click.get_current_context()
    if ctx.obj.get('json'):
        _json_output(d.to_dict() if d else {'id': None})
        return

    if d is None:
        click.echo(f"⚠️  {label} no longer exists; record removed")
        return

    click.echo(f"{label}: {click.style(d.id, fg='green')}")
    for key, value in sorted(d.fields().items()):
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        click.echo(f"  {key} = {value}")


def _fail(err: Exception) -> None:
    """Report an error and exit with a code matching its kind."""
    ctx = click.get_current_context()
    code = EXIT_NOT_FOUND if isinstance(err, (NotFoundError, FileNotFoundError)) else EXIT_ERROR

    if isinstance(err, ResourceValidationError):
        kind = 'validation_error'
    elif isinstance(err, WaitTimeoutError):
        kind = 'timeout'
    elif code == EXIT_NOT_FOUND:
        kind = 'not_found'
    else:
        kind = 'error'

    logger.debug(f"Command failed: {err!r}")
    if ctx.obj.get('json'):
        _json_output({'error': {'code': kind, 'message': str(err)}})
    else:
        click.echo(f"❌ {err}", err=True)
    sys.exit(code)


@main.group()
def association():
    """Manage SSM associations."""


@association.command('create')
@click.argument('config_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--wait', 'wait_seconds', type=click.IntRange(min=0), help='Wait up to N seconds for Success')
@click.pass_context
def association_create(ctx, config_file, wait_seconds):
    """Create an association from a JSON config file."""
    try:
        config = _load_json_file(config_file)
        if wait_seconds is not None:
            config['wait_for_success_timeout_seconds'] = wait_seconds
        d = apply(ASSOCIATION_TYPE, config, _client(ctx))
        _human_output(f"✅ Created SSM association {d.id}")
        _emit_record(d, 'Association')
    except KeyboardInterrupt:
        _interrupted('creating SSM association')
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@association.command('show')
@click.argument('association_id')
@click.pass_context
def association_show(ctx, association_id):
    """Refresh and show a stored association."""
    try:
        d = refresh(ASSOCIATION_TYPE, association_id, _client(ctx))
        _emit_record(d, 'Association')
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@association.command('update')
@click.argument('association_id')
@click.argument('config_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def association_update(ctx, association_id, config_file):
    """Update (or replace) an association from a JSON config file."""
    try:
        config = _load_json_file(config_file)
        d = apply(ASSOCIATION_TYPE, config, _client(ctx), resource_id=association_id)
        _human_output(f"🔄 Applied SSM association {d.id}")
        _emit_record(d, 'Association')
    except KeyboardInterrupt:
        _interrupted('updating SSM association')
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@association.command('delete')
@click.argument('association_id')
@click.option('--yes', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def association_delete(ctx, association_id, yes):
    """Delete an association."""
    if not yes and not click.confirm(f"Are you sure you want to delete association {association_id}?"):
        _human_output("❌ Deletion cancelled")
        return
    try:
        destroy(ASSOCIATION_TYPE, association_id, _client(ctx))
        if ctx.obj.get('json'):
            _json_output({'id': association_id, 'deleted': True})
        else:
            _human_output(f"🗑️  Deleted SSM association {association_id}")
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@association.command('import')
@click.argument('association_id')
@click.pass_context
def association_import(ctx, association_id):
    """Adopt an existing association into the record store."""
    try:
        d = import_resource(ASSOCIATION_TYPE, association_id, _client(ctx))
        _human_output(f"📥 Imported SSM association {d.id}")
        _emit_record(d, 'Association')
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@association.command('wait')
@click.argument('association_id')
@click.option('--timeout', type=click.IntRange(min=0), required=True, help='Seconds to wait; 0 returns at once')
@click.pass_context
def association_wait(ctx, association_id, timeout):
    """Wait for an association to reach Success."""
    client = _client(ctx)
    try:
        output = wait_association_success(client.ssm_conn(), association_id, timeout)
        d = ResourceData(resource_id=association_id)
        read_association(d, client)
        if output is None:
            _human_output("⏭️  Timeout is 0; not waiting")
        else:
            _human_output(f"✅ SSM association {association_id} succeeded")
        _emit_record(d if d.id else None, 'Association')
    except KeyboardInterrupt:
        _interrupted('waiting')
    except (RekonError, ValueError) as e:
        _fail(e)


@main.group()
def sagemaker():
    """Manage SageMaker model package groups and their policies."""


@sagemaker.command('group-create')
@click.argument('name')
@click.option('--description', help='Model package group description')
@click.pass_context
def group_create(ctx, name, description):
    """Create a model package group."""
    try:
        config = {'model_package_group_name': name}
        if description:
            config['model_package_group_description'] = description
        d = apply(GROUP_TYPE, config, _client(ctx))
        _human_output(f"✅ Created model package group {d.id}")
        _emit_record(d, 'Model package group')
    except KeyboardInterrupt:
        _interrupted('creating model package group')
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@sagemaker.command('group-delete')
@click.argument('name')
@click.pass_context
def group_delete(ctx, name):
    """Delete a model package group."""
    try:
        destroy(GROUP_TYPE, name, _client(ctx))
        if ctx.obj.get('json'):
            _json_output({'id': name, 'deleted': True})
        else:
            _human_output(f"🗑️  Deleted model package group {name}")
    except KeyboardInterrupt:
        _interrupted('deleting model package group')
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@sagemaker.command('policy-put')
@click.argument('name')
@click.argument('policy_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def policy_put(ctx, name, policy_file):
    """Attach or replace a model package group's resource policy."""
    try:
        with open(policy_file) as f:
            config = {'model_package_group_name': name, 'resource_policy': f.read()}
        resource_id = name if record_exists(POLICY_TYPE, name) else None
        d = apply(POLICY_TYPE, config, _client(ctx), resource_id=resource_id)
        _human_output(f"✅ Applied policy to model package group {d.id}")
        _emit_record(d, 'Model package group policy')
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@sagemaker.command('policy-show')
@click.argument('name')
@click.pass_context
def policy_show(ctx, name):
    """Refresh and show a stored model package group policy."""
    try:
        d = refresh(POLICY_TYPE, name, _client(ctx))
        _emit_record(d, 'Model package group policy')
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@sagemaker.command('policy-delete')
@click.argument('name')
@click.pass_context
def policy_delete(ctx, name):
    """Remove a model package group's resource policy."""
    try:
        destroy(POLICY_TYPE, name, _client(ctx))
        if ctx.obj.get('json'):
            _json_output({'id': name, 'deleted': True})
        else:
            _human_output(f"🗑️  Deleted policy of model package group {name}")
    except (RekonError, ValueError, OSError) as e:
        _fail(e)


@main.command()
@click.option('--type', 'resource_type', help='Only list records of this resource type')
@click.pass_context
def records(ctx, resource_type):
    """List stored records."""
    found = list_records(resource_type)
    if ctx.obj.get('json'):
        _json_output({'records': [{'type': t, 'id': i} for t, i in found]})
        return

    if not found:
        click.echo("No records")
        return
    for type_name, resource_id in found:
        click.echo(f"{type_name}  {resource_id}")


@main.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=7000, help="Port to bind to")
def serve(host: str, port: int):
    """
    Start the REST API server.
    """
    import uvicorn
    from ..api import app

    click.echo(f"Starting Rekon API server on {host}:{port}")
    uvicorn.run(app, host=host, port=port)


if __name__ == '__main__':
    main()
