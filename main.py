#!/usr/bin/env python3
"""
LFS Metadata Store - Administration Entry Point

Command-line interface for the object metadata and credential store.

Usage:
    python main.py setup
    python main.py add-user alice --password secret
    python main.py users
    python main.py put <oid> <size> --user alice --password secret
"""

import os
import sys
from contextlib import contextmanager
from dataclasses import replace
from typing import Optional

import click

from lfs_metadata.config.config_manager import get_config, reset_config
from lfs_metadata.metadata import MetadataStore, MetaStoreError
from lfs_metadata.metadata.auth import basic_auth_header
from lfs_metadata.utils.logging_config import configure_logging, get_logger


@click.group()
@click.option('--config', type=str, help='Configuration file path')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              default=None, help='Logging level')
@click.option('--db', 'db_path', type=str, help='Metadata store file (overrides configuration)')
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str], db_path: Optional[str]):
    """LFS Metadata Store"""
    if config:
        reset_config(config)

    try:
        app_config = get_config()
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    if db_path:
        app_config = replace(app_config, store=replace(app_config.store, db_path=db_path))

    log_level = log_level or app_config.logging.log_level
    os.environ['LOG_LEVEL'] = log_level
    configure_logging(log_level, app_config.logging.log_format)

    ctx.obj = app_config
    get_logger(__name__).debug("LFS metadata CLI initialized",
                               log_level=log_level,
                               db_path=app_config.store.db_path)


@contextmanager
def open_store(ctx: click.Context):
    """Open the configured store for one command and always close it"""
    logger = get_logger(__name__)
    try:
        with MetadataStore.from_config(ctx.obj) as store:
            yield store
    except (MetaStoreError, ValueError) as e:
        logger.error(f"Command failed: {e}")
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def setup(ctx: click.Context):
    """Create the store file and its buckets"""
    with open_store(ctx) as store:
        click.echo(f"✅ Metadata store ready: {store.db_path}")


@cli.command('add-user')
@click.argument('name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True,
              help='Password for the user')
@click.pass_context
def add_user(ctx: click.Context, name: str, password: str):
    """Add a user or replace its password"""
    with open_store(ctx) as store:
        store.add_user(name, password)
        click.echo(f"✅ User {name} saved")


@cli.command('delete-user')
@click.argument('name')
@click.pass_context
def delete_user(ctx: click.Context, name: str):
    """Delete a user (no error if absent)"""
    with open_store(ctx) as store:
        store.delete_user(name)
        click.echo(f"✅ User {name} deleted")


@cli.command()
@click.pass_context
def users(ctx: click.Context):
    """List registered users"""
    with open_store(ctx) as store:
        found = store.users()
        if not found:
            click.echo("No users found")
            return
        for user in found:
            click.echo(user.name)


@cli.command()
@click.pass_context
def objects(ctx: click.Context):
    """List tracked objects and their sizes"""
    with open_store(ctx) as store:
        found = store.objects()
        if not found:
            click.echo("No objects found")
            return
        for meta in found:
            click.echo(f"{meta.oid} {meta.size}")


@cli.command()
@click.argument('oid')
@click.argument('size', type=int)
@click.option('--user', required=True, help='User name for Basic authentication')
@click.option('--password', prompt=True, hide_input=True, help='Password for Basic authentication')
@click.pass_context
def put(ctx: click.Context, oid: str, size: int, user: str, password: str):
    """Register object metadata unless the oid is already known"""
    with open_store(ctx) as store:
        meta = store.put(basic_auth_header(user, password), oid, size)
        status = "already exists" if meta.existing else "created"
        click.echo(f"{meta.oid} {meta.size} ({status})")


@cli.command()
@click.argument('oid')
@click.option('--user', required=True, help='User name for Basic authentication')
@click.option('--password', prompt=True, hide_input=True, help='Password for Basic authentication')
@click.pass_context
def get(ctx: click.Context, oid: str, user: str, password: str):
    """Show stored metadata for an oid"""
    with open_store(ctx) as store:
        meta = store.get(basic_auth_header(user, password), oid)
        click.echo(f"{meta.oid} {meta.size}")


if __name__ == '__main__':
    cli()
