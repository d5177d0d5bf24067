"""Database Connection Module

Provides the declarative Base for the sample table and SQLAlchemy engine /
session factory construction. `DATABASE_URL` wins when set; otherwise the
engine targets Lakebase (Postgres in Databricks) and obtains a database
credential through the Databricks SDK on every new connection.
"""

import base64
import json
import os
import uuid
from typing import Optional

from databricks.sdk import WorkspaceClient
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from ttfb_monitor.lib.config import Settings

Base = declarative_base()


def is_lakebase_configured() -> bool:
    """Check if Lakebase environment variables are set."""
    postgres_host = os.getenv('PGHOST') or os.getenv('LAKEBASE_HOST')
    postgres_database = os.getenv('LAKEBASE_DATABASE')
    return bool(postgres_host and postgres_database)


def is_database_configured(settings: Settings) -> bool:
    """Check whether any sample store backend is configured."""
    return bool(settings.database_url) or is_lakebase_configured()


def _extract_username_from_token(token: str) -> str:
    """Extract the username from a JWT token's 'sub' claim.

    Raises:
        ValueError: If the token cannot be decoded or has no subject
    """
    parts = token.split('.')
    if len(parts) < 2:
        raise ValueError('Invalid JWT format')

    payload = parts[1]
    payload += '=' * (-len(payload) % 4)
    payload_data = json.loads(base64.urlsafe_b64decode(payload))

    username = payload_data.get('sub')
    if not username:
        raise ValueError("No 'sub' field in JWT token")
    return username


def get_lakebase_connection_string() -> str:
    """Build the Lakebase connection string.

    Username and password are supplied per connection by the do_connect
    listener installed in create_lakebase_engine().

    Raises:
        ValueError: If required environment variables are missing
    """
    postgres_host = os.getenv('PGHOST') or os.getenv('LAKEBASE_HOST')
    postgres_port = os.getenv('LAKEBASE_PORT', '5432')
    postgres_database = os.getenv('LAKEBASE_DATABASE')

    missing = []
    if not postgres_host:
        missing.append('PGHOST or LAKEBASE_HOST')
    if not postgres_database:
        missing.append('LAKEBASE_DATABASE')
    if missing:
        raise ValueError(f"Missing required configuration: {', '.join(missing)}")

    return (
        f'postgresql+psycopg://placeholder:@{postgres_host}:{postgres_port}/'
        f'{postgres_database}?sslmode=require'
    )


def create_lakebase_engine(pool_size: int = 10, max_overflow: int = 10) -> Engine:
    """Create a pooled engine for Lakebase using service principal credentials.

    Returns:
        Engine whose connections authenticate with a generated database credential
    """
    engine = create_engine(
        get_lakebase_connection_string(),
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
    )

    workspace_client = WorkspaceClient()
    instance_name = os.getenv('LAKEBASE_INSTANCE_NAME')
    if not instance_name:
        lakebase_host = os.getenv('PGHOST') or os.getenv('LAKEBASE_HOST') or ''
        # Host format: instance-{id}.database.cloud.databricks.com
        if 'instance-' in lakebase_host:
            instance_name = lakebase_host.split('.')[0]

    @event.listens_for(engine, 'do_connect')
    def provide_token(dialect, conn_rec, cargs, cparams):
        """Provide username and credential for each new Lakebase connection."""
        lakebase_token = os.getenv('LAKEBASE_TOKEN')

        if lakebase_token and not lakebase_token.startswith('dapi'):
            token = lakebase_token
        elif instance_name:
            cred = workspace_client.database.generate_database_credential(
                request_id=str(uuid.uuid4()), instance_names=[instance_name]
            )
            token = cred.token
        else:
            raise ValueError(
                'No valid Lakebase authentication method available. '
                'Set LAKEBASE_INSTANCE_NAME or LAKEBASE_TOKEN.'
            )

        cparams['user'] = _extract_username_from_token(token)
        cparams['password'] = token

    return engine


def create_engine_from_settings(settings: Settings) -> Engine:
    """Create the sample store engine.

    Raises:
        ValueError: If neither DATABASE_URL nor Lakebase is configured
    """
    if settings.database_url:
        return create_engine(settings.database_url, pool_pre_ping=True)

    if not is_lakebase_configured():
        raise ValueError(
            'Sample store is not configured. Set DATABASE_URL, or PGHOST/LAKEBASE_HOST '
            'and LAKEBASE_DATABASE for Lakebase.'
        )
    return create_lakebase_engine()


def create_session_factory(settings: Settings, engine: Optional[Engine] = None) -> sessionmaker:
    """Build a session factory bound to the configured engine.

    Usage:
        SessionFactory = create_session_factory(settings)
        with SessionFactory() as session:
            session.query(TtfbSample).count()
    """
    if engine is None:
        engine = create_engine_from_settings(settings)
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)
