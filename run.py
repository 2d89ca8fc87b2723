#!/usr/bin/env python3
"""Application entry point."""
import os

import click
from dotenv import load_dotenv

load_dotenv()

from weldtrack import create_app  # noqa: E402
from weldtrack.extensions import db  # noqa: E402
from weldtrack.models import (  # noqa: E402
    Project, Drawing, Component, FieldWeld, Welder, TestPackage,
)

# Get config from environment or use development
config_name = os.environ.get('FLASK_CONFIG') or 'development'
app = create_app(config_name)


@app.shell_context_processor
def make_shell_context():
    """Make database and models available in flask shell."""
    return {
        'db': db, 'Project': Project, 'Drawing': Drawing, 'Component': Component,
        'FieldWeld': FieldWeld, 'Welder': Welder, 'TestPackage': TestPackage,
    }


@app.cli.command('init-db')
def init_db():
    """Initialize the database."""
    db.create_all()
    click.echo('Database initialized!')


@app.cli.command('seed-templates')
def seed_templates():
    """Install the standard progress templates."""
    from weldtrack.services.seed_data import seed_progress_templates
    count = seed_progress_templates()
    click.echo(f'Seeded {count} progress templates.')


@app.cli.command('create-project')
@click.argument('name')
@click.option('--description', default=None, help='Optional project description.')
def create_project(name, description):
    """Create a project."""
    from weldtrack.services.exceptions import ConflictError
    from weldtrack.services.project_service import create_project as _create
    try:
        project = _create({'name': name, 'description': description})
    except ConflictError as e:
        raise click.ClickException(e.message)
    click.echo(f'Project {project.name} created with id {project.id}.')


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5004, debug=True)
