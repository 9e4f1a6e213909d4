"""
Deployar - a self-hosted console for running saved and ad-hoc shell commands.

Operators store named command templates (a working directory plus a command
string), trigger them or one-off commands over HTTP or the CLI, and poll the
resulting execution records for output, exit code, and timing.

Packages:
    deployar.core        Settings, structured logging, errors, snapshot storage
    deployar.execution   Execution records, record store, shell runner, engine
    deployar.catalog     Saved command templates
    deployar.auth        Users, password hashing, Basic-auth parsing
    deployar.api         FastAPI application factory and routers
    deployar.cli         Typer command-line interface
"""

__version__ = "0.1.0"
