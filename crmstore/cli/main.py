import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

import click

from crmstore import Person, PersonStore, StorageError, create_logger, create_store, load_config
from crmstore.core.config import CrmConfig
from crmstore.core.models import parse_sex


# -------------------------
# Helpers
# -------------------------


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _person_or_none(person: Optional[Person]) -> Optional[dict]:
    return person.to_dict() if person else None


@contextmanager
def _open_store(config: CrmConfig) -> Iterator[PersonStore]:
    """Open the configured store for one command; storage failures abort the command."""
    try:
        with create_store(config) as store:
            yield store
    except StorageError as e:
        raise click.ClickException(str(e)) from e


def _log_write(config: CrmConfig, person_id: str, change_type: str, changed: bool) -> None:
    logger = create_logger(config)
    if logger:
        logger.log_write(person_id, change_type, changed, tool=f"cli:{change_type}")


def _missing(person_id: str) -> None:
    click.echo(f"No person with id {person_id}", err=True)
    raise SystemExit(1)


def _person_options(func):
    """Shared options for add/update (everything except the required name/surname/age)."""
    func = click.option("--cv-summary", default="", help="Short CV summary")(func)
    func = click.option("--department", default="", help="Department")(func)
    func = click.option("--role", default="", help="Job title or position")(func)
    func = click.option(
        "--sex", type=click.Choice(["M", "F"], case_sensitive=False), default=None, help="Sex"
    )(func)
    func = click.option("--skill", "skills", multiple=True, help="Skill (repeatable)")(func)
    return func


# -------------------------
# CLI
# -------------------------


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML config file (default: ./crmstore.yaml or ./config.yaml)",
)
@click.option("--db", type=click.Path(path_type=Path), default=None, help="SQLite database file")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], db: Optional[Path]) -> None:
    """crmstore CLI.

    Look up, search and edit people in the CRM store, and run the MCP server.
    """
    overrides = {"storage": {"db_path": str(db.resolve())}} if db else None
    ctx.obj = load_config(config_path, overrides=overrides)


@cli.command("list")
@click.pass_obj
def list_persons(config: CrmConfig) -> None:
    """List every person."""
    with _open_store(config) as store:
        _echo_json([p.to_dict() for p in store.get_all()])


@cli.command("get")
@click.argument("person_id")
@click.pass_obj
def get_person(config: CrmConfig, person_id: str) -> None:
    """Show one person by ID."""
    with _open_store(config) as store:
        person = store.get_by_id(person_id)
    if person is None:
        _missing(person_id)
    _echo_json(person.to_dict())


@cli.command("find")
@click.option("--name", default=None, help="First-name prefix")
@click.option("--surname", default=None, help="Surname prefix")
@click.option("--skill", default=None, help="Exact skill")
@click.option("--department", default=None, help="Exact department")
@click.option("--role", default=None, help="Exact role")
@click.pass_obj
def find_persons(
    config: CrmConfig,
    name: Optional[str],
    surname: Optional[str],
    skill: Optional[str],
    department: Optional[str],
    role: Optional[str],
) -> None:
    """Look people up by one field (case-insensitive).

    --name and --surname return the first match; the others return a list.
    """
    given = [opt for opt, value in (
        ("--name", name),
        ("--surname", surname),
        ("--skill", skill),
        ("--department", department),
        ("--role", role),
    ) if value is not None]
    if len(given) != 1:
        raise click.UsageError("Pass exactly one of --name, --surname, --skill, --department, --role")

    with _open_store(config) as store:
        if name is not None:
            _echo_json(_person_or_none(store.get_by_name(name)))
        elif surname is not None:
            _echo_json(_person_or_none(store.get_by_surname(surname)))
        elif skill is not None:
            _echo_json([p.to_dict() for p in store.get_by_skill(skill)])
        elif department is not None:
            _echo_json([p.to_dict() for p in store.get_by_department(department)])
        else:
            _echo_json([p.to_dict() for p in store.get_by_role(role)])


@cli.command("search")
@click.argument("query")
@click.pass_obj
def search_persons(config: CrmConfig, query: str) -> None:
    """Substring search over names, role, department, CV summary and skills."""
    with _open_store(config) as store:
        _echo_json([p.to_dict() for p in store.search(query)])


@cli.command("add")
@click.option("--name", required=True, help="First name")
@click.option("--surname", required=True, help="Surname")
@click.option("--age", required=True, type=click.IntRange(min=0), help="Age in years")
@_person_options
@click.pass_obj
def add_person(
    config: CrmConfig,
    name: str,
    surname: str,
    age: int,
    skills: Tuple[str, ...],
    sex: Optional[str],
    role: str,
    department: str,
    cv_summary: str,
) -> None:
    """Add a person and print it with its new ID."""
    with _open_store(config) as store:
        person = store.add(
            name,
            surname,
            age,
            skills=list(skills),
            sex=parse_sex(sex),
            role=role,
            department=department,
            cv_summary=cv_summary,
        )
    _log_write(config, person.id, "create", True)
    _echo_json(person.to_dict())


@cli.command("update")
@click.argument("person_id")
@click.option("--name", required=True, help="First name")
@click.option("--surname", required=True, help="Surname")
@click.option("--age", required=True, type=click.IntRange(min=0), help="Age in years")
@_person_options
@click.pass_obj
def update_person(
    config: CrmConfig,
    person_id: str,
    name: str,
    surname: str,
    age: int,
    skills: Tuple[str, ...],
    sex: Optional[str],
    role: str,
    department: str,
    cv_summary: str,
) -> None:
    """Replace all fields of a person. Options left out are reset."""
    with _open_store(config) as store:
        person = store.update(
            person_id,
            name,
            surname,
            age,
            skills=list(skills),
            sex=parse_sex(sex),
            role=role,
            department=department,
            cv_summary=cv_summary,
        )
    _log_write(config, person_id, "update", person is not None)
    if person is None:
        _missing(person_id)
    _echo_json(person.to_dict())


@cli.command("delete")
@click.argument("person_id")
@click.pass_obj
def delete_person(config: CrmConfig, person_id: str) -> None:
    """Delete a person by ID."""
    with _open_store(config) as store:
        deleted = store.delete(person_id)
    _log_write(config, person_id, "delete", deleted)
    if not deleted:
        _missing(person_id)
    _echo_json({"id": person_id, "deleted": True})


@cli.command("stats")
@click.pass_obj
def stats(config: CrmConfig) -> None:
    """Show count, average age, oldest, most skilled and the skill histogram."""
    with _open_store(config) as store:
        _echo_json({
            "count": store.count(),
            "average_age": store.get_average_age(),
            "oldest": _person_or_none(store.get_oldest_person()),
            "most_skilled": _person_or_none(store.get_most_skilled_person()),
            "skills": store.get_skill_statistics(),
        })


@cli.command("logs")
@click.option("--session", default=None, help="Session ID to inspect (defaults to latest)")
@click.option("--errors", "show_errors", is_flag=True, default=False, help="List recent errors instead")
@click.option("--limit", default=20, show_default=True, type=int, help="Maximum errors to list")
@click.pass_obj
def logs(config: CrmConfig, session: Optional[str], show_errors: bool, limit: int) -> None:
    """Summarize logged activity for a session."""
    from crmstore.core.observability import ObservabilityLogger

    logs_db = config.observability.db_path
    if not logs_db.exists():
        click.echo(f"No log database found at {logs_db}.")
        return

    logger = ObservabilityLogger(logs_db)
    if show_errors:
        entries: List[dict] = [
            {"ts": e.ts, "session": e.session, **e.data} for e in logger.get_errors(limit=limit)
        ]
        _echo_json(entries)
        return

    session = session or logger.latest_session()
    if session is None:
        click.echo("No sessions logged yet.")
        return
    _echo_json(logger.get_session_summary(session))


@cli.command("serve")
@click.pass_obj
def serve(config: CrmConfig) -> None:
    """Run the MCP server over stdio."""
    from crmstore.mcp.server import MCP_AVAILABLE
    from crmstore.mcp.server import serve as run

    if not MCP_AVAILABLE:
        raise click.ClickException("MCP package not installed. Install with: pip install 'crmstore[mcp]'")
    try:
        run(config)
    except StorageError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    cli()
