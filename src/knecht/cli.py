"""Click CLI entrypoint — `knecht <subcommand>`.

Every call is stateless: one command, one library call. JSON output by
default, --human for text.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import click

from knecht.config import LedgerConfig, load_config
from knecht.defaults import resolve_ledger_dir, resolve_log_level
from knecht.errors import InvalidTask, KnechtError
from knecht.fs import LedgerDir
from knecht.output import output
from knecht.tasks import (
    Format,
    Status,
    TaskStore,
    deliver_task,
    done_task,
    parse_task_ref,
    rank,
    start_task,
)

log = logging.getLogger(__name__)


def _setup_logging(verbose: bool, config: LedgerConfig) -> None:
    level = logging.DEBUG if verbose else resolve_log_level(config.log_level)
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("knecht").setLevel(level)


def _run(ctx: click.Context, action: Callable[[TaskStore], dict[str, object]], require_init: bool = True) -> None:
    """Open the store, run one action, print the result or the error."""
    ledger = LedgerDir(ctx.obj["ledger_dir"])
    if require_init and not ledger.exists():
        output(
            {"error": f"No ledger at {ledger.path}. Run 'knecht init' first.", "kind": "not_initialized"},
            ctx.obj["human"],
        )
    try:
        data = action(TaskStore(ledger))
    except KnechtError as exc:
        log.debug("%s failed: %s", ctx.command_path, exc)
        data = {"error": str(exc), "kind": exc.kind}
    output(data, ctx.obj["human"])


def _split_ids(raw: str) -> list[int]:
    return [parse_task_ref(part) for part in raw.split(",") if part.strip()]


def _expect_keyword(word: str, expected: str) -> None:
    if word != expected:
        raise InvalidTask(f"Expected '{expected}', got '{word}'")


@click.group()
@click.version_option(package_name="knecht")
@click.option("-C", "project_dir", default=None, type=click.Path(file_okay=False), help="Run as if started in this directory")
@click.option("--human", is_flag=True, help="Human-readable output instead of JSON")
@click.option("--verbose", is_flag=True, help="Debug logging on stderr")
@click.pass_context
def cli(ctx: click.Context, project_dir: str | None, human: bool, verbose: bool) -> None:
    """knecht — git-friendly task ledger."""
    ctx.ensure_object(dict)
    ledger_dir = resolve_ledger_dir(project_dir)
    ctx.obj["human"] = human
    ctx.obj["ledger_dir"] = ledger_dir
    try:
        config = load_config(ledger_dir)
    except (OSError, ValueError) as exc:
        output({"error": str(exc), "kind": "config_error"}, human)
    ctx.obj["config"] = config
    _setup_logging(verbose, config)


# =========================================================================
# Ledger
# =========================================================================

@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create .knecht/ with an empty tasks file."""
    def action(store: TaskStore) -> dict[str, object]:
        created = store.init()
        return {
            "status": "initialized" if created else "already_initialized",
            "path": str(Path(ctx.obj["ledger_dir"])),
        }
    _run(ctx, action, require_init=False)


@cli.command()
@click.option("--no-backup", is_flag=True, help="Do not keep tasks.pipe-backup")
@click.pass_context
def migrate(ctx: click.Context, no_backup: bool) -> None:
    """Rewrite a pipe-delimited tasks file in the quoted format."""
    def action(store: TaskStore) -> dict[str, object]:
        fmt = store.migrate(backup=not no_backup)
        return {"status": "migrated" if fmt is Format.LEGACY else "already_current", "from": fmt.value}
    _run(ctx, action)


# =========================================================================
# Tasks
# =========================================================================

@cli.command()
@click.argument("title", nargs=-1, required=True)
@click.option("-d", "--description", default="", help="Free-form description")
@click.option("-b", "--blocked-by", default="", help="Comma-separated blocker ids")
@click.pass_context
def add(ctx: click.Context, title: tuple[str, ...], description: str, blocked_by: str) -> None:
    """Create a task."""
    def action(store: TaskStore) -> dict[str, object]:
        task = store.create(" ".join(title), description, _split_ids(blocked_by))
        return {"status": "created", "task": task.to_dict()}
    _run(ctx, action)


@cli.command("list")
@click.option("--status", default="", help="open, delivered or done")
@click.pass_context
def list_cmd(ctx: click.Context, status: str) -> None:
    """List tasks in creation order."""
    def action(store: TaskStore) -> dict[str, object]:
        wanted = Status.parse(status) if status else None
        return {"tasks": [t.to_dict() for t in store.list(wanted)]}
    _run(ctx, action)


@cli.command()
@click.argument("task_ref")
@click.pass_context
def show(ctx: click.Context, task_ref: str) -> None:
    """Show a task with its blockers and the tasks it blocks."""
    def action(store: TaskStore) -> dict[str, object]:
        task_id = parse_task_ref(task_ref)
        task = store.get(task_id)
        return {
            "task": task.to_dict(),
            "blockers": [b.to_dict() for b in store.blockers(task_id)],
            "blocks": [t.to_dict() for t in store.dependents(task_id)],
        }
    _run(ctx, action)


@cli.command("status")
@click.argument("task_ref")
@click.argument("status")
@click.pass_context
def status_cmd(ctx: click.Context, task_ref: str, status: str) -> None:
    """Set any status, no transition rules."""
    def action(store: TaskStore) -> dict[str, object]:
        task = store.set_status(parse_task_ref(task_ref), Status.parse(status))
        return {"status": task.status.value, "task": task.to_dict()}
    _run(ctx, action)


@cli.command()
@click.argument("task_ref")
@click.pass_context
def start(ctx: click.Context, task_ref: str) -> None:
    """Show a task to work on. Refused while it has open blockers."""
    _run(ctx, lambda store: start_task(store, parse_task_ref(task_ref)))


@cli.command()
@click.argument("task_ref")
@click.pass_context
def deliver(ctx: click.Context, task_ref: str) -> None:
    """Mark a task delivered (pending verification)."""
    _run(ctx, lambda store: deliver_task(store, parse_task_ref(task_ref)))


@cli.command()
@click.argument("task_ref")
@click.pass_context
def done(ctx: click.Context, task_ref: str) -> None:
    """Mark a task done. Skipping the suggested task adds to its pain."""
    config: LedgerConfig = ctx.obj["config"]
    _run(ctx, lambda store: done_task(
        store,
        parse_task_ref(task_ref),
        skip_penalty=config.skip_penalty,
        record_note=config.record_pain_notes,
    ))


@cli.command()
@click.argument("task_ref")
@click.option("-t", "--title", default=None)
@click.option("-d", "--description", default=None, help="Replaces the description; '' clears it")
@click.pass_context
def update(ctx: click.Context, task_ref: str, title: str | None, description: str | None) -> None:
    """Change a task's title and/or description."""
    def action(store: TaskStore) -> dict[str, object]:
        if title is None and description is None:
            raise InvalidTask("Nothing to update: pass -t and/or -d")
        task = store.update_fields(parse_task_ref(task_ref), title=title, description=description)
        return {"status": "updated", "task": task.to_dict()}
    _run(ctx, action)


@cli.command()
@click.option("-t", "--task", "task_ref", required=True, help="Task that caused the pain")
@click.option("-d", "--description", "note", required=True, help="What hurt")
@click.pass_context
def pain(ctx: click.Context, task_ref: str, note: str) -> None:
    """Record one instance of pain caused by a missing task."""
    config: LedgerConfig = ctx.obj["config"]

    def action(store: TaskStore) -> dict[str, object]:
        task = store.increment_pain(parse_task_ref(task_ref), note, record_note=config.record_pain_notes)
        return {"status": "pain_recorded", "task": task.to_dict()}
    _run(ctx, action)


@cli.command()
@click.argument("task_ref")
@click.pass_context
def delete(ctx: click.Context, task_ref: str) -> None:
    """Delete a task. Its id is never reused."""
    def action(store: TaskStore) -> dict[str, object]:
        task = store.delete(parse_task_ref(task_ref))
        return {"status": "deleted", "task": task.to_dict()}
    _run(ctx, action)


# =========================================================================
# Blockers
# =========================================================================

@cli.command()
@click.argument("task_ref")
@click.argument("keyword", metavar="by")
@click.argument("blocker_ref")
@click.pass_context
def block(ctx: click.Context, task_ref: str, keyword: str, blocker_ref: str) -> None:
    """knecht block TASK by BLOCKER"""
    def action(store: TaskStore) -> dict[str, object]:
        _expect_keyword(keyword, "by")
        task = store.add_blocker(parse_task_ref(task_ref), parse_task_ref(blocker_ref))
        return {"status": "blocker_added", "task": task.to_dict()}
    _run(ctx, action)


@cli.command()
@click.argument("task_ref")
@click.argument("keyword", metavar="from")
@click.argument("blocker_ref")
@click.pass_context
def unblock(ctx: click.Context, task_ref: str, keyword: str, blocker_ref: str) -> None:
    """knecht unblock TASK from BLOCKER"""
    def action(store: TaskStore) -> dict[str, object]:
        _expect_keyword(keyword, "from")
        task = store.remove_blocker(parse_task_ref(task_ref), parse_task_ref(blocker_ref))
        return {"status": "blocker_removed", "task": task.to_dict()}
    _run(ctx, action)


# =========================================================================
# Work selection
# =========================================================================

@cli.command()
@click.pass_context
def ready(ctx: click.Context) -> None:
    """Open, unblocked tasks in priority order."""
    _run(ctx, lambda store: {"tasks": [t.to_dict() for t in rank(store.ready())]})


@cli.command("next")
@click.pass_context
def next_cmd(ctx: click.Context) -> None:
    """Suggest the one task to work on now."""
    def action(store: TaskStore) -> dict[str, object]:
        task = store.next()
        return {"task": task.to_dict() if task else None}
    _run(ctx, action)


if __name__ == "__main__":
    cli()
