"""
Command Line Interface for PromptShelf.
"""

import click
from contextlib import contextmanager
from datetime import datetime
from typing import Optional, Sequence
from .version import VERSION
from .data import ShelfContext
from .models import ItemKind
from .recovery import ShelfError
from .store import HierarchyStore


def _short(item_id: str) -> str:
    return item_id[:8]


def _require_name(value: str, what: str) -> str:
    """Names are trimmed and must not be blank; the store accepts anything."""
    value = value.strip()
    if not value:
        raise click.BadParameter(f"{what} cannot be empty")
    return value


def _resolve(items: Sequence, ref: str, what: str, name_attr: str = "name"):
    """Find an item by full id, unique id prefix, or exact name."""
    for item in items:
        if item.id == ref:
            return item
    by_prefix = [item for item in items if item.id.startswith(ref)]
    if len(by_prefix) == 1:
        return by_prefix[0]
    by_name = [item for item in items if getattr(item, name_attr) == ref]
    if len(by_name) == 1:
        return by_name[0]
    if len(by_prefix) > 1 or len(by_name) > 1:
        raise click.ClickException(f"'{ref}' matches more than one {what}, use its id")
    raise click.ClickException(f"No {what} matching '{ref}'")


def _age(moment: datetime) -> str:
    minutes = int((datetime.now() - moment).total_seconds() // 60)
    if minutes < 60:
        return f"{minutes}m ago"
    return f"{minutes // 60}h{minutes % 60:02d}m ago"


@contextmanager
def _open_shelf(ctx: click.Context, sweep_on_load: bool = True):
    shelf = ShelfContext(ctx.obj["data_dir"], sweep_on_load=sweep_on_load)
    try:
        with shelf as store:
            yield store
    except ShelfError as e:
        raise click.ClickException(str(e)) from e


def _project(store: HierarchyStore, ref: Optional[str]):
    """The project named by --project, or the current one."""
    if ref is None:
        project = store.current_project()
        if project is None or project.is_deleted:
            raise click.ClickException("No project selected, use 'shelf project use' or --project")
        return project
    return _resolve(store.projects, ref, "project")


def _task(store: HierarchyStore, project, ref: Optional[str]):
    """The task named by --task, or the current one."""
    if ref is None:
        task = project.find_task(store.current_task_id) if store.current_task_id else None
        if task is None or task.is_deleted:
            raise click.ClickException("No task selected, use 'shelf task use' or --task")
        return task
    return _resolve(project.tasks, ref, "task")


def _moved(items: list, item, position: int) -> list:
    """Return the active list with `item` moved to 1-based `position`."""
    if not 1 <= position <= len(items):
        raise click.BadParameter(f"position must be between 1 and {len(items)}")
    ordered = [i for i in items if i.id != item.id]
    ordered.insert(position - 1, item)
    return ordered


@click.group()
@click.version_option(version=VERSION, prog_name="shelf")
@click.option('--data-dir', type=click.Path(file_okay=False), default=None,
              help='Directory holding shelf.yml (default: $PROMPTSHELF_DATA_DIR or ~/.local/share/promptshelf/data)')
@click.pass_context
def main(ctx, data_dir):
    """
    PromptShelf - organize reusable prompts into projects and tasks.

    Deleted items go to the trash and are removed for good after 24 hours.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir


@main.command()
@click.pass_context
def status(ctx):
    """Show the shelf location, counts and current selection."""
    with _open_shelf(ctx) as store:
        click.echo("🗂️  PromptShelf")
        click.echo(f"📦 Version: {VERSION}")
        click.echo(f"📁 Data: {ShelfContext(ctx.obj['data_dir']).path}")
        projects = store.active_projects()
        tasks = sum(len(store.active_tasks(p.id)) for p in projects)
        click.echo(f"📋 {len(projects)} project(s), {tasks} task(s), {len(store.trash_items())} item(s) in trash")
        project = store.current_project()
        task = store.current_task()
        click.echo(f"📍 Project: {project.name if project else '-'}")
        click.echo(f"📍 Task: {task.name if task else '-'}")


# --- Projects ---

@main.group()
def project():
    """Manage projects."""
    pass


@project.command("add")
@click.argument('name')
@click.pass_context
def project_add(ctx, name):
    """Create a project and select it."""
    name = _require_name(name, "Project name")
    with _open_shelf(ctx) as store:
        project_id = store.create_project(name)
        click.echo(f"✅ Created project '{name}' ({_short(project_id)})")


@project.command("list")
@click.pass_context
def project_list(ctx):
    """List active projects in display order."""
    with _open_shelf(ctx) as store:
        projects = store.active_projects()
        if not projects:
            click.echo("📭 No projects")
            return
        for index, p in enumerate(projects, start=1):
            marker = "*" if p.id == store.current_project_id else " "
            active_tasks = len([t for t in p.tasks if not t.is_deleted])
            click.echo(f"{marker} {index}. {p.name}  [{_short(p.id)}]  {active_tasks} task(s)")


@project.command("rename")
@click.argument('ref')
@click.argument('name')
@click.pass_context
def project_rename(ctx, ref, name):
    """Rename a project."""
    name = _require_name(name, "Project name")
    with _open_shelf(ctx) as store:
        p = _resolve(store.projects, ref, "project")
        store.rename_project(p.id, name)
        click.echo(f"✏️  Renamed '{p.name}' to '{name}'")


@project.command("rm")
@click.argument('ref')
@click.pass_context
def project_rm(ctx, ref):
    """Move a project to the trash."""
    with _open_shelf(ctx) as store:
        p = _resolve(store.active_projects(), ref, "project")
        store.soft_delete_project(p.id)
        click.echo(f"🗑️  Moved project '{p.name}' to the trash")


@project.command("restore")
@click.argument('ref')
@click.pass_context
def project_restore(ctx, ref):
    """Bring a project back from the trash."""
    with _open_shelf(ctx) as store:
        p = _resolve([p for p in store.projects if p.is_deleted], ref, "trashed project")
        store.restore_project(p.id)
        click.echo(f"♻️  Restored project '{p.name}'")


@project.command("purge")
@click.argument('ref')
@click.confirmation_option(prompt='Permanently delete this project and everything in it?')
@click.pass_context
def project_purge(ctx, ref):
    """Permanently delete a project."""
    with _open_shelf(ctx) as store:
        p = _resolve(store.projects, ref, "project")
        store.permanently_delete_project(p.id)
        click.echo(f"💥 Permanently deleted project '{p.name}'")


@project.command("move")
@click.argument('ref')
@click.argument('position', type=int)
@click.pass_context
def project_move(ctx, ref, position):
    """Move a project to POSITION (1-based) among the active projects."""
    with _open_shelf(ctx) as store:
        projects = store.active_projects()
        p = _resolve(projects, ref, "project")
        store.reorder_projects(_moved(projects, p, position))
        click.echo(f"↕️  Moved project '{p.name}' to position {position}")


@project.command("use")
@click.argument('ref')
@click.pass_context
def project_use(ctx, ref):
    """Select the project to work in."""
    with _open_shelf(ctx) as store:
        p = _resolve(store.active_projects(), ref, "project")
        store.set_current_project(p.id)
        click.echo(f"📍 Now in project '{p.name}'")


# --- Tasks ---

@main.group()
def task():
    """Manage the tasks of a project."""
    pass


project_option = click.option('-p', '--project', 'project_ref', default=None,
                              help='Project id, id prefix or name (default: current project)')
task_option = click.option('-t', '--task', 'task_ref', default=None,
                           help='Task id, id prefix or name (default: current task)')


@task.command("add")
@project_option
@click.argument('name')
@click.pass_context
def task_add(ctx, project_ref, name):
    """Create a task and select it."""
    name = _require_name(name, "Task name")
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        if store.current_project_id != p.id:
            store.set_current_project(p.id)
        task_id = store.create_task(p.id, name)
        click.echo(f"✅ Created task '{name}' ({_short(task_id)}) in '{p.name}'")


@task.command("list")
@project_option
@click.pass_context
def task_list(ctx, project_ref):
    """List the active tasks of a project."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        tasks = store.active_tasks(p.id)
        if not tasks:
            click.echo(f"📭 No tasks in '{p.name}'")
            return
        for index, t in enumerate(tasks, start=1):
            marker = "*" if t.id == store.current_task_id else " "
            active_prompts = len([pr for pr in t.prompts if not pr.is_deleted])
            click.echo(f"{marker} {index}. {t.name}  [{_short(t.id)}]  {active_prompts} prompt(s)")


@task.command("rename")
@project_option
@click.argument('ref')
@click.argument('name')
@click.pass_context
def task_rename(ctx, project_ref, ref, name):
    """Rename a task."""
    name = _require_name(name, "Task name")
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _resolve(p.tasks, ref, "task")
        store.rename_task(p.id, t.id, name)
        click.echo(f"✏️  Renamed '{t.name}' to '{name}'")


@task.command("rm")
@project_option
@click.argument('ref')
@click.pass_context
def task_rm(ctx, project_ref, ref):
    """Move a task to the trash."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _resolve(store.active_tasks(p.id), ref, "task")
        store.soft_delete_task(p.id, t.id)
        click.echo(f"🗑️  Moved task '{t.name}' to the trash")


@task.command("restore")
@project_option
@click.argument('ref')
@click.pass_context
def task_restore(ctx, project_ref, ref):
    """Bring a task back from the trash."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _resolve([t for t in p.tasks if t.is_deleted], ref, "trashed task")
        store.restore_task(p.id, t.id)
        click.echo(f"♻️  Restored task '{t.name}'")


@task.command("purge")
@project_option
@click.argument('ref')
@click.confirmation_option(prompt='Permanently delete this task and its prompts?')
@click.pass_context
def task_purge(ctx, project_ref, ref):
    """Permanently delete a task."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _resolve(p.tasks, ref, "task")
        store.permanently_delete_task(p.id, t.id)
        click.echo(f"💥 Permanently deleted task '{t.name}'")


@task.command("move")
@project_option
@click.argument('ref')
@click.argument('position', type=int)
@click.pass_context
def task_move(ctx, project_ref, ref, position):
    """Move a task to POSITION (1-based) among the active tasks."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        tasks = store.active_tasks(p.id)
        t = _resolve(tasks, ref, "task")
        store.reorder_tasks(p.id, _moved(tasks, t, position))
        click.echo(f"↕️  Moved task '{t.name}' to position {position}")


@task.command("use")
@project_option
@click.argument('ref')
@click.pass_context
def task_use(ctx, project_ref, ref):
    """Select the task to work in."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _resolve(store.active_tasks(p.id), ref, "task")
        if store.current_project_id != p.id:
            store.set_current_project(p.id)
        store.set_current_task(t.id)
        click.echo(f"📍 Now in '{p.name} / {t.name}'")


# --- Prompts ---

@main.group()
def prompt():
    """Manage the prompts of a task."""
    pass


@prompt.command("add")
@project_option
@task_option
@click.argument('title')
@click.option('-c', '--content', default="", help='Prompt text (may be empty)')
@click.pass_context
def prompt_add(ctx, project_ref, task_ref, title, content):
    """Add a prompt at the top of the task."""
    title = _require_name(title, "Prompt title")
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _task(store, p, task_ref)
        prompt_id = store.create_prompt(p.id, t.id, title, content)
        click.echo(f"✅ Added prompt '{title}' ({_short(prompt_id)}) to '{p.name} / {t.name}'")


@prompt.command("list")
@project_option
@task_option
@click.pass_context
def prompt_list(ctx, project_ref, task_ref):
    """List the active prompts of a task."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _task(store, p, task_ref)
        prompts = store.active_prompts(p.id, t.id)
        click.echo(f"📋 {p.name} / {t.name} ({len(prompts)})")
        for index, pr in enumerate(prompts, start=1):
            click.echo(f"  {index}. {pr.title}  [{_short(pr.id)}]")


@prompt.command("show")
@project_option
@task_option
@click.argument('ref')
@click.pass_context
def prompt_show(ctx, project_ref, task_ref, ref):
    """Print a prompt's content."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _task(store, p, task_ref)
        pr = _resolve(t.prompts, ref, "prompt", name_attr="title")
        click.echo(f"# {pr.title}")
        click.echo(pr.content)


@prompt.command("edit")
@project_option
@task_option
@click.argument('ref')
@click.option('--title', default=None, help='New title')
@click.option('-c', '--content', default=None, help='New prompt text')
@click.pass_context
def prompt_edit(ctx, project_ref, task_ref, ref, title, content):
    """Change a prompt's title and/or content."""
    updates = {}
    if title is not None:
        updates["title"] = _require_name(title, "Prompt title")
    if content is not None:
        updates["content"] = content
    if not updates:
        raise click.UsageError("Nothing to change, pass --title and/or --content")
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _task(store, p, task_ref)
        pr = _resolve(t.prompts, ref, "prompt", name_attr="title")
        store.update_prompt(p.id, t.id, pr.id, **updates)
        click.echo(f"✏️  Updated prompt '{updates.get('title', pr.title)}'")


@prompt.command("rm")
@project_option
@task_option
@click.argument('ref')
@click.pass_context
def prompt_rm(ctx, project_ref, task_ref, ref):
    """Move a prompt to the trash."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _task(store, p, task_ref)
        pr = _resolve(store.active_prompts(p.id, t.id), ref, "prompt", name_attr="title")
        store.soft_delete_prompt(p.id, t.id, pr.id)
        click.echo(f"🗑️  Moved prompt '{pr.title}' to the trash")


@prompt.command("restore")
@project_option
@task_option
@click.argument('ref')
@click.pass_context
def prompt_restore(ctx, project_ref, task_ref, ref):
    """Bring a prompt back from the trash."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _task(store, p, task_ref)
        pr = _resolve([pr for pr in t.prompts if pr.is_deleted], ref, "trashed prompt", name_attr="title")
        store.restore_prompt(p.id, t.id, pr.id)
        click.echo(f"♻️  Restored prompt '{pr.title}'")


@prompt.command("purge")
@project_option
@task_option
@click.argument('ref')
@click.confirmation_option(prompt='Permanently delete this prompt?')
@click.pass_context
def prompt_purge(ctx, project_ref, task_ref, ref):
    """Permanently delete a prompt."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _task(store, p, task_ref)
        pr = _resolve(t.prompts, ref, "prompt", name_attr="title")
        store.permanently_delete_prompt(p.id, t.id, pr.id)
        click.echo(f"💥 Permanently deleted prompt '{pr.title}'")


@prompt.command("move")
@project_option
@task_option
@click.argument('ref')
@click.argument('position', type=int)
@click.pass_context
def prompt_move(ctx, project_ref, task_ref, ref, position):
    """Move a prompt to POSITION (1-based) among the active prompts."""
    with _open_shelf(ctx) as store:
        p = _project(store, project_ref)
        t = _task(store, p, task_ref)
        prompts = store.active_prompts(p.id, t.id)
        pr = _resolve(prompts, ref, "prompt", name_attr="title")
        store.reorder_prompts(p.id, t.id, _moved(prompts, pr, position))
        click.echo(f"↕️  Moved prompt '{pr.title}' to position {position}")


# --- Trash ---

@main.group()
def trash():
    """Inspect and manage the trash."""
    pass


@trash.command("list")
@click.pass_context
def trash_list(ctx):
    """List everything in the trash, most recently deleted first."""
    with _open_shelf(ctx) as store:
        items = store.trash_items()
        if not items:
            click.echo("📭 Trash is empty")
            return
        for item in items:
            click.echo(f"🗑️  [{item.kind.value}] {item.name}  ({item.context})  "
                       f"[{_short(item.id)}]  deleted {_age(item.deleted_at)}")
        click.echo("")
        click.echo("💡 Items are permanently deleted after 24 hours.")


@trash.command("restore")
@click.argument('ref')
@click.pass_context
def trash_restore(ctx, ref):
    """Restore any trashed item by id, id prefix or name."""
    with _open_shelf(ctx) as store:
        item = _resolve(store.trash_items(), ref, "trashed item")
        if item.kind == ItemKind.PROJECT:
            store.restore_project(item.id)
        elif item.kind == ItemKind.TASK:
            store.restore_task(item.project_id, item.id)
        else:
            store.restore_prompt(item.project_id, item.task_id, item.id)
        click.echo(f"♻️  Restored {item.kind.value} '{item.name}'")


@trash.command("sweep")
@click.pass_context
def trash_sweep(ctx):
    """Permanently remove items that have been in the trash for 24 hours."""
    with _open_shelf(ctx, sweep_on_load=False) as store:
        removed = store.sweep()
        if removed:
            click.echo(f"✅ Removed {removed} expired item(s)")
        else:
            click.echo("📦 Nothing to remove")


if __name__ == "__main__":
    main()
