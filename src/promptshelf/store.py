"""
HierarchyStore - the in-memory Project → Task → Prompt tree behind the shelf.

Every mutation builds a new immutable PromptTree snapshot from the root down to
the changed node and swaps it in wholesale; untouched siblings are shared with
the previous snapshot. Operations addressed at an id that does not exist leave
the snapshot alone and report False instead of raising.
"""
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .models import PromptTree, Project, Task, Prompt, TrashItem, ItemKind, seed_tree
from .logs import get_logger

log = get_logger("store")

# How long a trashed node survives before the sweep removes it for good
RETENTION = timedelta(hours=24)

PROMPT_UPDATE_FIELDS = frozenset({"title", "content", "deleted_at"})

Listener = Callable[[PromptTree], None]


def _replace(items: tuple, item_id: str, change: Callable) -> Optional[tuple]:
    """Copy `items` with the node `item_id` swapped for change(node); None when nothing changed."""
    for index, item in enumerate(items):
        if item.id == item_id:
            updated = change(item)
            if updated is None:
                return None
            return items[:index] + (updated,) + items[index + 1:]
    return None


def _remove(item_id: str) -> Callable[[tuple], Optional[tuple]]:
    def edit(items):
        kept = tuple(item for item in items if item.id != item_id)
        return kept if len(kept) != len(items) else None
    return edit


def _validated(item, **fields):
    """Copy of `item` with `fields` merged in, run through the model's validation."""
    # Nested records are passed as instances and kept as they are
    return type(item).model_validate({**dict(item), **fields})


def _set_fields(item_id: str, **fields) -> Callable[[tuple], Optional[tuple]]:
    return lambda items: _replace(items, item_id, lambda item: _validated(item, **fields))


def _reorder(ordered_active: Sequence) -> Callable[[tuple], tuple]:
    # Trashed siblings keep their relative order and go after the active ones
    return lambda items: tuple(ordered_active) + tuple(item for item in items if item.is_deleted)


class HierarchyStore:
    """Owns the shelf tree and the current selection."""

    def __init__(self, tree: Optional[PromptTree] = None, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._tree = tree if tree is not None else seed_tree(clock())
        self._listeners: List[Listener] = []

    # --- Read surface ---

    @property
    def tree(self) -> PromptTree:
        """The current snapshot. Never mutated; replaced on every change."""
        return self._tree

    @property
    def projects(self) -> Tuple[Project, ...]:
        return self._tree.projects

    @property
    def current_project_id(self) -> Optional[str]:
        return self._tree.current_project_id

    @property
    def current_task_id(self) -> Optional[str]:
        return self._tree.current_task_id

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._tree.find_project(project_id)

    def get_task(self, project_id: str, task_id: str) -> Optional[Task]:
        project = self.get_project(project_id)
        return project.find_task(task_id) if project else None

    def get_prompt(self, project_id: str, task_id: str, prompt_id: str) -> Optional[Prompt]:
        task = self.get_task(project_id, task_id)
        return task.find_prompt(prompt_id) if task else None

    def current_project(self) -> Optional[Project]:
        if self.current_project_id is None:
            return None
        return self.get_project(self.current_project_id)

    def current_task(self) -> Optional[Task]:
        project = self.current_project()
        if project is None or self.current_task_id is None:
            return None
        return project.find_task(self.current_task_id)

    def active_projects(self) -> List[Project]:
        return [p for p in self._tree.projects if not p.is_deleted]

    def active_tasks(self, project_id: str) -> List[Task]:
        project = self.get_project(project_id)
        return [t for t in project.tasks if not t.is_deleted] if project else []

    def active_prompts(self, project_id: str, task_id: str) -> List[Prompt]:
        task = self.get_task(project_id, task_id)
        return [pr for pr in task.prompts if not pr.is_deleted] if task else []

    def trash_items(self) -> List[TrashItem]:
        """Every soft-deleted node at any depth, most recently deleted first."""
        items = []
        for project in self._tree.projects:
            if project.is_deleted:
                items.append(TrashItem(kind=ItemKind.PROJECT, id=project.id, name=project.name,
                                       deleted_at=project.deleted_at, project_id=project.id,
                                       context="Project"))
            for task in project.tasks:
                if task.is_deleted:
                    items.append(TrashItem(kind=ItemKind.TASK, id=task.id, name=task.name,
                                           deleted_at=task.deleted_at, project_id=project.id,
                                           task_id=task.id, context=f"Project: {project.name}"))
                for prompt in task.prompts:
                    if prompt.is_deleted:
                        items.append(TrashItem(kind=ItemKind.PROMPT, id=prompt.id, name=prompt.title,
                                               deleted_at=prompt.deleted_at, project_id=project.id,
                                               task_id=task.id, context=f"{project.name} / {task.name}"))
        items.sort(key=lambda item: item.deleted_at, reverse=True)
        return items

    # --- Change notification ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with every new snapshot. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _commit(self, **changes):
        # Raises before the swap, so a rejected change leaves the old snapshot in place
        self._tree = _validated(self._tree, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._tree)
            except Exception:
                log.exception(f"Store listener {listener!r} failed")

    # --- Copy-on-write helpers, one per level ---

    def _edit_projects(self, edit: Callable[[tuple], Optional[tuple]], **selection) -> bool:
        projects = edit(self._tree.projects)
        if projects is None:
            return False
        self._commit(projects=projects, **selection)
        return True

    def _edit_tasks(self, project_id: str, edit: Callable[[tuple], Optional[tuple]], **selection) -> bool:
        def edit_project(project):
            tasks = edit(project.tasks)
            return None if tasks is None else project.model_copy(update={"tasks": tasks})
        return self._edit_projects(lambda projects: _replace(projects, project_id, edit_project), **selection)

    def _edit_prompts(self, project_id: str, task_id: str, edit: Callable[[tuple], Optional[tuple]]) -> bool:
        def edit_task(task):
            prompts = edit(task.prompts)
            return None if prompts is None else task.model_copy(update={"prompts": prompts})
        return self._edit_tasks(project_id, lambda tasks: _replace(tasks, task_id, edit_task))

    # --- Projects ---

    def create_project(self, name: str) -> str:
        """Append a new empty project and select it."""
        project = Project(name=name, created_at=self._clock())
        self._edit_projects(lambda projects: projects + (project,),
                            current_project_id=project.id, current_task_id=None)
        log.debug(f"Created project {project.id} ({name!r})")
        return project.id

    def rename_project(self, project_id: str, name: str) -> bool:
        return self._edit_projects(_set_fields(project_id, name=name))

    def soft_delete_project(self, project_id: str) -> bool:
        """Move a project to the trash. Its tasks and prompts keep their own state."""
        selection = {}
        if self.current_project_id == project_id:
            selection = {"current_project_id": None, "current_task_id": None}
        done = self._edit_projects(_set_fields(project_id, deleted_at=self._clock()), **selection)
        if done:
            log.debug(f"Trashed project {project_id}")
        return done

    def restore_project(self, project_id: str) -> bool:
        return self._edit_projects(_set_fields(project_id, deleted_at=None))

    def permanently_delete_project(self, project_id: str) -> bool:
        selection = {}
        if self.current_project_id == project_id:
            selection = {"current_project_id": None, "current_task_id": None}
        done = self._edit_projects(_remove(project_id), **selection)
        if done:
            log.info(f"Permanently deleted project {project_id}")
        return done

    def reorder_projects(self, ordered_active: Sequence[Project]) -> bool:
        """
        Replace the order of the active projects; trashed ones are kept at the end.

        Raises:
            pydantic.ValidationError: If the result would hold the same id twice.
        """
        return self._edit_projects(_reorder(ordered_active))

    # --- Tasks ---

    def create_task(self, project_id: str, name: str) -> Optional[str]:
        """Append a new task to a project and select it. Returns None if the project is missing."""
        task = Task(name=name)
        if not self._edit_tasks(project_id, lambda tasks: tasks + (task,), current_task_id=task.id):
            return None
        log.debug(f"Created task {task.id} ({name!r}) in project {project_id}")
        return task.id

    def rename_task(self, project_id: str, task_id: str, name: str) -> bool:
        return self._edit_tasks(project_id, _set_fields(task_id, name=name))

    def soft_delete_task(self, project_id: str, task_id: str) -> bool:
        selection = {"current_task_id": None} if self.current_task_id == task_id else {}
        done = self._edit_tasks(project_id, _set_fields(task_id, deleted_at=self._clock()), **selection)
        if done:
            log.debug(f"Trashed task {task_id} in project {project_id}")
        return done

    def restore_task(self, project_id: str, task_id: str) -> bool:
        return self._edit_tasks(project_id, _set_fields(task_id, deleted_at=None))

    def permanently_delete_task(self, project_id: str, task_id: str) -> bool:
        selection = {"current_task_id": None} if self.current_task_id == task_id else {}
        done = self._edit_tasks(project_id, _remove(task_id), **selection)
        if done:
            log.info(f"Permanently deleted task {task_id} in project {project_id}")
        return done

    def reorder_tasks(self, project_id: str, ordered_active: Sequence[Task]) -> bool:
        return self._edit_tasks(project_id, _reorder(ordered_active))

    # --- Prompts ---

    def create_prompt(self, project_id: str, task_id: str, title: str, content: str = "") -> Optional[str]:
        """Insert a new prompt at the head of its task (newest first)."""
        prompt = Prompt(title=title, content=content, created_at=self._clock())
        if not self._edit_prompts(project_id, task_id, lambda prompts: (prompt,) + prompts):
            return None
        log.debug(f"Created prompt {prompt.id} ({title!r}) in task {task_id}")
        return prompt.id

    def update_prompt(self, project_id: str, task_id: str, prompt_id: str, **fields: Any) -> bool:
        """
        Merge any of title, content and deleted_at into a prompt.

        Raises:
            ValueError: If a field other than those three is given.
            pydantic.ValidationError: If a value does not fit the field, e.g. content=None.
        """
        unknown = set(fields) - PROMPT_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update prompt fields: {', '.join(sorted(unknown))}")
        if not fields:
            return self.get_prompt(project_id, task_id, prompt_id) is not None
        return self._edit_prompts(project_id, task_id, _set_fields(prompt_id, **fields))

    def rename_prompt(self, project_id: str, task_id: str, prompt_id: str, title: str) -> bool:
        return self.update_prompt(project_id, task_id, prompt_id, title=title)

    def soft_delete_prompt(self, project_id: str, task_id: str, prompt_id: str) -> bool:
        done = self.update_prompt(project_id, task_id, prompt_id, deleted_at=self._clock())
        if done:
            log.debug(f"Trashed prompt {prompt_id} in task {task_id}")
        return done

    def restore_prompt(self, project_id: str, task_id: str, prompt_id: str) -> bool:
        return self.update_prompt(project_id, task_id, prompt_id, deleted_at=None)

    def permanently_delete_prompt(self, project_id: str, task_id: str, prompt_id: str) -> bool:
        done = self._edit_prompts(project_id, task_id, _remove(prompt_id))
        if done:
            log.info(f"Permanently deleted prompt {prompt_id} in task {task_id}")
        return done

    def reorder_prompts(self, project_id: str, task_id: str, ordered_active: Sequence[Prompt]) -> bool:
        return self._edit_prompts(project_id, task_id, _reorder(ordered_active))

    # --- Selection ---

    def set_current_project(self, project_id: Optional[str]):
        """Select a project (or none). Always clears the selected task."""
        self._commit(current_project_id=project_id, current_task_id=None)

    def set_current_task(self, task_id: Optional[str]):
        self._commit(current_task_id=task_id)

    # --- Sweep ---

    def sweep(self, now: Optional[datetime] = None) -> int:
        """
        Permanently remove every node that has been in the trash for RETENTION or longer.

        Each level is checked on its own, so an expired prompt is pruned even if
        its task is not, and an expired project takes its nested children with it.

        Returns:
            The number of nodes removed explicitly (children carried away with an
            expired parent are not counted).
        """
        cutoff = (now or self._clock()) - RETENTION
        removed: Dict[str, int] = {"projects": 0, "tasks": 0, "prompts": 0}
        removed_ids = set()

        def expired(node) -> bool:
            if node.deleted_at is not None and node.deleted_at <= cutoff:
                removed_ids.add(node.id)
                return True
            return False

        def prune_task(task):
            prompts = tuple(pr for pr in task.prompts if not expired(pr))
            removed["prompts"] += len(task.prompts) - len(prompts)
            return task if len(prompts) == len(task.prompts) else task.model_copy(update={"prompts": prompts})

        def prune_project(project):
            tasks = tuple(prune_task(t) for t in project.tasks if not expired(t))
            removed["tasks"] += len(project.tasks) - len(tasks)
            if len(tasks) == len(project.tasks) and all(a is b for a, b in zip(tasks, project.tasks)):
                return project
            return project.model_copy(update={"tasks": tasks})

        projects = tuple(prune_project(p) for p in self._tree.projects if not expired(p))
        removed["projects"] = len(self._tree.projects) - len(projects)

        total = sum(removed.values())
        if total == 0:
            return 0

        selection = {}
        if self.current_project_id in removed_ids:
            selection = {"current_project_id": None, "current_task_id": None}
        elif self.current_task_id in removed_ids:
            selection = {"current_task_id": None}
        self._commit(projects=projects, **selection)
        log.info(f"Swept trash: removed {removed['projects']} project(s), "
                 f"{removed['tasks']} task(s), {removed['prompts']} prompt(s)")
        return total
