from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Iterable
from uuid import uuid4


def new_id() -> str:
    """Generate an opaque identifier for a new tree node."""
    return str(uuid4())


def _check_unique_ids(items: Iterable, where: str):
    seen = set()
    for item in items:
        if item.id in seen:
            raise ValueError(f"Duplicate id {item.id} in {where}")
        seen.add(item.id)


class ItemKind(Enum):
    PROJECT = "project"
    TASK = "task"
    PROMPT = "prompt"


class ShelfModel(BaseModel):
    """Immutable base for every record handed out by the store."""

    model_config = ConfigDict(frozen=True)


class PromptTree(ShelfModel):
    """A full snapshot of the shelf: every project plus the current selection."""

    current_project_id: Optional[str] = Field(default=None, description="The project the user is currently looking at")
    current_task_id: Optional[str] = Field(default=None, description="The task the user is currently looking at")
    projects: Tuple['PromptTree.Project', ...] = Field(
        default_factory=tuple,
        description="All projects, active and trashed, in display order"
    )

    @model_validator(mode='after')
    def validate_ids(self):
        _check_unique_ids(self.projects, "projects")
        for project in self.projects:
            _check_unique_ids(project.tasks, f"project {project.id}")
            for task in project.tasks:
                _check_unique_ids(task.prompts, f"task {task.id}")
        return self

    def find_project(self, project_id: str) -> Optional['PromptTree.Project']:
        """Find a project by id."""
        return next((p for p in self.projects if p.id == project_id), None)

    class Prompt(ShelfModel):
        id: str = Field(default_factory=new_id, description="Unique identifier of the prompt")
        title: str = Field(description="Short human readable title of the prompt")
        content: str = Field(default="", description="The prompt text itself")
        created_at: datetime = Field(default_factory=datetime.now, description="When the prompt was created")
        deleted_at: Optional[datetime] = Field(default=None, description="When the prompt was moved to the trash, null if active")

        @property
        def is_deleted(self) -> bool:
            return self.deleted_at is not None

    class Task(ShelfModel):
        id: str = Field(default_factory=new_id, description="Unique identifier of the task")
        name: str = Field(description="The human readable name of the task")
        deleted_at: Optional[datetime] = Field(default=None, description="When the task was moved to the trash, null if active")
        prompts: Tuple['PromptTree.Prompt', ...] = Field(
            default_factory=tuple,
            description="Prompts of the task, newest first unless reordered"
        )

        @property
        def is_deleted(self) -> bool:
            return self.deleted_at is not None

        def find_prompt(self, prompt_id: str) -> Optional['PromptTree.Prompt']:
            """Find a prompt by id."""
            return next((pr for pr in self.prompts if pr.id == prompt_id), None)

    class Project(ShelfModel):
        id: str = Field(default_factory=new_id, description="Unique identifier of the project")
        name: str = Field(description="The human readable name of the project")
        created_at: datetime = Field(default_factory=datetime.now, description="When the project was created")
        deleted_at: Optional[datetime] = Field(default=None, description="When the project was moved to the trash, null if active")
        tasks: Tuple['PromptTree.Task', ...] = Field(
            default_factory=tuple,
            description="Tasks of the project in display order"
        )

        @property
        def is_deleted(self) -> bool:
            return self.deleted_at is not None

        def find_task(self, task_id: str) -> Optional['PromptTree.Task']:
            """Find a task by id."""
            return next((t for t in self.tasks if t.id == task_id), None)

PromptTree.Task.model_rebuild()
PromptTree.Project.model_rebuild()
PromptTree.model_rebuild()

Project = PromptTree.Project
Task = PromptTree.Task
Prompt = PromptTree.Prompt


class TrashItem(ShelfModel):
    """One soft-deleted node as listed in the trash."""

    kind: ItemKind = Field(description="Which level of the tree the node lives on")
    id: str = Field(description="Identifier of the deleted node")
    name: str = Field(description="Project or task name, or prompt title")
    deleted_at: datetime = Field(description="When the node was moved to the trash")
    project_id: str = Field(description="Owning project (the node itself for projects)")
    task_id: Optional[str] = Field(default=None, description="Owning task, for tasks and prompts")
    context: str = Field(description="Where the node lived, for display")


def seed_tree(now: Optional[datetime] = None) -> PromptTree:
    """Build the starter shelf used when no prior state exists."""
    now = now or datetime.now()
    project = Project(
        name="Marketing Campaign",
        created_at=now,
        tasks=(
            Task(
                name="Social Media",
                prompts=(
                    Prompt(title="Instagram Caption", content="Create a witty caption for a coffee shop...", created_at=now),
                    Prompt(title="LinkedIn Post", content="Write a professional post about AI productivity...", created_at=now),
                ),
            ),
        ),
    )
    return PromptTree(
        current_project_id=project.id,
        current_task_id=project.tasks[0].id,
        projects=(project,),
    )
