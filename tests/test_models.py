"""Unit tests for Pydantic models."""

import pytest
from datetime import datetime
from pydantic import ValidationError
from promptshelf.models import (
    ItemKind, PromptTree, Project, Task, Prompt, TrashItem, seed_tree
)


class TestPrompt:
    """Test Prompt model."""

    def test_defaults(self):
        """A new prompt is active, has an id and empty content."""
        prompt = Prompt(title="Tagline")
        assert prompt.id
        assert prompt.content == ""
        assert prompt.deleted_at is None
        assert not prompt.is_deleted

    def test_ids_are_unique(self):
        assert Prompt(title="a").id != Prompt(title="a").id

    def test_frozen(self):
        """Records cannot be changed in place."""
        prompt = Prompt(title="Tagline")
        with pytest.raises(ValidationError):
            prompt.title = "Other"

    def test_model_copy_leaves_original(self):
        prompt = Prompt(title="Tagline")
        deleted = prompt.model_copy(update={"deleted_at": datetime(2024, 1, 1)})
        assert deleted.is_deleted
        assert not prompt.is_deleted
        assert deleted.id == prompt.id


class TestTaskAndProject:
    """Test Task and Project models."""

    def test_task_with_prompts(self):
        first = Prompt(title="First")
        second = Prompt(title="Second")
        task = Task(name="Emails", prompts=[first, second])
        assert isinstance(task.prompts, tuple)
        assert task.find_prompt(second.id) is second
        assert task.find_prompt("missing") is None

    def test_project_with_tasks(self):
        task = Task(name="Emails")
        project = Project(name="Launch", tasks=[task])
        assert project.find_task(task.id) is task
        assert project.find_task("missing") is None
        assert not project.is_deleted

    def test_children_cannot_be_appended(self):
        project = Project(name="Launch")
        with pytest.raises(AttributeError):
            project.tasks.append(Task(name="Emails"))


class TestPromptTree:
    """Test PromptTree snapshot model."""

    def test_empty_tree(self):
        tree = PromptTree()
        assert tree.projects == ()
        assert tree.current_project_id is None
        assert tree.current_task_id is None

    def test_find_project(self):
        project = Project(name="Launch")
        tree = PromptTree(projects=[project])
        assert tree.find_project(project.id) is project
        assert tree.find_project("missing") is None

    def test_duplicate_project_ids_rejected(self):
        project = Project(name="Launch")
        with pytest.raises(ValueError, match="Duplicate id"):
            PromptTree(projects=[project, project])

    def test_duplicate_prompt_ids_rejected(self):
        prompt = Prompt(title="Same")
        task = Task(name="Emails", prompts=[prompt, prompt])
        with pytest.raises(ValueError, match="Duplicate id"):
            PromptTree(projects=[Project(name="Launch", tasks=[task])])

    def test_same_id_in_different_tasks_allowed(self):
        """Ids only need to be unique within their own collection."""
        prompt = Prompt(id="shared", title="Same")
        tasks = [Task(name="A", prompts=[prompt]), Task(name="B", prompts=[prompt])]
        tree = PromptTree(projects=[Project(name="Launch", tasks=tasks)])
        assert len(tree.projects[0].tasks) == 2

    def test_validates_from_plain_data(self):
        """Stored dictionaries (ISO timestamps) load back into records."""
        tree = PromptTree.model_validate({
            "current_project_id": "p1",
            "current_task_id": None,
            "projects": [{
                "id": "p1",
                "name": "Launch",
                "created_at": "2024-05-01T12:00:00",
                "deleted_at": None,
                "tasks": [{
                    "id": "t1",
                    "name": "Emails",
                    "deleted_at": "2024-05-01T13:00:00",
                    "prompts": [{"id": "pr1", "title": "Hello", "created_at": "2024-05-01T12:00:00"}],
                }],
            }],
        })
        task = tree.projects[0].tasks[0]
        assert task.deleted_at == datetime(2024, 5, 1, 13, 0, 0)
        assert task.prompts[0].content == ""


class TestSeedTree:
    """Test the starter shelf."""

    def test_seed_shape(self):
        now = datetime(2024, 5, 1, 12, 0, 0)
        tree = seed_tree(now)
        assert [p.name for p in tree.projects] == ["Marketing Campaign"]
        project = tree.projects[0]
        assert project.created_at == now
        assert [t.name for t in project.tasks] == ["Social Media"]
        assert [pr.title for pr in project.tasks[0].prompts] == ["Instagram Caption", "LinkedIn Post"]

    def test_seed_selects_project_and_task(self):
        tree = seed_tree()
        assert tree.current_project_id == tree.projects[0].id
        assert tree.current_task_id == tree.projects[0].tasks[0].id

    def test_seed_ids_are_fresh(self):
        assert seed_tree().projects[0].id != seed_tree().projects[0].id


class TestTrashItem:
    def test_kind_values(self):
        item = TrashItem(kind=ItemKind.TASK, id="t1", name="Emails", deleted_at=datetime(2024, 1, 1),
                         project_id="p1", task_id="t1", context="Project: Launch")
        assert item.kind.value == "task"
