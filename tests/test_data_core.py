"""Unit tests for shelf persistence and ShelfContext."""

import pytest
import yaml
from pathlib import Path
from unittest.mock import patch

from promptshelf.data import ShelfContext, SHELF_FILENAME, atomic_write, load_tree, save_tree, default_data_dir
from promptshelf.models import PromptTree, seed_tree
from promptshelf.recovery import CorruptionError, FatalError, FileOperationError
from promptshelf.version import APP_SCHEMA_VERSION


class TestIO:
    """Test reading and writing shelf.yml."""

    def test_missing_file(self, tmp_path):
        assert load_tree(tmp_path / "nope.yml") is None

    def test_save_and_load(self, tmp_path, store, clock):
        project_id = store.projects[0].id
        task_id = store.projects[0].tasks[0].id
        store.soft_delete_task(project_id, task_id)
        path = tmp_path / "nested" / SHELF_FILENAME

        save_tree(store.tree, path)
        loaded = load_tree(path)

        assert loaded.model_dump() == store.tree.model_dump()
        assert loaded.projects[0].tasks[0].deleted_at == clock()

    def test_file_is_tagged_with_schema_version(self, tmp_path, store):
        path = tmp_path / SHELF_FILENAME
        save_tree(store.tree, path)
        data = yaml.safe_load(path.read_text())
        assert data["schema_version"] == APP_SCHEMA_VERSION
        assert data["projects"][0]["name"] == "Marketing Campaign"

    def test_no_temp_files_left(self, tmp_path, store):
        save_tree(store.tree, tmp_path / SHELF_FILENAME)
        assert [p.name for p in tmp_path.iterdir()] == [SHELF_FILENAME]

    def test_yaml_syntax_error(self, tmp_path):
        path = tmp_path / SHELF_FILENAME
        path.write_text("projects: [unclosed\n")
        with pytest.raises(CorruptionError, match="YAML syntax error"):
            load_tree(path)

    def test_wrong_structure(self, tmp_path):
        path = tmp_path / SHELF_FILENAME
        path.write_text("- just\n- a list\n")
        with pytest.raises(CorruptionError, match="invalid data structure"):
            load_tree(path)

    def test_invalid_records(self, tmp_path):
        path = tmp_path / SHELF_FILENAME
        path.write_text(yaml.safe_dump({"projects": [{"id": "p1"}]}))
        with pytest.raises(CorruptionError, match="Invalid shelf data"):
            load_tree(path)

    def test_newer_schema(self, tmp_path):
        path = tmp_path / SHELF_FILENAME
        path.write_text(yaml.safe_dump({"schema_version": "99.0.0", "projects": []}))
        with pytest.raises(FatalError, match="newer promptshelf"):
            load_tree(path)

    def test_empty_file_is_empty_shelf(self, tmp_path):
        path = tmp_path / SHELF_FILENAME
        path.write_text("")
        assert load_tree(path) == PromptTree()

    def test_write_into_missing_dir_without_create(self, tmp_path):
        with pytest.raises(FileOperationError):
            atomic_write(tmp_path / "missing" / "x.yml", {"a": 1})

    def test_unserializable_data(self, tmp_path):
        with pytest.raises(FatalError, match="serialization failed"):
            atomic_write(tmp_path / "x.yml", {"a": object()})
        assert list(tmp_path.iterdir()) == []


class TestShelfContext:
    """Test the load/save context manager."""

    def test_default_data_dir_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PROMPTSHELF_DATA_DIR", str(tmp_path))
        assert default_data_dir() == tmp_path
        assert ShelfContext().path == tmp_path / SHELF_FILENAME

    def test_default_data_dir_fallback(self, monkeypatch):
        monkeypatch.delenv("PROMPTSHELF_DATA_DIR", raising=False)
        assert default_data_dir() == Path.home() / ".local" / "share" / "promptshelf" / "data"

    def test_seeds_and_saves(self, tmp_path):
        with ShelfContext(tmp_path) as store:
            assert store.projects[0].name == "Marketing Campaign"
            store.create_project("Launch")

        stored = load_tree(tmp_path / SHELF_FILENAME)
        assert [p.name for p in stored.projects] == ["Marketing Campaign", "Launch"]

    def test_round_trip_keeps_ids_and_selection(self, tmp_path):
        with ShelfContext(tmp_path) as store:
            project_id = store.create_project("Launch")
            task_id = store.create_task(project_id, "Emails")

        with ShelfContext(tmp_path) as store:
            assert store.current_project_id == project_id
            assert store.current_task_id == task_id

    def test_no_save_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            with ShelfContext(tmp_path) as store:
                store.create_project("Launch")
                raise RuntimeError("boom")
        assert not (tmp_path / SHELF_FILENAME).exists()

    def test_sweeps_on_load(self, tmp_path, clock):
        tree = seed_tree(clock())
        save_tree(tree, tmp_path / SHELF_FILENAME)
        with ShelfContext(tmp_path, clock=clock) as store:
            store.soft_delete_project(store.projects[0].id)

        clock.advance(hours=25)
        with ShelfContext(tmp_path, clock=clock) as store:
            assert store.projects == ()

    def test_sweep_on_load_can_be_disabled(self, tmp_path, clock):
        with ShelfContext(tmp_path, clock=clock) as store:
            store.soft_delete_project(store.projects[0].id)

        clock.advance(hours=25)
        with ShelfContext(tmp_path, clock=clock, sweep_on_load=False) as store:
            assert len(store.projects) == 1
            assert store.sweep() == 1

    def test_save_uses_save_tree(self, tmp_path):
        shelf = ShelfContext(tmp_path)
        with patch("promptshelf.data.core.save_tree") as mock_save:
            with shelf as store:
                pass
        mock_save.assert_called_once_with(store.tree, tmp_path / SHELF_FILENAME)
