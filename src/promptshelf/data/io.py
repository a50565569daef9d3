import tempfile, yaml, os
from typing import Union, Dict, Any, Optional
from pathlib import Path
from pydantic import ValidationError
from packaging import version
from promptshelf.recovery import FileOperationError, FatalError, CorruptionError
from promptshelf.logs import get_logger
from promptshelf.models import PromptTree
from promptshelf.version import APP_SCHEMA_VERSION

log = get_logger("data.io")

def _cleanup(temp_path: Optional[str]):
    if temp_path is not None and os.path.exists(temp_path):
        try:
            os.unlink(temp_path)
            log.debug(f"Cleaned up temporary file: {temp_path}")
        except OSError as cleanup_error:
            # Don't raise while already handling an error, just log
            log.warning(f"Could not clean up temp file {temp_path}: {cleanup_error}")

def _create_dirs(file_path: Path):
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
    except (OSError, PermissionError) as e:
        error_msg = f"Cannot create directory {file_path.parent}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e

def atomic_write(file_path: Union[Path, str], data: Dict[str, Any], create_dirs: bool = False):
    """
    Serialize and save data to a YAML file using atomic updates.
    """
    file_path = Path(file_path)
    temp_path = None

    try:
        if create_dirs:
            _create_dirs(file_path)

        # Create temporary file in the same directory as target for atomicity
        with tempfile.NamedTemporaryFile(mode='w', encoding='utf-8', dir=file_path.parent, prefix=f".{file_path.name}.", suffix='.tmp', delete=False) as temp_file:
            temp_path = temp_file.name
            yaml.safe_dump(data, temp_file, default_flow_style=False, sort_keys=False, indent=2, allow_unicode=True)
            temp_file.flush()
            os.fsync(temp_file.fileno())

        # Atomic replace - this either completely succeeds or completely fails
        os.replace(temp_path, file_path)
        log.debug(f"Successfully saved YAML file: {file_path}")
        return True

    except (yaml.YAMLError, TypeError) as e:
        _cleanup(temp_path)
        error_msg = (f"Data serialization failed for {file_path}. "
                    f"In-memory data may be corrupt or contain non-serializable types: {e}")
        log.critical(error_msg)
        raise FatalError(error_msg) from e

    except FileOperationError:
        raise

    except (IOError, OSError, PermissionError) as e:
        _cleanup(temp_path)
        error_msg = f"I/O error saving YAML file {file_path}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e

def save_tree(tree: PromptTree, file_path: Union[Path, str]):
    """Write a snapshot to disk, tagged with the current schema version."""
    data = {"schema_version": APP_SCHEMA_VERSION}
    data.update(tree.model_dump(mode="json"))
    return atomic_write(file_path, data, create_dirs=True)

def load_tree(file_path: Union[Path, str]) -> Union[None, PromptTree]:
    """
    Load a snapshot from a YAML file.

    Args:
        file_path: Path to the YAML file

    Returns:
        The stored PromptTree, or None if the file doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        return None

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        # YAML syntax errors mean a corrupted file
        raise CorruptionError(f"YAML syntax error in {file_path}: {e}") from e
    except (IOError, OSError, PermissionError) as e:
        raise FileOperationError(f"Failed to read file {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise CorruptionError(f"File {file_path} contains invalid data structure")

    stored_version = str(data.pop("schema_version", APP_SCHEMA_VERSION))
    if _is_newer(stored_version):
        raise FatalError(f"{file_path} was written by a newer promptshelf (schema {stored_version}), "
                         f"this one understands {APP_SCHEMA_VERSION}")

    try:
        return PromptTree.model_validate(data)
    except ValidationError as e:
        raise CorruptionError(f"Invalid shelf data in {file_path}: {e}") from e

def _is_newer(stored_version: str) -> bool:
    try:
        return version.parse(stored_version) > version.parse(APP_SCHEMA_VERSION)
    except version.InvalidVersion as e:
        raise CorruptionError(f"Invalid schema version: {stored_version}") from e
