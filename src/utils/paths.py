from pathlib import Path

from src.infra.project import PROJECT_FILE_NAME


def get_project_root(start: Path | None = None) -> Path:
    """Get the project root directory.

    Walks up from ``start`` (default: the working directory) to find the
    directory holding ``azure.yaml``.

    Returns:
        Path to the project root directory, or ``start`` itself if no
        project file is found
    """
    current = (start or Path.cwd()).resolve()

    for parent in [current, *current.parents]:
        if (parent / PROJECT_FILE_NAME).exists():
            return parent

    return current
