import os
from pathlib import Path
from dataclasses import dataclass

# Creates the directory (and parents) if it's missing, erroring out when a file is squatting on the path.
def ensure_directory(path: Path):
    if path.exists() and not path.is_dir():
        raise NotADirectoryError(f"Expected a directory, got a file: {path}")
    path.mkdir(parents=True,exist_ok=True)
    return path

# Resolves the base data folder. TASKTIMER_HOME wins, then APPDATA (Windows), then a dotfolder in home.
def resolve_data_root() -> Path:
    override = os.getenv("TASKTIMER_HOME")
    if override:
        return Path(override)
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "TaskTimer"
    return Path.home() / ".tasktimer"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path
    logs: Path
    current: Path
    records: Path

    @staticmethod
    def build(data: Path | None = None):
        data = ensure_directory(data or resolve_data_root())

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        current = ensure_directory(data / "current")
        records = ensure_directory(data / "records")

        return ProjectPaths(
            data = data,
            logs = logs,
            current = current,
            records = records
        )
PATHS = ProjectPaths.build()
