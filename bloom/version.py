from importlib import metadata
from pathlib import Path
import subprocess
import tomllib

from bloom.config.settings import APP_NAME


def get_pyproject_version() -> str:
    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    pyproject_data = tomllib.loads(pyproject_path.read_text())
    return pyproject_data["project"]["version"]


def get_git_hash() -> str:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            cwd=Path(__file__).parent,
        )
        return result.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def get_version() -> str:
    try:
        # For development: use pyproject version + git hash.
        version = get_pyproject_version()
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        # Get the version from the installed package metadata.
        return metadata.version(APP_NAME)
    return f"{version}+{get_git_hash()}"


if __name__ == "__main__":
    print(get_version())
