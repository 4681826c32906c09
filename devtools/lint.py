import subprocess

from rich import print as rprint

SRC_PATHS = ["bloom", "tests", "devtools"]

LINT_COMMANDS = [
    ["usort", "format", *SRC_PATHS],
    ["ruff", "check", "--fix", *SRC_PATHS],
    ["black", *SRC_PATHS],
]


def _run(cmd: list[str]) -> bool:
    rprint(f"[bold green]❯ {' '.join(cmd)}[/bold green]")
    try:
        subprocess.run(cmd, text=True, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        rprint(f"[bold red]Error: {e}[/bold red]")
        return False
    finally:
        rprint()
    return True


def main() -> int:
    rprint()
    failures = [cmd[0] for cmd in LINT_COMMANDS if not _run(cmd)]

    if failures:
        rprint(f"[bold red]✗ Lint failed: {', '.join(failures)}[/bold red]")
    else:
        rprint("[bold green]✔️ Lint passed![/bold green]")
    rprint()

    return len(failures)


if __name__ == "__main__":
    exit(main())
