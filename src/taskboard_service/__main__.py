"""Entry point for ``python -m taskboard_service``."""

from taskboard_service.cli import main

if __name__ == "__main__":
    main(prog_name="taskboard")
