"""Rich progress bar for the remote theme-processing job."""

from __future__ import annotations

from rich.progress import BarColumn, Progress, TaskID, TaskProgressColumn, TextColumn

from stencil_cli import output


class RichJobProgress:
    """Progress bar fed with the job's ``percent_complete``.

    The bar starts on the first update and stops on ``complete()``.
    """

    def __init__(self, description: str = "Processing theme") -> None:
        self._description = description
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def update(self, percent: int) -> None:
        if self._progress is None:
            self._progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=output.console,
                transient=False,
            )
            self._task = self._progress.add_task(self._description, total=100)
            self._progress.start()
        assert self._task is not None
        self._progress.update(self._task, completed=percent)

    def complete(self) -> None:
        self.update(100)
        assert self._progress is not None
        self._progress.stop()
        self._progress = None
        self._task = None
