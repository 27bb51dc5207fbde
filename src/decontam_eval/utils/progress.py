# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from datetime import timedelta

# Third-Party Imports
from rich.progress import (
    BarColumn, Progress, ProgressColumn, SpinnerColumn, Task, TextColumn,
    TimeRemainingColumn
)
from rich.text import Text

# Local Imports
from decontam_eval import constants

# ============================== CUSTOM PROGRESS COLUMNS ============================= #

class RunCountColumn(ProgressColumn):
    """Renders finished/total method runs, plus the failures so far (task field
    `failed`) when there are any, e.g. ' 7/12 (1 failed)'."""

    def render(self, task: Task) -> Text:
        total = "?" if task.total is None else int(task.total)
        text = Text(
            f"{int(task.completed)}/{total}".rjust(7),
            style=constants.DEFAULT_M_OF_N_COMPLETE_STYLE
        )
        failed = task.fields.get("failed", 0)
        if failed:
            text.append(f" ({failed} failed)", style="bold red")
        return text


class TimeElapsedColumn(ProgressColumn):
    """Renders time elapsed as H:MM:SS."""

    def render(self, task: Task) -> Text:
        elapsed = task.finished_time if task.finished else task.elapsed
        if elapsed is None:
            return Text("-:--:--", style=constants.DEFAULT_TIME_ELAPSED_STYLE)
        return Text(
            str(timedelta(seconds=max(0, int(elapsed)))),
            style=constants.DEFAULT_TIME_ELAPSED_STYLE
        )

# ===================================== FUNCTIONS ==================================== #

def get_progress_bar(transient: bool = False, disable: bool = False) -> Progress:
    """Progress bar for batches of method runs.

    Args:
        transient: Remove the bar from the console once finished.
        disable:   Render nothing (quiet runs and tests).
    """
    columns = [
        SpinnerColumn("dots", style=constants.DEFAULT_BAR_COLUMN_COMPLETE_STYLE),
        TextColumn("{task.description}", style=constants.DEFAULT_DESCRIPTION_STYLE),
        RunCountColumn(),
        BarColumn(
            bar_width=constants.DEFAULT_BAR_WIDTH,
            style="black",
            complete_style=constants.DEFAULT_BAR_COLUMN_COMPLETE_STYLE,
            finished_style=constants.DEFAULT_FINISHED_STYLE
        ),
        TextColumn(
            "{task.percentage:>3.0f}%", style=constants.DEFAULT_PROGRESS_PERCENTAGE_STYLE
        ),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
    ]
    return Progress(*columns, transient=transient, disable=disable, expand=False)


def _format_task_desc(desc: str) -> str:
    """Pad (or cut) a description to a fixed width so the bars line up."""
    desc = str(desc)
    if len(desc) > constants.DEFAULT_N:
        desc = desc[:constants.DEFAULT_N - 3] + "..."
    return f"{desc:<{constants.DEFAULT_N}}"
