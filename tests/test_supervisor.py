"""Tests for the task supervisor."""

import io
import signal
from unittest.mock import patch

import pytest

from scd.config import TaskConfig
from scd.errors import SpawnError, TaskSignalError
from scd.models import Exited, Running, Stopped, Task, TaskExited, TaskOutput, TaskStream
from scd.tasks.supervisor import TaskSupervisor, build_argv, split_carriage_returns


class Recorder:
    """Collects emitted events and deferred reader threads."""

    def __init__(self):
        self.events = []
        self.threads = []

    def emit(self, pid, event):
        self.events.append((pid, event))

    def start_thread(self, name, target):
        self.threads.append((name, target))

    def run_threads(self):
        for _, target in self.threads:
            target()
        self.threads = []


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def supervisor(recorder):
    return TaskSupervisor(recorder.emit, TaskConfig(shell="sh"), start_thread=recorder.start_thread)


def _task(pid, command="sleep 1", status=None):
    return Task(pid=pid, command=command, display=command, status=status or Running())


class TestSplitCarriageReturns:
    def test_splits_on_cr(self):
        stream = io.BufferedReader(io.BytesIO(b"10%\r20%\r30%\ndone"))
        assert list(split_carriage_returns(stream)) == ["10%", "20%", "30%\ndone"]


class TestBuildArgv:
    def test_plain_shell(self):
        assert build_argv("ls -l", "/bin/sh") == ["/bin/sh", "-c", "ls -l"]

    def test_fish_execs(self):
        assert build_argv("ls -l", "/usr/bin/fish") == ["/usr/bin/fish", "-c", "exec ls -l"]


class TestSpawn:
    def test_runs_and_reports_exit(self, supervisor, recorder):
        task = supervisor.spawn("printf 'a\\rb'; exit 3", display="demo")
        assert supervisor.tasks == [task]
        assert task.display == "demo"
        assert [name for name, _ in recorder.threads] == [
            f"task-{task.pid}-out",
            f"task-{task.pid}-err",
        ]

        recorder.run_threads()
        assert recorder.events == [
            (task.pid, TaskOutput("a", TaskStream.STDOUT)),
            (task.pid, TaskOutput("b", TaskStream.STDOUT)),
            (task.pid, TaskExited(3)),
        ]
        for pid, event in recorder.events:
            supervisor.on_event(pid, event)
        assert task.status == Exited(3)

    def test_stderr_is_streamed(self, supervisor, recorder):
        task = supervisor.spawn("echo oops >&2")
        recorder.run_threads()
        assert (task.pid, TaskOutput("oops\n", TaskStream.STDERR)) in recorder.events

    def test_newest_first(self, supervisor, recorder):
        first = supervisor.spawn("true")
        second = supervisor.spawn("true")
        assert supervisor.tasks == [second, first]
        recorder.run_threads()

    def test_empty_command(self, supervisor):
        with pytest.raises(SpawnError):
            supervisor.spawn("   ")

    def test_missing_shell(self, recorder):
        supervisor = TaskSupervisor(
            recorder.emit, TaskConfig(shell="/nonexistent/shell"), start_thread=recorder.start_thread
        )
        with pytest.raises(SpawnError):
            supervisor.spawn("true")
        assert supervisor.tasks == []


class TestOnEvent:
    def test_output_updates_status(self, supervisor):
        supervisor.tasks = [_task(1, "curl -O x")]
        supervisor.on_event(1, TaskOutput(" 45 1000k   45  450k    0     0   123k      0  0:00:08 0:00:03  0:00:05  123k"))
        assert supervisor.tasks[0].status == Running("123k/s 45%")

    def test_unparsed_output_keeps_running_text(self, supervisor):
        supervisor.tasks = [_task(1, "make")]
        supervisor.on_event(1, TaskOutput("cc -o x x.c"))
        assert supervisor.tasks[0].status == Running("Running")

    def test_output_after_stop_is_ignored(self, supervisor):
        supervisor.tasks = [_task(1, status=Stopped())]
        supervisor.on_event(1, TaskOutput("late"))
        assert supervisor.tasks[0].status == Stopped()

    def test_output_after_exit_is_ignored(self, supervisor):
        supervisor.tasks = [_task(1, status=Exited(0))]
        supervisor.on_event(1, TaskOutput("late"))
        assert supervisor.tasks[0].status == Exited(0)

    def test_stopped_then_exited(self, supervisor):
        supervisor.tasks = [_task(1, status=Stopped())]
        supervisor.on_event(1, TaskExited(130))
        assert supervisor.tasks[0].status == Exited(130)

    def test_second_exit_is_ignored(self, supervisor):
        supervisor.tasks = [_task(1, status=Exited(0))]
        supervisor.on_event(1, TaskExited(1))
        assert supervisor.tasks[0].status == Exited(0)

    def test_unknown_pid(self, supervisor):
        supervisor.on_event(999, TaskExited(0))
        assert supervisor.tasks == []

    def test_sorted_on_exit(self, supervisor):
        supervisor.tasks = [_task(1), _task(2), _task(3), _task(4)]
        supervisor.on_event(2, TaskExited(0))
        supervisor.on_event(3, TaskExited(1))
        supervisor.get(4).status = Stopped()
        supervisor.on_event(1, TaskExited(0))
        assert [t.pid for t in supervisor.tasks] == [4, 3, 1, 2]


class TestControl:
    def test_stop_marks_stopped(self, supervisor, recorder):
        task = supervisor.spawn("sleep 5")
        supervisor.stop(task.pid)
        assert task.status == Stopped()
        recorder.run_threads()
        exit_event = recorder.events[-1][1]
        assert isinstance(exit_event, TaskExited)
        supervisor.on_event(task.pid, exit_event)
        assert isinstance(task.status, Exited)
        assert not task.status.success

    def test_stop_finished_task_is_noop(self, supervisor):
        supervisor.tasks = [_task(1, status=Exited(0))]
        with patch("scd.tasks.supervisor.os.kill") as kill:
            supervisor.stop(1)
        kill.assert_not_called()

    def test_send_signal(self, supervisor):
        with patch("scd.tasks.supervisor.os.kill") as kill:
            supervisor.send_signal(123, signal.SIGTERM)
        kill.assert_called_once_with(123, signal.SIGTERM)

    def test_signal_gone_process(self, supervisor):
        with patch("scd.tasks.supervisor.os.kill", side_effect=ProcessLookupError):
            with pytest.raises(TaskSignalError):
                supervisor.send_signal(123, signal.SIGKILL)

    def test_signal_not_permitted(self, supervisor):
        with patch("scd.tasks.supervisor.os.kill", side_effect=PermissionError):
            with pytest.raises(TaskSignalError):
                supervisor.send_signal(1, signal.SIGKILL)

    def test_clear_finished(self, supervisor):
        supervisor.tasks = [_task(1), _task(2, status=Stopped()), _task(3, status=Exited(1))]
        assert supervisor.clear_finished() == 2
        assert [t.pid for t in supervisor.tasks] == [1]
