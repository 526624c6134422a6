"""Tests for the directory model."""

import os

import pytest

from scd.files import FileManager, read_dir


class TestReadDir:
    def test_directories_first_then_name(self, listing):
        assert [f.name for f in read_dir(listing)] == ["a", ".b", "c"]

    def test_file_info(self, listing):
        info = {f.name: f for f in read_dir(listing)}
        assert info["a"].is_dir
        assert not info["c"].is_dir
        assert info["c"].size == 3
        assert info["c"].permissions.startswith("-")

    def test_executable(self, listing):
        script = listing / "run.sh"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o755)
        info = {f.name: f for f in read_dir(listing)}
        assert info["run.sh"].is_executable
        assert not info["c"].is_executable
        assert not info["a"].is_executable

    def test_dangling_symlink_is_listed(self, listing):
        os.symlink(listing / "gone", listing / "link")
        assert "link" in [f.name for f in read_dir(listing)]


class TestNavigation:
    def test_initial_listing_hides_dotfiles(self, watcher, listing):
        files = FileManager(watcher, listing)
        assert files.names() == ["a", "c"]
        assert files.selected().name == "a"
        assert watcher.watched == [listing]

    def test_cd_swaps_watch(self, watcher, listing):
        files = FileManager(watcher, listing)
        assert files.cd(listing / "a") is True
        assert watcher.watched == [listing / "a"]
        assert watcher.calls[-2:] == [("unwatch", listing), ("watch", listing / "a")]
        assert files.names() == []
        assert files.selected() is None

    def test_cd_same_directory(self, watcher, listing):
        files = FileManager(watcher, listing)
        assert files.cd(listing) is False
        assert watcher.calls == [("watch", listing)]

    def test_cd_failure_keeps_previous_state(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.select_last()
        with pytest.raises(FileNotFoundError):
            files.cd(listing / "missing")
        assert files.dir == listing
        assert files.selected().name == "c"
        assert watcher.watched == [listing]

    def test_on_notify_reconciles(self, watcher, listing):
        files = FileManager(watcher, listing)
        (listing / "d").write_text("")
        (listing / "c").unlink()
        files.on_notify("created")
        assert files.names() == ["a", "d"]

    def test_selected_file_removed(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.select_name("c")
        (listing / "c").unlink()
        files.refresh()
        assert files.selected().name == "a"


class TestSelection:
    def test_wraps_around(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.select_next()
        assert files.selected().name == "c"
        files.select_next()
        assert files.selected().name == "a"
        files.select_prev()
        assert files.selected().name == "c"

    def test_first_last(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.select_last()
        assert files.selected_index == 1
        files.select_first()
        assert files.selected_index == 0

    def test_empty_directory(self, watcher, tmp_path):
        files = FileManager(watcher, tmp_path)
        files.select_next()
        files.select_prev()
        files.toggle_mark()
        assert files.selected() is None
        assert files.marked == []


class TestFilters:
    def test_hidden_toggle_keeps_selection(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.select_name("c")
        files.toggle_hidden()
        assert files.names() == ["a", ".b", "c"]
        assert files.selected_index == 2
        files.toggle_hidden()
        assert files.names() == ["a", "c"]
        assert files.selected_index == 1

    def test_hidden_selection_falls_back(self, watcher, listing):
        files = FileManager(watcher, listing, show_hidden=True)
        files.select_name(".b")
        files.toggle_hidden()
        assert files.selected().name == "a"

    def test_text_filter_is_case_insensitive(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.set_filter("C")
        assert files.names() == ["c"]

    def test_filter_is_idempotent(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.set_filter("c")
        once = (files.names(), files.selected_index)
        files.set_filter("c")
        assert (files.names(), files.selected_index) == once

    def test_clearing_filter_keeps_selection(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.set_filter("c")
        files.set_filter("")
        assert files.names() == ["a", "c"]
        assert files.selected().name == "c"

    def test_filter_matching_nothing(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.set_filter("zzz")
        assert files.names() == []
        assert files.selected() is None
        files.set_filter("")
        assert files.selected().name == "a"


class TestMarks:
    def test_mark_moves_down(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.toggle_mark()
        assert files.marked == [listing / "a"]
        assert files.selected().name == "c"

    def test_mark_at_end_stays(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.select_last()
        files.toggle_mark()
        assert files.selected().name == "c"

    def test_unmark(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.select_last()
        files.toggle_mark()
        files.toggle_mark()
        assert files.marked == []

    def test_take_marked(self, watcher, listing):
        files = FileManager(watcher, listing)
        files.toggle_mark()
        files.toggle_mark()
        assert files.take_marked() == [listing / "a", listing / "c"]
        assert files.marked == []


class TestMarkers:
    def _by_name(self, directory):
        return {f.name: f for f in read_dir(directory)}

    def test_directory_and_plain_file(self, listing):
        info = self._by_name(listing)
        assert info["a"].marker == "/"
        assert info["c"].marker == ""

    def test_executable(self, listing):
        script = listing / "run.sh"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o755)
        assert self._by_name(listing)["run.sh"].marker == "*"

    def test_symlink(self, listing):
        os.symlink(listing / "c", listing / "to-file")
        os.symlink(listing / "a", listing / "to-dir")
        info = self._by_name(listing)
        assert info["to-file"].is_symlink
        assert info["to-file"].marker == "@"
        assert info["to-dir"].marker == "@"
        assert info["to-dir"].is_dir
        assert not info["c"].is_symlink

    def test_fifo(self, listing):
        os.mkfifo(listing / "pipe")
        info = self._by_name(listing)["pipe"]
        assert info.is_fifo
        assert not info.is_executable
        assert info.marker == "|"
