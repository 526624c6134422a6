"""Tests for task progress parsers."""

import pytest

from scd.tasks.parsers import OutputParser, derive_status, parser_for, strip_ansi

CURL_LINE = " 45 1000k   45  450k    0     0   123k      0  0:00:08 0:00:03  0:00:05  123k"


class TestParserFor:
    @pytest.mark.parametrize(
        "command, parser",
        [
            ("curl -O https://x/big.iso", OutputParser.CURL),
            ("/usr/bin/curl -L x", OutputParser.CURL),
            ("wget https://x/big.iso", OutputParser.WGET),
            ("rsync -av --progress a b", OutputParser.RSYNC),
        ],
    )
    def test_known_tools(self, command, parser):
        assert parser_for(command) is parser

    def test_unknown_tool(self):
        assert parser_for("make -j8") is None
        assert parser_for("") is None


class TestParse:
    def test_curl(self):
        assert OutputParser.CURL.parse(CURL_LINE) == "123k/s 45%"

    def test_wget(self):
        line = "big.iso   45%[======>      ] 450.00M  12.3MB/s    eta 40s"
        assert OutputParser.WGET.parse(line) == "12.3MB/s 45%"

    def test_rsync(self):
        line = "    1,234,567  45%  123.45kB/s    0:00:05"
        assert OutputParser.RSYNC.parse(line) == "123.45kB/s 45%"

    def test_no_match(self):
        assert OutputParser.WGET.parse("Resolving example.com...") is None


class TestDeriveStatus:
    def test_parsed_line(self):
        assert derive_status("curl -O x", CURL_LINE, "Running") == "123k/s 45%"

    def test_unmatched_line_falls_back(self):
        assert derive_status("wget x", "Connecting...", "Running") == "Running"

    def test_unknown_tool_falls_back(self):
        assert derive_status("make", "45% done 3MB/s", "Running") == "Running"

    def test_blank_and_ansi(self):
        assert derive_status("curl x", "\x1b[2K   ", "Running") == "Running"
        assert derive_status("curl x", f"\x1b[1m{CURL_LINE}\x1b[0m", "Running") == "123k/s 45%"

    def test_strip_ansi(self):
        assert strip_ansi("\x1b[31mred\x1b[0m") == "red"
