"""
Tests for CLI argument parsing.
"""

import pytest

from cutlab.cli import parse_args, parse_breakpoints


def test_parse_breakpoints():
    assert parse_breakpoints("30,90.5") == [30.0, 90.5]
    assert parse_breakpoints("") == []


def test_split_args():
    args = parse_args(["split", "a.mp3", "b.mp3", "--breakpoints", "10,20", "--submit"])

    assert args.command == "split"
    assert args.files == ["a.mp3", "b.mp3"]
    assert args.breakpoints == [10.0, 20.0]
    assert args.submit and not args.direct


def test_even_and_breakpoints_exclusive():
    with pytest.raises(SystemExit):
        parse_args(["split", "a.mp3", "--even", "3", "--breakpoints", "10"])


def test_replace_args():
    args = parse_args(["-v", "replace", "vid-1", "4", "clip.mp4"])

    assert args.verbose
    assert (args.video_id, args.chunk_index, args.clip) == ("vid-1", 4, "clip.mp4")
