from __future__ import annotations

from backticks.getopt import options, parameters


def test_options_converts_short_flags_with_values() -> None:
    assert options({"X": "V"}) == ["-X", "V"]


def test_options_converts_long_flags() -> None:
    assert options({"file": "joe.yml", "dry_run": True}) == ["--file=joe.yml", "--dry-run"]


def test_options_skips_false_and_none() -> None:
    assert options({"d": False, "verbose": None, "q": True}) == ["-q"]


def test_options_repeats_list_values() -> None:
    assert options({"e": ["A=1", "B=2"], "label": ("x", "y")}) == [
        "-e",
        "A=1",
        "-e",
        "B=2",
        "--label=x",
        "--label=y",
    ]


def test_parameters_splits_all_in_one_commands() -> None:
    assert parameters("ls -lR") == ["ls", "-lR"]
    assert parameters("sh -c 'echo hi'") == ["sh", "-c", "echo hi"]


def test_parameters_keeps_multi_word_commands_verbatim() -> None:
    assert parameters("sh", "-c", "echo hi") == ["sh", "-c", "echo hi"]


def test_parameters_expands_sugar() -> None:
    argv = parameters("docker-compose", {"file": "joe.yml"}, "up", {"d": True}, "mysvc")

    assert argv == ["docker-compose", "--file=joe.yml", "up", "-d", "mysvc"]


def test_parameters_flattens_nested_words() -> None:
    assert parameters("git", ["log", ["--oneline"]], 5) == ["git", "log", "--oneline", "5"]
