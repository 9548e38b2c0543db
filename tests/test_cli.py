import logging

import pytest

from tether_cli import SECTIONS, build_parser, main, run_sections

pytestmark = pytest.mark.cli


def test_main_runs_every_section(caplog, clean_defaults):
    caplog.set_level(logging.INFO)
    assert main(["--section", "all"]) == 0
    text = caplog.text
    for name in SECTIONS:
        assert f"=== {name} ===" in text
    assert "after move: source empty=True, destination owns 5" in text
    assert "shared with 3 more owner(s): strong=4 alive=1" in text
    assert "after last owner: alive=0" in text
    assert "after 3 increments: 3 (strong=3)" in text
    assert "nested mutation rejected" in text
    assert "value unchanged: 3" in text
    assert "allocations=3 deallocations=3" in text


def test_single_section(caplog):
    caplog.set_level(logging.INFO)
    assert run_sections(["shared"], values=[], copies=5) == ["shared"]
    assert "strong=6 alive=1" in caplog.text


def test_empty_chain_section(caplog):
    caplog.set_level(logging.INFO)
    main(["--section", "chain", "--values"])
    assert "created chain with 0 link(s)" in caplog.text


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.section == "all"
    assert args.values == [1, 2, 3, 4, 5]
    assert args.copies == 3


def test_negative_copies_rejected():
    with pytest.raises(SystemExit):
        main(["--copies", "-1"])


def test_unknown_section_rejected():
    with pytest.raises(SystemExit):
        main(["--section", "nope"])


def test_invalid_log_level_rejected_by_parser(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--log-level", "bogus", "--section", "scope"])
    assert info.value.code == 2
    assert "--log-level" in capsys.readouterr().err


def test_log_level_name_is_normalized():
    args = build_parser().parse_args(["--log-level", "debug"])
    assert args.log_level == logging.DEBUG


def test_demo_leaves_module_counters_alone(caplog, clean_defaults):
    caplog.set_level(logging.INFO)
    run_sections(SECTIONS, values=[1, 2], copies=1)
    for name, bundle in clean_defaults.items():
        assert bundle.constructed.load() == 0, name
